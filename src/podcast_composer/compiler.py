"""Compile the selection into the single content string sent for generation.

Unlike the live estimate this is authoritative: every notebook with an
active selection is rebuilt at submission time and any failure aborts
the submission.
"""

import asyncio
import json

import httpx
from loguru import logger

from .api.client import NotebookClient
from .config import ComposerConfig
from .errors import (
    ContextBuildError,
    MissingNameError,
    MissingProfileError,
    NoContentSelectedError,
)
from .models import CompiledPayload, ContextResult, EpisodeProfile, SelectionTree
from .selection import context_config

log = logger.bind(stage="compile")


class PayloadCompiler:
    def __init__(self, client: NotebookClient, config: ComposerConfig) -> None:
        self.client = client
        self.config = config

    async def compile(
        self,
        tree: SelectionTree,
        notebook_names: dict[str, str],
        profile: EpisodeProfile | None,
        episode_name: str,
        instructions: str = "",
    ) -> CompiledPayload:
        """Validate the episode settings, build the content, return the payload.

        Profile and name are checked before any network call.

        Raises:
            MissingProfileError: No episode profile given.
            MissingNameError: Episode name empty after stripping.
            ContextBuildError: A per-notebook context build failed.
            NoContentSelectedError: The compiled content is blank.
        """
        if profile is None:
            raise MissingProfileError()
        name = episode_name.strip()
        if not name:
            raise MissingNameError()

        content = await self.build_content(tree, notebook_names)
        if not content.strip():
            raise NoContentSelectedError()

        suffix = instructions.strip()
        return CompiledPayload(
            episode_profile=profile.name,
            speaker_profile=profile.speaker_config,
            episode_name=name,
            content=content,
            briefing_suffix=suffix or None,
        )

    async def build_content(
        self, tree: SelectionTree, notebook_names: dict[str, str]
    ) -> str:
        """Serialised contexts of every selected notebook, in tree order.

        Each block is the notebook header followed by its context as
        indented JSON; blocks are separated by a blank line. Returns ""
        when nothing is selected.
        """
        tasks: list[tuple[str, dict[str, str], dict[str, str]]] = []
        for notebook_id, selection in tree.items():
            sources, notes = context_config(selection)
            if not sources and not notes:
                continue
            tasks.append((notebook_id, sources, notes))

        if not tasks:
            return ""

        log.info(f"Building context for {len(tasks)} notebook(s)")
        results = await asyncio.gather(
            *(self.client.build_context(nb, s, n) for nb, s, n in tasks),
            return_exceptions=True,
        )

        parts = []
        for (notebook_id, _, _), result in zip(tasks, results):
            if isinstance(result, BaseException):
                if not isinstance(result, (httpx.HTTPError, KeyError, TypeError, ValueError)):
                    raise result
                log.error(f"Failed to build context for notebook {notebook_id}: {result}")
                raise ContextBuildError(
                    notebook_id, str(result) or type(result).__name__
                ) from result
            name = notebook_names.get(notebook_id) or notebook_id
            parts.append(self._render_block(name, result))

        return "\n\n".join(parts)

    def _render_block(self, name: str, result: ContextResult) -> str:
        body = json.dumps(
            result.context, indent=self.config.context_indent, ensure_ascii=False
        )
        return f"{self.config.notebook_header(name)}\n{body}"
