"""Shared fixtures: an in-memory notebook server client and sample data."""

import asyncio

import httpx
import pytest

from podcast_composer.config import ComposerConfig
from podcast_composer.models import (
    ContextResult,
    EpisodeProfile,
    GenerationJob,
    Note,
    Notebook,
    Source,
)


class FakeClient:
    """Stands in for NotebookClient.

    Context sizes are derived from the request so tests can tell passes
    apart: 10 tokens per source, 5 per note, chars = 4 x tokens.
    """

    def __init__(self, notebooks=None, sources=None, notes=None, profiles=None):
        self.notebooks = notebooks or []
        self.sources = sources or {}
        self.notes = notes or {}
        self.profiles = profiles or []

        self.list_calls: list[tuple[str, str]] = []
        self.context_calls: list[tuple[str, dict, dict]] = []
        self.generated = []

        self.fail_lists: set[str] = set()
        self.fail_contexts: set[str] = set()
        self.generate_error: Exception | None = None

        self.active = 0
        self.max_active = 0
        self._holds: list[tuple[object, asyncio.Event]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    def hold(self, predicate) -> asyncio.Event:
        """Block build_context calls matching predicate until the event is set."""
        event = asyncio.Event()
        self._holds.append((predicate, event))
        return event

    async def list_notebooks(self):
        return list(self.notebooks)

    async def list_episode_profiles(self):
        return list(self.profiles)

    async def list_sources(self, notebook_id):
        self.list_calls.append(("sources", notebook_id))
        await asyncio.sleep(0)
        if notebook_id in self.fail_lists:
            raise httpx.ConnectError("connection refused")
        return list(self.sources.get(notebook_id, []))

    async def list_notes(self, notebook_id):
        self.list_calls.append(("notes", notebook_id))
        await asyncio.sleep(0)
        if notebook_id in self.fail_lists:
            raise httpx.ConnectError("connection refused")
        return list(self.notes.get(notebook_id, []))

    async def build_context(self, notebook_id, sources, notes):
        self.context_calls.append((notebook_id, dict(sources), dict(notes)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for predicate, event in self._holds:
                if predicate(notebook_id, sources, notes):
                    await event.wait()
            await asyncio.sleep(0)
            if notebook_id in self.fail_contexts:
                raise httpx.ConnectError("context build failed")
        finally:
            self.active -= 1

        tokens = 10 * len(sources) + 5 * len(notes)
        return ContextResult(
            context={"notebook": notebook_id, "sources": sorted(sources), "notes": sorted(notes)},
            token_count=tokens,
            char_count=tokens * 4,
        )

    async def generate_podcast(self, payload):
        if self.generate_error is not None:
            raise self.generate_error
        self.generated.append(payload)
        return GenerationJob(job_id=f"command:{len(self.generated)}", status="submitted")


@pytest.fixture
def config(tmp_path):
    return ComposerConfig(_env_file=None, log_dir=tmp_path / "logs")


@pytest.fixture
def client():
    """Two notebooks: A has an insightful source, a plain source and a note; B one source."""
    return FakeClient(
        notebooks=[Notebook("notebook:a", "Research"), Notebook("notebook:b", "Reading")],
        sources={
            "notebook:a": [
                Source("source:s1", "Paper", insights_count=2, embedded=True),
                Source("source:s2", "Blog post", asset_url="https://example.com/post"),
            ],
            "notebook:b": [Source("source:s3", "Book chapter")],
        },
        notes={
            "notebook:a": [Note("note:n1", "Summary", "2024-05-01T10:00:00")],
        },
        profiles=[
            EpisodeProfile("episode_profile:tech", "tech_discussion", "tech_experts"),
            EpisodeProfile("episode_profile:solo", "solo_expert", "solo_voice"),
        ],
    )
