"""Async REST client for the notebook server.

Wraps the endpoints the composer consumes and converts their JSON into
the dataclasses in ``models``. Transport and HTTP status failures are
raised as ``httpx.HTTPError``; callers decide whether they are fatal.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from ..config import ComposerConfig
from ..models import (
    CompiledPayload,
    ContextResult,
    EpisodeProfile,
    GenerationJob,
    Note,
    Notebook,
    Source,
)

log = logger.bind(stage="api")


class NotebookClient:
    """Thin async client over the notebook server REST API."""

    def __init__(
        self,
        base_url: str,
        password: str = "",
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {password}"} if password else {}
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ComposerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> NotebookClient:
        return cls(
            base_url=config.api_base_url,
            password=config.api_password,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> NotebookClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: dict | None = None) -> list:
        log.debug(f"GET {path} params={params}")
        resp = await self._http.get(path, params=params)
        resp.raise_for_status()
        return _expect(path, resp.json(), list)

    async def _post(self, path: str, body: dict) -> dict:
        log.debug(f"POST {path}")
        resp = await self._http.post(path, json=body)
        resp.raise_for_status()
        return _expect(path, resp.json(), dict)

    async def list_notebooks(self) -> list[Notebook]:
        data = await self._get("/api/notebooks")
        return [Notebook(id=nb["id"], name=nb.get("name") or "") for nb in data]

    async def list_sources(self, notebook_id: str) -> list[Source]:
        data = await self._get("/api/sources", params={"notebook_id": notebook_id})
        return [_parse_source(s) for s in data]

    async def list_notes(self, notebook_id: str) -> list[Note]:
        data = await self._get("/api/notes", params={"notebook_id": notebook_id})
        return [
            Note(
                id=n["id"],
                title=n.get("title") or "",
                updated=n.get("updated") or "",
            )
            for n in data
        ]

    async def build_context(
        self,
        notebook_id: str,
        sources: dict[str, str],
        notes: dict[str, str],
    ) -> ContextResult:
        """Build the context for a notebook selection.

        ``sources`` and ``notes`` map bare record ids to wire labels
        ("insights" / "full content").
        """
        data = await self._post(
            "/api/chat/context",
            {
                "notebook_id": notebook_id,
                "context_config": {"sources": sources, "notes": notes},
            },
        )
        return ContextResult(
            context=data.get("context"),
            token_count=int(data.get("token_count") or 0),
            char_count=int(data.get("char_count") or 0),
        )

    async def list_episode_profiles(self) -> list[EpisodeProfile]:
        data = await self._get("/api/episode-profiles")
        return [
            EpisodeProfile(
                id=p["id"],
                name=p.get("name") or "",
                speaker_config=p.get("speaker_config") or "",
                description=p.get("description") or "",
            )
            for p in data
        ]

    async def generate_podcast(self, payload: CompiledPayload) -> GenerationJob:
        data = await self._post("/api/podcasts/generate", payload.to_request())
        return GenerationJob(
            job_id=str(data.get("job_id") or ""),
            status=data.get("status") or "submitted",
            message=data.get("message") or "",
        )


def _parse_source(data: dict) -> Source:
    asset = data.get("asset") or {}
    return Source(
        id=data["id"],
        title=data.get("title") or "",
        insights_count=int(data.get("insights_count") or 0),
        embedded=bool(data.get("embedded")),
        asset_url=asset.get("url") or None,
    )


def _expect(path: str, data: Any, kind: type) -> Any:
    """Reject a 200 response whose JSON body has the wrong top-level shape."""
    if not isinstance(data, kind):
        raise TypeError(
            f"{path}: expected a JSON {kind.__name__}, got {type(data).__name__}"
        )
    return data
