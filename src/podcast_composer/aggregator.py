"""Live token/character estimate for the current selection.

Every selection change schedules a new pass stamped with an increasing
version. A pass fans out one context-build call per notebook with active
selections and commits its summed counts only if no newer pass has been
scheduled since it started. In-flight calls of a superseded pass are not
cancelled; their results are dropped.
"""

import asyncio

import httpx
from loguru import logger

from .api.client import NotebookClient
from .config import ComposerConfig
from .errors import AggregationStaleResult
from .models import AggregateCounts, ContextResult, SelectionTree
from .selection import context_config

log = logger.bind(stage="aggregate")


class ContextAggregator:
    """Keeps ``counts`` in sync with the latest selection snapshot.

    Attributes:
        counts: Totals of the most recent committed pass.
        version: Stamp of the most recently scheduled pass.
    """

    def __init__(self, client: NotebookClient, config: ComposerConfig) -> None:
        self.client = client
        self.config = config
        self.counts = AggregateCounts()
        self.version = 0
        self._task: asyncio.Task | None = None
        limit = config.max_parallel_context_builds
        self._semaphore = asyncio.Semaphore(limit) if limit > 0 else None

    def schedule(self, snapshot: SelectionTree) -> asyncio.Task:
        """Start a pass over snapshot, superseding any pass in flight."""
        self.version += 1
        self._task = asyncio.create_task(self._run(self.version, snapshot))
        return self._task

    async def wait(self) -> AggregateCounts:
        """Wait for the latest scheduled pass (and any it superseded while waiting)."""
        while self._task is not None and not self._task.done():
            await self._task
        return self.counts

    def close(self) -> None:
        """Ignore every in-flight pass and reset the counts."""
        self.version += 1
        self._task = None
        self.counts = AggregateCounts()

    async def _run(self, version: int, snapshot: SelectionTree) -> None:
        try:
            counts = await self.aggregate(snapshot)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            log.warning(f"Error updating context counts (pass {version}): {e}")
            return

        try:
            self._commit(version, counts)
        except AggregationStaleResult as stale:
            log.debug(str(stale))

    def _commit(self, version: int, counts: AggregateCounts) -> None:
        if version != self.version:
            raise AggregationStaleResult(version, self.version)
        self.counts = counts
        log.debug(
            f"Pass {version}: {counts.token_count} tokens, {counts.char_count} chars"
        )

    async def aggregate(self, snapshot: SelectionTree) -> AggregateCounts:
        """Sum context sizes over every notebook with active selections.

        Raises the first per-notebook failure.
        """
        calls = []
        for notebook_id, selection in snapshot.items():
            sources, notes = context_config(selection)
            if not sources and not notes:
                continue
            calls.append(self._build(notebook_id, sources, notes))

        if not calls:
            return AggregateCounts()

        results = await asyncio.gather(*calls)
        total = AggregateCounts()
        for result in results:
            total = total + result.counts
        return total

    async def _build(
        self, notebook_id: str, sources: dict[str, str], notes: dict[str, str]
    ) -> ContextResult:
        if self._semaphore is None:
            return await self.client.build_context(notebook_id, sources, notes)
        async with self._semaphore:
            return await self.client.build_context(notebook_id, sources, notes)
