"""Lazy per-notebook loading of source and note collections.

Each notebook is fetched at most once per session. Failures are scoped
to the notebook: they are logged, recorded, and produce an empty
collection that is not cached so the next request retries.
"""

import asyncio

import httpx
from loguru import logger

from .api.client import NotebookClient
from .errors import FetchError
from .models import NotebookCollection

log = logger.bind(stage="loader")


class CollectionLoader:
    def __init__(self, client: NotebookClient) -> None:
        self.client = client
        self._cache: dict[str, NotebookCollection] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self.errors: dict[str, FetchError] = {}
        self._epoch = 0

    def is_loaded(self, notebook_id: str) -> bool:
        return notebook_id in self._cache

    def get(self, notebook_id: str) -> NotebookCollection:
        """Cached collection, or an empty one if not (successfully) loaded."""
        return self._cache.get(notebook_id) or NotebookCollection(notebook_id)

    async def ensure_loaded(self, notebook_id: str) -> NotebookCollection:
        """Return the notebook's collection, fetching it on first use.

        Concurrent callers for the same notebook share one fetch.
        """
        if notebook_id in self._cache:
            return self._cache[notebook_id]

        task = self._inflight.get(notebook_id)
        if task is None:
            task = asyncio.create_task(self._fetch(notebook_id, self._epoch))
            self._inflight[notebook_id] = task
        try:
            return await task
        finally:
            if self._inflight.get(notebook_id) is task and task.done():
                del self._inflight[notebook_id]

    async def retry(self, notebook_id: str) -> NotebookCollection:
        self.errors.pop(notebook_id, None)
        return await self.ensure_loaded(notebook_id)

    def clear(self) -> None:
        """Forget every cached collection (session closed)."""
        self._cache.clear()
        self._inflight.clear()
        self.errors.clear()
        self._epoch += 1

    async def _fetch(self, notebook_id: str, epoch: int) -> NotebookCollection:
        log.debug(f"Fetching collection for {notebook_id}")
        try:
            sources, notes = await asyncio.gather(
                self.client.list_sources(notebook_id),
                self.client.list_notes(notebook_id),
            )
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            err = FetchError(notebook_id, str(e) or type(e).__name__)
            if epoch == self._epoch:
                self.errors[notebook_id] = err
            log.warning(str(err))
            return NotebookCollection(notebook_id)

        collection = NotebookCollection(notebook_id, sources=sources, notes=notes)
        if epoch != self._epoch:
            log.debug(f"Discarding collection for {notebook_id} from a closed session")
            return collection
        self._cache[notebook_id] = collection
        self.errors.pop(notebook_id, None)
        log.info(
            f"Loaded {notebook_id}: {len(sources)} sources, {len(notes)} notes"
        )
        return collection
