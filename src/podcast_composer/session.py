"""Generation session -- one lifetime of the "generate podcast" dialog.

Owns the selection store, collection loader, live aggregator and the
submission path. All mutation happens on the event loop thread; loads and
aggregation passes run as tasks and are ignored once the session closes.

Typical flow:
    session = GenerationSession(client, config)
    await session.open()
    session.expand(notebook_id)
    await session.settle()          # collections loaded, defaults seeded
    session.toggle_note(notebook_id, note_id, False)
    await session.settle()          # estimate refreshed
    job = await session.submit(profile_id, "Episode name")
"""

import asyncio

from loguru import logger

from .aggregator import ContextAggregator
from .api.client import NotebookClient
from .compiler import PayloadCompiler
from .config import ComposerConfig
from .errors import ComposerError, MissingProfileError
from .loader import CollectionLoader
from .models import (
    AggregateCounts,
    EpisodeProfile,
    GenerationJob,
    InclusionMode,
    Notebook,
    NotebookCollection,
    SelectionSummary,
)
from .selection import SelectionStore
from .trigger import GenerationTrigger

log = logger.bind(stage="session")


class GenerationSession:
    def __init__(self, client: NotebookClient, config: ComposerConfig) -> None:
        self.client = client
        self.config = config
        self.store = SelectionStore()
        self.loader = CollectionLoader(client)
        self.aggregator = ContextAggregator(client, config)
        self.compiler = PayloadCompiler(client, config)
        self.trigger = GenerationTrigger(client)

        self.notebooks: list[Notebook] = []
        self.episode_profiles: list[EpisodeProfile] = []
        self.expanded: set[str] = set()
        self.is_open = False
        self._epoch = 0
        self._loads: dict[str, asyncio.Task] = {}

    # -- Lifecycle --

    async def open(self) -> None:
        """Start a fresh session and fetch notebooks and episode profiles."""
        self._reset()
        self.is_open = True
        self.notebooks, self.episode_profiles = await asyncio.gather(
            self.client.list_notebooks(),
            self.client.list_episode_profiles(),
        )
        log.info(
            f"Session opened: {len(self.notebooks)} notebooks, "
            f"{len(self.episode_profiles)} episode profiles"
        )

    def close(self) -> None:
        """Discard all selection state; in-flight results are ignored."""
        self._reset()
        self.is_open = False
        log.debug("Session closed")

    def _reset(self) -> None:
        self._epoch += 1
        self.aggregator.close()
        self.store.clear()
        self.loader.clear()
        self.expanded.clear()
        self._loads.clear()

    async def settle(self) -> None:
        """Wait until pending loads and the latest aggregation pass are done."""
        while True:
            pending = [t for t in self._loads.values() if not t.done()]
            if pending:
                await asyncio.gather(*pending)
                continue
            await self.aggregator.wait()
            if not any(not t.done() for t in self._loads.values()):
                return

    # -- Collections --

    def expand(self, notebook_id: str) -> None:
        self.expanded.add(notebook_id)
        self._sync_collections()

    def collapse(self, notebook_id: str) -> None:
        self.expanded.discard(notebook_id)

    def relevant_notebooks(self) -> list[str]:
        """Notebooks that are expanded or hold an active selection, in listing order."""
        ids = [nb.id for nb in self.notebooks]
        ids += [nb_id for nb_id in self.store.tree if nb_id not in ids]
        ids += [nb_id for nb_id in self.expanded if nb_id not in ids]
        return [
            nb_id
            for nb_id in ids
            if nb_id in self.expanded or self.store.has_selections(nb_id)
        ]

    def collection(self, notebook_id: str) -> NotebookCollection:
        return self.loader.get(notebook_id)

    async def retry(self, notebook_id: str) -> None:
        """Retry a failed collection load."""
        self._loads.pop(notebook_id, None)
        self.loader.errors.pop(notebook_id, None)
        self._schedule_load(notebook_id)
        await self.settle()

    def _sync_collections(self) -> None:
        if not self.is_open:
            return
        for notebook_id in self.relevant_notebooks():
            if self.loader.is_loaded(notebook_id) or notebook_id in self._loads:
                continue
            if notebook_id in self.loader.errors:
                continue
            self._schedule_load(notebook_id)

    def _schedule_load(self, notebook_id: str) -> None:
        self._loads[notebook_id] = asyncio.create_task(
            self._load(notebook_id, self._epoch)
        )

    async def _load(self, notebook_id: str, epoch: int) -> None:
        collection = await self.loader.ensure_loaded(notebook_id)
        if epoch != self._epoch:
            return
        if not self.loader.is_loaded(notebook_id):
            return
        if self.store.reconcile(notebook_id, collection):
            self._selection_changed()

    # -- Selection --

    def toggle_notebook(self, notebook_id: str, checked: bool) -> None:
        self.store.toggle_notebook(notebook_id, checked, self.collection(notebook_id))
        self._selection_changed()
        # Checking an unloaded notebook prefetches it so its items get seeded.
        # Unchecking never fetches: seeding would re-select everything.
        if not checked or not self.is_open or notebook_id in self._loads:
            return
        if not self.loader.is_loaded(notebook_id):
            self._schedule_load(notebook_id)

    def set_source_mode(
        self, notebook_id: str, source_id: str, mode: InclusionMode
    ) -> None:
        """Set a source's mode; insights falls back to full for insight-less sources."""
        mode = InclusionMode(mode)
        source = self.collection(notebook_id).find_source(source_id)
        if mode == InclusionMode.INSIGHTS and source is not None:
            if not source.insights_count:
                log.debug(f"{source_id} has no insights, using full content")
                mode = InclusionMode.FULL
        self.store.set_source_mode(notebook_id, source_id, mode)
        self._selection_changed()

    def toggle_note(self, notebook_id: str, note_id: str, checked: bool) -> None:
        self.store.toggle_note(notebook_id, note_id, checked)
        self._selection_changed()

    def summary(self, notebook_id: str) -> SelectionSummary:
        return self.store.summary(notebook_id, self.collection(notebook_id))

    def selected_count(self) -> int:
        return self.store.selected_count()

    @property
    def counts(self) -> AggregateCounts:
        return self.aggregator.counts

    def _selection_changed(self) -> None:
        if not self.is_open:
            return
        self.aggregator.schedule(self.store.snapshot())
        self._sync_collections()

    # -- Submission --

    def find_profile(self, profile_id: str) -> EpisodeProfile | None:
        for profile in self.episode_profiles:
            if profile.id == profile_id:
                return profile
        return None

    def notebook_names(self) -> dict[str, str]:
        return {nb.id: nb.name for nb in self.notebooks}

    async def submit(
        self, profile_id: str, episode_name: str, instructions: str = ""
    ) -> GenerationJob:
        """Compile the current selection and start a generation job.

        On success the session resets. On failure the selection is kept
        so the user can fix it and retry.
        """
        profile = self.find_profile(profile_id) if profile_id else None
        if profile is None:
            raise MissingProfileError(profile_id)

        try:
            payload = await self.compiler.compile(
                self.store.snapshot(),
                self.notebook_names(),
                profile,
                episode_name,
                instructions,
            )
            job = await self.trigger.submit(payload)
        except ComposerError as e:
            log.error(f"Failed to generate podcast: {e}")
            raise

        self.close()
        return job
