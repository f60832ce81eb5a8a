"""Selection store -- the user's inclusion choices for one session.

The tree maps notebook id -> NotebookSelection. Entries are created on
first write or when a notebook's collection is reconciled after loading;
there are no placeholder entries for notebooks never touched.
"""

from loguru import logger

from .defaults import resolve_note_mode, resolve_source_mode, seed_defaults
from .models import (
    MODE_LABELS,
    NOTE_ID_PREFIX,
    SOURCE_ID_PREFIX,
    CheckState,
    InclusionMode,
    NotebookCollection,
    NotebookSelection,
    SelectionSummary,
    SelectionTree,
)

log = logger.bind(stage="selection")


class SelectionStore:
    """Mutable selection tree owned by a single generation session."""

    def __init__(self) -> None:
        self.tree: SelectionTree = {}

    def get(self, notebook_id: str) -> NotebookSelection | None:
        return self.tree.get(notebook_id)

    def _entry(self, notebook_id: str) -> NotebookSelection:
        entry = self.tree.get(notebook_id)
        if entry is None:
            entry = NotebookSelection()
            self.tree[notebook_id] = entry
        return entry

    def clear(self) -> None:
        self.tree = {}

    def snapshot(self) -> SelectionTree:
        """Deep copy of the tree, safe to hand to an async pass."""
        return {nb_id: sel.copy() for nb_id, sel in self.tree.items()}

    def reconcile(self, notebook_id: str, collection: NotebookCollection) -> bool:
        """Seed defaults for items of a freshly loaded collection.

        Creates the notebook entry if missing. Returns True if the tree changed.
        """
        created = notebook_id not in self.tree
        changed = seed_defaults(self._entry(notebook_id), collection)
        if changed:
            log.debug(
                f"Seeded defaults for {notebook_id}: "
                f"{len(collection.sources)} sources, {len(collection.notes)} notes"
            )
        return created or changed

    def toggle_notebook(
        self, notebook_id: str, checked: bool, collection: NotebookCollection
    ) -> None:
        """Select every known item at its resolved default, or clear them all.

        Only items currently in ``collection`` are touched; the entry is
        rebuilt from them. Items loaded later are seeded by ``reconcile``.
        """
        if checked:
            sources = {s.id: resolve_source_mode(s) for s in collection.sources}
            notes = {n.id: resolve_note_mode(n) for n in collection.notes}
        else:
            sources = {s.id: InclusionMode.OFF for s in collection.sources}
            notes = {n.id: InclusionMode.OFF for n in collection.notes}
        self.tree[notebook_id] = NotebookSelection(sources=sources, notes=notes)
        log.debug(f"toggle_notebook({notebook_id}, checked={checked})")

    def set_source_mode(
        self, notebook_id: str, source_id: str, mode: InclusionMode
    ) -> None:
        self._entry(notebook_id).sources[source_id] = InclusionMode(mode)

    def toggle_note(self, notebook_id: str, note_id: str, checked: bool) -> None:
        mode = InclusionMode.FULL if checked else InclusionMode.OFF
        self._entry(notebook_id).notes[note_id] = mode

    def has_selections(self, notebook_id: str) -> bool:
        entry = self.tree.get(notebook_id)
        return entry is not None and entry.has_active()

    def has_any_selections(self) -> bool:
        return any(sel.has_active() for sel in self.tree.values())

    def selected_count(self) -> int:
        """Number of active items across all notebooks."""
        return sum(
            len(sel.active_sources()) + len(sel.active_notes())
            for sel in self.tree.values()
        )

    def summary(
        self, notebook_id: str, collection: NotebookCollection
    ) -> SelectionSummary:
        """Selected counts and checkbox state of one notebook.

        The state compares the known items of ``collection``: checked when
        all are active, unchecked when none are (or none are known),
        indeterminate otherwise.
        """
        entry = self.tree.get(notebook_id) or NotebookSelection()
        known_active = sum(
            1
            for s in collection.sources
            if entry.sources.get(s.id, InclusionMode.OFF) != InclusionMode.OFF
        ) + sum(
            1
            for n in collection.notes
            if entry.notes.get(n.id, InclusionMode.OFF) != InclusionMode.OFF
        )
        total = collection.total

        if total == 0 or known_active == 0:
            state = CheckState.UNCHECKED
        elif known_active == total:
            state = CheckState.CHECKED
        else:
            state = CheckState.INDETERMINATE

        return SelectionSummary(
            sources=len(entry.active_sources()),
            notes=len(entry.active_notes()),
            total_known=total,
            state=state,
        )


def context_config(
    selection: NotebookSelection,
) -> tuple[dict[str, str], dict[str, str]]:
    """Build the (sources, notes) config of a context-build request.

    Off entries are dropped, modes become wire labels and table
    prefixes are stripped from ids.
    """
    sources_config = {
        _strip_prefix(source_id, SOURCE_ID_PREFIX): MODE_LABELS[mode]
        for source_id, mode in selection.sources.items()
        if mode != InclusionMode.OFF
    }
    notes_config = {
        _strip_prefix(note_id, NOTE_ID_PREFIX): MODE_LABELS[InclusionMode.FULL]
        for note_id, mode in selection.notes.items()
        if mode != InclusionMode.OFF
    }
    return sources_config, notes_config


def _strip_prefix(record_id: str, prefix: str) -> str:
    return record_id[len(prefix):] if record_id.startswith(prefix) else record_id
