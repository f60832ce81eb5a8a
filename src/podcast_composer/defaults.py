"""Default inclusion modes for newly observed sources and notes."""

from .models import InclusionMode, Note, NotebookCollection, NotebookSelection, Source


def resolve_source_mode(source: Source) -> InclusionMode:
    """Sources with recorded insights default to insights, others to full."""
    if source.insights_count and source.insights_count > 0:
        return InclusionMode.INSIGHTS
    return InclusionMode.FULL


def resolve_note_mode(note: Note) -> InclusionMode:
    return InclusionMode.FULL


def seed_defaults(
    selection: NotebookSelection, collection: NotebookCollection
) -> bool:
    """Assign default modes to ids not yet present in selection.

    Existing entries, including explicit ``off``, are never overwritten.
    Returns True if anything was added.
    """
    changed = False
    for source in collection.sources:
        if source.id not in selection.sources:
            selection.sources[source.id] = resolve_source_mode(source)
            changed = True
    for note in collection.notes:
        if note.id not in selection.notes:
            selection.notes[note.id] = resolve_note_mode(note)
            changed = True
    return changed
