"""Core enums, constants, and type definitions for podcast content selection.

Enums:
    InclusionMode  -- How a source or note is included (off, insights, full).
                      Notes only ever use off/full.
    CheckState     -- Notebook checkbox state derived from its selection
                      (checked, unchecked, indeterminate).
    ErrorCategory  -- Error classification for retry guidance (transient, permanent).
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class InclusionMode(StrEnum):
    OFF = "off"
    INSIGHTS = "insights"
    FULL = "full"


class CheckState(StrEnum):
    CHECKED = "checked"
    UNCHECKED = "unchecked"
    INDETERMINATE = "indeterminate"


class ErrorCategory(StrEnum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


# Labels the context-build endpoint expects for each active mode
MODE_LABELS: dict[InclusionMode, str] = {
    InclusionMode.INSIGHTS: "insights",
    InclusionMode.FULL: "full content",
}

# Record-id table prefixes stripped before ids go into a context config
SOURCE_ID_PREFIX = "source:"
NOTE_ID_PREFIX = "note:"


@dataclass(frozen=True)
class Notebook:
    id: str
    name: str


@dataclass(frozen=True)
class Source:
    id: str
    title: str = ""
    insights_count: int = 0
    embedded: bool = False
    asset_url: str | None = None

    @property
    def kind(self) -> str:
        """'link' for URL-backed sources, 'file' for uploads."""
        return "link" if self.asset_url else "file"


@dataclass(frozen=True)
class Note:
    id: str
    title: str = ""
    updated: str = ""


@dataclass(frozen=True)
class EpisodeProfile:
    id: str
    name: str
    speaker_config: str
    description: str = ""


@dataclass
class NotebookCollection:
    """Sources and notes known for one notebook."""

    notebook_id: str
    sources: list[Source] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.sources) + len(self.notes)

    def find_source(self, source_id: str) -> Source | None:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None


@dataclass
class NotebookSelection:
    """Per-notebook inclusion choices.

    An ``off`` entry still occupies its slot, so toggling a notebook
    off and on again operates on the same set of ids.
    """

    sources: dict[str, InclusionMode] = field(default_factory=dict)
    notes: dict[str, InclusionMode] = field(default_factory=dict)

    def active_sources(self) -> dict[str, InclusionMode]:
        return {k: v for k, v in self.sources.items() if v != InclusionMode.OFF}

    def active_notes(self) -> dict[str, InclusionMode]:
        return {k: v for k, v in self.notes.items() if v != InclusionMode.OFF}

    def has_active(self) -> bool:
        return bool(self.active_sources() or self.active_notes())

    def copy(self) -> "NotebookSelection":
        return NotebookSelection(sources=dict(self.sources), notes=dict(self.notes))


SelectionTree = dict[str, NotebookSelection]


@dataclass(frozen=True)
class SelectionSummary:
    sources: int
    notes: int
    total_known: int
    state: CheckState

    @property
    def selected(self) -> int:
        return self.sources + self.notes


@dataclass(frozen=True)
class AggregateCounts:
    token_count: int = 0
    char_count: int = 0

    def __add__(self, other: "AggregateCounts") -> "AggregateCounts":
        return AggregateCounts(
            token_count=self.token_count + other.token_count,
            char_count=self.char_count + other.char_count,
        )


@dataclass(frozen=True)
class ContextResult:
    """Response of one context-build call."""

    context: Any
    token_count: int = 0
    char_count: int = 0

    @property
    def counts(self) -> AggregateCounts:
        return AggregateCounts(self.token_count, self.char_count)


@dataclass(frozen=True)
class CompiledPayload:
    episode_profile: str
    speaker_profile: str
    episode_name: str
    content: str
    briefing_suffix: str | None = None

    def to_request(self) -> dict[str, str]:
        """Request body for the generate endpoint (no null suffix)."""
        body = {
            "episode_profile": self.episode_profile,
            "speaker_profile": self.speaker_profile,
            "episode_name": self.episode_name,
            "content": self.content,
        }
        if self.briefing_suffix:
            body["briefing_suffix"] = self.briefing_suffix
        return body


@dataclass(frozen=True)
class GenerationJob:
    """Acknowledgment of a submitted generation job."""

    job_id: str
    status: str = "submitted"
    message: str = ""


def format_count(num: int) -> str:
    """Format a count with K/M suffixes: 1500 -> '1.5K', 2_000_000 -> '2.0M'."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)
