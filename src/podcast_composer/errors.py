"""Exception hierarchy and error categorization for podcast content selection."""

from .models import ErrorCategory


class ComposerError(Exception):
    """Base exception for all composer errors."""


class ConfigError(ComposerError):
    """Invalid or missing configuration."""


class FetchError(ComposerError):
    """A collection or context load failed for one notebook.

    Recoverable: the notebook shows an empty collection until retried.
    """

    def __init__(self, notebook_id: str, reason: str) -> None:
        super().__init__(f"Failed to load notebook {notebook_id}: {reason}")
        self.notebook_id = notebook_id
        self.reason = reason


class AggregationStaleResult(ComposerError):
    """An aggregation pass finished after a newer pass was started."""

    def __init__(self, version: int, current: int) -> None:
        super().__init__(f"Aggregation pass {version} superseded by {current}")
        self.version = version
        self.current = current


class ContextBuildError(ComposerError):
    """Building context for a notebook failed during submission."""

    def __init__(self, notebook_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to build context for notebook {notebook_id}: {reason}. "
            "Please check your selection."
        )
        self.notebook_id = notebook_id
        self.reason = reason


class NoContentSelectedError(ComposerError):
    """Nothing was selected for the episode."""

    def __init__(self) -> None:
        super().__init__(
            "Select at least one source or note to include in the episode."
        )


class MissingProfileError(ComposerError):
    """No episode profile selected."""

    def __init__(self, profile_ref: str = "") -> None:
        detail = f" ({profile_ref!r} not found)" if profile_ref else ""
        super().__init__(
            f"Select an episode profile before generating a podcast{detail}."
        )
        self.profile_ref = profile_ref


class MissingNameError(ComposerError):
    """The episode name is empty."""

    def __init__(self) -> None:
        super().__init__("Provide a name for the episode.")


class GenerationSubmitError(ComposerError):
    """The generate-podcast call was rejected or never reached the server."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        self.category = categorize_status_code(status_code)
        hint = (
            "Please try again in a moment."
            if self.category == ErrorCategory.TRANSIENT
            else "Check the episode settings before retrying."
        )
        super().__init__(f"Podcast generation failed: {reason}. {hint}")
        self.reason = reason


def categorize_status_code(code: int | None) -> ErrorCategory:
    """Map an HTTP status code to an error category.

    No status (transport failure), 408, 429 and 5xx are transient.
    All other codes are permanent.
    """
    if code is None or code in (408, 429) or code >= 500:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.PERMANENT
