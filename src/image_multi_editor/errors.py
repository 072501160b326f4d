from __future__ import annotations


class EditorError(Exception):
    """Base class for errors raised by the editor core."""


class BatchValidationError(EditorError):
    """Raised before dispatch when the image or instruction list is unusable."""


class GenerationError(EditorError):
    """Raised when the image API returns no usable image for a request."""


class EntryNotFoundError(EditorError, KeyError):
    """Raised when an operation targets an entry id that is not in the collection."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(entry_id)
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"No result entry with id {self.entry_id!r}"
