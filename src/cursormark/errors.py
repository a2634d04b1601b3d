"""Exception types raised at the metadata collaborator boundary."""

from __future__ import annotations

from pathlib import Path

__all__ = ["CursorMarkError", "MetadataReadError", "MetadataWriteError"]


class CursorMarkError(Exception):
    """Base class for all errors raised by this package."""


class MetadataReadError(CursorMarkError):
    """Raised when a document's front matter cannot be read from disk."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Unable to read front matter from {self.path}: {reason}")


class MetadataWriteError(CursorMarkError):
    """Raised when merging a patch into a document's front matter fails.

    Callers treat this as non-fatal: the attempt is reported and discarded.
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Unable to update front matter in {self.path}: {reason}")
