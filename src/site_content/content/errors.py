"""
Content Pipeline Errors

Every failure raised by the mirror, parser and loader derives from
`ContentError`, so the refresh loop can isolate a failed cycle without
catching unrelated exceptions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ContentError(RuntimeError):
    """Base error for the content pipeline."""


class SyncError(ContentError):
    """Raised when the local mirror cannot be brought up to date."""

    def __init__(self, message: str, *, operation: str, target: str) -> None:
        super().__init__(f"{operation} {target}: {message}")
        self.operation = operation
        self.target = target


class DecodeError(ContentError):
    """Raised when a document's front matter or structure cannot be decoded."""


class ContentLoadError(ContentError):
    """Raised when a content directory cannot be turned into a snapshot."""

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class ParseError(ContentLoadError):
    """Raised when a single document fails to parse, aborting the whole load."""
