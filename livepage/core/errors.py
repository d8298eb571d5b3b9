"""Exception types shared by the editing core."""

from __future__ import annotations


class LivePageError(Exception):
    """Base class for errors raised by the editing core."""


class GenerationError(LivePageError):
    """The document-generation collaborator failed or returned an error payload."""

    def __init__(self, message: str, details: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class StoreError(LivePageError):
    """The persistent key-value store could not be read or written."""


class SelectorError(LivePageError):
    """A selector string could not be compiled into a matcher."""
