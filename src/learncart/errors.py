"""Exceptions raised by the catalog loader and cart persistence."""

from __future__ import annotations


class LearnCartError(Exception):
    """Base class for recoverable learncart errors."""


class CatalogUnavailable(LearnCartError):
    """Catalog document could not be fetched or parsed."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Catalog unavailable from {source}: {reason}")
        self.source = source
        self.reason = reason


class PersistenceError(LearnCartError):
    """Writing state to the key-value store failed.

    The in-memory state that triggered the write is left as-is; callers decide
    whether to retry or warn the user.
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Could not persist '{key}': {reason}")
        self.key = key
        self.reason = reason
