"""Search and difficulty filtering over catalog modules."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import Difficulty, Module

ALL_DIFFICULTIES = "all"
DIFFICULTY_FILTERS: tuple[str, ...] = (ALL_DIFFICULTIES, *(level.value for level in Difficulty))


@dataclass(frozen=True)
class FilterCriteria:
    """Current search text and difficulty selection."""

    search_text: str = ""
    difficulty: str = ALL_DIFFICULTIES

    def __post_init__(self) -> None:
        if self.difficulty not in DIFFICULTY_FILTERS:
            raise ValueError(f"Unknown difficulty filter '{self.difficulty}'.")

    @property
    def is_default(self) -> bool:
        return not self.search_text.strip() and self.difficulty == ALL_DIFFICULTIES


def matches_search(module: Module, search_text: str) -> bool:
    """Return whether search text is a case-insensitive substring of title, identifier or summary."""
    needle = search_text.strip().lower()
    if not needle:
        return True
    return any(needle in field.lower() for field in (module.title, module.identifier, module.summary))


def matches_difficulty(module: Module, difficulty: str) -> bool:
    return difficulty == ALL_DIFFICULTIES or module.difficulty == difficulty


def filter_modules(modules: Iterable[Module], criteria: FilterCriteria) -> list[Module]:
    """Return matching modules in input order."""
    return [
        module
        for module in modules
        if matches_search(module, criteria.search_text) and matches_difficulty(module, criteria.difficulty)
    ]
