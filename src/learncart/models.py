"""Core domain models for the learning catalog and its cart."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Technology(StrEnum):
    """Top-level curriculum a module belongs to."""

    JAVASCRIPT = "javascript"
    REACT = "react"


class Difficulty(StrEnum):
    """Module difficulty level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class GroupKind(StrEnum):
    """Kind of predefined module group usable for bulk cart additions."""

    PATH = "path"
    PROJECT = "project"


@dataclass(frozen=True)
class Module:
    """One learning module from the catalog."""

    technology: Technology
    identifier: str
    title: str
    summary: str
    resource_locator: str
    hours: int
    difficulty: Difficulty
    prerequisite_labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class CartEntry:
    """Snapshot of a module taken when it was selected."""

    technology: Technology
    identifier: str
    title: str
    summary: str
    resource_locator: str
    hours: int

    @classmethod
    def from_module(cls, module: Module) -> CartEntry:
        """Copy the cart-relevant fields out of a catalog module."""
        return cls(
            technology=module.technology,
            identifier=module.identifier,
            title=module.title,
            summary=module.summary,
            resource_locator=module.resource_locator,
            hours=module.hours,
        )

    @property
    def key(self) -> tuple[Technology, str]:
        return (self.technology, self.identifier)


@dataclass(frozen=True)
class LearningGroup:
    """Named group of module identifiers (learning path or project example)."""

    kind: GroupKind
    name: str
    module_identifiers: tuple[str, ...]
    difficulty: str = ""
    duration: str = ""
    features: tuple[str, ...] = ()


@dataclass(frozen=True)
class CatalogMetadata:
    """Totals declared by the catalog document itself."""

    total_modules: int
    estimated_hours: int


@dataclass(frozen=True)
class Catalog:
    """Parsed catalog document."""

    modules: dict[Technology, tuple[Module, ...]]
    metadata: CatalogMetadata
    learning_paths: tuple[LearningGroup, ...] = ()
    project_examples: tuple[LearningGroup, ...] = ()
    index: dict[tuple[Technology, str], Module] = field(default_factory=dict, repr=False, compare=False)
