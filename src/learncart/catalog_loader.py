"""Fetch, parse and look up the learning module catalog."""

from __future__ import annotations

import json
import logging
import math
from importlib import resources
from pathlib import Path
from typing import Any

import httpx

from .errors import CatalogUnavailable
from .models import Catalog, CatalogMetadata, Difficulty, GroupKind, LearningGroup, Module, Technology

logger = logging.getLogger(__name__)

BUNDLED_SOURCE = "bundled"
DEFAULT_HOURS = 5
DEFAULT_DIFFICULTY = Difficulty.INTERMEDIATE

MODULE_SECTIONS: dict[Technology, str] = {
    Technology.JAVASCRIPT: "javascript_modules",
    Technology.REACT: "react_modules",
}

DEFAULT_PREREQUISITE: dict[Technology, str] = {
    Technology.JAVASCRIPT: "JavaScript fundamentals",
    Technology.REACT: "React fundamentals",
}

# Fallbacks for catalog documents whose module entries do not carry
# difficulty, hours or prerequisites themselves. Keyed per technology.
DEFAULT_DIFFICULTIES: dict[Technology, dict[str, Difficulty]] = {
    Technology.JAVASCRIPT: {
        "JS Core": Difficulty.BEGINNER,
        "Arrays": Difficulty.BEGINNER,
        "Functions": Difficulty.BEGINNER,
        "Objects": Difficulty.BEGINNER,
        "Loops": Difficulty.BEGINNER,
        "DOM": Difficulty.INTERMEDIATE,
        "Events": Difficulty.INTERMEDIATE,
        "Promises": Difficulty.INTERMEDIATE,
        "AJAX": Difficulty.INTERMEDIATE,
        "API": Difficulty.INTERMEDIATE,
        "OOP": Difficulty.ADVANCED,
        "ES6+": Difficulty.ADVANCED,
        "Patterns": Difficulty.ADVANCED,
        "Performance": Difficulty.ADVANCED,
        "Testing": Difficulty.ADVANCED,
    },
    Technology.REACT: {
        "React Core": Difficulty.BEGINNER,
        "Components": Difficulty.BEGINNER,
        "Hooks": Difficulty.INTERMEDIATE,
        "State": Difficulty.INTERMEDIATE,
        "Events": Difficulty.BEGINNER,
        "Router": Difficulty.INTERMEDIATE,
        "Forms": Difficulty.INTERMEDIATE,
        "Context": Difficulty.INTERMEDIATE,
        "Performance": Difficulty.ADVANCED,
        "Testing": Difficulty.ADVANCED,
        "API": Difficulty.INTERMEDIATE,
        "Styling": Difficulty.BEGINNER,
        "Redux": Difficulty.ADVANCED,
        "Error Handling": Difficulty.INTERMEDIATE,
        "Patterns": Difficulty.ADVANCED,
        "Lifecycle": Difficulty.INTERMEDIATE,
        "Custom Hooks": Difficulty.ADVANCED,
        "Portals": Difficulty.INTERMEDIATE,
        "Refs": Difficulty.INTERMEDIATE,
        "Suspense": Difficulty.ADVANCED,
        "Server Components": Difficulty.ADVANCED,
        "Animation": Difficulty.INTERMEDIATE,
        "Accessibility": Difficulty.INTERMEDIATE,
        "DevTools": Difficulty.BEGINNER,
        "Deployment": Difficulty.INTERMEDIATE,
    },
}

DEFAULT_HOURS_BY_MODULE: dict[Technology, dict[str, int]] = {
    Technology.JAVASCRIPT: {
        "JS Core": 8, "Arrays": 6, "Functions": 8, "Objects": 7, "Loops": 4,
        "DOM": 8, "Events": 6, "Promises": 10, "OOP": 12, "HOF": 6,
        "API": 8, "Features": 5, "ES6+": 10, "Error Handling": 4, "RegEx": 6,
        "Storage": 4, "Forms": 5, "AJAX": 7, "JSON": 3, "Modules": 6,
        "Testing": 8, "Performance": 6, "Patterns": 10, "APIs": 8, "Animation": 7,
    },
    Technology.REACT: {
        "React Core": 8, "Components": 6, "Hooks": 10, "State": 8, "Events": 4,
        "Router": 8, "Forms": 6, "Context": 7, "Performance": 10, "Testing": 8,
        "API": 8, "Styling": 6, "Redux": 12, "Error Handling": 5, "Patterns": 10,
        "Lifecycle": 6, "Custom Hooks": 8, "Portals": 4, "Refs": 5, "Suspense": 7,
        "Server Components": 10, "Animation": 6, "Accessibility": 5, "DevTools": 4, "Deployment": 6,
    },
}

DEFAULT_PREREQUISITES: dict[Technology, dict[str, str]] = {
    Technology.JAVASCRIPT: {
        "JS Core": "Basic HTML knowledge",
        "Arrays": "JavaScript basics",
        "Functions": "JavaScript basics",
        "Objects": "Functions, Arrays",
        "DOM": "HTML, CSS, JavaScript basics",
        "Events": "DOM manipulation",
        "Promises": "Functions, Callbacks",
        "OOP": "Objects, Functions",
        "ES6+": "JavaScript fundamentals",
        "API": "Promises, JSON",
        "Testing": "Functions, Objects",
    },
    Technology.REACT: {
        "React Core": "JavaScript ES6+, HTML, CSS",
        "Components": "React Core",
        "Hooks": "React Components",
        "State": "React Hooks",
        "Events": "React Components",
        "Router": "React Components",
        "Forms": "React State, Events",
        "Context": "React Hooks",
        "Performance": "React Hooks, State",
        "Testing": "React Components",
        "API": "React Hooks, JavaScript Promises",
        "Styling": "CSS, React Components",
        "Redux": "React State, JavaScript",
        "Error Handling": "React Components",
        "Patterns": "React Hooks, Components",
        "Lifecycle": "React Components",
        "Custom Hooks": "React Hooks",
        "Portals": "React Components",
        "Refs": "React Components",
        "Suspense": "React Components",
        "Server Components": "React Advanced",
        "Animation": "CSS, React Components",
        "Accessibility": "HTML, React Components",
        "DevTools": "React basics",
        "Deployment": "React fundamentals",
    },
}


def _split_labels(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in text.split(",") if part.strip())


def _require_text(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Module field '{field}' must be a string, got {type(value).__name__}.")
    return value.strip()


def _metadata_count(value: object, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"Catalog metadata '{field}' must be a number, got {value!r}.")
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        raise ValueError(f"Catalog metadata '{field}' must be a whole number, got {value!r}.")
    return int(value)


def _coerce_hours(value: object, identifier: str) -> int:
    """Validate an hours value from the document."""
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise ValueError(f"Module '{identifier}' has invalid hours {value!r}.")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Module '{identifier}' hours must be finite, got {value!r}.")
    hours = int(value)
    if hours <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"Module '{identifier}' hours must be a positive integer, got {value!r}.")
    return hours


def _module_from_dict(technology: Technology, raw: dict[str, Any]) -> Module:
    """Build a module from one catalog entry, attaching difficulty and hours."""
    if not isinstance(raw, dict):
        raise TypeError(f"Module entries must be objects, got {type(raw).__name__}.")
    identifier = _require_text(raw["name"], "name")
    if not identifier:
        raise ValueError("Module entry has an empty name.")

    raw_difficulty = raw.get("difficulty")
    if raw_difficulty is not None:
        try:
            difficulty = Difficulty(str(raw_difficulty).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Module '{identifier}' has unknown difficulty '{raw_difficulty}'.") from exc
    else:
        difficulty = DEFAULT_DIFFICULTIES[technology].get(identifier, DEFAULT_DIFFICULTY)

    raw_hours = raw.get("hours", raw.get("estimated_hours"))
    if raw_hours is not None:
        hours = _coerce_hours(raw_hours, identifier)
    else:
        hours = DEFAULT_HOURS_BY_MODULE[technology].get(identifier, DEFAULT_HOURS)

    raw_prerequisites = raw.get("prerequisites")
    if isinstance(raw_prerequisites, list):
        prerequisites = tuple(str(item).strip() for item in raw_prerequisites if str(item).strip())
    elif isinstance(raw_prerequisites, str):
        prerequisites = _split_labels(raw_prerequisites)
    else:
        fallback = DEFAULT_PREREQUISITES[technology].get(identifier, DEFAULT_PREREQUISITE[technology])
        prerequisites = _split_labels(fallback)

    return Module(
        technology=technology,
        identifier=identifier,
        title=_require_text(raw["title"], "title"),
        summary=str(raw.get("summary", "")),
        resource_locator=str(raw.get("page_html", "")),
        hours=hours,
        difficulty=difficulty,
        prerequisite_labels=prerequisites,
    )


def _group_from_dict(kind: GroupKind, raw: dict[str, Any]) -> LearningGroup:
    """Build a learning path or project example group."""
    if kind is GroupKind.PATH:
        name = str(raw["path_name"])
        identifiers = raw.get("modules", [])
    else:
        name = str(raw["project_name"])
        identifiers = raw.get("modules_used", [])
    if not isinstance(identifiers, list):
        raise TypeError(f"Group '{name}' module list must be an array.")
    return LearningGroup(
        kind=kind,
        name=name,
        module_identifiers=tuple(str(item) for item in identifiers),
        difficulty=str(raw.get("difficulty", "")),
        duration=str(raw.get("duration", "")),
        features=tuple(str(item) for item in raw.get("features", [])),
    )


def _metadata_from_dict(raw: object, modules: dict[Technology, tuple[Module, ...]]) -> CatalogMetadata:
    """Read declared totals, deriving them when the section is absent."""
    if raw is None:
        all_modules = [module for items in modules.values() for module in items]
        return CatalogMetadata(
            total_modules=len(all_modules),
            estimated_hours=sum(module.hours for module in all_modules),
        )
    if not isinstance(raw, dict):
        raise TypeError("Catalog metadata must be an object.")
    return CatalogMetadata(
        total_modules=_metadata_count(raw["total_modules"], "total_modules"),
        estimated_hours=_metadata_count(raw["estimated_hours"], "estimated_hours"),
    )


def parse_catalog(raw: object) -> Catalog:
    """Build a catalog from a decoded document.

    Raises ``KeyError``, ``TypeError`` or ``ValueError`` when the document does
    not follow the catalog contract.
    """
    if not isinstance(raw, dict):
        raise TypeError("Catalog root must be a JSON object.")

    modules: dict[Technology, tuple[Module, ...]] = {}
    index: dict[tuple[Technology, str], Module] = {}
    for technology, section in MODULE_SECTIONS.items():
        entries = raw.get(section, [])
        if not isinstance(entries, list):
            raise TypeError(f"Catalog section '{section}' must be an array.")
        parsed: list[Module] = []
        for entry in entries:
            module = _module_from_dict(technology, entry)
            key = (technology, module.identifier)
            if key in index:
                raise ValueError(f"Duplicate module id in {section}: {module.identifier}")
            index[key] = module
            parsed.append(module)
        modules[technology] = tuple(parsed)

    paths = tuple(_group_from_dict(GroupKind.PATH, item) for item in raw.get("learning_paths", []))
    projects = tuple(_group_from_dict(GroupKind.PROJECT, item) for item in raw.get("project_examples", []))
    return Catalog(
        modules=modules,
        metadata=_metadata_from_dict(raw.get("metadata"), modules),
        learning_paths=paths,
        project_examples=projects,
        index=index,
    )


def _read_source(source: str, client: httpx.Client | None) -> str:
    """Return the raw catalog text from a URL, a path or the bundled resource."""
    if source == BUNDLED_SOURCE:
        return (resources.files("learncart") / "content" / "catalog.json").read_text(encoding="utf-8")
    if source.startswith(("http://", "https://")):
        if client is not None:
            response = client.get(source)
            response.raise_for_status()
            return response.text
        with httpx.Client(timeout=None, follow_redirects=True) as owned:
            response = owned.get(source)
            response.raise_for_status()
            return response.text
    return Path(source).read_text(encoding="utf-8-sig")


class CatalogLoader:
    """One-shot catalog fetch with read-only lookups.

    Lookups return empty results until :meth:`load` succeeds, so callers can
    keep working with the cart while the catalog is missing.
    """

    def __init__(self, source: Path | str | None = None, client: httpx.Client | None = None) -> None:
        self.source = str(source) if source is not None else BUNDLED_SOURCE
        self._client = client
        self._catalog: Catalog | None = None

    @property
    def loaded(self) -> bool:
        return self._catalog is not None

    @property
    def catalog(self) -> Catalog | None:
        return self._catalog

    @property
    def metadata(self) -> CatalogMetadata | None:
        return self._catalog.metadata if self._catalog is not None else None

    def load(self) -> Catalog:
        """Fetch and parse the catalog document, raising ``CatalogUnavailable`` on failure."""
        try:
            text = _read_source(self.source, self._client)
        except (OSError, UnicodeDecodeError, httpx.HTTPError) as exc:
            raise CatalogUnavailable(self.source, str(exc) or type(exc).__name__) from exc

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CatalogUnavailable(self.source, f"malformed JSON: {exc}") from exc

        try:
            catalog = parse_catalog(raw)
        except KeyError as exc:
            raise CatalogUnavailable(self.source, f"missing field {exc}") from exc
        except (TypeError, ValueError, OverflowError) as exc:
            raise CatalogUnavailable(self.source, str(exc)) from exc

        self._catalog = catalog
        logger.info(
            "Loaded catalog from %s: %d modules, %d learning paths, %d projects",
            self.source,
            len(catalog.index),
            len(catalog.learning_paths),
            len(catalog.project_examples),
        )
        return catalog

    def get_modules(self, technology: Technology | str) -> tuple[Module, ...]:
        """Return modules for a technology; empty when unknown or not loaded."""
        if self._catalog is None:
            return ()
        try:
            key = Technology(technology)
        except ValueError:
            return ()
        return self._catalog.modules.get(key, ())

    def find_module(self, technology: Technology | str, identifier: str) -> Module | None:
        """Return one module, or None when absent or not loaded."""
        if self._catalog is None:
            return None
        try:
            key = Technology(technology)
        except ValueError:
            return None
        return self._catalog.index.get((key, identifier))

    def learning_paths(self) -> tuple[LearningGroup, ...]:
        return self._catalog.learning_paths if self._catalog is not None else ()

    def project_examples(self) -> tuple[LearningGroup, ...]:
        return self._catalog.project_examples if self._catalog is not None else ()

    def find_group(self, kind: GroupKind, name: str) -> LearningGroup | None:
        """Return a learning path or project example by display name."""
        groups = self.learning_paths() if kind is GroupKind.PATH else self.project_examples()
        for group in groups:
            if group.name == name:
                return group
        return None
