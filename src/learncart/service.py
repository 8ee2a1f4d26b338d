"""Application service tying catalog, filters and cart together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from pathlib import Path

import httpx

from .cart import CartListener, CartStore
from .catalog_loader import CatalogLoader
from .errors import CatalogUnavailable, PersistenceError
from .filters import ALL_DIFFICULTIES, FilterCriteria, filter_modules
from .models import CartEntry, GroupKind, LearningGroup, Module, Technology
from .persistence import KeyValueStore
from .stats import AggregateStats, compute_totals

logger = logging.getLogger(__name__)

NoticeFn = Callable[[str, str], None]
CATALOG_ERROR_MESSAGE = "Failed to load course data. Please try again later."

_NOTICE_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _log_notice(level: str, message: str) -> None:
    logger.log(_NOTICE_LEVELS.get(level, logging.INFO), message)


class LearningCatalog:
    """Owns the loaded catalog, current technology, filter criteria and cart.

    User-facing outcomes are reported through ``notify(level, message)`` with
    level one of ``success``, ``info``, ``warning`` or ``error``. Storage write
    failures become warnings; the in-memory cart stays authoritative.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        source: Path | str | None = None,
        *,
        client: httpx.Client | None = None,
        notify: NoticeFn | None = None,
    ) -> None:
        self.loader = CatalogLoader(source, client=client)
        self.cart = CartStore(storage)
        self.current_technology = Technology.JAVASCRIPT
        self.criteria = FilterCriteria()
        self.load_error: CatalogUnavailable | None = None
        self._notify = notify or _log_notice
        self._load_attempted = False

    def load_catalog(self) -> bool:
        """Load the catalog once; a failure is reported once and never retried."""
        if self._load_attempted:
            return self.loader.loaded
        self._load_attempted = True
        try:
            self.loader.load()
        except CatalogUnavailable as exc:
            self.load_error = exc
            logger.error("Error loading module data: %s", exc)
            self._notify("error", CATALOG_ERROR_MESSAGE)
            return False
        return True

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        return self.cart.subscribe(listener)

    def switch_technology(self, technology: Technology | str) -> None:
        """Select the active technology and reset search and difficulty filters."""
        self.current_technology = Technology(technology)
        self.criteria = FilterCriteria()

    def set_search(self, text: str) -> None:
        self.criteria = replace(self.criteria, search_text=text.strip())

    def clear_search(self) -> None:
        self.criteria = replace(self.criteria, search_text="")

    def set_difficulty(self, difficulty: str) -> None:
        self.criteria = replace(self.criteria, difficulty=difficulty or ALL_DIFFICULTIES)

    def visible_modules(self) -> list[Module] | None:
        """Return filtered modules for the current technology, or None before the catalog loads."""
        if not self.loader.loaded:
            return None
        return filter_modules(self.loader.get_modules(self.current_technology), self.criteria)

    def get_module(self, identifier: str) -> Module | None:
        return self.loader.find_module(self.current_technology, identifier)

    def is_selected(self, identifier: str) -> bool:
        return self.cart.contains(self.current_technology, identifier)

    def _resolve(self, identifier: str) -> Module | None:
        module = self.get_module(identifier)
        if module is None:
            logger.info("Ignoring unknown module reference %s/%s", self.current_technology.value, identifier)
        return module

    def _persistence_warning(self, exc: PersistenceError) -> None:
        self._notify("warning", f"Could not save your cart ({exc.reason}). Changes are kept for this session.")

    def add_module(self, identifier: str) -> bool:
        """Add a catalog module to the cart; unknown or already selected modules are no-ops."""
        module = self._resolve(identifier)
        if module is None or self.cart.contains(module.technology, module.identifier):
            return False
        try:
            self.cart.add(module)
        except PersistenceError as exc:
            self._persistence_warning(exc)
        self._notify("success", f"{module.title} added to cart")
        return True

    def remove_module(self, identifier: str) -> bool:
        """Remove a cart entry of the current technology; works without a loaded catalog."""
        entry = self._find_entry(self.current_technology, identifier)
        if entry is None:
            return False
        try:
            self.cart.remove(entry.technology, entry.identifier)
        except PersistenceError as exc:
            self._persistence_warning(exc)
        self._notify("success", f"{entry.title} removed from cart")
        return True

    def remove_entry(self, entry: CartEntry) -> bool:
        """Remove a cart entry regardless of the active technology."""
        if self._find_entry(entry.technology, entry.identifier) is None:
            return False
        try:
            self.cart.remove(entry.technology, entry.identifier)
        except PersistenceError as exc:
            self._persistence_warning(exc)
        self._notify("success", f"{entry.title} removed from cart")
        return True

    def toggle_module(self, identifier: str) -> bool | None:
        """Flip selection; return the new state, or None for an unknown module."""
        module = self._resolve(identifier)
        if module is None:
            return None
        selected = not self.cart.contains(module.technology, module.identifier)
        try:
            self.cart.toggle(module)
        except PersistenceError as exc:
            self._persistence_warning(exc)
        verb = "added to" if selected else "removed from"
        self._notify("success", f"{module.title} {verb} cart")
        return selected

    def add_group_to_cart(self, identifiers: Iterable[str]) -> int:
        """Add every known, not-yet-selected module in a group and return how many were added."""
        pending: list[Module] = []
        for identifier in identifiers:
            module = self._resolve(identifier)
            if module is None or module in pending:
                continue
            if self.cart.contains(module.technology, module.identifier):
                continue
            pending.append(module)
        if not pending:
            return 0
        try:
            self.cart.add_many(pending)
        except PersistenceError as exc:
            self._persistence_warning(exc)
        return len(pending)

    def learning_paths(self) -> tuple[LearningGroup, ...]:
        return self.loader.learning_paths()

    def project_examples(self) -> tuple[LearningGroup, ...]:
        return self.loader.project_examples()

    def add_learning_path(self, name: str) -> int | None:
        """Bulk-add a learning path's modules; None when the path is unknown."""
        group = self.loader.find_group(GroupKind.PATH, name)
        if group is None:
            logger.info("Ignoring unknown learning path '%s'", name)
            return None
        added = self.add_group_to_cart(group.module_identifiers)
        if added:
            self._notify("success", f'{added} modules from "{group.name}" added to cart')
        else:
            self._notify("info", "All modules from this path are already in your cart")
        return added

    def add_project_modules(self, name: str) -> int | None:
        """Bulk-add a project example's required modules; None when the project is unknown."""
        group = self.loader.find_group(GroupKind.PROJECT, name)
        if group is None:
            logger.info("Ignoring unknown project example '%s'", name)
            return None
        added = self.add_group_to_cart(group.module_identifiers)
        if added:
            self._notify("success", f'{added} modules for "{group.name}" added to cart')
        else:
            self._notify("info", "All required modules are already in your cart")
        return added

    def clear_cart(self) -> None:
        try:
            self.cart.clear()
        except PersistenceError as exc:
            self._persistence_warning(exc)
        self._notify("info", "Cart cleared")

    def cart_entries(self) -> tuple[CartEntry, ...]:
        return self.cart.snapshot()

    def totals(self) -> AggregateStats:
        return compute_totals(self.cart.snapshot())

    def start_learning(self) -> str | None:
        """Return the learning journey summary for a non-empty cart."""
        entries = self.cart.snapshot()
        if not entries:
            return None
        stats = compute_totals(entries)
        lines = [
            "Welcome to your personalized learning journey!",
            "",
            f"You have selected {stats.item_count} modules with an estimated {stats.total_hours} hours of content.",
            "",
            "Modules in your journey:",
        ]
        lines.extend(f"- {entry.title}" for entry in entries)
        return "\n".join(lines)

    def _find_entry(self, technology: Technology, identifier: str) -> CartEntry | None:
        for entry in self.cart.snapshot():
            if entry.key == (technology, identifier):
                return entry
        return None
