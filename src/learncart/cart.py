"""Persisted, deduplicated selection of catalog modules."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from .errors import PersistenceError
from .models import CartEntry, Module, Technology
from .persistence import CART_KEY, KeyValueStore, deserialize_cart, serialize_cart

logger = logging.getLogger(__name__)

CartListener = Callable[[tuple[CartEntry, ...]], None]


class CartStore:
    """Owns cart entries and writes them through to a key-value store.

    Entries are unique by ``(technology, identifier)`` and keep insertion
    order. Every mutation serializes the whole cart before returning. A failed
    write raises ``PersistenceError`` after the in-memory change has been applied
    and listeners notified.
    """

    def __init__(self, storage: KeyValueStore, key: str = CART_KEY) -> None:
        self._storage = storage
        self._key = key
        self._entries: list[CartEntry] = list(self._restore())
        self._listeners: list[CartListener] = []
        self._toggled_off: tuple[tuple[Technology, str], int] | None = None

    def _restore(self) -> tuple[CartEntry, ...]:
        """Read persisted entries, treating missing or corrupt values as empty."""
        text = self._storage.get(self._key)
        if text is None:
            return ()
        try:
            return deserialize_cart(text)
        except ValueError as exc:
            logger.warning("Ignoring corrupt cart stored under '%s': %s", self._key, exc)
            return ()

    def snapshot(self) -> tuple[CartEntry, ...]:
        """Return an immutable copy of the current entries."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def contains(self, technology: Technology, identifier: str) -> bool:
        return any(entry.key == (technology, identifier) for entry in self._entries)

    def add(self, module: Module) -> bool:
        """Append a snapshot of the module; return False when already selected."""
        if self.contains(module.technology, module.identifier):
            return False
        self._entries.append(CartEntry.from_module(module))
        self._commit()
        return True

    def add_many(self, modules: Iterable[Module]) -> int:
        """Add every not-yet-selected module with a single write; return how many were added."""
        added = 0
        for module in modules:
            if self.contains(module.technology, module.identifier):
                continue
            self._entries.append(CartEntry.from_module(module))
            added += 1
        if added:
            self._commit()
        return added

    def remove(self, technology: Technology, identifier: str) -> bool:
        """Remove one entry; absent entries are a no-op and return False."""
        for index, entry in enumerate(self._entries):
            if entry.key == (technology, identifier):
                del self._entries[index]
                self._commit()
                return True
        return False

    def toggle(self, module: Module) -> bool:
        """Flip selection for a module and return whether it is selected afterwards.

        Toggling an entry off and straight back on restores its original
        position, so a double toggle leaves the cart unchanged.
        """
        key = (module.technology, module.identifier)
        for index, entry in enumerate(self._entries):
            if entry.key == key:
                del self._entries[index]
                self._commit(toggled_off=(key, index))
                return False
        index = len(self._entries)
        if self._toggled_off is not None and self._toggled_off[0] == key:
            index = min(self._toggled_off[1], index)
        self._entries.insert(index, CartEntry.from_module(module))
        self._commit()
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._commit()

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, toggled_off: tuple[tuple[Technology, str], int] | None = None) -> None:
        self._toggled_off = toggled_off
        failure: PersistenceError | None = None
        try:
            self._storage.set(self._key, serialize_cart(self._entries))
        except PersistenceError as exc:
            failure = exc
        except OSError as exc:
            failure = PersistenceError(self._key, str(exc))
            failure.__cause__ = exc

        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

        if failure is not None:
            logger.warning("Cart write failed; in-memory cart kept: %s", failure)
            raise failure
