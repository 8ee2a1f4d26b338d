"""CLI entrypoint for browsing the learning catalog and building a cart."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
from pathlib import Path

from . import config
from .filters import DIFFICULTY_FILTERS
from .models import CartEntry, LearningGroup, Module, Technology
from .persistence import SqliteKeyValueStore
from .service import LearningCatalog, NoticeFn
from .stats import compute_totals

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
MENU_QUIT_COMMANDS = {"q"}
MENU_BACK_COMMANDS = {"b"}
TECHNOLOGY_LABELS = {Technology.JAVASCRIPT: "JavaScript", Technology.REACT: "React"}


class QuitApp(Exception):
    """Signal immediate app exit from nested menu flows."""


def _notice_printer(print_fn: PrintFn) -> NoticeFn:
    def notify(level: str, message: str) -> None:
        if level in {"error", "warning"}:
            print_fn(f"{level.capitalize()}: {message}")
        else:
            print_fn(message)

    return notify


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="learncart", description="Browse learning modules and plan a cart")
    parser.add_argument("command", nargs="?", default="browse", choices=["browse"])
    parser.add_argument("--catalog", help="Catalog JSON path or http(s) URL (default: bundled catalog)")
    parser.add_argument("--db", type=Path, help="State database path")
    args = parser.parse_args(argv)
    config.configure_logging()
    return browse_shell(catalog_source=args.catalog, db_path=args.db)


def browse_shell(
    input_fn: InputFn = input,
    print_fn: PrintFn = print,
    *,
    catalog_source: str | None = None,
    db_path: Path | None = None,
) -> int:
    """Open persistent state, load the catalog and run the menu."""
    storage = SqliteKeyValueStore(db_path or config.db_path())
    try:
        service = LearningCatalog(
            storage,
            catalog_source or config.catalog_source(),
            notify=_notice_printer(print_fn),
        )
        service.load_catalog()
        return menu_loop(service, input_fn, print_fn)
    finally:
        storage.close()


def menu_loop(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> int:
    """Run the main menu until the user quits."""
    unsubscribe = service.subscribe(lambda entries: print_fn(_cart_line(entries)))
    try:
        while True:
            _print_header(service, print_fn)
            print_fn("1) Browse modules")
            print_fn("2) Search")
            print_fn("3) Difficulty filter")
            print_fn("4) Switch technology")
            print_fn("5) Add/remove module")
            print_fn("6) Module details")
            print_fn("7) Learning paths")
            print_fn("8) Project examples")
            print_fn("9) Cart")
            print_fn("q) Quit")
            choice = input_fn("Choose: ").strip().lower()

            if choice == "1":
                _browse_flow(service, print_fn)
            elif choice == "2":
                _search_flow(service, input_fn, print_fn)
            elif choice == "3":
                _difficulty_flow(service, input_fn, print_fn)
            elif choice == "4":
                _technology_flow(service, input_fn, print_fn)
            elif choice == "5":
                _toggle_flow(service, input_fn, print_fn)
            elif choice == "6":
                _details_flow(service, input_fn, print_fn)
            elif choice == "7":
                _group_flow(service, service.learning_paths(), service.add_learning_path, input_fn, print_fn)
            elif choice == "8":
                _group_flow(service, service.project_examples(), service.add_project_modules, input_fn, print_fn)
            elif choice == "9":
                _cart_flow(service, input_fn, print_fn)
            elif choice in MENU_QUIT_COMMANDS:
                return 0
            else:
                print_fn("Invalid choice.")
    except QuitApp:
        return 0
    finally:
        unsubscribe()


def _cart_line(entries: Sequence[CartEntry]) -> str:
    stats = compute_totals(entries)
    return f"Cart: {stats.item_count} modules, {stats.total_hours} hours"


def _print_header(service: LearningCatalog, print_fn: PrintFn) -> None:
    print_fn("\n=== Learning Catalog ===")
    label = TECHNOLOGY_LABELS[service.current_technology]
    search = service.criteria.search_text or "-"
    print_fn(f"Technology: {label} | Search: {search} | Difficulty: {service.criteria.difficulty}")
    metadata = service.loader.metadata
    if metadata is not None:
        print_fn(f"Catalog: {metadata.total_modules} modules, {metadata.estimated_hours} hours")
    print_fn(_cart_line(service.cart_entries()))


def _choose_index(input_fn: InputFn, print_fn: PrintFn, prompt: str, count: int) -> int | None:
    """Read a 1-based menu choice; None for back or invalid input."""
    choice = input_fn(prompt).strip().lower()
    if choice in MENU_BACK_COMMANDS:
        return None
    if choice in MENU_QUIT_COMMANDS:
        raise QuitApp()
    if not choice.isdigit():
        print_fn("Invalid choice.")
        return None
    index = int(choice) - 1
    if not (0 <= index < count):
        print_fn("Invalid choice.")
        return None
    return index


def _print_module_table(service: LearningCatalog, modules: list[Module], print_fn: PrintFn) -> None:
    id_width = max(len("Module"), max(len(module.identifier) for module in modules))
    level_width = len("intermediate")
    header = f"{'#':>2} {'Sel':<3} {'Module':<{id_width}} {'Level':<{level_width}} {'Hours':>5} Title"
    print_fn(header)
    print_fn("-" * len(header))
    for idx, module in enumerate(modules, start=1):
        mark = "[x]" if service.is_selected(module.identifier) else "[ ]"
        print_fn(
            f"{idx:>2} "
            f"{mark:<3} "
            f"{module.identifier:<{id_width}} "
            f"{module.difficulty.value:<{level_width}} "
            f"{module.hours:>5} "
            f"{module.title}"
        )


def _visible_or_report(service: LearningCatalog, print_fn: PrintFn) -> list[Module] | None:
    modules = service.visible_modules()
    if modules is None:
        print_fn("Catalog not loaded.")
        return None
    if not modules:
        print_fn("No modules match the current filters.")
        return None
    return modules


def _browse_flow(service: LearningCatalog, print_fn: PrintFn) -> None:
    print_fn(f"\n=== {TECHNOLOGY_LABELS[service.current_technology]} Modules ===")
    modules = _visible_or_report(service, print_fn)
    if modules is not None:
        _print_module_table(service, modules, print_fn)


def _search_flow(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> None:
    text = input_fn("Search text (blank clears): ").strip()
    if text:
        service.set_search(text)
    else:
        service.clear_search()
    _browse_flow(service, print_fn)


def _difficulty_flow(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> None:
    print_fn("\nDifficulty")
    for idx, level in enumerate(DIFFICULTY_FILTERS, start=1):
        print_fn(f"{idx}) {level}")
    print_fn("b) Back")
    index = _choose_index(input_fn, print_fn, "Choose difficulty: ", len(DIFFICULTY_FILTERS))
    if index is None:
        return
    service.set_difficulty(DIFFICULTY_FILTERS[index])
    _browse_flow(service, print_fn)


def _technology_flow(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> None:
    technologies = list(Technology)
    print_fn("\nTechnology")
    for idx, technology in enumerate(technologies, start=1):
        print_fn(f"{idx}) {TECHNOLOGY_LABELS[technology]}")
    print_fn("b) Back")
    index = _choose_index(input_fn, print_fn, "Choose technology: ", len(technologies))
    if index is None:
        return
    service.switch_technology(technologies[index])
    _browse_flow(service, print_fn)


def _toggle_flow(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> None:
    modules = _visible_or_report(service, print_fn)
    if modules is None:
        return
    _print_module_table(service, modules, print_fn)
    print_fn("b) Back")
    index = _choose_index(input_fn, print_fn, "Add/remove module: ", len(modules))
    if index is None:
        return
    service.toggle_module(modules[index].identifier)


def _details_flow(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> None:
    modules = _visible_or_report(service, print_fn)
    if modules is None:
        return
    _print_module_table(service, modules, print_fn)
    print_fn("b) Back")
    index = _choose_index(input_fn, print_fn, "Show module: ", len(modules))
    if index is None:
        return
    module = modules[index]
    print_fn(f"\n=== {module.title} ===")
    print_fn(f"Module: {module.identifier}")
    print_fn(module.summary)
    print_fn(f"- Estimated duration: {module.hours} hours")
    print_fn(f"- Difficulty: {module.difficulty.value}")
    print_fn(f"- Prerequisites: {', '.join(module.prerequisite_labels) or 'none'}")
    print_fn(f"- Open: {module.resource_locator}")
    print_fn(f"- In cart: {'yes' if service.is_selected(module.identifier) else 'no'}")


def _group_flow(
    service: LearningCatalog,
    groups: tuple[LearningGroup, ...],
    add_group: Callable[[str], int | None],
    input_fn: InputFn,
    print_fn: PrintFn,
) -> None:
    """List learning paths or project examples and bulk-add one of them."""
    if not groups:
        print_fn("Nothing available.")
        return
    for idx, group in enumerate(groups, start=1):
        details = [item for item in (group.difficulty, group.duration) if item]
        suffix = f" ({', '.join(details)})" if details else ""
        print_fn(f"{idx}) {group.name}{suffix}")
        print_fn(f"   Modules: {', '.join(group.module_identifiers)}")
        for feature in group.features:
            print_fn(f"   * {feature}")
    print_fn("b) Back")
    index = _choose_index(input_fn, print_fn, "Add to cart: ", len(groups))
    if index is None:
        return
    add_group(groups[index].name)


def _cart_flow(service: LearningCatalog, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Show cart contents with remove, clear and start options."""
    while True:
        entries = service.cart_entries()
        print_fn("\n=== Learning Cart ===")
        if not entries:
            print_fn("Your learning cart is empty.")
            print_fn("Add modules to start your learning journey!")
            return
        for idx, entry in enumerate(entries, start=1):
            label = TECHNOLOGY_LABELS[entry.technology]
            print_fn(f"{idx}) {entry.title} [{label}: {entry.identifier}, {entry.hours}h]")
        print_fn(_cart_line(entries))
        print_fn("r) Remove module")
        print_fn("c) Clear cart")
        print_fn("s) Start learning")
        print_fn("b) Back")
        choice = input_fn("Choose: ").strip().lower()
        if choice in MENU_BACK_COMMANDS:
            return
        if choice in MENU_QUIT_COMMANDS:
            raise QuitApp()
        if choice == "r":
            index = _choose_index(input_fn, print_fn, "Remove number: ", len(entries))
            if index is not None:
                service.remove_entry(entries[index])
        elif choice == "c":
            service.clear_cart()
        elif choice == "s":
            summary = service.start_learning()
            if summary is not None:
                print_fn("Starting your learning journey!")
                print_fn(summary)
            return
        else:
            print_fn("Invalid choice.")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
