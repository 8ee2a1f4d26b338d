import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from learncart.catalog_loader import BUNDLED_SOURCE, CatalogLoader, parse_catalog
from learncart.errors import CatalogUnavailable
from learncart.models import Difficulty, GroupKind, Technology


def test_load_catalog_from_file(catalog_file: Path) -> None:
    loader = CatalogLoader(catalog_file)
    catalog = loader.load()

    assert loader.loaded is True
    assert [module.identifier for module in catalog.modules[Technology.JAVASCRIPT]] == ["Arrays", "OOP", "Events"]
    assert catalog.metadata.total_modules == 5
    assert catalog.metadata.estimated_hours == 38
    arrays = loader.find_module(Technology.JAVASCRIPT, "Arrays")
    assert arrays is not None
    assert arrays.hours == 6
    assert arrays.difficulty is Difficulty.BEGINNER
    assert arrays.resource_locator == "js/arrays.html"


def test_difficulty_and_hours_attached_per_technology(catalog_file: Path) -> None:
    loader = CatalogLoader(catalog_file)
    loader.load()

    js_events = loader.find_module(Technology.JAVASCRIPT, "Events")
    react_events = loader.find_module(Technology.REACT, "Events")
    assert js_events is not None and react_events is not None
    assert js_events.difficulty is Difficulty.INTERMEDIATE
    assert js_events.hours == 6
    assert js_events.prerequisite_labels == ("DOM manipulation",)
    assert react_events.difficulty is Difficulty.BEGINNER
    assert react_events.hours == 4
    assert react_events.prerequisite_labels == ("React Components",)


def test_unlisted_module_uses_fallback_defaults() -> None:
    catalog = parse_catalog(
        {"react_modules": [{"name": "Signals", "title": "Signals", "summary": "", "page_html": "s.html"}]}
    )
    module = catalog.modules[Technology.REACT][0]
    assert module.difficulty is Difficulty.INTERMEDIATE
    assert module.hours == 5
    assert module.prerequisite_labels == ("React fundamentals",)
    assert catalog.modules[Technology.JAVASCRIPT] == ()
    assert catalog.metadata.total_modules == 1
    assert catalog.metadata.estimated_hours == 5


def test_lookups_before_load_are_empty(catalog_file: Path) -> None:
    loader = CatalogLoader(catalog_file)
    assert loader.loaded is False
    assert loader.get_modules(Technology.JAVASCRIPT) == ()
    assert loader.find_module(Technology.JAVASCRIPT, "Arrays") is None
    assert loader.learning_paths() == ()
    assert loader.metadata is None


def test_unknown_technology_returns_empty_sequence(catalog_file: Path) -> None:
    loader = CatalogLoader(catalog_file)
    loader.load()
    assert loader.get_modules("python") == ()
    assert loader.find_module("python", "Arrays") is None


def test_groups_are_parsed(catalog_file: Path) -> None:
    loader = CatalogLoader(catalog_file)
    loader.load()

    path = loader.find_group(GroupKind.PATH, "Basics")
    assert path is not None
    assert path.module_identifiers == ("Arrays", "Events", "Missing")
    assert path.duration == "2 weeks"
    project = loader.find_group(GroupKind.PROJECT, "Todo App")
    assert project is not None
    assert project.features == ("Add tasks",)
    assert loader.find_group(GroupKind.PROJECT, "Basics") is None


def test_missing_file_raises_catalog_unavailable(tmp_path: Path) -> None:
    loader = CatalogLoader(tmp_path / "nope.json")
    with pytest.raises(CatalogUnavailable):
        loader.load()
    assert loader.loaded is False


def test_malformed_json_raises_catalog_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogUnavailable) as excinfo:
        CatalogLoader(path).load()
    assert "malformed JSON" in excinfo.value.reason


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"javascript_modules": {"name": "x"}},
        {"javascript_modules": [{"title": "No name"}]},
        {"javascript_modules": [{"name": "A", "title": "A", "hours": 0}]},
        {"javascript_modules": [{"name": "A", "title": "A", "difficulty": "expert"}]},
        {"javascript_modules": [{"name": "A", "title": "A"}, {"name": "A", "title": "B"}]},
        {"metadata": {"total_modules": 1}},
        {"javascript_modules": [{"name": "A", "title": "A", "hours": float("inf")}]},
        {"metadata": {"total_modules": float("inf"), "estimated_hours": 10}},
        {"metadata": {"total_modules": "five", "estimated_hours": 10}},
        {"javascript_modules": [{"name": None, "title": "T"}]},
        {"javascript_modules": [{"name": 42, "title": "T"}]},
        {"javascript_modules": [{"name": "A", "title": None}]},
    ],
)
def test_invalid_documents_raise_catalog_unavailable(tmp_path: Path, payload: Any) -> None:
    path = tmp_path / "invalid.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(CatalogUnavailable):
        CatalogLoader(path).load()


@pytest.mark.parametrize(
    "text",
    [
        '{"javascript_modules": [{"name": "A", "title": "A", "hours": 1e400}]}',
        '{"metadata": {"total_modules": 1e400, "estimated_hours": 10}}',
    ],
)
def test_out_of_range_numbers_raise_catalog_unavailable(tmp_path: Path, text: str) -> None:
    path = tmp_path / "huge.json"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(CatalogUnavailable):
        CatalogLoader(path).load()


@pytest.mark.parametrize("name", [None, 42])
def test_parse_catalog_rejects_non_string_names(name: object) -> None:
    with pytest.raises(TypeError):
        parse_catalog({"javascript_modules": [{"name": name, "title": "T"}]})


def test_load_from_url(catalog_payload: dict[str, Any]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/module.json"
        return httpx.Response(200, json=catalog_payload)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        loader = CatalogLoader("https://example.test/module.json", client=client)
        loader.load()

    assert len(loader.get_modules(Technology.REACT)) == 2


def test_http_error_raises_catalog_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        loader = CatalogLoader("https://example.test/module.json", client=client)
        with pytest.raises(CatalogUnavailable) as excinfo:
            loader.load()

    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


def test_transport_error_raises_catalog_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(CatalogUnavailable):
            CatalogLoader("http://example.test/module.json", client=client).load()


def test_bundled_catalog_loads() -> None:
    loader = CatalogLoader()
    assert loader.source == BUNDLED_SOURCE
    catalog = loader.load()

    total = sum(len(items) for items in catalog.modules.values())
    assert catalog.metadata.total_modules == total
    assert catalog.metadata.estimated_hours == sum(module.hours for module in catalog.index.values())
    for group in catalog.learning_paths:
        technologies = {
            technology
            for technology in Technology
            for identifier in group.module_identifiers
            if (technology, identifier) in catalog.index
        }
        assert technologies
