from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def catalog_payload() -> dict[str, Any]:
    """Small catalog document with a name shared by both technologies."""
    return {
        "metadata": {"total_modules": 5, "estimated_hours": 38},
        "javascript_modules": [
            {
                "name": "Arrays",
                "title": "Working with Arrays",
                "summary": "map, filter and reduce.",
                "page_html": "js/arrays.html",
                "difficulty": "beginner",
                "hours": 6,
            },
            {
                "name": "OOP",
                "title": "Object-Oriented JavaScript",
                "summary": "Classes and inheritance.",
                "page_html": "js/oop.html",
                "difficulty": "advanced",
                "hours": 12,
            },
            {
                "name": "Events",
                "title": "Event Handling",
                "summary": "Listeners and delegation.",
                "page_html": "js/events.html",
            },
        ],
        "react_modules": [
            {
                "name": "Events",
                "title": "Handling Events in React",
                "summary": "Synthetic events.",
                "page_html": "react/events.html",
            },
            {
                "name": "Hooks",
                "title": "React Hooks",
                "summary": "useState and useEffect.",
                "page_html": "react/hooks.html",
            },
        ],
        "learning_paths": [
            {
                "path_name": "Basics",
                "difficulty": "Beginner",
                "duration": "2 weeks",
                "modules": ["Arrays", "Events", "Missing"],
            }
        ],
        "project_examples": [
            {
                "project_name": "Todo App",
                "difficulty": "Beginner",
                "features": ["Add tasks"],
                "modules_used": ["Events", "OOP"],
            }
        ],
    }


@pytest.fixture
def catalog_file(tmp_path: Path, catalog_payload: dict[str, Any]) -> Path:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_payload), encoding="utf-8")
    return path
