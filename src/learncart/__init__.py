"""Learning catalog browser with a persisted module cart."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]


def _source_tree_version(start: Path | None = None) -> str | None:
    """Read the version from a checkout's pyproject.toml when running from source."""
    for base in (start or Path(__file__)).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        try:
            project = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {})
        except tomllib.TOMLDecodeError:
            continue
        if project.get("name") == "learncart" and "version" in project:
            return str(project["version"])
    return None


_checkout_version = _source_tree_version()
if _checkout_version is not None:
    __version__ = _checkout_version
else:
    try:
        __version__ = version("learncart")
    except PackageNotFoundError:
        __version__ = "0+unknown"
