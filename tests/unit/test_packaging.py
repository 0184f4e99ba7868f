"""Tests for the project metadata in pyproject.toml."""

from __future__ import annotations

import tomllib
from pathlib import Path

from arborist import __version__

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _project() -> dict:
    with PYPROJECT.open("rb") as f:
        return tomllib.load(f)["project"]


def test_readme_is_user_facing() -> None:
    """The package description, if any, is a README, not an internal document."""
    readme = _project().get("readme")
    if readme is None:
        return
    assert Path(readme).name.lower().startswith("readme")
    assert (PYPROJECT.parent / readme).exists()


def test_version_matches_package() -> None:
    assert _project()["version"] == __version__
