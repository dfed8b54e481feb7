from __future__ import annotations

from pathlib import Path

import pytest

from recontext.paths import StoreLayout


@pytest.fixture()
def store(tmp_path: Path) -> StoreLayout:
    """A store layout rooted in a temporary home directory."""
    layout = StoreLayout.from_home(tmp_path / "home")
    layout.projects_dir.mkdir(parents=True)
    return layout
