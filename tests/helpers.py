from __future__ import annotations

import json
from pathlib import Path

from recontext.encoder import encode_project_path
from recontext.paths import StoreLayout


def write_jsonl(path: Path, entries: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")


def write_index(project_dir: Path, data: dict) -> Path:
    project_dir.mkdir(parents=True, exist_ok=True)
    index_path = project_dir / "sessions-index.json"
    index_path.write_text(json.dumps(data, indent=2) + "\n")
    return index_path


def make_project(store: StoreLayout, project_path: str, sessions: dict[str, list[dict]] | None = None) -> Path:
    """Create a store directory for ``project_path`` with the given logs."""
    project_dir = store.projects_dir / encode_project_path(project_path)
    project_dir.mkdir(parents=True, exist_ok=True)
    for name, entries in (sessions or {}).items():
        write_jsonl(project_dir / name, entries)
    return project_dir


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Map every file under ``root`` (relative path) to its bytes."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }
