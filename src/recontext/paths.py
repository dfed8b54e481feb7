"""Locations of the Claude Code session store."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

INDEX_FILENAME = "sessions-index.json"


@dataclass(frozen=True)
class StoreLayout:
    """Read-only store locations, resolved once and passed around explicitly."""

    claude_dir: Path
    projects_dir: Path
    history_file: Path

    @classmethod
    def from_home(cls, home: Path | str | None = None) -> StoreLayout:
        base = Path(home) if home is not None else Path.home()
        claude_dir = base / ".claude"
        return cls(
            claude_dir=claude_dir,
            projects_dir=claude_dir / "projects",
            history_file=claude_dir / "history.jsonl",
        )

    def project_dir(self, encoded: str) -> Path:
        return self.projects_dir / encoded
