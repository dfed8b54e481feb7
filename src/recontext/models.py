"""Data models for recontext."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ProjectRecord:
    encoded: str
    dir_path: Path
    # Recovered real path, or the decoded estimate when has_real_path is False
    project_path: str
    has_real_path: bool
    exists: bool | None = None  # None = unknown (nothing recovered to check)

    @property
    def is_broken(self) -> bool:
        return self.exists is False


@dataclass
class RewriteResult:
    updated: bool
    path: Path
    lines_changed: int = 0
    original_content: str | None = None


@dataclass
class PlannedAction:
    kind: str  # "rename-dir" | "update-file"
    path: Path
    target: Path | None = None


@dataclass
class UndoAction:
    kind: str  # "rename-dir" | "file-content" | "file-backup"
    path: Path
    target: Path | None = None  # rename-dir: original location; file-backup: backup file
    content: str | None = None  # file-content: text to restore


@dataclass
class PlanResult:
    from_path: str
    to_path: str
    old_encoded: str
    new_encoded: str
    changes: list[PlannedAction] = field(default_factory=list)
    dry_run: bool = True


@dataclass
class MigrationResult:
    from_path: str
    to_path: str
    old_encoded: str
    new_encoded: str
    sessions_updated: bool = False
    jsonl_files_updated: int = 0
    jsonl_lines_changed: int = 0
    text_files_updated: int = 0
    history_updated: bool = False
    history_lines_changed: int = 0
    residues: list[Path] = field(default_factory=list)
