"""Exceptions raised by the migration engine."""

from __future__ import annotations

from pathlib import Path


class MigrationError(Exception):
    """Base class for migration failures."""


class PreconditionError(MigrationError):
    """A migration was refused before anything on disk was touched."""


class SourceNotFound(PreconditionError):
    def __init__(self, project_dir: Path, from_path: str, encoded: str) -> None:
        super().__init__(
            f"Source project directory not found:\n  {project_dir}\n\n"
            f'Encoded directory name for "{from_path}": {encoded}'
        )
        self.project_dir = project_dir
        self.from_path = from_path
        self.encoded = encoded


class DestinationExists(PreconditionError):
    def __init__(self, project_dir: Path) -> None:
        super().__init__(
            f"Target project directory already exists:\n  {project_dir}\n\n"
            "Aborted to avoid overwriting it."
        )
        self.project_dir = project_dir
