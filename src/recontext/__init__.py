"""Relocate Claude Code session history after a project directory moves."""

from __future__ import annotations

from recontext.encoder import encode_project_path
from recontext.migrator import migrate
from recontext.scanner import list_projects

__version__ = "0.1.0"

__all__ = ["encode_project_path", "list_projects", "migrate", "__version__"]
