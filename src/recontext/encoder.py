"""Project path <-> store directory name encoding."""

from __future__ import annotations

import re

_DRIVE_PREFIX = re.compile(r"^([A-Za-z]):/")
_ENCODED_DRIVE = re.compile(r"^([A-Za-z])--")
_UNSAFE = re.compile(r"[^A-Za-z0-9-]")


def encode_project_path(absolute_path: str) -> str:
    """Encode an absolute path the way Claude Code names ``~/.claude/projects`` entries.

    Many paths map to the same name: every character outside ``[A-Za-z0-9-]``
    (separators, spaces, dots, non-ASCII) collapses to a single ``-``.
    """
    p = absolute_path.replace("\\", "/")
    p = _DRIVE_PREFIX.sub(r"\1--", p, count=1)
    return _UNSAFE.sub("-", p)


def decode_project_name(encoded: str) -> str:
    """Best-effort decode: ``C--`` -> ``C:/``, everything else stays as-is."""
    return _ENCODED_DRIVE.sub(r"\1:/", encoded, count=1)
