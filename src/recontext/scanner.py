"""Project discovery and real-path recovery for the session store."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from itertools import islice
from pathlib import Path

from recontext.encoder import decode_project_name
from recontext.models import ProjectRecord
from recontext.paths import INDEX_FILENAME, StoreLayout

# Only the head of a log is read when looking for a cwd
CWD_SCAN_LINES = 20

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class ProbeStatus(Enum):
    FOUND = "found"
    MISSING = "missing"  # source absent or had nothing usable
    MALFORMED = "malformed"  # source present but unreadable or not valid JSON


@dataclass(frozen=True)
class PathProbe:
    status: ProbeStatus
    path: str | None = None
    source: Path | None = None

    @property
    def found(self) -> bool:
        return self.status is ProbeStatus.FOUND


_MISSING = PathProbe(ProbeStatus.MISSING)


def is_uuid(name: str) -> bool:
    return bool(_UUID_RE.match(name))


def _non_empty_str(value) -> str | None:
    return value if isinstance(value, str) and value else None


def probe_sessions_index(project_dir: Path) -> PathProbe:
    """Read originalPath, else the first entry that carries a projectPath."""
    index_path = project_dir / INDEX_FILENAME
    try:
        data = json.loads(index_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return _MISSING
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return PathProbe(ProbeStatus.MALFORMED, source=index_path)
    if not isinstance(data, dict):
        return PathProbe(ProbeStatus.MALFORMED, source=index_path)

    original = _non_empty_str(data.get("originalPath"))
    if original:
        return PathProbe(ProbeStatus.FOUND, original, index_path)

    entries = data.get("entries")
    if isinstance(entries, list):
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            project_path = _non_empty_str(entry.get("projectPath"))
            if project_path:
                return PathProbe(ProbeStatus.FOUND, project_path, index_path)
    return PathProbe(ProbeStatus.MISSING, source=index_path)


def _cwd_from_entry(entry) -> str | None:
    if not isinstance(entry, dict):
        return None
    cwd = _non_empty_str(entry.get("cwd"))
    if cwd:
        return cwd
    snapshot = entry.get("snapshot")
    if isinstance(snapshot, dict):
        return _non_empty_str(snapshot.get("cwd"))
    return None


def probe_jsonl_cwd(jsonl_file: Path) -> PathProbe:
    """Look for a cwd (or snapshot.cwd) in the first lines of a log."""
    saw_bad_line = False
    try:
        with open(jsonl_file, encoding="utf-8", errors="replace") as f:
            for line in islice(f, CWD_SCAN_LINES):
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    entry = json.loads(stripped)
                except json.JSONDecodeError:
                    saw_bad_line = True
                    continue
                cwd = _cwd_from_entry(entry)
                if cwd:
                    return PathProbe(ProbeStatus.FOUND, cwd, jsonl_file)
    except OSError:
        return PathProbe(ProbeStatus.MALFORMED, source=jsonl_file)

    status = ProbeStatus.MALFORMED if saw_bad_line else ProbeStatus.MISSING
    return PathProbe(status, source=jsonl_file)


def _jsonl_children(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.suffix == ".jsonl" and p.is_file())
    except OSError:
        return []


def _uuid_dirs(project_dir: Path) -> list[Path]:
    try:
        return sorted(p for p in project_dir.iterdir() if p.is_dir() and is_uuid(p.name))
    except OSError:
        return []


def _probe_logs(logs: list[Path]) -> PathProbe:
    for jsonl_file in logs:
        probe = probe_jsonl_cwd(jsonl_file)
        if probe.found:
            return probe
    return _MISSING


def path_probes(project_dir: Path) -> Iterator[Callable[[], PathProbe]]:
    """Yield the recovery sources for a project directory, highest priority first."""
    yield lambda: probe_sessions_index(project_dir)
    yield lambda: _probe_logs(_jsonl_children(project_dir))
    yield lambda: _probe_logs([f for d in _uuid_dirs(project_dir) for f in _jsonl_children(d)])
    yield lambda: _probe_logs(
        [f for d in _uuid_dirs(project_dir) for f in _jsonl_children(d / "subagents")]
    )


def detect_project_path(project_dir: Path) -> str | None:
    """Recover the real project path recorded in a store directory, or None."""
    for probe in path_probes(Path(project_dir)):
        result = probe()
        if result.found:
            return result.path
    return None


def _path_exists(path: str) -> bool:
    try:
        return Path(path).exists()
    except (OSError, ValueError):
        return False


def list_projects(layout: StoreLayout | None = None) -> list[ProjectRecord]:
    """List every project in the store with its best-known path and health.

    Never raises: an unreadable store root yields an empty list.
    """
    layout = layout or StoreLayout.from_home()
    try:
        entries = sorted(layout.projects_dir.iterdir())
    except OSError:
        return []

    projects: list[ProjectRecord] = []
    for entry in entries:
        try:
            if not entry.is_dir():
                continue
        except OSError:
            continue

        real_path = detect_project_path(entry)
        exists = _path_exists(real_path) if real_path else None
        projects.append(ProjectRecord(
            encoded=entry.name,
            dir_path=entry,
            project_path=real_path or decode_project_name(entry.name),
            has_real_path=real_path is not None,
            exists=exists,
        ))
    return projects


def project_dir_exists(encoded: str, layout: StoreLayout | None = None) -> bool:
    layout = layout or StoreLayout.from_home()
    try:
        return layout.project_dir(encoded).is_dir()
    except OSError:
        return False
