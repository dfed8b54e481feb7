"""sessions-index.json rewriting."""

from __future__ import annotations

import json
from pathlib import Path

from recontext.jsonl import atomic_write, read_text
from recontext.models import RewriteResult
from recontext.paths import INDEX_FILENAME
from recontext.replacer import replace_path


def update_sessions_index(
    project_dir: Path,
    old_path: str,
    new_path: str,
    old_encoded: str,
    new_encoded: str,
) -> RewriteResult:
    """Rewrite path references in a project's sessions-index.json.

    ``originalPath`` and ``entries[].projectPath`` hold real project paths.
    ``entries[].fullPath`` points into the store itself, so it carries the
    *encoded* directory name and is rewritten with the encoded names instead.

    A missing or unparsable index is left alone and reported as not updated.
    """
    index_path = Path(project_dir) / INDEX_FILENAME

    try:
        original = read_text(index_path)
    except FileNotFoundError:
        return RewriteResult(updated=False, path=index_path)

    try:
        data = json.loads(original)
    except json.JSONDecodeError:
        return RewriteResult(updated=False, path=index_path)
    if not isinstance(data, dict):
        return RewriteResult(updated=False, path=index_path)

    if isinstance(data.get("originalPath"), str):
        data["originalPath"] = replace_path(data["originalPath"], old_path, new_path)

    entries = data.get("entries")
    if isinstance(entries, list):
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if isinstance(entry.get("projectPath"), str):
                entry["projectPath"] = replace_path(entry["projectPath"], old_path, new_path)
            if isinstance(entry.get("fullPath"), str):
                entry["fullPath"] = replace_path(entry["fullPath"], old_encoded, new_encoded)

    new_data = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    if new_data == original:
        return RewriteResult(updated=False, path=index_path)

    atomic_write(index_path, new_data)
    return RewriteResult(updated=True, path=index_path, original_content=original)
