"""Streaming rewrites of JSONL session logs and small text documents.

Session logs can run to hundreds of megabytes, so they are processed one line
at a time into a sibling temp file that replaces the original only when
something actually changed.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
import time
from collections.abc import Iterable
from pathlib import Path

from recontext.models import RewriteResult
from recontext.replacer import build_search_terms, contains_any, replace_path

logger = logging.getLogger(__name__)

_ENCODING = "utf-8"
# Round-trip undecodable bytes instead of failing on a damaged log
_ERRORS = "surrogateescape"
# Lone UTF-16 surrogates from \uXXXX escapes cannot be encoded as UTF-8
_SURROGATE = re.compile("[\ud800-\udfff]")


def find_files(directory: Path, extensions: Iterable[str]) -> list[Path]:
    """Recursively list files under ``directory`` whose name ends with one of ``extensions``.

    Missing or unreadable directories contribute nothing.
    """
    suffixes = tuple(extensions)
    results: list[Path] = []
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError:
        return results

    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                results.extend(find_files(Path(entry.path), suffixes))
            elif entry.name.endswith(suffixes):
                results.append(Path(entry.path))
        except OSError:
            continue
    return results


def find_jsonl_files(directory: Path) -> list[Path]:
    return find_files(directory, [".jsonl"])


def _split_terminator(raw: bytes) -> tuple[bytes, bytes]:
    if raw.endswith(b"\r\n"):
        return raw[:-2], b"\r\n"
    if raw.endswith(b"\n"):
        return raw[:-1], b"\n"
    return raw, b""


def _deep_replace(value, old_path: str, new_path: str):
    """Rewrite every string leaf; keys, order and non-string values are kept."""
    if isinstance(value, str):
        return replace_path(value, old_path, new_path)
    if isinstance(value, list):
        return [_deep_replace(item, old_path, new_path) for item in value]
    if isinstance(value, dict):
        return {key: _deep_replace(item, old_path, new_path) for key, item in value.items()}
    return value


def _escape_surrogates(text: str) -> str:
    return _SURROGATE.sub(lambda m: f"\\u{ord(m.group()):04x}", text)


def rewrite_line(line: str, old_path: str, new_path: str) -> str:
    """Rewrite one JSONL line that is known to mention ``old_path``.

    ``line`` must be strictly decoded text. The result never contains lone
    surrogates, so it always encodes back to valid UTF-8.
    """
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return replace_path(line, old_path, new_path)

    updated = _deep_replace(entry, old_path, new_path)
    if updated == entry:
        # The match sat somewhere we don't rewrite (e.g. a key); keep the bytes.
        return line
    return _escape_surrogates(json.dumps(updated, ensure_ascii=False, separators=(",", ":")))


def _temp_sibling(path: Path, suffix: str) -> tuple[int, str]:
    return tempfile.mkstemp(dir=str(path.parent), prefix=f"{path.name}.", suffix=suffix)


def update_jsonl_file(file_path: Path, old_path: str, new_path: str) -> RewriteResult:
    """Replace ``old_path`` references in a JSONL file, streaming line by line.

    Lines without any variant of ``old_path`` are copied byte-for-byte. Matching
    lines are parsed and deep-rewritten, or rewritten as raw text when they are
    not valid JSON or not valid UTF-8. Lone surrogates coming from \\uXXXX
    escapes are written back as escapes. The original is swapped out only if a
    line changed.
    """
    file_path = Path(file_path)
    terms = build_search_terms(old_path)
    lines_changed = 0

    with open(file_path, "rb") as src:
        fd, tmp = _temp_sibling(file_path, ".tmp")
        try:
            with os.fdopen(fd, "wb") as dst:
                for raw in src:
                    body, terminator = _split_terminator(raw)
                    line = body.decode(_ENCODING, _ERRORS)
                    if not contains_any(line, terms):
                        dst.write(raw)
                        continue

                    try:
                        text = body.decode(_ENCODING)
                    except UnicodeDecodeError:
                        # Damaged bytes: raw text replace, undecodable bytes kept as-is
                        new_line = replace_path(line, old_path, new_path)
                    else:
                        new_line = rewrite_line(text, old_path, new_path)
                    if new_line != line:
                        lines_changed += 1
                    dst.write(new_line.encode(_ENCODING, _ERRORS) + terminator)
        except BaseException:
            os.unlink(tmp)
            raise

    if not lines_changed:
        os.unlink(tmp)
        return RewriteResult(updated=False, path=file_path)

    try:
        shutil.copymode(file_path, tmp)
        os.replace(tmp, file_path)
    except BaseException:
        os.unlink(tmp)
        raise
    logger.debug("Rewrote %d line(s) in %s", lines_changed, file_path)
    return RewriteResult(updated=True, path=file_path, lines_changed=lines_changed)


def file_contains_path(file_path: Path, old_path: str) -> bool:
    """Stream-scan a file for any variant of ``old_path``. Never writes."""
    terms = build_search_terms(old_path)
    with open(file_path, "rb") as f:
        for raw in f:
            if contains_any(raw.decode(_ENCODING, _ERRORS), terms):
                return True
    return False


def atomic_write(target: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file, then rename it over ``target``."""
    target = Path(target)
    fd, tmp = _temp_sibling(target, ".tmp")
    try:
        with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
            f.write(content)
        if target.exists():
            shutil.copymode(target, tmp)
        os.replace(tmp, target)
    except BaseException:
        os.unlink(tmp)
        raise


def read_text(path: Path) -> str:
    """Read a whole text file with its line endings untouched."""
    with open(path, encoding=_ENCODING, errors=_ERRORS, newline="") as f:
        return f.read()


def update_text_file(file_path: Path, old_path: str, new_path: str) -> RewriteResult:
    """Whole-file path replacement for small free-form documents (e.g. MEMORY.md).

    Returns the original content so the change can be undone.
    """
    file_path = Path(file_path)
    original = read_text(file_path)
    updated = replace_path(original, old_path, new_path)
    if updated == original:
        return RewriteResult(updated=False, path=file_path)

    atomic_write(file_path, updated)
    return RewriteResult(updated=True, path=file_path, original_content=original)


def backup_file(file_path: Path) -> Path:
    """Keep the current contents of ``file_path`` reachable under a sibling name.

    A hard link costs no extra space; a copy is made where linking fails.
    """
    file_path = Path(file_path)
    backup = file_path.with_name(f"{file_path.name}.bak-{int(time.time() * 1000)}")
    try:
        os.link(file_path, backup)
    except OSError:
        shutil.copy2(file_path, backup)
    return backup
