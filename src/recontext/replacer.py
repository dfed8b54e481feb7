"""Case-insensitive path substitution across separator encodings.

A path can appear in session data in three textual forms: with forward
slashes, with native backslashes, and with JSON-escaped backslashes (when the
raw line text is searched rather than a parsed value).
"""

from __future__ import annotations


def fold_case(text: str) -> str:
    """Lower-case ``text`` without changing its length.

    Characters whose lower-case form is longer than one code point (e.g.
    ``"\\u0130"``) are kept as-is so offsets into the folded string line up
    with the original.
    """
    lowered = text.lower()
    if len(lowered) == len(text):
        return lowered
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


def path_variants(path: str) -> tuple[str, str, str]:
    """Return (forward-slash, backslash, JSON-escaped backslash) forms of ``path``."""
    forward = path.replace("\\", "/")
    backslash = path.replace("/", "\\")
    escaped = backslash.replace("\\", "\\\\")
    return forward, backslash, escaped


def build_search_terms(path: str) -> list[str]:
    """Lower-cased path variants used for fast line rejection."""
    return [fold_case(v) for v in path_variants(path)]


def contains_any(text: str, terms: list[str]) -> bool:
    folded = fold_case(text)
    return any(term in folded for term in terms)


def replace_all_ci(text: str, search: str, replacement: str) -> str:
    """Replace every case-insensitive occurrence of ``search`` in one left-to-right pass."""
    if not search:
        return text
    folded = fold_case(text)
    needle = fold_case(search)
    index = folded.find(needle)
    if index == -1:
        return text

    parts: list[str] = []
    last = 0
    while index != -1:
        parts.append(text[last:index])
        parts.append(replacement)
        last = index + len(needle)
        index = folded.find(needle, last)
    parts.append(text[last:])
    return "".join(parts)


def replace_path(value, old_path: str, new_path: str):
    """Replace ``old_path`` with ``new_path`` in all three encodings.

    Non-string values are returned unchanged. The replacement keeps the casing
    of ``new_path`` as given.
    """
    if not isinstance(value, str):
        return value

    result = value
    seen: set[str] = set()
    for search, replacement in zip(path_variants(old_path), path_variants(new_path)):
        # A path without separators yields identical variants; scan it once.
        if search in seen:
            continue
        seen.add(search)
        result = replace_all_ci(result, search, replacement)
    return result
