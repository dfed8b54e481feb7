from __future__ import annotations

import pytest

from recontext.replacer import (
    build_search_terms,
    contains_any,
    fold_case,
    path_variants,
    replace_all_ci,
    replace_path,
)

OLD = "C:\\Users\\Test\\old-project"
NEW = "C:\\Users\\Test\\new-project"


def test_build_search_terms_has_three_lowercase_variants() -> None:
    terms = build_search_terms("C:\\Users\\Test\\Project")
    assert terms == [
        "c:/users/test/project",
        "c:\\users\\test\\project",
        "c:\\\\users\\\\test\\\\project",
    ]


def test_build_search_terms_from_forward_slash_input() -> None:
    terms = build_search_terms("C:/Users/Test/project")
    assert "c:/users/test/project" in terms
    assert "c:\\users\\test\\project" in terms


def test_path_variants_keep_case() -> None:
    assert path_variants("/Home/Me") == ("/Home/Me", "\\Home\\Me", "\\\\Home\\\\Me")


def test_fold_case_preserves_length() -> None:
    text = "\u0130stanbul/Proje"
    assert len(fold_case(text)) == len(text)
    assert fold_case("ABC") == "abc"


@pytest.mark.parametrize(
    ("text", "search", "replacement", "expected"),
    [
        ("Hello World", "hello", "hi", "hi World"),
        ("aaa bbb aaa", "aaa", "ccc", "ccc bbb ccc"),
        ("hello", "xyz", "abc", "hello"),
        ("hello", "", "abc", "hello"),
        ("C:\\Users\\test", "c:\\users", "D:\\People", "D:\\People\\test"),
        ("a.*b a.*b", ".*", "$1", "a$1b a$1b"),
    ],
)
def test_replace_all_ci(text: str, search: str, replacement: str, expected: str) -> None:
    assert replace_all_ci(text, search, replacement) == expected


def test_replace_all_ci_after_case_expanding_character() -> None:
    """Offsets stay aligned when the text holds characters that lower() expands."""
    text = "\u0130 C:/OLD/x"
    assert replace_all_ci(text, "c:/old", "D:/New") == "\u0130 D:/New/x"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("cwd: C:/Users/Test/old-project", "cwd: C:/Users/Test/new-project"),
        ("cwd: C:\\Users\\Test\\old-project", "cwd: C:\\Users\\Test\\new-project"),
        (
            '"cwd":"C:\\\\Users\\\\Test\\\\old-project"',
            '"cwd":"C:\\\\Users\\\\Test\\\\new-project"',
        ),
        ("C:/Users/Test/old-project/src/file.js", "C:/Users/Test/new-project/src/file.js"),
    ],
)
def test_replace_path_each_encoding(text: str, expected: str) -> None:
    assert replace_path(text, OLD, NEW) == expected


@pytest.mark.parametrize("drive", ["c", "C"])
def test_replace_path_ignores_case_and_keeps_new_casing(drive: str) -> None:
    text = f"{drive}:/users/test/old"
    assert replace_path(text, "C:\\Users\\Test\\old", "D:\\New\\path") == "D:/New/path"


def test_replace_path_without_match_is_identical() -> None:
    text = "nothing to see at C:/Users/Other"
    assert replace_path(text, OLD, NEW) is text


def test_replace_path_non_strings_unchanged() -> None:
    assert replace_path(42, "old", "new") == 42
    assert replace_path(None, "old", "new") is None


def test_replace_path_separatorless_path_replaced_once() -> None:
    """Identical variants must not re-match text produced by an earlier pass."""
    assert replace_path("proj", "proj", "proj-2") == "proj-2"


def test_contains_any() -> None:
    terms = build_search_terms(OLD)
    assert contains_any('{"cwd":"c:\\\\users\\\\test\\\\OLD-project"}', terms)
    assert not contains_any('{"cwd":"C:/elsewhere"}', terms)
