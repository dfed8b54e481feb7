from __future__ import annotations

import json
from pathlib import Path

import pytest

from recontext import jsonl
from tests.helpers import write_jsonl

OLD = "C:\\Users\\Old\\project"
NEW = "C:\\Users\\New\\project"


def test_find_jsonl_files_recursive(tmp_path: Path) -> None:
    (tmp_path / "a.jsonl").write_text("{}\n")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.jsonl").write_text("{}\n")
    (tmp_path / "notes.txt").write_text("x")

    files = jsonl.find_jsonl_files(tmp_path)
    assert [f.name for f in files] == ["a.jsonl", "b.jsonl"]


def test_find_files_by_multiple_extensions(tmp_path: Path) -> None:
    (tmp_path / "readme.md").write_text("# test")
    (tmp_path / "data.jsonl").write_text("{}")
    (tmp_path / "style.css").write_text("body{}")

    assert len(jsonl.find_files(tmp_path, [".md"])) == 1
    assert len(jsonl.find_files(tmp_path, [".md", ".jsonl"])) == 2


def test_find_files_missing_directory_is_empty(tmp_path: Path) -> None:
    assert jsonl.find_files(tmp_path / "nonexistent", [".jsonl"]) == []


def test_update_jsonl_file_rewrites_matching_lines(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    lines = [
        '{"cwd":"C:\\\\Users\\\\Old\\\\project","type":"user"}',
        '{"type": "assistant", "message": "hello"}',
        '{"cwd":"C:\\\\Users\\\\Old\\\\project","type":"user"}',
    ]
    path.write_text("\n".join(lines) + "\n")

    result = jsonl.update_jsonl_file(path, OLD, NEW)

    assert result.updated is True
    assert result.lines_changed == 2
    out = path.read_text().split("\n")
    assert len(out) == 4 and out[3] == ""
    assert json.loads(out[0])["cwd"] == NEW
    assert out[1] == lines[1]  # untouched line keeps its spacing
    assert json.loads(out[2])["cwd"] == NEW
    assert "Old" not in path.read_text()


def test_update_jsonl_file_no_match_leaves_file(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    content = '{"type":"user","message":"hello"}\n{"type":"assistant","message":"world"}\n'
    path.write_text(content)

    result = jsonl.update_jsonl_file(path, "C:\\nonexistent", "C:\\new")
    assert result.updated is False
    assert result.lines_changed == 0
    assert path.read_text() == content
    assert sorted(p.name for p in tmp_path.iterdir()) == ["session.jsonl"]


def test_update_jsonl_file_forward_slash_in_json(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    path.write_text('{"path":"C:/Users/Old/project/file.js"}\n')

    assert jsonl.update_jsonl_file(path, OLD, NEW).updated is True
    assert json.loads(path.read_text())["path"] == "C:/Users/New/project/file.js"


def test_update_jsonl_file_deep_rewrite_keeps_structure(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    entry = {
        "snapshot": {"cwd": "/home/me/old"},
        "message": {"content": [{"type": "text", "text": "see /home/me/old/README.md"}, 3, None]},
        "/home/me/old": "key stays",
        "n": 1.5,
    }
    write_jsonl(path, [entry])

    jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")

    out = json.loads(path.read_text())
    assert list(out) == list(entry)
    assert out["snapshot"]["cwd"] == "/home/me/new"
    assert out["message"]["content"] == [
        {"type": "text", "text": "see /home/me/new/README.md"},
        3,
        None,
    ]
    assert out["/home/me/old"] == "key stays"
    assert out["n"] == 1.5


def test_update_jsonl_file_match_only_in_key_is_not_a_change(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    original = '{"/home/me/old": 1}\n'
    path.write_text(original)

    result = jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")
    assert result.updated is False
    assert path.read_text() == original


def test_update_jsonl_file_malformed_line_uses_text_replace(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    path.write_text('{"cwd": "/home/me/old", broken\nplain /home/me/old text\n')

    result = jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")
    assert result.lines_changed == 2
    assert path.read_text() == '{"cwd": "/home/me/new", broken\nplain /home/me/new text\n'


def test_update_jsonl_file_preserves_terminators_and_count(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    path.write_bytes(b'{"a":"x"}\r\n\n{"cwd":"/home/me/old"}\r\n{"b":"y"}')

    jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")
    assert path.read_bytes() == b'{"a":"x"}\r\n\n{"cwd":"/home/me/new"}\r\n{"b":"y"}'


def test_update_jsonl_file_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    entries = [{"cwd": "/home/me/old", "i": i} if i % 3 == 0 else {"i": i} for i in range(10)]
    write_jsonl(path, entries)

    first = jsonl.update_jsonl_file(path, "/home/me/old", "/srv/new")
    assert first.lines_changed == 4
    assert len(path.read_text().splitlines()) == 10
    assert [json.loads(line)["i"] for line in path.read_text().splitlines()] == list(range(10))

    second = jsonl.update_jsonl_file(path, "/home/me/old", "/srv/new")
    assert second.updated is False
    assert second.lines_changed == 0


def test_update_jsonl_file_keeps_non_ascii(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    path.write_text('{"cwd":"/home/me/old","text":"çalışma"}\n', encoding="utf-8")

    jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/yeni")
    assert path.read_text(encoding="utf-8") == '{"cwd":"/home/me/yeni","text":"çalışma"}\n'


@pytest.mark.parametrize("escape", ["\\ud83d", "\\udc80"])
def test_update_jsonl_file_keeps_lone_surrogate_escapes(tmp_path: Path, escape: str) -> None:
    path = tmp_path / "session.jsonl"
    path.write_bytes(('{"cwd":"/home/me/old","text":"cut ' + escape + '"}\n').encode("ascii"))

    result = jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")

    assert result.lines_changed == 1
    data = path.read_bytes()
    assert data == ('{"cwd":"/home/me/new","text":"cut ' + escape + '"}\n').encode("ascii")
    entry = json.loads(data.decode("utf-8"))
    assert entry["text"] == json.loads('"cut ' + escape + '"')


def test_update_jsonl_file_invalid_utf8_line_keeps_bytes(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    path.write_bytes(b'{"cwd":"/home/me/old","blob":"\xff\xfe"}\n')

    result = jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")

    assert result.lines_changed == 1
    assert path.read_bytes() == b'{"cwd":"/home/me/new","blob":"\xff\xfe"}\n'


def test_update_jsonl_file_missing_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        jsonl.update_jsonl_file(tmp_path / "missing.jsonl", "/a", "/b")


def test_update_jsonl_file_cleans_temp_on_error(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "session.jsonl"
    write_jsonl(path, [{"cwd": "/home/me/old"}])

    def boom(*_args):
        raise OSError("disk full")

    monkeypatch.setattr(jsonl, "rewrite_line", boom)
    with pytest.raises(OSError, match="disk full"):
        jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["session.jsonl"]


def test_file_contains_path(tmp_path: Path) -> None:
    path = tmp_path / "history.jsonl"
    write_jsonl(path, [{"project": "c:/users/old/PROJECT"}, {"project": "/other"}])

    assert jsonl.file_contains_path(path, OLD) is True
    assert jsonl.file_contains_path(path, "/missing") is False


def test_update_text_file_replaces_and_returns_original(tmp_path: Path) -> None:
    path = tmp_path / "MEMORY.md"
    original = "# Project at C:\\Users\\Old\\project\r\n\r\nSome notes.\r\n"
    path.write_bytes(original.encode())

    result = jsonl.update_text_file(path, OLD, NEW)

    assert result.updated is True
    assert result.original_content == original
    assert path.read_bytes() == b"# Project at C:\\Users\\New\\project\r\n\r\nSome notes.\r\n"


def test_update_text_file_no_match(tmp_path: Path) -> None:
    path = tmp_path / "notes.md"
    path.write_text("# No paths here\n")

    result = jsonl.update_text_file(path, "C:\\nonexistent", "C:\\new")
    assert result.updated is False
    assert result.original_content is None


def test_atomic_write_replaces_content(tmp_path: Path) -> None:
    path = tmp_path / "file.json"
    path.write_text("old")
    jsonl.atomic_write(path, "new\n")
    assert path.read_text() == "new\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["file.json"]


def test_backup_file_survives_rewrite(tmp_path: Path) -> None:
    path = tmp_path / "session.jsonl"
    write_jsonl(path, [{"cwd": "/home/me/old"}])
    before = path.read_bytes()

    backup = jsonl.backup_file(path)
    jsonl.update_jsonl_file(path, "/home/me/old", "/home/me/new")

    assert backup.read_bytes() == before
    assert path.read_bytes() != before
    assert not backup.name.endswith(".jsonl")
