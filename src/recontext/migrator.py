"""Project path migration with rollback."""

from __future__ import annotations

import logging
import ntpath
import os
import re
from pathlib import Path

from recontext.encoder import encode_project_path
from recontext.errors import DestinationExists, SourceNotFound
from recontext.jsonl import (
    atomic_write,
    backup_file,
    file_contains_path,
    find_files,
    find_jsonl_files,
    update_jsonl_file,
    update_text_file,
)
from recontext.models import MigrationResult, PlannedAction, PlanResult, UndoAction
from recontext.paths import INDEX_FILENAME, StoreLayout
from recontext.scanner import project_dir_exists
from recontext.sessions import update_sessions_index

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".md",)

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")


def normalize_path(path: str) -> str:
    """Absolute, normalised form of a user-supplied project path.

    Drive-letter paths are normalised with Windows rules on every platform so
    a store copied from Windows can be fixed up elsewhere.
    """
    path = path.strip()
    if _WINDOWS_DRIVE.match(path):
        return ntpath.normpath(path)
    return os.path.abspath(os.path.expanduser(path))


class Migrator:
    """Moves one project's history from one recorded path to another.

    The live run renames the store directory, rewrites sessions-index.json,
    every JSONL log (and Markdown note) under it, and the global history log.
    Each completed step leaves an undo action behind; any failure unwinds
    them in reverse order and re-raises.
    """

    def __init__(self, layout: StoreLayout | None = None) -> None:
        self.layout = layout or StoreLayout.from_home()
        self._undo: list[UndoAction] = []

    def run(self, from_path: str, to_path: str, dry_run: bool = False) -> MigrationResult | PlanResult:
        src = normalize_path(from_path)
        dst = normalize_path(to_path)
        if src == dst:
            raise ValueError("Old path and new path must be different.")

        old_encoded = encode_project_path(src)
        new_encoded = encode_project_path(dst)
        old_dir = self.layout.project_dir(old_encoded)
        new_dir = self.layout.project_dir(new_encoded)

        if not project_dir_exists(old_encoded, self.layout):
            raise SourceNotFound(old_dir, src, old_encoded)
        if project_dir_exists(new_encoded, self.layout):
            raise DestinationExists(new_dir)

        logger.info("Source: %s", src)
        logger.info("Target: %s", dst)
        logger.info("Old encoding: %s", old_encoded)
        logger.info("New encoding: %s", new_encoded)

        if dry_run:
            return PlanResult(
                from_path=src,
                to_path=dst,
                old_encoded=old_encoded,
                new_encoded=new_encoded,
                changes=self.plan(old_dir, new_dir, src),
            )

        result = MigrationResult(
            from_path=src,
            to_path=dst,
            old_encoded=old_encoded,
            new_encoded=new_encoded,
        )
        self._undo = []
        try:
            self._execute(result, old_dir, new_dir)
        except BaseException as exc:
            logger.error("Migration failed, rolling back: %r", exc)
            self._rollback()
            raise

        try:
            result.residues = self.verify(new_dir, src)
        finally:
            self._commit()
        return result

    def _execute(self, result: MigrationResult, old_dir: Path, new_dir: Path) -> None:
        src, dst = result.from_path, result.to_path

        logger.info("Step 1: renaming project directory")
        os.rename(old_dir, new_dir)
        self._undo.append(UndoAction("rename-dir", path=new_dir, target=old_dir))
        logger.info("  %s -> %s", old_dir, new_dir)

        logger.info("Step 2: updating %s", INDEX_FILENAME)
        index = update_sessions_index(new_dir, src, dst, result.old_encoded, result.new_encoded)
        if index.updated:
            self._undo.append(UndoAction("file-content", path=index.path, content=index.original_content))
            result.sessions_updated = True
            logger.info("  updated %s", index.path)
        else:
            logger.info("  %s missing or already up to date", INDEX_FILENAME)

        logger.info("Step 3: updating JSONL logs")
        for jsonl_file in find_jsonl_files(new_dir):
            lines = self._rewrite_log(jsonl_file, src, dst)
            if lines:
                result.jsonl_files_updated += 1
                result.jsonl_lines_changed += lines
        for text_file in find_files(new_dir, TEXT_EXTENSIONS):
            rewritten = update_text_file(text_file, src, dst)
            if rewritten.updated:
                self._undo.append(
                    UndoAction("file-content", path=text_file, content=rewritten.original_content)
                )
                result.text_files_updated += 1
                logger.info("  updated %s", text_file)
        logger.info(
            "  %d log(s), %d line(s), %d note(s) updated",
            result.jsonl_files_updated,
            result.jsonl_lines_changed,
            result.text_files_updated,
        )

        logger.info("Step 4: updating %s", self.layout.history_file.name)
        if self.layout.history_file.is_file():
            lines = self._rewrite_log(self.layout.history_file, src, dst)
            result.history_updated = lines > 0
            result.history_lines_changed = lines
        else:
            logger.info("  %s not found", self.layout.history_file)

    def _rewrite_log(self, jsonl_file: Path, old_path: str, new_path: str) -> int:
        """Rewrite one log, keeping a backup until the migration commits."""
        backup = backup_file(jsonl_file)
        try:
            rewritten = update_jsonl_file(jsonl_file, old_path, new_path)
        except BaseException:
            backup.unlink(missing_ok=True)
            raise

        if not rewritten.updated:
            backup.unlink(missing_ok=True)
            return 0
        self._undo.append(UndoAction("file-backup", path=jsonl_file, target=backup))
        logger.info("  updated %s (%d line(s))", jsonl_file, rewritten.lines_changed)
        return rewritten.lines_changed

    def _rollback(self) -> None:
        while self._undo:
            action = self._undo.pop()
            try:
                if action.kind == "rename-dir":
                    os.rename(action.path, action.target)
                    logger.info("Restored directory %s", action.target)
                elif action.kind == "file-content":
                    atomic_write(action.path, action.content)
                    logger.info("Restored %s", action.path)
                elif action.kind == "file-backup":
                    os.replace(action.target, action.path)
                    logger.info("Restored %s", action.path)
            except Exception as exc:
                logger.error("Rollback step failed for %s: %s", action.path, exc)

    def _commit(self) -> None:
        for action in self._undo:
            if action.kind == "file-backup":
                try:
                    action.target.unlink(missing_ok=True)
                except OSError as exc:
                    logger.warning("Could not remove backup %s: %s", action.target, exc)
        self._undo = []

    def verify(self, project_dir: Path, old_path: str) -> list[Path]:
        """Full streaming scan for leftover references to ``old_path``."""
        logger.info("Step 5: verifying")
        files = find_files(project_dir, (".jsonl",) + TEXT_EXTENSIONS)
        index_path = project_dir / INDEX_FILENAME
        if index_path.is_file():
            files.append(index_path)

        remaining: list[Path] = []
        for file_path in files:
            try:
                found = file_contains_path(file_path, old_path)
            except OSError as exc:
                logger.warning("Could not verify %s: %s", file_path, exc)
                found = True
            if found:
                remaining.append(file_path)

        if remaining:
            logger.warning("Old path references remain in %d file(s):", len(remaining))
            for file_path in remaining:
                logger.warning("  %s", file_path)
        else:
            logger.info("Migration complete, no old path references left.")
        return remaining

    def plan(self, old_dir: Path, new_dir: Path, old_path: str) -> list[PlannedAction]:
        """Work out what a live run would change, without writing anything."""
        changes = [PlannedAction("rename-dir", path=old_dir, target=new_dir)]
        logger.info("Would rename %s -> %s", old_dir, new_dir)

        index_path = old_dir / INDEX_FILENAME
        if index_path.is_file():
            changes.append(PlannedAction("update-file", path=index_path))
            logger.info("Would update %s", index_path)

        for file_path in find_files(old_dir, (".jsonl",) + TEXT_EXTENSIONS):
            if file_contains_path(file_path, old_path):
                changes.append(PlannedAction("update-file", path=file_path))
                logger.info("Would update %s", file_path)

        history = self.layout.history_file
        try:
            if file_contains_path(history, old_path):
                changes.append(PlannedAction("update-file", path=history))
                logger.info("Would update %s", history)
        except FileNotFoundError:
            pass

        logger.info("%d change(s) planned", len(changes))
        return changes


def migrate(
    from_path: str,
    to_path: str,
    dry_run: bool = False,
    layout: StoreLayout | None = None,
) -> MigrationResult | PlanResult:
    """Migrate a project's session history from ``from_path`` to ``to_path``."""
    return Migrator(layout).run(from_path, to_path, dry_run=dry_run)
