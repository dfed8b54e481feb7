"""CLI entry point for recontext.

Claude Code keeps conversations under ~/.claude/projects/, in a directory
named after the project's absolute path. When a project directory is moved
or renamed, its history is orphaned. recontext rewrites the store so the
history follows the project.

Workflow:
    recontext list                    # list projects (JSON), with health
    recontext migrate <old> <new>     # move a project's history
    recontext migrate <old> <new> --dry-run
    recontext check                   # warn about broken projects (hook-friendly)
    recontext encode <path>           # print the encoded directory name
    recontext                         # launch the TUI (default)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys


def _json_out(obj) -> None:
    """Print JSON to stdout."""
    json.dump(obj, sys.stdout, indent=2, ensure_ascii=False)
    print()


def _layout():
    from recontext.paths import StoreLayout

    return StoreLayout.from_home()


def _project_to_dict(project) -> dict:
    return {
        "encoded": project.encoded,
        "dir_path": str(project.dir_path),
        "project_path": project.project_path,
        "has_real_path": project.has_real_path,
        "exists": project.exists,
    }


def cmd_list(args: argparse.Namespace) -> None:
    """List projects in the store."""
    from recontext.scanner import list_projects

    _json_out([_project_to_dict(p) for p in list_projects(_layout())])


def cmd_migrate(args: argparse.Namespace) -> None:
    """Migrate a project's history to a new path."""
    from recontext.migrator import Migrator
    from recontext.models import PlanResult

    try:
        result = Migrator(_layout()).run(args.old_path, args.new_path, dry_run=args.dry_run)
    except Exception as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1)

    if isinstance(result, PlanResult):
        _json_out({
            "dry_run": True,
            "old_path": result.from_path,
            "new_path": result.to_path,
            "old_encoded": result.old_encoded,
            "new_encoded": result.new_encoded,
            "changes": [
                {
                    "type": change.kind,
                    "path": str(change.path),
                    "target": str(change.target) if change.target else None,
                }
                for change in result.changes
            ],
        })
        return

    _json_out({
        "dry_run": False,
        "old_path": result.from_path,
        "new_path": result.to_path,
        "old_encoded": result.old_encoded,
        "new_encoded": result.new_encoded,
        "sessions_updated": result.sessions_updated,
        "jsonl_files_updated": result.jsonl_files_updated,
        "jsonl_lines_changed": result.jsonl_lines_changed,
        "text_files_updated": result.text_files_updated,
        "history_updated": result.history_updated,
        "history_lines_changed": result.history_lines_changed,
        "residues": [str(p) for p in result.residues],
    })

    if result.residues:
        print(
            "Old path references remain; fix the listed files by hand or re-run.",
            file=sys.stderr,
        )


def cmd_check(args: argparse.Namespace) -> None:
    """Report projects whose recorded path no longer exists.

    Meant for a SessionStart hook: silent when everything is fine, never fails.
    """
    from recontext.scanner import list_projects

    broken = [p for p in list_projects(_layout()) if p.is_broken]
    if not broken:
        return

    lines = [f"{len(broken)} broken Claude Code project(s) detected:"]
    for project in broken:
        lines.append(f"  - {project.project_path}")
    lines.append("")
    lines.append("Run 'recontext' (or 'recontext migrate <old> <new>') to fix them.")
    print("\n".join(lines))


def cmd_encode(args: argparse.Namespace) -> None:
    """Print the store directory name for a path."""
    from recontext.encoder import encode_project_path
    from recontext.migrator import normalize_path

    print(encode_project_path(normalize_path(args.path)))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    from recontext import __version__

    parser = argparse.ArgumentParser(
        prog="recontext",
        description=(
            "Move Claude Code conversation history to a project's new path.\n\n"
            "With no subcommand, launches the interactive TUI.\n"
            "Subcommands print JSON suitable for scripts.\n\n"
            "Typical workflow:\n"
            "  recontext list                          # find broken projects\n"
            "  recontext migrate <old> <new> --dry-run # preview\n"
            "  recontext migrate <old> <new>           # apply"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log each migration step to stderr",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")

    # list
    sub.add_parser(
        "list",
        help="List projects in ~/.claude/projects as JSON",
        description=(
            "Print every project directory with its recovered path and whether "
            "that path still exists on disk (null when it could not be recovered)."
        ),
    )

    # migrate
    p_migrate = sub.add_parser(
        "migrate",
        help="Move a project's history to a new path",
        description=(
            "Rename the project's store directory and rewrite sessions-index.json, "
            "every JSONL log, and ~/.claude/history.jsonl. Any failure rolls back "
            "completed steps. Use --dry-run to preview without writing anything."
        ),
    )
    p_migrate.add_argument("old_path", help="Project path before the move")
    p_migrate.add_argument("new_path", help="Project path after the move")
    p_migrate.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would change without modifying anything",
    )

    # check
    sub.add_parser(
        "check",
        help="Warn about projects whose path no longer exists",
        description=(
            "Print a short warning listing broken projects. Prints nothing when "
            "all projects are healthy and always exits 0, so it is safe in hooks."
        ),
    )

    # encode
    p_encode = sub.add_parser(
        "encode",
        help="Print the store directory name for a project path",
    )
    p_encode.add_argument("path", help="Absolute project path")

    args = parser.parse_args()
    _configure_logging(args.verbose)

    if args.command is None:
        # No subcommand: launch the TUI
        from recontext.app import tui_main
        tui_main()
    elif args.command == "list":
        cmd_list(args)
    elif args.command == "migrate":
        cmd_migrate(args)
    elif args.command == "check":
        cmd_check(args)
    elif args.command == "encode":
        cmd_encode(args)


if __name__ == "__main__":
    main()
