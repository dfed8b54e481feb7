"""recontext: Textual TUI for picking and migrating Claude Code projects."""

from __future__ import annotations

import logging

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Header, Input, Label, RichLog, Static, Tree

from recontext.migrator import Migrator, normalize_path
from recontext.models import MigrationResult, PlanResult, ProjectRecord
from recontext.paths import StoreLayout
from recontext.scanner import list_projects


class ProjectTree(Tree):
    """Left pane: projects grouped by health."""

    BORDER_TITLE = "Projects"


class DetailView(RichLog):
    """Right pane: project details and migration log."""

    BORDER_TITLE = "Details"


class _PaneLogHandler(logging.Handler):
    """Forward log records from a worker thread into the detail pane."""

    def __init__(self, app: App, pane: RichLog) -> None:
        super().__init__(level=logging.INFO)
        self._app = app
        self._pane = pane
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        message = escape(self.format(record))
        if record.levelno >= logging.ERROR:
            message = f"[red]{message}[/red]"
        elif record.levelno >= logging.WARNING:
            message = f"[yellow]{message}[/yellow]"
        self._app.call_from_thread(self._pane.write, message)


class ConfirmMigrationScreen(ModalScreen[bool]):
    """Modal dialog to confirm a live migration."""

    CSS = """
    ConfirmMigrationScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 80;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }

    #confirm-buttons {
        margin-top: 1;
        height: 3;
        align: center middle;
    }

    #confirm-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, old_path: str, new_path: str) -> None:
        super().__init__()
        self.old_path = old_path
        self.new_path = new_path

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label("Migrate this project's history?")
            yield Label(f"[dim]{escape(self.old_path)}[/dim]")
            yield Label(f"-> [green]{escape(self.new_path)}[/green]")
            with Horizontal(id="confirm-buttons"):
                yield Button("Migrate", variant="warning", id="confirm-yes")
                yield Button("Cancel", variant="default", id="confirm-no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm-yes")


class MigrateProjectScreen(ModalScreen[tuple[str, bool] | None]):
    """Modal dialog asking for a project's new path."""

    CSS = """
    MigrateProjectScreen {
        align: center middle;
    }

    #migrate-dialog {
        width: 80;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }

    #migrate-path {
        margin-top: 1;
    }

    #migrate-error {
        color: $error;
        height: 1;
        margin-top: 1;
    }

    #migrate-buttons {
        margin-top: 1;
        height: 3;
        align: center middle;
    }

    #migrate-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, current_path: str, preview_only: bool = False) -> None:
        super().__init__()
        self.current_path = current_path
        self.preview_only = preview_only

    def compose(self) -> ComposeResult:
        with Vertical(id="migrate-dialog"):
            yield Label("Preview move to:" if self.preview_only else "New project path:")
            yield Input(value=self.current_path, id="migrate-path")
            yield Label("", id="migrate-error")
            with Horizontal(id="migrate-buttons"):
                if not self.preview_only:
                    yield Button("Migrate", variant="primary", id="migrate-run")
                yield Button(
                    "Preview",
                    variant="primary" if self.preview_only else "default",
                    id="migrate-preview",
                )
                yield Button("Cancel", variant="default", id="migrate-cancel")

    def on_mount(self) -> None:
        self.query_one("#migrate-path", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "migrate-cancel":
            self.dismiss(None)
            return

        new_path = self.query_one("#migrate-path", Input).value.strip()
        if not new_path:
            self.query_one("#migrate-error", Label).update("Path is required")
            return

        self.dismiss((new_path, event.button.id == "migrate-preview"))


class RecontextApp(App):
    """Main application."""

    TITLE = "recontext"
    CSS = """
    Screen {
        layout: vertical;
    }

    #main {
        height: 1fr;
    }

    #project-tree {
        width: 1fr;
        min-width: 30;
        border: solid $accent;
    }

    #detail-view {
        width: 1fr;
        border: solid $accent;
    }

    #status-bar {
        height: 1;
        dock: bottom;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("m", "migrate_project", "Migrate"),
        Binding("p", "preview_project", "Preview"),
        Binding("b", "toggle_broken", "Broken only"),
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(self, layout: StoreLayout | None = None) -> None:
        super().__init__()
        self.layout = layout or StoreLayout.from_home()
        self.projects: list[ProjectRecord] = []
        self.broken_only = False
        self._status_base = "Loading..."

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main"):
            yield ProjectTree("Projects", id="project-tree")
            yield DetailView(id="detail-view", wrap=True, markup=True)
        yield Static("Loading...", id="status-bar")

    def on_mount(self) -> None:
        tree = self.query_one("#project-tree", ProjectTree)
        tree.root.expand()
        tree.show_root = False
        self.run_worker(self._discover, thread=True, exclusive=True)

    def action_refresh(self) -> None:
        self._set_status("Scanning projects...")
        self.run_worker(self._discover, thread=True, exclusive=True)

    def _discover(self) -> None:
        """Background threaded worker: rescan the store."""
        self.projects = list_projects(self.layout)
        self.call_from_thread(self._populate_tree)

    def _populate_tree(self) -> None:
        tree = self.query_one("#project-tree", ProjectTree)
        tree.clear()

        groups = [
            ("Broken", [p for p in self.projects if p.exists is False]),
            ("Healthy", [p for p in self.projects if p.exists is True]),
            ("Unknown", [p for p in self.projects if p.exists is None]),
        ]
        for title, members in groups:
            if not members or (self.broken_only and title != "Broken"):
                continue
            group = tree.root.add(f"{title} ({len(members)})", expand=True)
            for project in members:
                group.add_leaf(self._project_label(project), data=project)

        broken = sum(1 for p in self.projects if p.is_broken)
        self._status_base = f"{len(self.projects)} projects, {broken} broken"
        if self.broken_only:
            self._status_base += " (broken only)"
        self._set_status(self._status_base)

    @staticmethod
    def _project_label(project: ProjectRecord) -> str:
        label = escape(project.project_path)
        if not project.has_real_path:
            return f"[dim]{label} (estimated)[/dim]"
        if project.exists is False:
            return f"[red]{label}[/red]"
        return label

    def _set_status(self, text: str) -> None:
        self.query_one("#status-bar", Static).update(text)

    def action_toggle_broken(self) -> None:
        self.broken_only = not self.broken_only
        self._populate_tree()

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        project = event.node.data
        if not isinstance(project, ProjectRecord):
            return
        view = self.query_one("#detail-view", DetailView)
        view.clear()
        view.write(f"[bold]{escape(project.project_path)}[/bold]")
        view.write(f"Store directory: {escape(str(project.dir_path))}")
        if not project.has_real_path:
            view.write("[dim]Path estimated from the directory name.[/dim]")
        if project.exists is True:
            view.write("[green]Exists on disk[/green]")
        elif project.exists is False:
            view.write("[red]Missing on disk, press m to migrate[/red]")

    def _selected_project(self) -> ProjectRecord | None:
        node = self.query_one("#project-tree", ProjectTree).cursor_node
        if node is not None and isinstance(node.data, ProjectRecord):
            return node.data
        return None

    def action_migrate_project(self) -> None:
        """Prompt for a new path for the selected project."""
        self._prompt_new_path(preview_only=False)

    def action_preview_project(self) -> None:
        """Prompt for a new path and show what a migration would change."""
        self._prompt_new_path(preview_only=True)

    def _prompt_new_path(self, preview_only: bool) -> None:
        project = self._selected_project()
        if project is None:
            self._set_status("Select a project to migrate")
            return

        self.push_screen(
            MigrateProjectScreen(project.project_path, preview_only=preview_only),
            lambda result: self._handle_migrate_input(project.project_path, result),
        )

    def _handle_migrate_input(self, old_path: str, result: tuple[str, bool] | None) -> None:
        """Handle modal output: preview straight away, confirm before a live run."""
        if result is None:
            return

        new_path, dry_run = result
        old_abs = normalize_path(old_path)
        new_abs = normalize_path(new_path)
        if old_abs == new_abs:
            self._set_status("New path must be different from current path")
            return

        if dry_run:
            self._start_migration(old_abs, new_abs, dry_run=True)
            return

        self.push_screen(
            ConfirmMigrationScreen(old_abs, new_abs),
            lambda confirmed: self._start_migration(old_abs, new_abs) if confirmed else None,
        )

    def _start_migration(self, old_path: str, new_path: str, dry_run: bool = False) -> None:
        self.query_one("#detail-view", DetailView).clear()
        self.run_worker(
            lambda: self._execute_migration(old_path, new_path, dry_run),
            thread=True,
            exclusive=True,
            group="migrate",
        )

    def _execute_migration(self, old_path: str, new_path: str, dry_run: bool) -> None:
        """Run the migration and stream its log into the detail pane."""
        pane = self.query_one("#detail-view", DetailView)
        handler = _PaneLogHandler(self, pane)
        logger = logging.getLogger("recontext")
        saved = (logger.level, logger.propagate)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False

        self.call_from_thread(self._set_status, "Previewing..." if dry_run else "Migrating...")
        try:
            result = Migrator(self.layout).run(old_path, new_path, dry_run=dry_run)
        except Exception as exc:
            self.call_from_thread(self._set_status, f"Migration failed: {exc}")
            return
        finally:
            logger.removeHandler(handler)
            logger.setLevel(saved[0])
            logger.propagate = saved[1]

        if not dry_run:
            self._discover()
        self.call_from_thread(self._set_status, self._format_result_status(result))

    @staticmethod
    def _format_result_status(result: MigrationResult | PlanResult) -> str:
        """Build a concise status message from a migration or plan result."""
        if isinstance(result, PlanResult):
            return f"Dry run: {len(result.changes)} change(s) planned -> {result.to_path}"

        bits = [f"{result.jsonl_files_updated} logs", f"{result.jsonl_lines_changed} lines"]
        if result.sessions_updated:
            bits.append("index")
        if result.text_files_updated:
            bits.append(f"{result.text_files_updated} notes")
        if result.history_updated:
            bits.append(f"history {result.history_lines_changed} lines")
        summary = ", ".join(bits)
        if result.residues:
            return (
                f"Migrated -> {result.to_path} ({summary}); "
                f"{len(result.residues)} file(s) still reference the old path"
            )
        return f"Migrated -> {result.to_path} ({summary})"


def tui_main() -> None:
    app = RecontextApp()
    app.run()


if __name__ == "__main__":
    tui_main()
