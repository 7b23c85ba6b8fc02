# =============================================================================
# Interactive Session State Machine
# =============================================================================
# WorkspaceSelect (monorepo only) -> ScriptSelect -> ExecutionOptionSelect
#                                                 -> BackgroundOptionSelect
# Exit is reachable from WorkspaceSelect and ScriptSelect. Each call to a
# state handler renders exactly one top-level menu and returns the next
# state; dead background processes are pruned right before that render.

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from uuid import uuid4

from loguru import logger

from scriptrunner import ui
from scriptrunner.config_loader import DEFAULT_CONFIG, deep_merge
from scriptrunner.errors import ClipboardError, SpawnError
from scriptrunner.logging_config import trace_id_var
from scriptrunner.manifest import Manifest
from scriptrunner.menu import (
    BackgroundOption,
    BackgroundSelection,
    BackToWorkspaces,
    Choice,
    ExecutionOption,
    ExitSelection,
    FavoriteSelection,
    RootSelection,
    ScriptSelection,
    WorkspaceSelection,
    build_background_menu,
    build_execution_menu,
    build_script_menu,
    build_workspace_menu,
)
from scriptrunner.preferences import FavoriteRecord, FavoritesStore, HistoryStore
from scriptrunner.registry import BackgroundRegistry
from scriptrunner.runner import ProcessLauncher, copy_to_clipboard
from scriptrunner.selector import Prompter, SelectConfig
from scriptrunner.workspaces import MonorepoConfig, WorkspaceDescriptor


class State(Enum):
    WORKSPACE_SELECT = "workspace_select"
    SCRIPT_SELECT = "script_select"
    EXIT = "exit"


@dataclass
class ProjectContext:
    """The directory whose scripts the script menu currently shows."""
    directory: Path
    project_name: str
    scripts: dict[str, str] = field(default_factory=dict)
    descriptions: dict[str, str] = field(default_factory=dict)
    workspace_name: str | None = None

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "ProjectContext":
        return cls(manifest.directory, manifest.project_name,
                   dict(manifest.scripts), dict(manifest.descriptions))

    @classmethod
    def from_workspace(cls, workspace: WorkspaceDescriptor) -> "ProjectContext":
        return cls(workspace.path, workspace.name, dict(workspace.scripts),
                   dict(workspace.descriptions), workspace_name=workspace.name)

    @property
    def key(self) -> str:
        """Directory string used as the history/favorites key."""
        return str(self.directory)


class SessionStateMachine:
    """
    Top-level interactive loop.

    Collaborators are injected so the loop can be driven by a scripted
    prompter and a recording view in tests; defaults wire the real terminal.
    """

    def __init__(
        self,
        manifest: Manifest,
        prompter: Prompter,
        *,
        registry: BackgroundRegistry | None = None,
        history: HistoryStore | None = None,
        favorites: FavoritesStore | None = None,
        launcher: ProcessLauncher | None = None,
        monorepo: MonorepoConfig | None = None,
        workspaces: list[WorkspaceDescriptor] | None = None,
        config: dict | None = None,
        view=ui,
        clipboard=copy_to_clipboard,
    ):
        self.root = ProjectContext.from_manifest(manifest)
        self.current = self.root
        self.prompter = prompter
        self.launcher = launcher if launcher is not None else ProcessLauncher()
        self.registry = registry if registry is not None else BackgroundRegistry(self.launcher)
        self.history = history if history is not None else HistoryStore()
        self.favorites = favorites if favorites is not None else FavoritesStore()
        self.monorepo = monorepo
        self.workspaces = workspaces or []
        self.config = deep_merge(DEFAULT_CONFIG, config or {})
        self.view = view
        self.clipboard = clipboard

        self.needs_refresh = True
        self._notices: list[tuple[str, str]] = []

    @property
    def is_monorepo(self) -> bool:
        return self.monorepo is not None

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    def run(self) -> int:
        """
        Drive the menus until the user exits.

        Returns:
            Process exit code (0)

        Raises:
            SpawnError: If a foreground run cannot be started
            KeyboardInterrupt: On Ctrl+C at a prompt or during a foreground run
        """
        session_trace_id = str(uuid4())
        trace_id_var.set(session_trace_id)
        logger.info(
            "Session starting",
            operation="session",
            status="started",
            trace_id=session_trace_id,
            project=self.root.project_name,
            monorepo=self.is_monorepo,
            metrics={"scripts": len(self.root.scripts), "workspaces": len(self.workspaces)}
        )

        state = State.WORKSPACE_SELECT if self.is_monorepo else State.SCRIPT_SELECT
        while state is not State.EXIT:
            if state is State.WORKSPACE_SELECT:
                state = self.workspace_select()
            else:
                state = self.script_select()

        self.registry.prune()
        if len(self.registry) > 0:
            self.view.show_info(
                f"{len(self.registry)} background process(es) will keep running."
            )
        self.view.show_success("See you later!")

        logger.info(
            "Session finished",
            operation="session",
            status="complete",
            trace_id=session_trace_id,
            metrics={"background_left_running": len(self.registry)}
        )
        return 0

    def _notify(self, kind: str, message: str) -> None:
        """Queue a notice; it is printed after the next header redraw."""
        self._notices.append((kind, message))

    def _prepare_render(self) -> None:
        self.registry.prune()
        if self.needs_refresh:
            self.view.clear_screen()
            self._show_header()
            self.needs_refresh = False
        for kind, message in self._notices:
            getattr(self.view, f"show_{kind}")(message)
        self._notices.clear()

    def _show_header(self) -> None:
        if self.current is self.root or not self.is_monorepo:
            self.view.show_header(self.root.project_name)
        else:
            self.view.show_header(self.root.project_name, self.current.workspace_name)

    # -------------------------------------------------------------------------
    # WorkspaceSelect
    # -------------------------------------------------------------------------

    def monorepo_favorites(self) -> list[FavoriteRecord]:
        """Favorites whose directory is the monorepo root or one of its workspaces."""
        known = {self.root.key} | {str(ws.path) for ws in self.workspaces}
        return [f for f in self.favorites.all() if f.directory in known]

    def _context_for_directory(self, directory: str) -> ProjectContext | None:
        if directory == self.root.key:
            return self.root
        for ws in self.workspaces:
            if str(ws.path) == directory:
                return ProjectContext.from_workspace(ws)
        return None

    def workspace_select(self) -> State:
        self.current = self.root
        self._prepare_render()

        items = build_workspace_menu(
            self.root.project_name,
            self.workspaces,
            favorites=self.monorepo_favorites(),
            background_processes=self.registry.processes,
            include_root=bool(self.root.scripts),
        )
        selection = self.prompter.select(SelectConfig("Select workspace:", items))

        if isinstance(selection, ExitSelection):
            return State.EXIT

        if isinstance(selection, RootSelection):
            self.current = self.root
            self.needs_refresh = True
            return State.SCRIPT_SELECT

        if isinstance(selection, WorkspaceSelection):
            workspace = selection.workspace
            if not workspace.scripts:
                self.view.show_warning(f'Workspace "{workspace.name}" has no scripts')
                return State.WORKSPACE_SELECT
            self.current = ProjectContext.from_workspace(workspace)
            self.needs_refresh = True
            logger.debug(
                "Workspace entered",
                operation="workspace_select",
                status="entered",
                workspace=workspace.name,
                directory=str(workspace.path)
            )
            return State.SCRIPT_SELECT

        if isinstance(selection, FavoriteSelection):
            self.run_favorite(selection.favorite)
            return State.WORKSPACE_SELECT

        if isinstance(selection, BackgroundSelection):
            self.background_options(selection)
            return State.WORKSPACE_SELECT

        raise ValueError(f"Unexpected workspace menu selection: {selection!r}")

    def run_favorite(self, favorite: FavoriteRecord) -> None:
        """Jump straight to the execution options of a favorited script."""
        context = self._context_for_directory(favorite.directory)
        if context is None or favorite.script not in context.scripts:
            self.view.show_warning(
                f'Favorite "{favorite.script}" is no longer available in {favorite.project_name}'
            )
            return
        self.execution_options(context, favorite.script)

    # -------------------------------------------------------------------------
    # ScriptSelect
    # -------------------------------------------------------------------------

    def script_select(self) -> State:
        context = self.current
        self._prepare_render()

        items = build_script_menu(
            context.scripts,
            context.descriptions,
            background_processes=self.registry.processes,
            recent_scripts=self.history.recent(context.key, limit=self.config["menu"]["recent_limit"]),
            favorites=self.favorites.for_directory(context.key),
            show_back=self.is_monorepo,
        )
        selection = self.prompter.select(SelectConfig("Select script to run:", items))

        if isinstance(selection, ExitSelection):
            return State.EXIT

        if isinstance(selection, BackToWorkspaces):
            self.needs_refresh = True
            return State.WORKSPACE_SELECT

        if isinstance(selection, BackgroundSelection):
            self.background_options(selection)
            return State.SCRIPT_SELECT

        if isinstance(selection, ScriptSelection):
            self.execution_options(context, selection.name)
            return State.SCRIPT_SELECT

        raise ValueError(f"Unexpected script menu selection: {selection!r}")

    # -------------------------------------------------------------------------
    # ExecutionOptionSelect
    # -------------------------------------------------------------------------

    def execution_options(self, context: ProjectContext, script_name: str) -> None:
        is_favorited = self.favorites.is_favorite(script_name, context.key)
        option = self.prompter.select(SelectConfig(
            f'How do you want to run "{script_name}"?',
            build_execution_menu(is_favorited),
        ))
        logger.debug(
            "Execution option chosen",
            operation="execution_options",
            script=script_name,
            directory=context.key,
            option=option.value
        )

        if option is ExecutionOption.FAVORITE:
            now_favorite = self.favorites.toggle(script_name, context.key, context.project_name)
            if now_favorite:
                self._notify("success", f'"{script_name}" added to favorites')
            else:
                self._notify("info", f'"{script_name}" removed from favorites')

        elif option is ExecutionOption.INTERACTIVE:
            self.history.add(script_name, context.key, context.project_name)
            self.run_foreground(context, script_name)

        elif option is ExecutionOption.BACKGROUND:
            self.history.add(script_name, context.key, context.project_name)
            try:
                proc = self.registry.launch(script_name, context.directory,
                                            workspace=context.workspace_name)
            except SpawnError as e:
                self._notify("error", str(e))
            else:
                self._notify("success", f'"{script_name}" running in background (PID: {proc.pid})')

        elif option is ExecutionOption.COPY:
            command = self.launcher.script_command(script_name, context.directory)
            try:
                self.clipboard(command, self.config["runner"]["clipboard_command"])
            except ClipboardError as e:
                logger.warning(
                    "Clipboard copy failed, showing command instead",
                    operation="execution_options",
                    status="clipboard_fallback",
                    error=str(e)
                )
                self._notify("error", f"Failed to copy to clipboard. Command: {command}")
            else:
                self._notify("success", f"Command copied: {command}")

        self.needs_refresh = True

    def run_foreground(self, context: ProjectContext, script_name: str) -> int:
        """Run a script attached to the terminal and wait for it to exit."""
        package_manager = self.launcher.resolve_package_manager(context.directory)
        self.view.show_run_banner(script_name, package_manager)
        returncode = self.launcher.run_foreground(
            self.launcher.script_argv(script_name, context.directory),
            context.directory,
        )
        self.view.show_run_result(returncode)
        return returncode

    # -------------------------------------------------------------------------
    # BackgroundOptionSelect
    # -------------------------------------------------------------------------

    def background_options(self, selection: BackgroundSelection) -> None:
        while True:
            # The process may have died between menu render and selection
            proc = self.registry.find(selection.pid)
            target = proc or selection

            self.view.clear_screen()
            self._show_header()
            option = self.prompter.select(SelectConfig(
                f'Process "{target.name}" (PID: {target.pid}):',
                build_background_menu(len(proc.logs) if proc else 0),
            ))

            if option is BackgroundOption.LOGS and proc is not None:
                self.view.clear_screen()
                self._show_header()
                self.view.show_logs(proc, self.config["logs"]["view_lines"])
                self.prompter.select(SelectConfig("", [Choice("Back", BackgroundOption.BACK, style="class:muted")]))
                continue

            if option is BackgroundOption.KILL:
                if self.registry.kill(selection.pid):
                    self.registry.remove(selection.pid)

            self.needs_refresh = True
            return
