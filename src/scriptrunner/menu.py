# =============================================================================
# Menu Building (ranking + tagged selections)
# =============================================================================
# Menus are plain data: an ordered list of Choice and Separator items. The
# selector renders them; the session dispatches on the selection type.

from dataclasses import dataclass
from enum import Enum

from scriptrunner.preferences import FavoriteRecord, HistoryRecord
from scriptrunner.registry import BackgroundProcess
from scriptrunner.workspaces import WorkspaceDescriptor


# -----------------------------------------------------------------------------
# Selection values
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ExitSelection:
    pass


@dataclass(frozen=True)
class ScriptSelection:
    name: str


@dataclass(frozen=True)
class BackgroundSelection:
    pid: int
    name: str


@dataclass(frozen=True)
class FavoriteSelection:
    favorite: FavoriteRecord


@dataclass(frozen=True)
class BackToWorkspaces:
    pass


@dataclass(frozen=True)
class RootSelection:
    pass


@dataclass(frozen=True)
class WorkspaceSelection:
    workspace: WorkspaceDescriptor


MenuSelection = (
    ExitSelection | ScriptSelection | BackgroundSelection | FavoriteSelection
    | BackToWorkspaces | RootSelection | WorkspaceSelection
)


class ExecutionOption(Enum):
    INTERACTIVE = "interactive"
    BACKGROUND = "background"
    COPY = "copy"
    FAVORITE = "favorite"
    BACK = "back"


class BackgroundOption(Enum):
    LOGS = "logs"
    KILL = "kill"
    BACK = "back"


class Marker(Enum):
    NONE = ""
    FAVORITE = "★"
    RECENT = "↻"
    BACKGROUND = "⚡"


# -----------------------------------------------------------------------------
# Menu items
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Choice:
    title: str
    value: object
    hint: str = ""
    description: str = ""
    marker: Marker = Marker.NONE
    style: str = ""


@dataclass(frozen=True)
class Separator:
    label: str = "─" * 40


MenuItem = Choice | Separator

# Script name fragments -> style class (first match wins)
SCRIPT_PATTERNS = {
    "dev": ("dev", "start", "serve", "watch"),
    "test": ("test", "spec", "e2e", "coverage"),
    "build": ("build", "compile", "bundle", "dist"),
    "lint": ("lint", "format", "prettier", "eslint", "check"),
}


def script_style(name: str) -> str:
    lower_name = name.lower()
    for category, patterns in SCRIPT_PATTERNS.items():
        if any(p in lower_name for p in patterns):
            return f"class:script.{category}"
    return "class:script"


def rank_scripts(names, recent_names: set[str], favorite_names: set[str]) -> list[str]:
    """
    Order script names: favorites, then recently run, then the rest.

    Recency is membership only - inside every tier names are compared
    case-sensitively.
    """
    def tier(name: str) -> int:
        if name in favorite_names:
            return 0
        if name in recent_names:
            return 1
        return 2

    return sorted(names, key=lambda name: (tier(name), name))


def _background_items(background_processes: list[BackgroundProcess]) -> list[MenuItem]:
    if not background_processes:
        return []
    items: list[MenuItem] = [Separator()]
    for proc in background_processes:
        title = proc.name if proc.workspace is None else f"{proc.name} ({proc.workspace})"
        items.append(Choice(
            title=title,
            value=BackgroundSelection(pid=proc.pid, name=proc.name),
            hint=f"PID: {proc.pid}",
            marker=Marker.BACKGROUND,
            style="class:background",
        ))
    return items


def build_script_menu(
    scripts: dict[str, str],
    descriptions: dict[str, str] | None = None,
    background_processes: list[BackgroundProcess] | None = None,
    recent_scripts: list[HistoryRecord] | None = None,
    favorites: list[FavoriteRecord] | None = None,
    show_back: bool = False,
) -> list[MenuItem]:
    """
    Build the script selection menu.

    Args:
        scripts: name -> command mapping for the current directory
        descriptions: Optional name -> description mapping
        background_processes: Live background processes (in registry order)
        recent_scripts: History records for the current directory
        favorites: Favorite records for the current directory
        show_back: Add a "back to workspaces" entry (monorepo mode)

    Returns:
        Ordered menu items ending with the Exit choice
    """
    descriptions = descriptions or {}
    favorite_names = {f.script for f in favorites or []}
    recent_names = {r.script for r in recent_scripts or []}

    items: list[MenuItem] = []
    for name in rank_scripts(scripts, recent_names, favorite_names):
        if name in favorite_names:
            marker = Marker.FAVORITE
        elif name in recent_names:
            marker = Marker.RECENT
        else:
            marker = Marker.NONE
        items.append(Choice(
            title=name,
            value=ScriptSelection(name),
            hint=scripts[name],
            description=descriptions.get(name, ""),
            marker=marker,
            style=script_style(name),
        ))

    items.extend(_background_items(background_processes or []))
    items.append(Separator())
    if show_back:
        items.append(Choice("← Back to workspaces", BackToWorkspaces(), style="class:muted"))
    items.append(Choice("Exit", ExitSelection(), style="class:danger"))
    return items


def build_workspace_menu(
    root_name: str,
    workspaces: list[WorkspaceDescriptor],
    favorites: list[FavoriteRecord] | None = None,
    background_processes: list[BackgroundProcess] | None = None,
    include_root: bool = True,
) -> list[MenuItem]:
    """Build the monorepo workspace selection menu."""
    items: list[MenuItem] = []
    if include_root:
        items.append(Choice("⌂ Root", RootSelection(), hint=root_name, style="class:root"))

    items.append(Separator(" Workspaces"))
    for ws in workspaces:
        items.append(Choice(
            title=ws.name,
            value=WorkspaceSelection(ws),
            hint=ws.relative_path,
            style="class:workspace",
        ))

    if favorites:
        items.append(Separator(" Favorites"))
        for fav in favorites:
            items.append(Choice(
                title=fav.script,
                value=FavoriteSelection(fav),
                hint=fav.project_name,
                marker=Marker.FAVORITE,
                style=script_style(fav.script),
            ))

    items.extend(_background_items(background_processes or []))
    items.append(Separator())
    items.append(Choice("Exit", ExitSelection(), style="class:danger"))
    return items


def build_execution_menu(is_favorited: bool = False) -> list[MenuItem]:
    favorite_title = "★ Remove favorite" if is_favorited else "☆ Add favorite"
    favorite_hint = "Remove from favorites" if is_favorited else "Add to favorites"
    return [
        Choice("Run (interactive)", ExecutionOption.INTERACTIVE,
               hint="Visible output, Ctrl+C to stop", style="class:primary"),
        Choice("Run (background)", ExecutionOption.BACKGROUND,
               hint="Run in the background", style="class:secondary"),
        Choice("Copy command", ExecutionOption.COPY,
               hint="Copy command to clipboard", style="class:accent"),
        Choice(favorite_title, ExecutionOption.FAVORITE,
               hint=favorite_hint, style="class:accent"),
        Separator(),
        Choice("Back", ExecutionOption.BACK, style="class:muted"),
    ]


def build_background_menu(log_count: int) -> list[MenuItem]:
    return [
        Choice("View logs", BackgroundOption.LOGS,
               hint=f"{log_count} line(s) captured", style="class:secondary"),
        Choice("Kill process", BackgroundOption.KILL,
               hint="Terminate the process", style="class:danger"),
        Separator(),
        Choice("Back", BackgroundOption.BACK, style="class:muted"),
    ]
