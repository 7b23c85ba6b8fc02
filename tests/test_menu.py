from itertools import product

from conftest import choice_titles

from scriptrunner.menu import (
    BackgroundOption,
    BackgroundSelection,
    BackToWorkspaces,
    Choice,
    ExecutionOption,
    ExitSelection,
    FavoriteSelection,
    Marker,
    RootSelection,
    ScriptSelection,
    Separator,
    WorkspaceSelection,
    build_background_menu,
    build_execution_menu,
    build_script_menu,
    build_workspace_menu,
    rank_scripts,
    script_style,
)
from scriptrunner.preferences import FavoriteRecord, HistoryRecord
from scriptrunner.registry import BackgroundProcess
from scriptrunner.workspaces import WorkspaceDescriptor

SCRIPTS = {"build": "tsc", "test": "jest", "dev": "vite"}
DIRECTORY = "/work/app"


def fav(script: str) -> FavoriteRecord:
    return FavoriteRecord(script, DIRECTORY, "app", "2026-01-01T00:00:00Z")


def recent(script: str) -> HistoryRecord:
    return HistoryRecord(script, DIRECTORY, "app", "2026-01-01T00:00:00Z")


def script_names(items) -> list[str]:
    return [i.value.name for i in items if isinstance(i, Choice) and isinstance(i.value, ScriptSelection)]


def test_no_history_or_favorites_is_alphabetical():
    items = build_script_menu(SCRIPTS)
    assert script_names(items) == ["build", "dev", "test"]


def test_favorite_comes_first():
    items = build_script_menu(SCRIPTS, favorites=[fav("test")])
    assert script_names(items) == ["test", "build", "dev"]


def test_recent_tier_is_alphabetical_not_recency_ordered():
    scripts = {"a": "1", "b": "2", "c": "3", "d": "4"}
    items = build_script_menu(scripts, recent_scripts=[recent("d"), recent("c")])
    assert script_names(items) == ["c", "d", "a", "b"]


def test_favorite_that_is_also_recent_stays_in_favorite_tier():
    items = build_script_menu(SCRIPTS, recent_scripts=[recent("test"), recent("dev")],
                              favorites=[fav("test")])
    assert script_names(items) == ["test", "dev", "build"]
    markers = {i.value.name: i.marker for i in items if isinstance(i.value, ScriptSelection)}
    assert markers == {"test": Marker.FAVORITE, "dev": Marker.RECENT, "build": Marker.NONE}


def test_tie_break_is_case_sensitive():
    assert rank_scripts(["beta", "Alpha", "alpha", "Beta"], set(), set()) == [
        "Alpha", "Beta", "alpha", "beta",
    ]


def test_tiers_hold_for_every_membership_combination():
    names = ["e", "d", "c", "b", "a"]
    for flags in product([None, "fav", "recent"], repeat=len(names)):
        favorite_names = {n for n, f in zip(names, flags) if f == "fav"}
        recent_names = {n for n, f in zip(names, flags) if f == "recent"}
        ranked = rank_scripts(names, recent_names, favorite_names)

        tiers = [0 if n in favorite_names else 1 if n in recent_names else 2 for n in ranked]
        assert tiers == sorted(tiers)
        for tier in (0, 1, 2):
            in_tier = [n for n, t in zip(ranked, tiers) if t == tier]
            assert in_tier == sorted(in_tier)


def test_descriptions_and_commands_are_carried():
    items = build_script_menu(SCRIPTS, {"dev": "Start dev server"})
    dev = next(i for i in items if isinstance(i, Choice) and i.title == "dev")
    assert dev.hint == "vite"
    assert dev.description == "Start dev server"
    assert dev.style == "class:script.dev"


def test_background_section_and_exit():
    procs = [BackgroundProcess("dev", 101), BackgroundProcess("watch", 102, workspace="web")]
    items = build_script_menu(SCRIPTS, background_processes=procs)

    assert isinstance(items[3], Separator)
    assert items[4].value == BackgroundSelection(pid=101, name="dev")
    assert items[5].value == BackgroundSelection(pid=102, name="watch")
    assert items[5].title == "watch (web)"
    assert isinstance(items[6], Separator)
    assert items[-1].value == ExitSelection()


def test_no_background_section_without_processes():
    items = build_script_menu(SCRIPTS)
    assert [type(i) for i in items[3:]] == [Separator, Choice]
    assert items[-1].value == ExitSelection()


def test_back_to_workspaces_only_when_requested():
    assert BackToWorkspaces() not in [i.value for i in build_script_menu(SCRIPTS) if isinstance(i, Choice)]
    items = build_script_menu(SCRIPTS, show_back=True)
    assert items[-2].value == BackToWorkspaces()
    assert items[-1].value == ExitSelection()


def test_empty_scripts_yield_only_background_and_exit():
    items = build_script_menu({}, background_processes=[BackgroundProcess("dev", 7)])
    values = [i.value for i in items if isinstance(i, Choice)]
    assert values == [BackgroundSelection(pid=7, name="dev"), ExitSelection()]


def test_workspace_menu_layout(tmp_path):
    ws = [
        WorkspaceDescriptor("api", tmp_path / "api", "packages/api", {"start": "node ."}),
        WorkspaceDescriptor("web", tmp_path / "web", "packages/web", {"dev": "vite"}),
    ]
    favorite = FavoriteRecord("start", str(tmp_path / "api"), "api", "2026-01-01T00:00:00Z")
    items = build_workspace_menu("root-app", ws, favorites=[favorite],
                                 background_processes=[BackgroundProcess("dev", 9)])
    values = [i.value for i in items if isinstance(i, Choice)]

    assert values[0] == RootSelection()
    assert [v.workspace.name for v in values if isinstance(v, WorkspaceSelection)] == ["api", "web"]
    assert FavoriteSelection(favorite) in values
    assert BackgroundSelection(pid=9, name="dev") in values
    assert values[-1] == ExitSelection()


def test_workspace_menu_without_root():
    items = build_workspace_menu("root-app", [], include_root=False)
    assert RootSelection() not in [i.value for i in items if isinstance(i, Choice)]


def test_execution_menu_favorite_label_follows_state():
    assert "☆ Add favorite" in choice_titles(build_execution_menu(False))
    assert "★ Remove favorite" in choice_titles(build_execution_menu(True))
    values = [i.value for i in build_execution_menu() if isinstance(i, Choice)]
    assert values == [ExecutionOption.INTERACTIVE, ExecutionOption.BACKGROUND,
                      ExecutionOption.COPY, ExecutionOption.FAVORITE, ExecutionOption.BACK]


def test_background_menu_shows_log_count():
    items = build_background_menu(12)
    assert items[0].value is BackgroundOption.LOGS
    assert items[0].hint == "12 line(s) captured"
    assert items[-1].value is BackgroundOption.BACK


def test_script_style_categories():
    assert script_style("start:prod") == "class:script.dev"
    assert script_style("e2e") == "class:script.test"
    assert script_style("bundle") == "class:script.build"
    assert script_style("eslint") == "class:script.lint"
    assert script_style("release") == "class:script"
