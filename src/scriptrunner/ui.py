# =============================================================================
# Presentation (header, notices, script list, log view)
# =============================================================================

import sys

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.output import create_output
from prompt_toolkit.styles import Style

from scriptrunner import __version__
from scriptrunner.manifest import ScriptEntry

RULE = "─" * 75

STYLE = Style.from_dict({
    "primary": "#22c55e",
    "secondary": "#3b82f6",
    "accent": "#f59e0b",
    "danger": "#ef4444",
    "muted": "#6b7280",
    "purple": "#a855f7",
    "question": "#22c55e bold",
    "message": "bold",
    "pointer": "#22c55e bold",
    "separator": "#6b7280",
    "description": "#6b7280 italic",
    "marker.favorite": "#f59e0b",
    "script": "#6b7280",
    "script.dev": "#22c55e",
    "script.test": "#3b82f6",
    "script.build": "#f59e0b",
    "script.lint": "#a855f7",
    "background": "#f59e0b",
    "root": "#22c55e bold",
    "workspace": "#3b82f6 bold",
    "aborting": "#6b7280",
})

ASCII_HEADER = r"""
┌────────────────────────────────────────────────────────────┐
│   ___         _      _   ___                               │
│  / __| __ _ _(_)_ __| |_| _ \_  _ _ _  _ _  ___ _ _        │
│  \__ \/ _| '_| | '_ \  _|   / || | ' \| ' \/ -_) '_|       │
│  |___/\__|_| |_| .__/\__|_|_\_,_|_||_|_||_\___|_|          │
│                |_|                                         │
└────────────────────────────────────────────────────────────┘"""


def echo(*fragments: tuple[str, str]) -> None:
    # file= resolves sys.stdout per call instead of the app session's cached output
    print_formatted_text(FormattedText(list(fragments)), style=STYLE, file=sys.stdout)


def clear_screen() -> None:
    output = create_output(stdout=sys.stdout)
    output.erase_screen()
    output.cursor_goto(0, 0)
    output.flush()


def show_header(project_name: str, workspace_name: str | None = None) -> None:
    echo(("class:primary", ASCII_HEADER))
    echo(("", ""))
    echo(("class:muted", RULE))
    title = [
        ("", "  "),
        ("class:secondary", "ScriptRunner"),
        ("class:muted", f" v{__version__}  |  "),
        ("class:accent", project_name),
    ]
    if workspace_name:
        title += [("class:muted", " → "), ("class:primary", workspace_name)]
    echo(*title)
    echo(("class:muted", RULE))
    echo(("", ""))


def show_error(message: str) -> None:
    echo(("class:danger", f"\n  ✖ {message}\n"))


def show_success(message: str) -> None:
    echo(("class:primary", f"\n  ✔ {message}\n"))


def show_info(message: str) -> None:
    echo(("class:secondary", f"\n  ℹ {message}\n"))


def show_warning(message: str) -> None:
    echo(("class:accent", f"\n  ⚠ {message}\n"))


def show_script_list(entries: list[ScriptEntry]) -> None:
    echo(("", "\nAvailable scripts:\n"))
    for entry in entries:
        line = [("", "  "), ("class:primary bold", entry.name), ("class:muted", f" → {entry.command}")]
        if entry.description:
            line.append(("class:description", f"  # {entry.description}"))
        echo(*line)


def show_run_banner(script_name: str, package_manager: str) -> None:
    echo(("", ""))
    echo(("class:muted", RULE))
    echo(
        ("", "  "),
        ("class:secondary", "Running:"),
        ("", " "),
        ("class:primary bold", script_name),
        ("class:muted", " via "),
        ("class:accent", package_manager),
    )
    echo(("class:muted", RULE))
    echo(("", ""))


def show_run_result(returncode: int) -> None:
    echo(("", ""))
    echo(("class:muted", RULE))
    if returncode == 0:
        echo(("class:primary", "  ✔"), ("", " Script finished successfully"))
    else:
        echo(("class:danger", "  ✖"), ("", f" Script exited with code {returncode}"))
    echo(("class:muted", RULE))


def show_logs(process, max_lines: int = 30) -> None:
    """Print the tail of a background process's captured output."""
    logs = process.logs.snapshot()

    echo(("", ""))
    echo(("class:muted", RULE))
    echo(
        ("", "  "),
        ("class:secondary", "Logs:"),
        ("", " "),
        ("class:accent", process.name),
        ("class:muted", f" (PID: {process.pid})"),
    )
    echo(("class:muted", RULE))

    if not logs:
        echo(("class:muted", "  (no logs captured)"))
    else:
        for line in logs[-max_lines:]:
            prefix = ("class:danger", "ERR") if line.type.value == "stderr" else ("class:muted", "OUT")
            echo(
                ("class:muted", f"  {line.time.strftime('%H:%M:%S')} "),
                prefix,
                ("", f" {line.text}"),
            )
        if len(logs) > max_lines:
            echo(("class:muted", f"  ... {len(logs) - max_lines} earlier line(s) omitted"))

    echo(("class:muted", RULE))
    echo(("", ""))
