"""Command-line entry point: list, run directly, or start the interactive menu."""

import sys
from pathlib import Path
from uuid import uuid4

import click
from loguru import logger

from scriptrunner import __version__, ui
from scriptrunner.config_loader import load_config
from scriptrunner.errors import ErrorReport, ScriptNotFoundError, SpawnError
from scriptrunner.logging_config import setup_logger
from scriptrunner.manifest import Manifest, load_manifest
from scriptrunner.preferences import FavoritesStore, HistoryStore
from scriptrunner.registry import BackgroundRegistry
from scriptrunner.runner import ProcessLauncher
from scriptrunner.selector import TerminalPrompter
from scriptrunner.session import SessionStateMachine
from scriptrunner.workspaces import detect_monorepo, find_workspaces

EXIT_INTERRUPTED = 130

EXAMPLES = """\b
Examples:
  scriptrunner              # Interactive mode in current directory
  scriptrunner dev          # Run 'dev' script directly
  scriptrunner -d ./myapp   # Use different directory
  scriptrunner -l           # List available scripts
"""


def run_script_directly(manifest: Manifest, script_name: str,
                        launcher: ProcessLauncher, history: HistoryStore) -> int:
    """
    Non-interactive run of one script in the foreground.

    Returns:
        The script's own exit code

    Raises:
        ScriptNotFoundError: If the manifest has no such script (nothing is
            run or recorded)
        SpawnError: If the package manager cannot be started
    """
    if script_name not in manifest.scripts:
        logger.error(
            "Unknown script requested",
            operation="run_script_directly",
            status="not_found",
            script=script_name,
            available=sorted(manifest.scripts)
        )
        raise ScriptNotFoundError(
            f'Script "{script_name}" not found',
            context={"script": script_name, "directory": str(manifest.directory)}
        )

    history.add(script_name, str(manifest.directory), manifest.project_name)
    ui.show_run_banner(script_name, launcher.resolve_package_manager(manifest.directory))
    returncode = launcher.run_foreground(
        launcher.script_argv(script_name, manifest.directory),
        manifest.directory,
    )
    ui.show_run_result(returncode)
    return returncode


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EXAMPLES,
)
@click.option(
    "-d", "--directory",
    type=click.Path(path_type=Path),
    default=".",
    help="Specify project directory.",
)
@click.option("-l", "--list", "list_scripts", is_flag=True, help="List scripts without running.")
@click.version_option(
    __version__, "-v", "--version",
    prog_name="ScriptRunner",
    message="%(prog)s v%(version)s",
)
@click.argument("script_name", required=False)
def cli(directory: Path, list_scripts: bool, script_name: str | None) -> None:
    """ScriptRunner - TUI for running package.json scripts."""
    setup_logger()
    cli_trace_id = str(uuid4())
    config = load_config()

    logger.info(
        "ScriptRunner starting",
        operation="cli",
        status="started",
        trace_id=cli_trace_id,
        directory=str(directory),
        list_scripts=list_scripts,
        script=script_name
    )

    report = ErrorReport()
    result = load_manifest(directory)
    if not report.collect_result(result):
        report.log_summary(cli_trace_id)
        ui.show_error(result.error.message)
        sys.exit(1)
    manifest = result.value

    monorepo = None
    workspaces = []
    if not list_scripts and script_name is None:
        monorepo = detect_monorepo(manifest.directory)
        workspaces = find_workspaces(monorepo, report)
        if monorepo is not None and not workspaces:
            logger.warning(
                "Monorepo config matched no workspaces, using single-project mode",
                operation="cli",
                status="no_workspaces",
                trace_id=cli_trace_id,
                patterns=monorepo.patterns,
                skipped=len(report.warnings)
            )
            monorepo = None
    report.log_summary(cli_trace_id)

    if not manifest.scripts and monorepo is None:
        ui.show_error("No scripts found in package.json")
        sys.exit(1)

    launcher = ProcessLauncher(config["runner"]["package_manager"])
    history = HistoryStore()

    try:
        if list_scripts:
            ui.show_header(manifest.project_name)
            ui.show_script_list(manifest.entries())
            sys.exit(0)

        if script_name is not None:
            ui.show_header(manifest.project_name)
            sys.exit(run_script_directly(manifest, script_name, launcher, history))

        session = SessionStateMachine(
            manifest,
            TerminalPrompter(),
            registry=BackgroundRegistry(launcher),
            history=history,
            favorites=FavoritesStore(),
            launcher=launcher,
            monorepo=monorepo,
            workspaces=workspaces,
            config=config,
        )
        sys.exit(session.run())

    except (ScriptNotFoundError, SpawnError) as e:
        ui.show_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info(
            "Interrupted",
            operation="cli",
            status="interrupted",
            trace_id=cli_trace_id
        )
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    cli()
