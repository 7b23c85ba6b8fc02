# =============================================================================
# Process Launching
# =============================================================================

import os
import shlex
import signal
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from scriptrunner.errors import ClipboardError, SpawnError
from scriptrunner.manifest import detect_package_manager

CLIPBOARD_TIMEOUT = 5


@dataclass
class BackgroundHandle:
    """A detached child with piped stdout/stderr."""
    process: subprocess.Popen

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stdout(self):
        return self.process.stdout

    @property
    def stderr(self):
        return self.process.stderr

    def poll(self) -> int | None:
        return self.process.poll()


def signal_process(pid: int, sig: int = signal.SIGTERM) -> bool:
    """
    Send a signal to a process, or to its whole group when it leads one.

    Background children are started in their own session, so their pid is
    also their process group id and the package manager's own children
    receive the signal too.

    Returns:
        True if the signal was delivered, False if the pid is gone (or not
        ours to signal)
    """
    try:
        if hasattr(os, "killpg") and sig != 0 and os.getpgid(pid) == pid:
            os.killpg(pid, sig)
        else:
            os.kill(pid, sig)
        return True
    except (ProcessLookupError, PermissionError):
        return False
    except OSError as e:
        logger.debug(
            "Signal delivery failed",
            operation="signal_process",
            status="failed",
            pid=pid,
            signal=sig,
            error=str(e)
        )
        return False


def is_process_running(pid: int) -> bool:
    """Liveness check: signal 0 checks existence without side effects."""
    return signal_process(pid, 0)


def clipboard_command(override: str = "") -> list[str]:
    """
    Platform clipboard tool as an argv list.

    Raises:
        ClipboardError: If the platform has no known clipboard tool
    """
    if override:
        return shlex.split(override)
    if sys.platform == "darwin":
        return ["pbcopy"]
    if sys.platform.startswith("linux"):
        return ["xclip", "-selection", "clipboard"]
    if sys.platform == "win32":
        return ["clip"]
    raise ClipboardError(
        "Clipboard not supported on this platform",
        context={"platform": sys.platform}
    )


def copy_to_clipboard(text: str, override: str = "") -> None:
    """
    Copy text to the system clipboard by piping it into the platform tool.

    Raises:
        ClipboardError: If no tool is available or it exits non-zero
    """
    argv = clipboard_command(override)
    try:
        result = subprocess.run(
            argv,
            input=text,
            text=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=CLIPBOARD_TIMEOUT,
            check=False
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ClipboardError(
            "Failed to copy to clipboard",
            context={"command": argv[0]},
            original_exception=e
        ) from e

    if result.returncode != 0:
        raise ClipboardError(
            "Failed to copy to clipboard",
            context={"command": argv[0], "returncode": result.returncode}
        )


class ProcessLauncher:
    """Spawns package-manager script runs in the foreground or background."""

    def __init__(self, package_manager: str = ""):
        # Empty string = detect per directory from lock files
        self.package_manager = package_manager

    def resolve_package_manager(self, directory: Path | str) -> str:
        return detect_package_manager(directory, self.package_manager)

    def script_argv(self, script_name: str, directory: Path | str) -> list[str]:
        return [self.resolve_package_manager(directory), "run", script_name]

    def script_command(self, script_name: str, directory: Path | str) -> str:
        """The invocation a user would type, e.g. "pnpm run dev"."""
        return shlex.join(self.script_argv(script_name, directory))

    def run_foreground(self, argv: list[str], directory: Path | str) -> int:
        """
        Run with the terminal's stdin/stdout/stderr and wait for exit.

        Returns:
            The child's exit code

        Raises:
            SpawnError: If the command cannot be started
        """
        logger.info(
            "Foreground run starting",
            operation="run_foreground",
            status="started",
            argv=argv,
            directory=str(directory)
        )
        try:
            completed = subprocess.run(argv, cwd=directory, check=False)
        except OSError as e:
            logger.error(
                "Foreground run failed to start",
                operation="run_foreground",
                status="spawn_failed",
                argv=argv,
                error=str(e)
            )
            raise SpawnError(
                f"Could not start {argv[0]}: {e.strerror or e}",
                context={"argv": argv, "directory": str(directory)},
                original_exception=e
            ) from e

        logger.info(
            "Foreground run finished",
            operation="run_foreground",
            status="complete",
            argv=argv,
            returncode=completed.returncode
        )
        return completed.returncode

    def run_background(self, argv: list[str], directory: Path | str) -> BackgroundHandle:
        """
        Start detached (own session) with stdout/stderr piped.

        Raises:
            SpawnError: If the command cannot be started
        """
        try:
            process = subprocess.Popen(
                argv,
                cwd=directory,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(
                "Background run failed to start",
                operation="run_background",
                status="spawn_failed",
                argv=argv,
                error=str(e)
            )
            raise SpawnError(
                f"Could not start {argv[0]}: {e.strerror or e}",
                context={"argv": argv, "directory": str(directory)},
                original_exception=e
            ) from e

        logger.info(
            "Background run started",
            operation="run_background",
            status="started",
            argv=argv,
            directory=str(directory),
            pid=process.pid
        )
        return BackgroundHandle(process)
