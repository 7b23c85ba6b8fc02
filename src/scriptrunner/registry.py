# =============================================================================
# Background Process Registry
# =============================================================================
# Tracks background runs for the lifetime of one session. Output is pumped
# from each child's pipes into a bounded per-process buffer by daemon
# threads; the control loop only checks liveness (prune) and never polls
# output. Nothing here is persisted - a detached child outlives the tool but
# the tool forgets it.

import signal
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from loguru import logger

from scriptrunner.runner import BackgroundHandle, ProcessLauncher, is_process_running, signal_process

MAX_LOG_LINES = 100


class LogStream(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class LogLine:
    time: datetime
    type: LogStream
    text: str


class LogBuffer:
    """Append-only ring buffer of LogLine; the oldest line drops on overflow."""

    def __init__(self, maxlen: int = MAX_LOG_LINES):
        self._lines: deque[LogLine] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def append(self, line: LogLine) -> None:
        with self._lock:
            self._lines.append(line)

    def snapshot(self) -> list[LogLine]:
        with self._lock:
            return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


@dataclass
class BackgroundProcess:
    name: str
    pid: int
    workspace: str | None = None
    directory: Path | None = None
    logs: LogBuffer = field(default_factory=LogBuffer)
    handle: BackgroundHandle | None = field(default=None, repr=False)
    pumps: list[threading.Thread] = field(default_factory=list, repr=False)

    def is_alive(self) -> bool:
        # poll() reaps an exited child; without it a zombie still answers signal 0
        if self.handle is not None and self.handle.poll() is not None:
            return False
        return is_process_running(self.pid)

    def wait_for_output(self, timeout: float | None = None) -> None:
        """Block until the output pumps have drained both pipes."""
        for pump in self.pumps:
            pump.join(timeout)


def _pump_stream(stream, stream_type: LogStream, buffer: LogBuffer) -> None:
    """Copy non-blank lines from a pipe into the buffer until EOF."""
    try:
        for raw in iter(stream.readline, b""):
            text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if not text.strip():
                continue
            buffer.append(LogLine(time=datetime.now(), type=stream_type, text=text))
    except (OSError, ValueError):
        # Pipe closed underneath us (process killed, stream closed)
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


class BackgroundRegistry:
    """Live, in-memory set of tracked background processes."""

    def __init__(self, launcher: ProcessLauncher | None = None):
        self.launcher = launcher or ProcessLauncher()
        self._processes: list[BackgroundProcess] = []

    @property
    def processes(self) -> list[BackgroundProcess]:
        return list(self._processes)

    def __len__(self) -> int:
        return len(self._processes)

    def __iter__(self):
        return iter(list(self._processes))

    def launch(self, script_name: str, directory: Path | str,
               workspace: str | None = None) -> BackgroundProcess:
        """
        Start a script in the background and begin tracking it.

        The entry is registered before this returns; log capture continues
        asynchronously for the life of the process.

        Raises:
            SpawnError: If the launcher cannot start the command
        """
        argv = self.launcher.script_argv(script_name, directory)
        handle = self.launcher.run_background(argv, directory)

        proc = BackgroundProcess(
            name=script_name,
            pid=handle.pid,
            workspace=workspace,
            directory=Path(directory),
            handle=handle,
        )
        self.register(proc)

        for stream, stream_type in ((handle.stdout, LogStream.STDOUT),
                                    (handle.stderr, LogStream.STDERR)):
            if stream is None:
                continue
            pump = threading.Thread(
                target=_pump_stream,
                args=(stream, stream_type, proc.logs),
                name=f"log-pump-{handle.pid}-{stream_type.value}",
                daemon=True,
            )
            pump.start()
            proc.pumps.append(pump)

        return proc

    def register(self, proc: BackgroundProcess) -> None:
        """Track an already-started process. A pid is tracked at most once."""
        self._processes = [p for p in self._processes if p.pid != proc.pid]
        self._processes.append(proc)
        logger.debug(
            "Background process registered",
            operation="registry_register",
            status="success",
            script=proc.name,
            pid=proc.pid,
            workspace=proc.workspace,
            metrics={"tracked": len(self._processes)}
        )

    def find(self, pid: int) -> BackgroundProcess | None:
        for proc in self._processes:
            if proc.pid == pid:
                return proc
        return None

    def remove(self, pid: int) -> BackgroundProcess | None:
        proc = self.find(pid)
        if proc is None:
            return None
        self._processes.remove(proc)
        if proc.handle is not None:
            proc.handle.poll()
        return proc

    def kill(self, pid: int) -> bool:
        """
        Send SIGTERM to a tracked process.

        Does not remove the entry; the caller does that on success. A pid
        that no longer exists is the normal "already dead" case and returns
        False.
        """
        proc = self.find(pid)
        if proc is not None and proc.handle is not None and proc.handle.poll() is not None:
            # Already exited and reaped; the pid may belong to someone else now
            delivered = False
        else:
            delivered = signal_process(pid, signal.SIGTERM)
        logger.info(
            "Kill requested",
            operation="registry_kill",
            status="delivered" if delivered else "not_delivered",
            pid=pid
        )
        return delivered

    def prune(self) -> list[BackgroundProcess]:
        """
        Drop every entry whose process is no longer alive.

        Returns:
            The removed entries
        """
        alive = []
        dead = []
        for proc in self._processes:
            (alive if proc.is_alive() else dead).append(proc)
        self._processes = alive

        if dead:
            logger.debug(
                "Pruned finished background processes",
                operation="registry_prune",
                status="success",
                pids=[p.pid for p in dead],
                metrics={"pruned": len(dead), "tracked": len(alive)}
            )
        return dead
