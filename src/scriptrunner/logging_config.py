# =============================================================================
# Structured Logging Setup (JSONL format)
# =============================================================================

import json
import os
import sys
from contextvars import ContextVar
from pathlib import Path

import platformdirs
from loguru import logger

APP_NAME = "scriptrunner"
ENV_DEBUG = "SCRIPTRUNNER_DEBUG"

# Correlation ID for multi-step operations
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def json_sink(message) -> None:
    """One JSON object per line on stderr (SCRIPTRUNNER_DEBUG sessions)."""
    record = message.record
    extra = dict(record["extra"])
    entry = {
        "time": record["time"].isoformat(timespec="milliseconds"),
        "level": record["level"].name.lower(),
        "operation": extra.pop("operation", None),
        "status": extra.pop("status", None),
        "trace_id": extra.pop("trace_id", None) or trace_id_var.get(),
        "message": record["message"],
        "context": extra,
    }
    if record["exception"]:
        exc_type, exc_value, _ = record["exception"]
        entry["error"] = f"{exc_type.__name__ if exc_type else 'Exception'}: {exc_value}"

    try:
        sys.stderr.write(json.dumps(entry, default=str) + "\n")
    except (OSError, TypeError, ValueError):
        pass


def setup_logger(log_dir: Path | None = None):
    """
    Configure Loguru for machine-readable JSONL output.

    The interactive menu owns the terminal, so the stderr sink is only added
    when SCRIPTRUNNER_DEBUG is set. The rotating file sink is always on.

    Args:
        log_dir: Override for the log directory (defaults to the platform
            user log dir, e.g. ~/.local/state/scriptrunner/log on Linux)

    Returns:
        The configured loguru logger
    """
    logger.remove()

    if os.environ.get(ENV_DEBUG):
        logger.add(json_sink, level="DEBUG")

    if log_dir is None:
        log_dir = Path(platformdirs.user_log_dir(appname=APP_NAME, ensure_exists=True))
    else:
        log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(log_dir / "scriptrunner.jsonl"),
        format="{message}",
        serialize=True,
        rotation="10 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
    )

    return logger
