# =============================================================================
# Configuration Loading
# =============================================================================

import os
import re
import time
import tomllib
from pathlib import Path

from loguru import logger

ENV_CONFIG_DIR = "SCRIPTRUNNER_CONFIG_DIR"
CONFIG_FILENAME = "config.toml"

# Default configuration - safe values that work without user config
DEFAULT_CONFIG = {
    "menu": {
        "recent_limit": 5,
    },
    "logs": {
        "view_lines": 30,
    },
    "runner": {
        "package_manager": "",    # Empty = detect from lock files
        "clipboard_command": "",  # Empty = pbcopy / xclip / clip by platform
    },
}


def get_config_dir() -> Path:
    """
    Resolve the per-user config directory.

    History, favorites and config.toml all live here. SCRIPTRUNNER_CONFIG_DIR
    overrides the default ~/.config/scriptrunner.
    """
    override = os.environ.get(ENV_CONFIG_DIR)
    if override:
        return Path(override).expanduser()
    return Path("~/.config/scriptrunner").expanduser()


def extract_toml_error_context(error: tomllib.TOMLDecodeError, file_path: Path) -> dict:
    """
    Extract line context from TOML parse error.

    Args:
        error: The TOMLDecodeError exception
        file_path: Path to the TOML file

    Returns:
        Dict with line_number, line_content, and formatted_message
    """
    error_str = str(error)
    line_number = None
    line_content = None

    # Common formats: "line 15", "at line 15", "(line 15)"
    line_match = re.search(r'line\s+(\d+)', error_str, re.IGNORECASE)
    if line_match:
        line_number = int(line_match.group(1))

    if line_number and file_path.exists():
        try:
            lines = file_path.read_text().splitlines()
            if 0 < line_number <= len(lines):
                line_content = lines[line_number - 1].rstrip()
        except OSError:
            pass

    if line_number:
        formatted = f"Error on line {line_number}"
        if line_content:
            display_line = line_content[:50] + "..." if len(line_content) > 50 else line_content
            formatted += f": {display_line}"
        formatted += f"\n\nDetails: {error_str}"
    else:
        formatted = f"TOML parse error: {error_str}"

    return {
        "line_number": line_number,
        "line_content": line_content,
        "formatted_message": formatted,
        "raw_error": error_str,
    }


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dictionary."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_dir: Path | None = None) -> dict:
    """
    Load configuration from TOML file with defaults fallback.

    A missing file is the normal case. Invalid TOML is logged with line
    context and the defaults are used - configuration must never keep the
    menu from opening.

    Args:
        config_dir: Directory holding config.toml (defaults to get_config_dir())

    Returns:
        Merged configuration dict
    """
    start_time = time.perf_counter()
    config_path = (config_dir or get_config_dir()) / CONFIG_FILENAME

    if not config_path.exists():
        logger.debug(
            "Config file does not exist, using defaults",
            operation="load_config",
            status="default",
            file=str(config_path)
        )
        return deep_merge(DEFAULT_CONFIG, {})

    try:
        with open(config_path, "rb") as f:
            user_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        error_context = extract_toml_error_context(e, config_path)
        logger.error(
            "Invalid TOML syntax in configuration file",
            operation="load_config",
            status="failed",
            file=str(config_path),
            line_number=error_context["line_number"],
            line_content=error_context["line_content"],
            error=error_context["formatted_message"]
        )
        return deep_merge(DEFAULT_CONFIG, {})
    except OSError as e:
        logger.warning(
            "Failed to read config file, using defaults",
            operation="load_config",
            status="fallback",
            file=str(config_path),
            error=str(e)
        )
        return deep_merge(DEFAULT_CONFIG, {})

    merged = deep_merge(DEFAULT_CONFIG, user_config)
    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug(
        "Config loaded successfully",
        operation="load_config",
        status="success",
        file=str(config_path),
        metrics={"duration_ms": duration_ms}
    )
    return merged
