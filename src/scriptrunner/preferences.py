# =============================================================================
# Persisted Lists (History + Favorites)
# =============================================================================
# Both stores are small JSON arrays under the config directory. They are a
# convenience: read failures degrade to an empty list and write failures are
# logged and swallowed so they can never abort a session.

import errno
import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from scriptrunner.config_loader import get_config_dir

MAX_HISTORY_ENTRIES = 20
HISTORY_FILENAME = "history.json"
FAVORITES_FILENAME = "favorites.json"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def atomic_write_file(path: Path, content: str) -> None:
    """
    Write file atomically using temp file → fsync → rename pattern.

    Args:
        path: Target file path
        content: Content to write

    Raises:
        OSError: If write fails (including disk full - errno.ENOSPC)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory so the rename stays on one filesystem
    temp_fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)

    except OSError as e:
        try:
            os.unlink(temp_path)
        except OSError:
            pass

        if e.errno == errno.ENOSPC:
            raise OSError(f"Disk full - cannot write to {path}") from e
        raise


@dataclass(frozen=True)
class HistoryRecord:
    script: str
    directory: str
    project_name: str
    timestamp: str

    def key(self) -> tuple[str, str]:
        return (self.script, self.directory)

    def to_dict(self) -> dict:
        return {
            "script": self.script,
            "directory": self.directory,
            "projectName": self.project_name,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryRecord":
        return cls(
            script=data["script"],
            directory=data["directory"],
            project_name=data.get("projectName", "unknown"),
            timestamp=data.get("timestamp", ""),
        )


@dataclass(frozen=True)
class FavoriteRecord:
    script: str
    directory: str
    project_name: str
    added_at: str

    def key(self) -> tuple[str, str]:
        return (self.script, self.directory)

    def to_dict(self) -> dict:
        return {
            "script": self.script,
            "directory": self.directory,
            "projectName": self.project_name,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FavoriteRecord":
        return cls(
            script=data["script"],
            directory=data["directory"],
            project_name=data.get("projectName", "unknown"),
            added_at=data.get("addedAt", ""),
        )


class PersistedList:
    """
    Ordered list of records stored as a JSON array.

    Subclasses set record_type (a class with to_dict/from_dict) and
    filename.
    """

    record_type = None
    filename = None

    def __init__(self, config_dir: Path | None = None):
        self.path = (config_dir or get_config_dir()) / self.filename

    def load(self) -> list:
        """Load all records; any failure yields an empty list."""
        if not self.path.exists():
            return []

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("expected a JSON array")
            return [self.record_type.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "Failed to load persisted list, using empty list",
                operation="persisted_list_load",
                status="fallback",
                file=str(self.path),
                error=str(e),
                error_type=type(e).__name__
            )
            return []

    def save(self, records: list) -> None:
        """Write all records; failures are logged and swallowed."""
        content = json.dumps([r.to_dict() for r in records], indent=2) + "\n"
        try:
            atomic_write_file(self.path, content)
        except OSError as e:
            logger.error(
                "Failed to save persisted list - changes will not persist",
                operation="persisted_list_save",
                status="failed",
                file=str(self.path),
                error=str(e)
            )
            return

        logger.debug(
            "Persisted list saved",
            operation="persisted_list_save",
            status="success",
            file=str(self.path),
            metrics={"entries": len(records)}
        )


class HistoryStore(PersistedList):
    """Most-recent-first run history, one entry per (script, directory)."""

    record_type = HistoryRecord
    filename = HISTORY_FILENAME

    def add(self, script: str, directory: str, project_name: str) -> HistoryRecord:
        history = [h for h in self.load() if h.key() != (script, directory)]
        record = HistoryRecord(script, directory, project_name, _now_iso())
        history.insert(0, record)
        self.save(history[:MAX_HISTORY_ENTRIES])
        return record

    def recent(self, directory: str, limit: int = 5) -> list[HistoryRecord]:
        return [h for h in self.load() if h.directory == directory][:limit]

    def global_recent(self, limit: int = 10) -> list[HistoryRecord]:
        return self.load()[:limit]

    def clear(self) -> None:
        self.save([])


class FavoritesStore(PersistedList):
    """Favorited (script, directory) pairs in the order they were added."""

    record_type = FavoriteRecord
    filename = FAVORITES_FILENAME

    def add(self, script: str, directory: str, project_name: str) -> bool:
        favorites = self.load()
        if any(f.key() == (script, directory) for f in favorites):
            return False
        favorites.append(FavoriteRecord(script, directory, project_name, _now_iso()))
        self.save(favorites)
        return True

    def remove(self, script: str, directory: str) -> bool:
        favorites = self.load()
        remaining = [f for f in favorites if f.key() != (script, directory)]
        if len(remaining) == len(favorites):
            return False
        self.save(remaining)
        return True

    def toggle(self, script: str, directory: str, project_name: str) -> bool:
        """Flip membership. Returns True when the pair is now a favorite."""
        if self.is_favorite(script, directory):
            self.remove(script, directory)
            return False
        self.add(script, directory, project_name)
        return True

    def is_favorite(self, script: str, directory: str) -> bool:
        return any(f.key() == (script, directory) for f in self.load())

    def for_directory(self, directory: str) -> list[FavoriteRecord]:
        return [f for f in self.load() if f.directory == directory]

    def all(self) -> list[FavoriteRecord]:
        return self.load()
