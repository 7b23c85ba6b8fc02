# =============================================================================
# Manifest Loading (package.json)
# =============================================================================

import json
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from scriptrunner.errors import Error, ErrorType, Result

MANIFEST_FILENAME = "package.json"

# Checked in order - first lock file found wins
LOCK_FILES = {
    "pnpm-lock.yaml": "pnpm",
    "yarn.lock": "yarn",
    "package-lock.json": "npm",
    "bun.lockb": "bun",
}
DEFAULT_PACKAGE_MANAGER = "npm"


@dataclass(frozen=True)
class ScriptEntry:
    name: str
    command: str
    description: str | None = None


@dataclass
class Manifest:
    """Scripts and display metadata read from one package.json."""
    directory: Path
    scripts: dict[str, str] = field(default_factory=dict)
    descriptions: dict[str, str] = field(default_factory=dict)
    project_name: str = "unknown"
    version: str = "0.0.0"

    def entries(self) -> list[ScriptEntry]:
        return [
            ScriptEntry(name, command, self.descriptions.get(name))
            for name, command in self.scripts.items()
        ]


def extract_descriptions(pkg: dict) -> dict[str, str]:
    """Script descriptions live under scriptsDescriptions or scripts-info."""
    descriptions = pkg.get("scriptsDescriptions") or pkg.get("scripts-info") or {}
    if not isinstance(descriptions, dict):
        return {}
    return {str(k): str(v) for k, v in descriptions.items()}


def read_package_json(path: Path) -> dict:
    """
    Read and decode a package.json file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not a JSON object
    """
    pkg = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(pkg, dict):
        raise ValueError("top-level value is not an object")
    return pkg


def load_manifest(directory: Path | str) -> Result[Manifest]:
    """
    Load the scripts mapping and metadata from <directory>/package.json.

    Args:
        directory: Project directory

    Returns:
        Result[Manifest]: Ok with the manifest, or Err with MANIFEST_NOT_FOUND
        / MANIFEST_MALFORMED
    """
    directory = Path(directory).resolve()
    manifest_path = directory / MANIFEST_FILENAME

    if not manifest_path.is_file():
        logger.error(
            "Manifest not found",
            operation="load_manifest",
            status="failed",
            manifest_path=str(manifest_path)
        )
        return Result.err(Error(
            error_type=ErrorType.MANIFEST_NOT_FOUND,
            message=f"package.json not found in: {directory}",
            context={"manifest_path": str(manifest_path)}
        ))

    try:
        pkg = read_package_json(manifest_path)
    except (ValueError, OSError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        logger.error(
            "Manifest could not be parsed",
            operation="load_manifest",
            status="failed",
            manifest_path=str(manifest_path),
            error=str(e),
            error_type=type(e).__name__
        )
        return Result.err(Error(
            error_type=ErrorType.MANIFEST_MALFORMED,
            message="package.json contains invalid JSON",
            context={"manifest_path": str(manifest_path)},
            original_exception=e
        ))

    scripts = pkg.get("scripts") or {}
    if not isinstance(scripts, dict):
        return Result.err(Error(
            error_type=ErrorType.MANIFEST_MALFORMED,
            message='package.json "scripts" must be an object',
            context={"manifest_path": str(manifest_path)}
        ))

    manifest = Manifest(
        directory=directory,
        scripts={str(k): str(v) for k, v in scripts.items()},
        descriptions=extract_descriptions(pkg),
        project_name=str(pkg.get("name") or "unknown"),
        version=str(pkg.get("version") or "0.0.0"),
    )

    logger.debug(
        "Manifest loaded",
        operation="load_manifest",
        status="success",
        manifest_path=str(manifest_path),
        project_name=manifest.project_name,
        metrics={"scripts_count": len(manifest.scripts)}
    )
    return Result.ok(manifest)


def detect_package_manager(directory: Path | str, override: str = "") -> str:
    """
    Pick the package manager that owns a project.

    Args:
        directory: Project directory to inspect for lock files
        override: Configured package manager; wins when non-empty

    Returns:
        Package manager executable name (pnpm, yarn, npm or bun)
    """
    if override:
        return override

    directory = Path(directory)
    for lock_file, package_manager in LOCK_FILES.items():
        if (directory / lock_file).exists():
            return package_manager
    return DEFAULT_PACKAGE_MANAGER
