# =============================================================================
# Monorepo Workspace Discovery
# =============================================================================
# Supports npm/yarn "workspaces", pnpm-workspace.yaml and lerna.json.
# Glob support is limited to the forms monorepos actually use:
# "dir/*", "dir/**" (bounded recursive search) and exact paths.

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from loguru import logger

from scriptrunner.errors import Error, ErrorReport, ErrorType
from scriptrunner.manifest import MANIFEST_FILENAME, extract_descriptions, read_package_json

DEFAULT_PATTERNS = ["packages/*"]
RECURSIVE_MAX_DEPTH = 3
SKIPPED_DIRS = {"node_modules"}


@dataclass(frozen=True)
class MonorepoConfig:
    type: str  # "workspaces" | "pnpm" | "lerna"
    patterns: list[str]
    root_dir: Path


@dataclass
class WorkspaceDescriptor:
    name: str
    path: Path
    relative_path: str
    scripts: dict[str, str] = field(default_factory=dict)
    descriptions: dict[str, str] = field(default_factory=dict)


def _pattern_list(value) -> list[str]:
    """Normalize a packages field: a single string or a list of strings."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [p for p in value if isinstance(p, str)]
    return []


def _parse_pnpm_packages(content: str) -> list[str]:
    """Read the packages list from pnpm-workspace.yaml content."""
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.warning(
            "Invalid pnpm-workspace.yaml, using default patterns",
            operation="detect_monorepo",
            status="fallback",
            error=str(e)
        )
        return list(DEFAULT_PATTERNS)

    packages = _pattern_list(data.get("packages")) if isinstance(data, dict) else []
    return packages or list(DEFAULT_PATTERNS)


def detect_monorepo(directory: Path | str) -> MonorepoConfig | None:
    """
    Detect whether a directory is a monorepo root.

    Args:
        directory: Project root holding package.json

    Returns:
        MonorepoConfig, or None if the directory is not a monorepo (or has
        no readable package.json)
    """
    root = Path(directory).resolve()
    manifest_path = root / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return None

    try:
        pkg = read_package_json(manifest_path)

        # npm / yarn workspaces
        workspaces = pkg.get("workspaces")
        if workspaces:
            if isinstance(workspaces, dict):
                workspaces = workspaces.get("packages")
            patterns = _pattern_list(workspaces)
            config = MonorepoConfig("workspaces", patterns, root)

        elif (root / "pnpm-workspace.yaml").is_file():
            content = (root / "pnpm-workspace.yaml").read_text(encoding="utf-8")
            config = MonorepoConfig("pnpm", _parse_pnpm_packages(content), root)

        elif (root / "lerna.json").is_file():
            lerna = json.loads((root / "lerna.json").read_text(encoding="utf-8"))
            patterns = _pattern_list(lerna.get("packages")) if isinstance(lerna, dict) else []
            config = MonorepoConfig("lerna", patterns or list(DEFAULT_PATTERNS), root)

        else:
            return None

    except (OSError, ValueError, TypeError) as e:
        logger.warning(
            "Monorepo detection failed",
            operation="detect_monorepo",
            status="failed",
            directory=str(root),
            error=str(e),
            error_type=type(e).__name__
        )
        return None

    logger.debug(
        "Monorepo detected",
        operation="detect_monorepo",
        status="success",
        directory=str(root),
        monorepo_type=config.type,
        patterns=config.patterns
    )
    return config


def _find_packages_recursive(directory: Path, results: list[Path],
                             max_depth: int, current_depth: int = 0) -> None:
    if current_depth >= max_depth or not directory.is_dir():
        return

    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError:
        return

    for entry in entries:
        if not entry.is_dir() or entry.name.startswith(".") or entry.name in SKIPPED_DIRS:
            continue
        full_path = Path(entry.path)
        if (full_path / MANIFEST_FILENAME).is_file():
            results.append(full_path)
        _find_packages_recursive(full_path, results, max_depth, current_depth + 1)


def expand_pattern(pattern: str, root_dir: Path) -> list[Path]:
    """
    Expand one workspace pattern into candidate directories.

    Args:
        pattern: "dir/*", "dir/**" or an exact relative path
        root_dir: Monorepo root

    Returns:
        Matching directories (not yet checked for package.json, except in
        the recursive form)
    """
    results: list[Path] = []
    pattern = pattern.rstrip("/")

    if pattern.endswith("/**"):
        _find_packages_recursive(root_dir / pattern[:-3], results, RECURSIVE_MAX_DEPTH)
    elif pattern.endswith("/*"):
        base_dir = root_dir / pattern[:-2]
        if base_dir.is_dir():
            try:
                results.extend(sorted(p for p in base_dir.iterdir() if p.is_dir()))
            except OSError:
                pass
    else:
        exact_path = root_dir / pattern
        if exact_path.exists():
            results.append(exact_path)

    return results


def find_workspaces(config: MonorepoConfig | None,
                    report: ErrorReport | None = None) -> list[WorkspaceDescriptor]:
    """
    Discover the sub-projects of a monorepo.

    Packages with an unreadable package.json are skipped; the skip is
    recorded as a warning on the optional ErrorReport.

    Args:
        config: Result of detect_monorepo (None yields an empty list)
        report: Optional ErrorReport collecting skipped packages

    Returns:
        Workspaces sorted by name
    """
    if config is None:
        return []

    workspaces: list[WorkspaceDescriptor] = []
    seen: set[Path] = set()

    for pattern in config.patterns:
        for directory in expand_pattern(pattern, config.root_dir):
            directory = directory.resolve()
            manifest_path = directory / MANIFEST_FILENAME
            if directory in seen or not manifest_path.is_file():
                continue
            seen.add(directory)

            try:
                pkg = read_package_json(manifest_path)
            except (OSError, ValueError) as e:
                if report is not None:
                    report.add_warning(Error(
                        error_type=ErrorType.MANIFEST_MALFORMED,
                        message="Skipping workspace with invalid package.json",
                        context={"manifest_path": str(manifest_path)},
                        original_exception=e
                    ))
                continue

            scripts = pkg.get("scripts") or {}
            workspaces.append(WorkspaceDescriptor(
                name=str(pkg.get("name") or directory.name),
                path=directory,
                relative_path=os.path.relpath(directory, config.root_dir),
                scripts={str(k): str(v) for k, v in scripts.items()} if isinstance(scripts, dict) else {},
                descriptions=extract_descriptions(pkg),
            ))

    workspaces.sort(key=lambda ws: ws.name)

    logger.debug(
        "Workspace discovery complete",
        operation="find_workspaces",
        status="success",
        root_dir=str(config.root_dir),
        metrics={"workspaces_found": len(workspaces)}
    )
    return workspaces
