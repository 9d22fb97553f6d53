"""
Filesystem utilities for npmkeeper.

This module provides safe, read-only helpers for locating and reading the
workspace ``package.json`` and the manifests of locally installed packages
under ``node_modules``. All filesystem errors are normalized to
``FileOperationError``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from npmkeeper.utils.logger import get_logger
from npmkeeper.exceptions import FileOperationError
from npmkeeper.utils.version_utils import valid_range
from npmkeeper.constants import (
    MAX_FILE_SIZE,
    NODE_MODULES,
    PACKAGE_JSON,
    WORKSPACE_DEPENDENCY_FIELDS,
)


logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Validate and resolve an existing file path."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Safely read a text file with optional size limits.

    Args:
        file_path: Path to the file.
        max_size: Maximum allowed file size in bytes (None disables limit).
        encoding: Text encoding.

    Returns:
        File contents as a string.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        return path.read_text(encoding=encoding)
    except Exception as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def read_json_file(file_path: PathLike) -> Dict[str, Any]:
    """Read a JSON file whose top-level value must be an object.

    Raises:
        FileOperationError: The file cannot be read, is not valid JSON, or
            does not contain an object.
    """
    content = safe_read_file(file_path)

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise FileOperationError(
            f"Invalid JSON: {exc}",
            file_path=str(file_path),
            operation="parse",
            original_error=exc,
        ) from exc

    if not isinstance(data, dict):
        raise FileOperationError(
            "Expected a JSON object",
            file_path=str(file_path),
            operation="parse",
        )

    return data


def validate_path(
    path: PathLike,
    *,
    base_dir: Optional[PathLike] = None,
) -> Path:
    """Resolve and validate a filesystem path.

    If ``base_dir`` is provided, the resolved path must be within it.
    """
    resolved = Path(path).expanduser().resolve(strict=False)

    if base_dir:
        base = Path(base_dir).resolve(strict=False)
        try:
            resolved.relative_to(base)
        except ValueError:
            raise FileOperationError(
                f"Path outside allowed base directory: {resolved}",
                file_path=str(path),
                operation="validate",
            )

    return resolved


def find_workspace_manifest(directory: PathLike = ".") -> Optional[Path]:
    """Find the nearest ``package.json`` in *directory* or its parents."""
    current = Path(directory).resolve()

    for candidate in (current, *current.parents):
        manifest = candidate / PACKAGE_JSON
        if manifest.is_file():
            logger.debug("Found workspace manifest: %s", manifest)
            return manifest

    return None


def read_workspace_dependencies(package_json: PathLike) -> Dict[str, str]:
    """Collect every declared dependency range of a workspace manifest.

    ``dependencies``, ``devDependencies`` and ``optionalDependencies`` are
    merged, later sections winning on duplicates. Specifiers that are not
    semver ranges (``file:``, ``workspace:``, git URLs, ...) cannot be
    resolved against the registry and are skipped.

    Returns:
        Mapping of package name to declared range.
    """
    data = read_json_file(package_json)
    dependencies: Dict[str, str] = {}

    for section in WORKSPACE_DEPENDENCY_FIELDS:
        entries = data.get(section)
        if not isinstance(entries, dict):
            continue

        for name, spec in entries.items():
            if not isinstance(spec, str) or valid_range(spec) is None:
                logger.debug("Skipping non-registry dependency %s@%r", name, spec)
                continue
            dependencies[name] = spec.strip()

    return dependencies


def find_installed_manifest(project_root: PathLike, name: str) -> Optional[Path]:
    """Locate ``node_modules/<name>/package.json`` for an installed package.

    Returns:
        The manifest path, or ``None`` if the package is not installed.

    Raises:
        FileOperationError: *name* would escape ``node_modules``.
    """
    modules = Path(project_root) / NODE_MODULES
    manifest = validate_path(modules / name / PACKAGE_JSON, base_dir=modules)
    return manifest if manifest.is_file() else None
