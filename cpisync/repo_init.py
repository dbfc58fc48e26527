"""Checks and file setup used when creating a new sync repository."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from cpisync.keys import SyncError

MAX_PACKAGE_ID_LENGTH = 128
DEFAULT_GITIGNORE_LINES = (".DS_Store", "*.log")


def validate_package_id(package_id: str) -> str:
    """Return the trimmed package id, or raise if it cannot name a folder."""
    package_id = package_id.strip()
    if not package_id:
        raise SyncError("packageId is required")
    if any(ch in package_id for ch in " \t\r\n"):
        raise SyncError("packageId must not contain whitespace")
    if "/" in package_id or "\\" in package_id:
        raise SyncError("packageId must not contain path separators")
    if len(package_id.encode("utf-8")) > MAX_PACKAGE_ID_LENGTH:
        raise SyncError(
            f"packageId is too long (max {MAX_PACKAGE_ID_LENGTH} characters)"
        )
    return package_id


def ensure_empty_dir(path: str | os.PathLike[str]) -> Path:
    """Make sure ``path`` is an empty directory, creating it when missing."""
    target = Path(path)
    if target.exists():
        if not target.is_dir():
            raise SyncError(f"target path exists and is not a directory: {target}")
        if any(target.iterdir()):
            raise SyncError(f"target directory is not empty: {target}")
        return target
    target.mkdir(mode=0o755, parents=True)
    return target


def ensure_sync_repo_gitignore(directory: str | os.PathLike[str]) -> Path:
    """Write ``.gitignore`` with the default entries, adding any that are missing."""
    path = Path(directory) / ".gitignore"
    try:
        content = path.read_bytes().decode("utf-8")
    except FileNotFoundError:
        _atomic_write(path, ("\n".join(DEFAULT_GITIGNORE_LINES) + "\n").encode("utf-8"))
        return path

    for line in DEFAULT_GITIGNORE_LINES:
        if line in content:
            continue
        if not content.endswith("\n"):
            content += "\n"
        content += line + "\n"
    _atomic_write(path, content.encode("utf-8"))
    return path


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise