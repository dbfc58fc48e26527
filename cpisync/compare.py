"""Content comparison of two exported package folders."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Iterator

from cpisync.ignore import RepoIgnore
from cpisync.keys import SyncError

_CHUNK_SIZE = 64 * 1024


def sha256_file(path: str | os.PathLike[str]) -> str:
    """Hex SHA-256 digest of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _iter_files(root: Path) -> Iterator[Path]:
    """Every non-directory entry below ``root``; symlinks are not followed.

    Errors while listing a directory propagate to the caller.
    """
    pending = [root]
    while pending:
        current = pending.pop()
        with os.scandir(current) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    pending.append(Path(entry.path))
                else:
                    yield Path(entry.path)


def _hash_dir(prefix: str, root: Path, ignore: RepoIgnore | None) -> dict[str, str]:
    """Map each file's repo-relative path under ``root`` to its digest.

    A missing ``root`` yields no files.
    """
    try:
        is_dir = root.is_dir()
        exists = root.exists()
    except OSError as exc:
        raise SyncError(str(exc)) from exc
    if not exists:
        return {}
    if not is_dir:
        raise SyncError(f"not a directory: {root}")

    hashes: dict[str, str] = {}
    for full in _iter_files(root):
        rel = full.relative_to(root).as_posix()
        repo_rel = f"{prefix}/{rel}"
        if repo_rel.startswith("./"):
            repo_rel = repo_rel[2:]
        if ignore is not None and ignore.is_ignored(repo_rel):
            continue
        hashes[repo_rel] = sha256_file(full)
    return hashes


def compare_folder_trees(
    repo_rel_prefix: str,
    dir_a: str | os.PathLike[str],
    dir_b: str | os.PathLike[str],
    ignore: RepoIgnore | None = None,
) -> list[str]:
    """Sorted repo-relative paths whose contents differ between two folders.

    Paths are slash-separated and start with ``repo_rel_prefix``. A file
    present on one side only counts as a difference. Ignore rules, when
    given, apply to the repo-relative paths.
    """
    prefix = repo_rel_prefix.replace("\\", "/").strip().strip("/")
    if not prefix:
        raise SyncError("repoRelPrefix is required")
    if not os.fspath(dir_a) or not os.fspath(dir_b):
        raise SyncError("compare folders: both paths are required")

    hashes_a = _hash_dir(prefix, Path(dir_a), ignore)
    hashes_b = _hash_dir(prefix, Path(dir_b), ignore)

    differing = {
        path
        for path in hashes_a.keys() | hashes_b.keys()
        if hashes_a.get(path) != hashes_b.get(path)
    }
    return sorted(differing)