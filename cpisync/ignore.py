"""Ignore patterns for repo-relative paths, read from ``.iflowkit/ignore``."""

from __future__ import annotations

import os
import posixpath
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from cpisync.keys import SyncError

REPO_IGNORE_FILE_NAME = "ignore"

# Files that change on every export without any functional impact.
DEFAULT_REPO_IGNORE_PATTERNS = (
    "IntegrationPackage/**/metainfo.prop",
    "IntegrationPackage/**/src/main/resources/parameters.prop",
)

_REGEX_SPECIALS = frozenset(".+()|^${}[]\\")


@dataclass(frozen=True)
class _IgnorePattern:
    raw: str
    regex: re.Pattern[str]


def _to_slash(path: str) -> str:
    return path.replace(os.sep, "/") if os.sep != "/" else path


def _trim_dot_slash(path: str) -> str:
    return path[2:] if path.startswith("./") else path


def _clean(path: str) -> str:
    """Lexically clean a slash path the way a POSIX path cleaner does."""
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = cleaned[1:]
    return cleaned


def _repo_ignore_path(repo_root: str | os.PathLike[str]) -> Path:
    return Path(repo_root) / ".iflowkit" / REPO_IGNORE_FILE_NAME


def glob_to_regex(glob: str) -> str:
    """Convert a glob into an anchored regular expression.

    ``**`` becomes ``.*``, ``*`` becomes ``[^/]*`` and ``?`` becomes ``[^/]``.
    """
    glob = _to_slash(glob)
    # Cleaning would mangle '**', so it only applies to patterns without it.
    if "**" not in glob:
        glob = _clean(glob)

    parts = ["^"]
    i = 0
    while i < len(glob):
        ch = glob[i]
        if ch == "*":
            if glob[i + 1:i + 2] == "*":
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        elif ch in _REGEX_SPECIALS:
            parts.append("\\" + ch)
        else:
            parts.append(ch)
        i += 1
    parts.append("$")
    return "".join(parts)


def _compile_pattern(raw: str) -> _IgnorePattern:
    pattern = _to_slash(raw).strip()
    if not pattern:
        raise SyncError("empty pattern")
    if "/" not in pattern:
        pattern = "**/" + pattern
    pattern = _trim_dot_slash(pattern)
    try:
        regex = re.compile(glob_to_regex(pattern))
    except re.error as exc:
        raise SyncError(str(exc)) from exc
    return _IgnorePattern(raw=raw, regex=regex)


class RepoIgnore:
    """Matches repo-relative, slash-separated paths against ignore patterns.

    A pattern without ``/`` is treated as ``**/<pattern>``.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns: list[_IgnorePattern] = []
        self._seen: set[str] = set()
        for raw in patterns:
            self._add(raw)

    @property
    def patterns(self) -> list[str]:
        """The normalized patterns in the order they were added."""
        return [p.raw for p in self._patterns]

    def _add(self, raw: str, origin: str = "", line_no: int = 0) -> None:
        norm = _trim_dot_slash(_to_slash(raw.strip()))
        if not norm or norm in self._seen:
            return
        try:
            compiled = _compile_pattern(norm)
        except SyncError as exc:
            if not origin:
                raise
            raise SyncError(f"invalid ignore pattern at {origin}:{line_no}: {exc}") from exc
        self._seen.add(norm)
        self._patterns.append(compiled)

    @classmethod
    def load(cls, repo_root: str | os.PathLike[str]) -> "RepoIgnore":
        """Built-in defaults followed by the patterns in ``.iflowkit/ignore``, if present."""
        ignore = cls(DEFAULT_REPO_IGNORE_PATTERNS)
        path = _repo_ignore_path(repo_root)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ignore
        for line_no, line in enumerate(text.split("\n"), start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            ignore._add(line, str(path), line_no)
        return ignore

    def is_ignored(self, path: str) -> bool:
        """True when ``path`` matches any pattern."""
        if not self._patterns:
            return False
        norm = _trim_dot_slash(_to_slash(path.strip()))
        if not norm:
            return False
        return any(p.regex.fullmatch(norm) for p in self._patterns)

    def filter(self, paths: Iterable[str]) -> list[str]:
        """Drop blank and ignored paths, then de-duplicate keeping order."""
        if not self._patterns:
            return dedupe_stable(paths)
        return dedupe_stable(p for p in paths if p.strip() and not self.is_ignored(p))


def ensure_repo_ignore_file(repo_root: str | os.PathLike[str]) -> Path:
    """Create ``.iflowkit/ignore`` with the default template unless it exists."""
    folder = Path(repo_root) / ".iflowkit"
    folder.mkdir(parents=True, exist_ok=True)
    path = _repo_ignore_path(repo_root)
    try:
        path.stat()
        return path
    except FileNotFoundError:
        pass

    lines = [
        "# iflowkit sync ignore patterns (repo-relative paths)",
        "#",
        "# Default volatile files (safe to ignore):",
        *DEFAULT_REPO_IGNORE_PATTERNS,
        "",
    ]
    _atomic_write(path, "\n".join(lines).encode("utf-8"))
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


def dedupe_stable(paths: Iterable[str]) -> list[str]:
    """Slash-normalized, trimmed, non-empty paths with duplicates removed, in order."""
    seen: set[str] = set()
    out: list[str] = []
    for path in paths:
        norm = _to_slash(path.strip())
        if not norm or norm in seen:
            continue
        seen.add(norm)
        out.append(norm)
    return out