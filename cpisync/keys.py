"""Artifact keys and the small collection helpers built on them."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from typing import Any, Iterable, Mapping


class SyncError(Exception):
    """Raised when a sync operation cannot proceed."""


@dataclass(frozen=True, order=True)
class ArtifactKey:
    """Identifies an artifact by its kind folder and artifact id.

    Keys order by kind first and id second.
    """

    kind: str
    id: str

    def is_zero(self) -> bool:
        """True when the kind or the id is missing."""
        return not self.kind or not self.id

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "id": self.id}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArtifactKey":
        if not isinstance(data, Mapping):
            raise SyncError(f"artifact key must be an object, got {type(data).__name__}")
        kind = data.get("kind") or ""
        ident = data.get("id") or ""
        if not isinstance(kind, str) or not isinstance(ident, str):
            raise SyncError("artifact key fields 'kind' and 'id' must be strings")
        return cls(kind=kind, id=ident)


def sorted_keys(keys: Iterable[ArtifactKey]) -> list[ArtifactKey]:
    """Return the distinct, non-empty keys sorted by kind, then id."""
    return sorted({k for k in keys if not k.is_zero()})


def merge_keys(existing: Iterable[ArtifactKey], add: Iterable[ArtifactKey]) -> list[ArtifactKey]:
    """Union of two key collections, without empty keys, sorted."""
    return sorted_keys(chain(existing, add))


def remove_key(keys: Iterable[ArtifactKey], key: ArtifactKey) -> list[ArtifactKey]:
    """Return the keys with every occurrence of ``key`` left out."""
    return [k for k in keys if k != key]


def merge_strings(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Merge two string lists into a sorted list of distinct, trimmed, non-empty strings."""
    return sorted({s.strip() for s in chain(a, b) if s.strip()})


def split_lines(text: str) -> list[str]:
    """Return the sorted distinct non-empty trimmed lines of ``text``."""
    return sorted({line.strip() for line in text.split("\n") if line.strip()})


def normalize_path_slash(path: str) -> str:
    """Use forward slashes so paths compare the same on every platform."""
    return path.replace("\\", "/").strip()