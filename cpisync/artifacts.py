"""Locating changed and present artifacts in the exported package folder."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from cpisync.config import SyncMetadata
from cpisync.keys import ArtifactKey

KNOWN_ARTIFACT_KINDS = ("iFlows", "ValueMappings", "MessageMappings", "Scripts", "CustomTags")
DELETABLE_KINDS = frozenset({"iFlows", "Scripts", "ValueMappings", "MessageMappings"})

_ENTITY_SETS = {
    "iFlows": "IntegrationDesigntimeArtifacts",
    "ValueMappings": "ValueMappingDesigntimeArtifacts",
    "MessageMappings": "MessageMappingDesigntimeArtifacts",
    "Scripts": "ScriptCollectionDesigntimeArtifacts",
}


def detect_changed_artifacts(meta: SyncMetadata, changed_paths: Iterable[str]) -> set[ArtifactKey]:
    """Artifacts touched by the given repo-relative paths.

    Paths are expected as ``<content folder>/<kind>/<artifact id>/<file>``.
    """
    base = meta.content_folder().replace(os.sep, "/").strip("/") + "/"
    keys: set[ArtifactKey] = set()
    for path in changed_paths:
        path = path.strip().replace(os.sep, "/")
        if not path or not path.startswith(base):
            continue
        parts = path[len(base):].split("/", 2)
        if len(parts) < 3:
            continue
        kind, ident = parts[0].strip(), parts[1].strip()
        if not kind or not ident or kind not in KNOWN_ARTIFACT_KINDS:
            continue
        if ".json" in ident:
            continue
        keys.add(ArtifactKey(kind, ident))
    return keys


def list_local_artifact_keys(repo_root: str | os.PathLike[str], meta: SyncMetadata) -> set[ArtifactKey]:
    """Artifacts present as folders under ``<content folder>/<kind>/``."""
    base = Path(repo_root) / meta.content_folder()
    keys: set[ArtifactKey] = set()
    for kind in KNOWN_ARTIFACT_KINDS:
        try:
            entries = list(os.scandir(base / kind))
        except OSError:
            continue
        for entry in entries:
            if not entry.is_dir(follow_symlinks=False):
                continue
            ident = entry.name.strip()
            if not ident or ident.startswith("."):
                continue
            keys.add(ArtifactKey(kind, ident))
    return keys


def partition_changed_keys(
    repo_root: str | os.PathLike[str], meta: SyncMetadata, changed: Iterable[ArtifactKey]
) -> tuple[set[ArtifactKey], set[ArtifactKey]]:
    """Split changed artifacts into those to upload and those to delete.

    An artifact whose folder still exists is uploaded; a missing one is
    deleted, but only for kinds that support deletion.
    """
    base = Path(repo_root) / meta.content_folder()
    to_upload: set[ArtifactKey] = set()
    to_delete: set[ArtifactKey] = set()
    for key in changed:
        if (base / key.kind / key.id).is_dir():
            to_upload.add(key)
        elif key.kind in DELETABLE_KINDS:
            to_delete.add(key)
    return to_upload, to_delete


def kind_to_entity_set(kind: str) -> str:
    """The OData entity set used to update artifacts of ``kind``; empty if none."""
    return _ENTITY_SETS.get(kind, "")