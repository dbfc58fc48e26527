"""Repository metadata, branch-to-tenant mapping and branch rules."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from cpisync.keys import SyncError

DEFAULT_CONTENT_FOLDER = "IntegrationPackage"
ENVIRONMENTS = ("dev", "qas", "prd")


@dataclass
class SyncMetadata:
    """Contents of ``.iflowkit/package.json``."""

    schema_version: int = 0
    profile_id: str = ""
    cpi_tenant_levels: int = 0
    package_id: str = ""
    package_name: str = ""
    base_folder: str = ""
    git_remote: str = ""
    git_provider: str = ""
    created_at: str = ""

    _FIELDS = {
        "schemaVersion": "schema_version",
        "profileId": "profile_id",
        "cpiTenantLevels": "cpi_tenant_levels",
        "packageId": "package_id",
        "packageName": "package_name",
        "baseFolder": "base_folder",
        "gitRemote": "git_remote",
        "gitProvider": "git_provider",
        "createdAt": "created_at",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SyncMetadata":
        if not isinstance(data, Mapping):
            raise SyncError("package metadata must be a JSON object")
        values: dict[str, Any] = {}
        for json_name, attr in cls._FIELDS.items():
            if json_name not in data or data[json_name] is None:
                continue
            value = data[json_name]
            if attr in ("schema_version", "cpi_tenant_levels"):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise SyncError(f"{json_name} must be an integer")
            elif not isinstance(value, str):
                raise SyncError(f"{json_name} must be a string")
            values[attr] = value
        return cls(**values)

    def content_folder(self) -> str:
        """The folder holding exported package content, relative to the repo root."""
        folder = self.base_folder.strip()
        if not folder:
            return DEFAULT_CONTENT_FOLDER
        return folder.strip("/")


def find_sync_repo_root(start: str | os.PathLike[str]) -> Path:
    """Walk up from ``start`` to the directory that holds ``.iflowkit``."""
    path = Path(start)
    for candidate in (path, *path.parents):
        if (candidate / ".iflowkit").is_dir():
            return candidate
    raise SyncError("not inside a sync repository: .iflowkit directory not found")


def load_package_metadata(repo_root: str | os.PathLike[str]) -> SyncMetadata:
    """Read and parse ``.iflowkit/package.json`` under ``repo_root``."""
    pkg_path = Path(repo_root) / ".iflowkit" / "package.json"
    try:
        raw = pkg_path.read_bytes()
    except OSError:
        raise SyncError(f"missing metadata file: expected {pkg_path}") from None
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise SyncError(f"invalid package.json: {exc}") from exc
    try:
        return SyncMetadata.from_dict(data)
    except SyncError as exc:
        raise SyncError(f"invalid package.json: {exc}") from exc


def validate_env(env: str) -> str:
    """Return ``env`` if it names a known tenant environment."""
    if env not in ENVIRONMENTS:
        raise SyncError(f"invalid env {env!r}: expected dev, qas or prd")
    return env


def resolve_target_tenant(meta: SyncMetadata, branch: str) -> tuple[str, bool]:
    """Map a git branch to a tenant environment.

    Returns the tenant (dev, qas or prd) and whether the branch is one of the
    environment branches themselves.
    """
    branch = branch.strip()
    if not branch:
        raise SyncError("cannot resolve tenant from empty branch")
    levels = meta.cpi_tenant_levels
    if branch == "dev":
        return "dev", True
    if branch == "qas":
        if levels != 3:
            raise SyncError(
                f"branch 'qas' is not enabled: cpiTenantLevels={levels} (expected 3)"
            )
        return "qas", True
    if branch == "prd":
        if levels not in (2, 3):
            raise SyncError(f"invalid cpiTenantLevels={levels} (expected 2 or 3)")
        return "prd", True
    if branch.startswith(("feature/", "bugfix/")):
        return "dev", False
    qas = ", qas" if levels == 3 else ""
    raise SyncError(
        f"branch {json.dumps(branch)} is not supported by sync "
        f"(allowed: dev{qas}, prd, feature/*, bugfix/*)"
    )


def validate_to_flag(to_flag: str, tenant: str) -> None:
    """Enforce the ``--to`` confirmation rule: mandatory for prd, consistent otherwise."""
    to_flag = to_flag.strip().lower()
    tenant = tenant.strip().lower()
    if tenant == "prd":
        if to_flag != "prd":
            raise SyncError(
                "refusing to run against PRD without explicit confirmation: pass --to prd"
            )
        return
    if to_flag and to_flag != tenant:
        raise SyncError(f"--to {to_flag} does not match target tenant {tenant}")


def tenant_display(env: str) -> str:
    """Upper-case tenant name for messages."""
    return env.strip().upper() or "UNKNOWN"


def is_allowed_push_branch(branch: str) -> bool:
    """True for environment branches and feature/bugfix work branches."""
    branch = branch.strip()
    return branch in ENVIRONMENTS or branch.startswith(("feature/", "bugfix/"))


def filter_non_transport_changes(paths: Iterable[str]) -> list[str]:
    """Drop empty paths and paths under ``.iflowkit/transports``."""
    out = []
    for path in paths:
        norm = path.strip().replace(os.sep, "/")
        if not norm:
            continue
        if norm == ".iflowkit/transports" or norm.startswith(".iflowkit/transports/"):
            continue
        out.append(path)
    return out