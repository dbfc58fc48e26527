"""Per-tenant transport records and the index that lists them."""

from __future__ import annotations

import json
import os
import re
import tempfile
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping

from cpisync.config import DEFAULT_CONTENT_FOLDER, validate_env
from cpisync.keys import ArtifactKey, SyncError, sorted_keys

TRANSPORT_RECORD_EXT = ".transport.json"
TRANSPORT_INDEX_FILE = "index.json"
TRANSPORT_TYPES = ("init", "pull", "push", "deliver")
EXPORT_KINDS = ("iFlows", "ValueMappings", "MessageMappings", "Scripts", "CustomTags")

_SANITIZE_REMOVE = str.maketrans("", "", "-:.+/\\ \t\n\r")
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)


def _require_str(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SyncError(f"{name} must be a string")
    return value


def _require_int(data: Mapping[str, Any], name: str) -> int:
    value = data.get(name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise SyncError(f"{name} must be an integer")
    return value


def _key_list(data: Mapping[str, Any], name: str) -> list[ArtifactKey]:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SyncError(f"{name} must be a list")
    return [ArtifactKey.from_dict(item) for item in value]


def _str_list(data: Mapping[str, Any], name: str) -> list[str]:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SyncError(f"{name} must be a list of strings")
    return list(value)


@dataclass
class TransportRecord:
    """One transport, stored as ``.iflowkit/transports/<tenant>/<id>.transport.json``.

    ``upload_remaining``, ``delete_remaining`` and ``deploy_remaining`` hold the
    work still to do against the tenant and serve as retry state.
    """

    schema_version: int = 0
    transport_id: str = ""
    transport_type: str = ""
    package_id: str = ""
    branch: str = ""
    created_at: str = ""
    git_commits: list[str] = field(default_factory=list)
    git_user_name: str = ""
    git_user_email: str = ""
    objects: list[ArtifactKey] = field(default_factory=list)
    deleted_objects: list[ArtifactKey] = field(default_factory=list)
    transport_status: str = ""
    error: str = ""
    upload_remaining: list[ArtifactKey] = field(default_factory=list)
    delete_remaining: list[ArtifactKey] = field(default_factory=list)
    deploy_remaining: list[ArtifactKey] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """The JSON document for this record; empty optional fields are left out."""
        out: dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "transportId": self.transport_id,
            "transportType": self.transport_type,
            "packageId": self.package_id,
            "branch": self.branch,
            "createdAt": self.created_at,
            "gitCommits": list(self.git_commits),
        }
        if self.git_user_name:
            out["gitUserName"] = self.git_user_name
        if self.git_user_email:
            out["gitUserEmail"] = self.git_user_email
        out["objects"] = [k.to_dict() for k in self.objects]
        if self.deleted_objects:
            out["deletedObjects"] = [k.to_dict() for k in self.deleted_objects]
        out["transportStatus"] = self.transport_status
        if self.error:
            out["error"] = self.error
        out["uploadRemaining"] = [k.to_dict() for k in self.upload_remaining]
        if self.delete_remaining:
            out["deleteRemaining"] = [k.to_dict() for k in self.delete_remaining]
        out["deployRemaining"] = [k.to_dict() for k in self.deploy_remaining]
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransportRecord":
        if not isinstance(data, Mapping):
            raise SyncError("transport record must be a JSON object")
        return cls(
            schema_version=_require_int(data, "schemaVersion"),
            transport_id=_require_str(data, "transportId"),
            transport_type=_require_str(data, "transportType"),
            package_id=_require_str(data, "packageId"),
            branch=_require_str(data, "branch"),
            created_at=_require_str(data, "createdAt"),
            git_commits=_str_list(data, "gitCommits"),
            git_user_name=_require_str(data, "gitUserName"),
            git_user_email=_require_str(data, "gitUserEmail"),
            objects=_key_list(data, "objects"),
            deleted_objects=_key_list(data, "deletedObjects"),
            transport_status=_require_str(data, "transportStatus"),
            error=_require_str(data, "error"),
            upload_remaining=_key_list(data, "uploadRemaining"),
            delete_remaining=_key_list(data, "deleteRemaining"),
            deploy_remaining=_key_list(data, "deployRemaining"),
        )


@dataclass
class TransportIndexItem:
    """One entry of ``index.json``."""

    seq: int
    transport_id: str
    transport_type: str
    transport_status: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "transportId": self.transport_id,
            "transportType": self.transport_type,
            "transportStatus": self.transport_status,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransportIndexItem":
        if not isinstance(data, Mapping):
            raise SyncError("index item must be a JSON object")
        return cls(
            seq=_require_int(data, "seq"),
            transport_id=_require_str(data, "transportId"),
            transport_type=_require_str(data, "transportType"),
            transport_status=_require_str(data, "transportStatus"),
            created_at=_require_str(data, "createdAt"),
        )


def _normalize_transport_type(value: str) -> str:
    value = value.strip().lower()
    return value if value in TRANSPORT_TYPES else "push"


def _normalize_transport_status(value: str) -> str:
    """Lower-case ``value``; anything other than ``completed`` is ``pending``."""
    status = value.strip().lower()
    if status == "completed":
        return status
    return "pending"


def _normalized(record: TransportRecord) -> TransportRecord:
    return replace(
        record,
        transport_type=_normalize_transport_type(record.transport_type),
        transport_status=_normalize_transport_status(record.transport_status),
    )


def _parse_created_at(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; anything unparsable is the zero time."""
    match = _RFC3339.match(value.strip())
    if not match:
        return _ZERO_TIME
    year, month, day, hour, minute, second, frac, zone = match.groups()
    micro = int((frac[1:] + "000000")[:6]) if frac else 0
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
        )
    except ValueError:
        return _ZERO_TIME


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


def _dump(data: Any) -> bytes:
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def new_transport_ids(moment: datetime | None = None) -> tuple[str, str]:
    """Return ``(transportId, createdAt)`` for ``moment`` (now by default).

    The id is ``YYYYMMDDTHHMMSSmmmZ`` in UTC; ``createdAt`` is RFC 3339 in UTC
    with second precision.
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    utc = moment.astimezone(timezone.utc)
    created_at = utc.strftime("%Y-%m-%dT%H:%M:%SZ")
    transport_id = utc.strftime("%Y%m%dT%H%M%S") + f"{utc.microsecond // 1000:03d}Z"
    return transport_id, created_at


def sanitize_transport_id(value: str) -> str:
    """Strip separators and whitespace so the id is safe as a file name."""
    return value.strip().translate(_SANITIZE_REMOVE)


class TransportStore:
    """Transport records of one tenant under ``.iflowkit/transports/<tenant>/``."""

    def __init__(self, repo_root: str | os.PathLike[str], tenant: str) -> None:
        self.repo_root = Path(repo_root)
        self.tenant = validate_env(tenant.strip().lower())

    @property
    def tenant_dir(self) -> Path:
        return self.repo_root / ".iflowkit" / "transports" / self.tenant

    @property
    def index_path(self) -> Path:
        return self.tenant_dir / TRANSPORT_INDEX_FILE

    def record_path(self, transport_id: str) -> Path:
        """Where the record with ``transport_id`` is stored."""
        return self.tenant_dir / (sanitize_transport_id(transport_id) + TRANSPORT_RECORD_EXT)

    def persist(self, record: TransportRecord) -> Path:
        """Save a normalized copy of ``record`` and update the index; return its path."""
        self.tenant_dir.mkdir(parents=True, exist_ok=True)
        transport_id = record.transport_id.strip()
        if not transport_id:
            raise SyncError("transportId is required")
        rec = _normalized(replace(record, transport_id=transport_id))
        if rec.schema_version == 0:
            rec.schema_version = 1
        path = self.record_path(rec.transport_id)
        _atomic_write(path, _dump(rec.to_dict()))
        self._upsert_index(rec)
        return path

    def load_record(self, transport_id: str) -> TransportRecord:
        """Read and normalize the record with ``transport_id``."""
        path = self.record_path(transport_id)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise SyncError(f"cannot read transport record {path}: {exc}") from exc
        return _normalized(self._parse_record(raw))

    @staticmethod
    def _parse_record(raw: bytes) -> TransportRecord:
        try:
            return TransportRecord.from_dict(json.loads(raw))
        except (ValueError, SyncError) as exc:
            raise SyncError(f"invalid transport record: {exc}") from exc

    def _load_index(self) -> list[TransportIndexItem] | None:
        try:
            raw = self.index_path.read_bytes()
        except FileNotFoundError:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, Mapping):
                raise SyncError("index must be a JSON object")
            _require_int(data, "schemaVersion")
            items = data.get("items") or []
            if not isinstance(items, list):
                raise SyncError("items must be a list")
            return [TransportIndexItem.from_dict(item) for item in items]
        except (ValueError, SyncError) as exc:
            raise SyncError(f"invalid transport index: {exc}") from exc

    def _save_index(self, items: list[TransportIndexItem]) -> None:
        document = {"schemaVersion": 1, "items": [item.to_dict() for item in items]}
        _atomic_write(self.index_path, _dump(document))

    def _upsert_index(self, rec: TransportRecord) -> None:
        items = self._load_index() or []
        status = _normalize_transport_status(rec.transport_status)
        for item in items:
            if item.transport_id == rec.transport_id:
                item.transport_type = rec.transport_type
                item.transport_status = status
                item.created_at = rec.created_at
                break
        else:
            seq = max((item.seq for item in items), default=0) + 1
            items.append(
                TransportIndexItem(seq, rec.transport_id, rec.transport_type, status, rec.created_at)
            )
        self._save_index(items)

    def _record_paths(self) -> list[Path]:
        try:
            entries = list(os.scandir(self.tenant_dir))
        except FileNotFoundError:
            return []
        return sorted(
            Path(entry.path)
            for entry in entries
            if not entry.is_dir() and entry.name.endswith(TRANSPORT_RECORD_EXT)
        )

    def load_latest(self) -> tuple[TransportRecord, Path] | None:
        """The most recent record and its path, or None when there is none.

        The last index entry wins; without a usable index the record with the
        latest ``createdAt`` is chosen.
        """
        items = self._load_index()
        if items:
            last = items[-1]
            try:
                return self.load_record(last.transport_id), self.record_path(last.transport_id)
            except SyncError:
                pass

        best: TransportRecord | None = None
        best_path: Path | None = None
        best_time = _ZERO_TIME
        for path in self._record_paths():
            try:
                rec = self._parse_record(path.read_bytes())
            except (OSError, SyncError):
                continue
            moment = _parse_created_at(rec.created_at)
            if best is None or moment > best_time:
                best, best_path, best_time = rec, path, moment
        if best is None or best_path is None:
            return None
        return _normalized(best), best_path

    def load_latest_pending(
        self, package_id: str = "", branch: str = "", transport_type: str = ""
    ) -> tuple[TransportRecord, Path] | None:
        """The most recent record that is not completed, matching the given filters.

        Empty filters match anything.
        """
        transport_type = transport_type.strip()
        wanted_type = _normalize_transport_type(transport_type) if transport_type else ""
        items = self._load_index()
        if items is None:
            return None
        for item in reversed(items):
            if _normalize_transport_status(item.transport_status) == "completed":
                continue
            if wanted_type and _normalize_transport_type(item.transport_type) != wanted_type:
                continue
            try:
                rec = self.load_record(item.transport_id)
            except SyncError:
                continue
            if package_id and rec.package_id != package_id:
                continue
            if branch and rec.branch != branch:
                continue
            if wanted_type and rec.transport_type != wanted_type:
                continue
            return rec, self.record_path(rec.transport_id)
        return None


def _list_file_ids(path: Path) -> list[str]:
    """Artifact ids in an OData list export; empty when it cannot be read."""
    try:
        data = json.loads(path.read_bytes())
        results = data["d"].get("results") if isinstance(data.get("d"), Mapping) else None
    except (OSError, ValueError, AttributeError, KeyError, TypeError):
        return []
    if results is None:
        return []
    if not isinstance(results, list):
        return []
    ids = []
    for item in results:
        if not isinstance(item, Mapping):
            return []
        ident = item.get("Id")
        if ident is None:
            continue
        if not isinstance(ident, str):
            return []
        ids.append(ident)
    return ids


def collect_all_objects_from_export(
    repo_root: str | os.PathLike[str], base_folder: str = ""
) -> list[ArtifactKey]:
    """Every object in an exported package folder, sorted.

    Artifact folders are counted, and ids listed in the JSON list files under
    each kind folder are added too.
    """
    base_folder = base_folder.strip() or DEFAULT_CONTENT_FOLDER
    base = Path(repo_root).joinpath(*base_folder.split("/"))
    found: set[ArtifactKey] = set()

    def add(kind: str, ident: str) -> None:
        kind, ident = kind.strip(), ident.strip()
        if kind and ident:
            found.add(ArtifactKey(kind, ident))

    for kind in EXPORT_KINDS:
        kind_dir = base / kind
        try:
            entries = list(os.scandir(kind_dir))
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise SyncError(str(exc)) from exc
        for entry in entries:
            name = entry.name.strip()
            if not name or name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=False):
                add(kind, name)
            elif name.lower().endswith(".json"):
                for ident in _list_file_ids(kind_dir / entry.name):
                    add(kind, ident)
    return sorted_keys(found)


def write_init_transport(
    repo_root: str | os.PathLike[str],
    base_folder: str,
    package_id: str,
    tenant: str,
    branch: str,
    transport_id: str,
    created_at: str,
) -> Path:
    """Record a completed init transport listing every exported object."""
    objects = collect_all_objects_from_export(repo_root, base_folder)
    record = TransportRecord(
        schema_version=1,
        transport_id=transport_id,
        transport_type="init",
        package_id=package_id,
        branch=branch,
        created_at=created_at,
        git_commits=[],
        objects=objects,
        transport_status="completed",
    )
    return TransportStore(repo_root, tenant).persist(record)