"""Naming conventions for transport commits and tags."""

from __future__ import annotations


def _strip_prefix(text: str, prefix: str) -> str:
    return text[len(prefix):] if text.startswith(prefix) else text


def transport_tag_name(transport_id: str, branch: str) -> str:
    """Tag name ``<transportId>_<branch>``, unique per environment branch.

    Ref and remote prefixes are dropped from the branch, and slashes and
    spaces become dashes.
    """
    transport_id = transport_id.strip()
    name = branch.strip()
    for prefix in ("refs/heads/", "refs/remotes/", "origin/"):
        name = _strip_prefix(name, prefix)
    name = name.replace("/", "-").replace(" ", "-").strip("-")
    return f"{transport_id}_{name or 'unknown'}"


def build_transport_commit_message(
    transport_id: str, transport_type: str, commit_type: str, extra: str
) -> str:
    """Commit message ``<transportId> <transportType> <commitType>[ <extra>]``."""
    base = f"{transport_id} {transport_type} {commit_type}"
    extra = extra.strip()
    return f"{base} {extra}" if extra else base