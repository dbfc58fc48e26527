import pytest

from cpisync.keys import SyncError
from cpisync.repo_init import (
    ensure_empty_dir,
    ensure_sync_repo_gitignore,
    validate_package_id,
)


def test_valid_package_id_is_trimmed():
    assert validate_package_id("  com.iflowkit.cpi.email \n") == "com.iflowkit.cpi.email"


@pytest.mark.parametrize("value", ["", "   ", "\t\n"])
def test_empty_package_id_is_rejected(value):
    with pytest.raises(SyncError, match="packageId is required"):
        validate_package_id(value)


@pytest.mark.parametrize("value", ["com.a b", "com.a\tb", "com.a\rb"])
def test_package_id_with_whitespace_is_rejected(value):
    with pytest.raises(SyncError, match="must not contain whitespace"):
        validate_package_id(value)


@pytest.mark.parametrize("value", ["com/a", "com\\a"])
def test_package_id_with_separator_is_rejected(value):
    with pytest.raises(SyncError, match="must not contain path separators"):
        validate_package_id(value)


def test_package_id_length_limit():
    at_limit = "a" * 128
    assert validate_package_id(at_limit) == at_limit
    with pytest.raises(SyncError, match="too long"):
        validate_package_id("a" * 129)


def test_ensure_empty_dir_creates_missing_nested_dir(tmp_path):
    target = tmp_path / "parent" / "pkg"
    result = ensure_empty_dir(target)
    assert result == target
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_ensure_empty_dir_accepts_existing_empty_dir(tmp_path):
    target = tmp_path / "pkg"
    target.mkdir()
    assert ensure_empty_dir(target) == target


def test_ensure_empty_dir_rejects_non_empty_dir(tmp_path):
    target = tmp_path / "pkg"
    target.mkdir()
    (target / "file.txt").write_text("x")
    with pytest.raises(SyncError, match="target directory is not empty"):
        ensure_empty_dir(target)


def test_ensure_empty_dir_rejects_file(tmp_path):
    target = tmp_path / "pkg"
    target.write_text("x")
    with pytest.raises(SyncError, match="exists and is not a directory"):
        ensure_empty_dir(target)


def test_gitignore_is_created_with_defaults(tmp_path):
    path = ensure_sync_repo_gitignore(tmp_path)
    assert path == tmp_path / ".gitignore"
    assert path.read_text() == ".DS_Store\n*.log\n"


def test_gitignore_missing_entries_are_appended(tmp_path):
    path = tmp_path / ".gitignore"
    path.write_text("node_modules")
    ensure_sync_repo_gitignore(tmp_path)
    assert path.read_text() == "node_modules\n.DS_Store\n*.log\n"


def test_gitignore_existing_entries_are_kept(tmp_path):
    path = tmp_path / ".gitignore"
    path.write_text("*.log\nbuild/\n")
    ensure_sync_repo_gitignore(tmp_path)
    assert path.read_text() == "*.log\nbuild/\n.DS_Store\n"


def test_gitignore_update_is_idempotent(tmp_path):
    ensure_sync_repo_gitignore(tmp_path)
    first = (tmp_path / ".gitignore").read_text()
    ensure_sync_repo_gitignore(tmp_path)
    assert (tmp_path / ".gitignore").read_text() == first