import pytest

from cpisync.compare import compare_folder_trees, sha256_file
from cpisync.ignore import RepoIgnore
from cpisync.keys import SyncError


def _write(root, rel, content):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.fixture
def trees(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    for root in (a, b):
        _write(root, "iFlows/Flow1/src/main.xml", b"<flow/>")
        _write(root, "Scripts/S1/script.groovy", b"println 1")
    return a, b


def test_identical_trees_have_no_differences(trees):
    a, b = trees
    assert compare_folder_trees("IntegrationPackage", a, b) == []


def test_changed_file_is_reported_with_prefix(trees):
    a, b = trees
    _write(b, "Scripts/S1/script.groovy", b"println 2")
    assert compare_folder_trees("IntegrationPackage", a, b) == [
        "IntegrationPackage/Scripts/S1/script.groovy"
    ]


def test_files_on_one_side_only_are_reported_sorted(trees):
    a, b = trees
    _write(a, "iFlows/Flow2/only_a.txt", b"x")
    _write(b, "ValueMappings/VM/only_b.txt", b"y")
    result = compare_folder_trees("IntegrationPackage", a, b)
    assert result == [
        "IntegrationPackage/ValueMappings/VM/only_b.txt",
        "IntegrationPackage/iFlows/Flow2/only_a.txt",
    ]
    assert result == sorted(result)


def test_comparison_is_symmetric(trees):
    a, b = trees
    _write(a, "iFlows/Flow1/src/main.xml", b"<changed/>")
    _write(b, "CustomTags/T/extra.txt", b"z")
    assert compare_folder_trees("IntegrationPackage", a, b) == compare_folder_trees(
        "IntegrationPackage", b, a
    )


def test_prefix_is_normalized(trees):
    a, b = trees
    _write(b, "Scripts/S1/script.groovy", b"changed")
    assert compare_folder_trees(" /IntegrationPackage/ ", a, b) == [
        "IntegrationPackage/Scripts/S1/script.groovy"
    ]


def test_ignore_rules_apply_to_repo_relative_paths(trees):
    a, b = trees
    _write(a, "iFlows/Flow1/META-INF/metainfo.prop", b"time=1")
    _write(b, "iFlows/Flow1/META-INF/metainfo.prop", b"time=2")
    ignore = RepoIgnore(["IntegrationPackage/**/metainfo.prop"])
    assert compare_folder_trees("IntegrationPackage", a, b, ignore) == []
    assert compare_folder_trees("IntegrationPackage", a, b) == [
        "IntegrationPackage/iFlows/Flow1/META-INF/metainfo.prop"
    ]


def test_ignored_file_on_one_side_only_is_not_reported(trees):
    a, b = trees
    _write(a, "iFlows/Flow1/notes.log", b"noise")
    ignore = RepoIgnore(["*.log"])
    assert compare_folder_trees("IntegrationPackage", a, b, ignore) == []


def test_missing_folder_counts_as_empty(tmp_path, trees):
    a, _ = trees
    missing = tmp_path / "missing"
    assert compare_folder_trees("IntegrationPackage", a, missing) == [
        "IntegrationPackage/Scripts/S1/script.groovy",
        "IntegrationPackage/iFlows/Flow1/src/main.xml",
    ]


def test_both_missing_is_equal(tmp_path):
    assert compare_folder_trees("P", tmp_path / "x", tmp_path / "y") == []


def test_file_instead_of_folder_raises(tmp_path, trees):
    a, _ = trees
    not_a_dir = _write(tmp_path, "plain.txt", b"data")
    with pytest.raises(SyncError, match="not a directory"):
        compare_folder_trees("IntegrationPackage", a, not_a_dir)


def test_empty_prefix_raises(trees):
    a, b = trees
    with pytest.raises(SyncError, match="repoRelPrefix is required"):
        compare_folder_trees(" / ", a, b)


def test_empty_path_raises(trees):
    a, _ = trees
    with pytest.raises(SyncError, match="both paths are required"):
        compare_folder_trees("IntegrationPackage", a, "")


def test_sha256_of_empty_file(tmp_path):
    path = _write(tmp_path, "empty", b"")
    assert sha256_file(path) == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_sha256_depends_only_on_content(tmp_path):
    first = _write(tmp_path, "one.bin", b"same content")
    second = _write(tmp_path, "two.bin", b"same content")
    third = _write(tmp_path, "three.bin", b"other content")
    assert sha256_file(first) == sha256_file(second)
    assert sha256_file(first) != sha256_file(third)
    assert len(sha256_file(first)) == 64