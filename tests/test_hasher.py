# tests/test_hasher.py
"""
Tests for DirectoryHasher.
"""
import os
from pathlib import Path

import pytest

from bench.core.errors import ReadError
from bench.core.folder.hasher import DirectoryHasher
from bench.core.folder.scanner import FolderScanner
from bench.core.models import HashItem
from bench.services.hashing import HashAlgorithm, HashingService


needs_permissions = pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="file permissions are not enforced for root",
)


@pytest.fixture
def tree(make_tree):
    return make_tree({f"dir{i % 3}/file{i:02d}.txt": f"content {i}" for i in range(20)})


def test_hash_tree_matches_file_digests(tree):
    hashing = HashingService()

    hashes = DirectoryHasher(hashing).hash_tree(tree)

    assert len(hashes) == 20
    for item in hashes:
        assert item.digest == hashing.hash_file(tree / item.name)


def test_sequential_and_pooled_agree(tree):
    sequential = DirectoryHasher(pool_size=1).hash_tree(tree)
    pooled = DirectoryHasher(pool_size=4).hash_tree(tree)

    assert pooled == sequential
    assert [item.name for item in sequential] == FolderScanner().list_files(tree)


def test_empty_tree(tmp_path):
    assert DirectoryHasher().hash_tree(tmp_path) == []
    assert DirectoryHasher(pool_size=4).hash_tree(tmp_path) == []


def test_algorithm_is_configurable(make_tree):
    root = make_tree({"a": "x"})

    hashes = DirectoryHasher(HashingService(HashAlgorithm.SHA256)).hash_tree(root)

    assert hashes == [HashItem("a", HashingService(HashAlgorithm.SHA256).digest(b"x"))]


def test_hash_item_missing_file_raises(tmp_path):
    with pytest.raises(ReadError):
        DirectoryHasher().hash_item(tmp_path, "absent")


@needs_permissions
@pytest.mark.parametrize("pool_size", [1, 4])
def test_unreadable_file_is_skipped(make_tree, pool_size):
    root = make_tree({"a": "1", "locked": "2", "z": "3"})
    os.chmod(root / "locked", 0)
    try:
        hashes = DirectoryHasher(pool_size=pool_size).hash_tree(root)
    finally:
        os.chmod(root / "locked", 0o644)

    assert [item.name for item in hashes] == ["a", "z"]


@needs_permissions
@pytest.mark.parametrize("pool_size", [1, 4])
def test_unreadable_file_raises_with_fail_fast(make_tree, pool_size):
    root = make_tree({"a": "1", "locked": "2"})
    os.chmod(root / "locked", 0)
    try:
        with pytest.raises(ReadError):
            DirectoryHasher(pool_size=pool_size, fail_fast=True).hash_tree(root)
    finally:
        os.chmod(root / "locked", 0o644)


@pytest.fixture
def failing_read(monkeypatch):
    """Make hashing fail for files named ``broken``."""
    hash_file = HashingService.hash_file

    def fake_hash_file(self, path, algorithm=None):
        if Path(path).name == "broken":
            raise OSError("read failed")
        return hash_file(self, path, algorithm)

    monkeypatch.setattr(HashingService, "hash_file", fake_hash_file)


@pytest.mark.parametrize("pool_size", [1, 4])
def test_read_failure_omits_file(make_tree, failing_read, pool_size):
    root = make_tree({"a": "1", "broken": "2", "sub/z": "3"})

    hashes = DirectoryHasher(pool_size=pool_size).hash_tree(root)

    assert [item.name for item in hashes] == ["a", "sub/z"]


@pytest.mark.parametrize("pool_size", [1, 4])
def test_read_failure_raises_with_fail_fast(make_tree, failing_read, pool_size):
    root = make_tree({"a": "1", "broken": "2"})

    with pytest.raises(ReadError):
        DirectoryHasher(pool_size=pool_size, fail_fast=True).hash_tree(root)
