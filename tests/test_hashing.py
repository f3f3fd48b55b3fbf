# tests/test_hashing.py
"""
Tests for bench.services.hashing.
"""
import hashlib

import pytest
import xxhash

from bench.core.errors import ConfigError
from bench.services.hashing import HashAlgorithm, HashingService


def test_default_digest_is_sha1_hex():
    service = HashingService()

    result = service.digest(b"hello")

    assert result == hashlib.sha1(b"hello").hexdigest()
    assert len(result) == HashAlgorithm.SHA1.hex_length == 40


@pytest.mark.parametrize("algorithm", list(HashAlgorithm))
def test_digest_length_is_fixed(algorithm):
    service = HashingService(algorithm)

    short = service.digest(b"")
    long = service.digest(b"x" * 100_000)

    assert len(short) == len(long) == algorithm.hex_length
    assert short == short.lower()


def test_xxh64_uses_xxhash():
    service = HashingService(HashAlgorithm.XXH64)

    assert service.digest(b"data") == xxhash.xxh64(b"data").hexdigest()


def test_hash_file_matches_digest_of_contents(tmp_path):
    path = tmp_path / "big.bin"
    data = bytes(range(256)) * 1000
    path.write_bytes(data)

    service = HashingService(chunk_size=1000)

    assert service.hash_file(path) == service.digest(data)


def test_hash_file_missing_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        HashingService().hash_file(tmp_path / "nope")


def test_hash_string_encodes_utf8():
    service = HashingService()

    assert service.hash_string("ä") == service.digest("ä".encode("utf-8"))


def test_algorithm_from_string():
    assert HashAlgorithm.from_string("sha256") is HashAlgorithm.SHA256
    assert HashAlgorithm.from_string("SHA-1") is HashAlgorithm.SHA1
    assert HashAlgorithm.from_string(" xxh64 ") is HashAlgorithm.XXH64

    with pytest.raises(ConfigError):
        HashAlgorithm.from_string("crc32")
