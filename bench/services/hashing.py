"""
Hashing service for content digests.

Every manifest entry carries the digest of one file. The digest only has to
be stable and well distributed; the default is a 160-bit SHA-1.
"""

from __future__ import annotations

import hashlib
from enum import Enum, auto
from pathlib import Path
from typing import Optional

import xxhash

from bench.core.errors import ConfigError


class HashAlgorithm(Enum):
    """Supported hash algorithms."""
    MD5 = auto()
    SHA1 = auto()
    SHA256 = auto()
    SHA512 = auto()
    XXH64 = auto()  # Fast non-cryptographic hash

    @property
    def label(self) -> str:
        """Lowercase name used in settings files and on the command line."""
        return self.name.lower()

    @property
    def hex_length(self) -> int:
        """Length of the hex digest produced by this algorithm."""
        return _HEX_LENGTHS[self]

    @classmethod
    def from_string(cls, value: str) -> 'HashAlgorithm':
        """Look up an algorithm by name, case-insensitively."""
        normalized = value.strip().replace('-', '').upper()
        try:
            return cls[normalized]
        except KeyError:
            choices = ', '.join(a.label for a in cls)
            raise ConfigError(f"Unknown hash algorithm '{value}' (expected one of: {choices})") from None


_HEX_LENGTHS = {
    HashAlgorithm.MD5: 32,
    HashAlgorithm.SHA1: 40,
    HashAlgorithm.SHA256: 64,
    HashAlgorithm.SHA512: 128,
    HashAlgorithm.XXH64: 16,
}


class HashingService:
    """Service for computing content digests."""

    def __init__(
        self,
        default_algorithm: HashAlgorithm = HashAlgorithm.SHA1,
        chunk_size: int = 65536
    ):
        self.default_algorithm = default_algorithm
        self.chunk_size = chunk_size

    def digest(
        self,
        data: bytes,
        algorithm: Optional[HashAlgorithm] = None
    ) -> str:
        """Compute the lowercase hex digest of a byte buffer."""
        hasher = self._create_hasher(algorithm or self.default_algorithm)
        hasher.update(data)
        return hasher.hexdigest()

    def hash_string(
        self,
        text: str,
        algorithm: Optional[HashAlgorithm] = None,
        encoding: str = 'utf-8'
    ) -> str:
        """Compute the digest of a string."""
        return self.digest(text.encode(encoding), algorithm)

    def hash_file(
        self,
        path: Path | str,
        algorithm: Optional[HashAlgorithm] = None
    ) -> str:
        """
        Compute the digest of a file's contents.

        The file is read in chunks, the result equals ``digest`` applied
        to the whole file.

        Raises:
            OSError: If the file can not be opened or read
        """
        hasher = self._create_hasher(algorithm or self.default_algorithm)

        with open(path, 'rb') as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)

        return hasher.hexdigest()

    def _create_hasher(self, algorithm: HashAlgorithm):
        """Create a hasher for the given algorithm."""
        if algorithm == HashAlgorithm.MD5:
            return hashlib.md5()
        elif algorithm == HashAlgorithm.SHA1:
            return hashlib.sha1()
        elif algorithm == HashAlgorithm.SHA256:
            return hashlib.sha256()
        elif algorithm == HashAlgorithm.SHA512:
            return hashlib.sha512()
        elif algorithm == HashAlgorithm.XXH64:
            return xxhash.xxh64()
        else:
            raise ValueError(f"Unknown algorithm: {algorithm}")
