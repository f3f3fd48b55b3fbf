"""
Core data models for bench.

This module defines the data structures shared across the package:
- Hash items and hash sets (manifest entries)
- Manifests (hash set plus optional origin label)
- Results of the generate and fetch operations

Models carry no I/O; reading and writing them lives in
``bench.core.manifest`` and the origin services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional


# =============================================================================
# Constants
# =============================================================================

# Separator between name and digest on a manifest line
HASH_SPLIT = ":"

# Prefix of the origin line in a manifest
SOURCE_MARKER = "#@"

LINE_SEPARATOR = "\n"

# File names at the root of a synchronized tree
PATCH_FILE = ".patch"
IGNORE_FILE = ".benchignore"


# =============================================================================
# Manifest Models
# =============================================================================

@dataclass(frozen=True)
class HashItem:
    """
    One manifest entry.

    ``name`` is a slash-separated path relative to the tree root,
    ``digest`` the lowercase hex digest of the file contents.
    """
    name: str
    digest: str

    @property
    def signature(self) -> str:
        """Combined name and digest, the identity used when diffing."""
        return self.name + HASH_SPLIT + self.digest

    def __str__(self) -> str:
        return self.signature


# Ordered sequence of hash items in walk order. The order carries no meaning.
HashSet = list[HashItem]


@dataclass
class Manifest:
    """Items of a tree plus the origin they were last fetched from."""
    items: HashSet = field(default_factory=list)
    origin: Optional[str] = None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[HashItem]:
        return iter(self.items)

    @property
    def names(self) -> list[str]:
        return [item.name for item in self.items]

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, str]],
        origin: Optional[str] = None
    ) -> 'Manifest':
        """Build a manifest from (name, digest) pairs."""
        return cls(items=[HashItem(name, digest) for name, digest in pairs], origin=origin)


# =============================================================================
# Operation Results
# =============================================================================

@dataclass
class GenerateResult:
    """Result of generating a manifest for a tree."""
    manifest_path: Path
    items: int
    ignored: int
    duration: float = 0.0


@dataclass
class FetchFailure:
    """A single item that could not be fetched."""
    name: str
    error: str


@dataclass
class FetchResult:
    """Result of fetching a tree from a reference origin."""
    source: str
    reference_label: Optional[str]
    verified: bool
    missing: HashSet = field(default_factory=list)
    fetched: list[str] = field(default_factory=list)
    failed: list[FetchFailure] = field(default_factory=list)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        """True if every missing item was fetched."""
        return not self.failed

    @property
    def failed_names(self) -> list[str]:
        return [failure.name for failure in self.failed]
