"""
Folder synchronization module.

Provides functionality for:
- Recursive directory scanning
- Ignore-file filtering
- Directory hashing, sequential or pooled
- Manifest comparison
- Generate and fetch operations
"""

from bench.core.folder.scanner import (
    FolderScanner,
    IgnoreFilter,
    ScanOptions,
)
from bench.core.folder.hasher import (
    DirectoryHasher,
)
from bench.core.folder.comparer import (
    filter_hashes,
    missing,
)
from bench.core.folder.sync import (
    BenchSync,
    SyncOptions,
    fetch,
    generate,
)

__all__ = [
    # Scanner
    'FolderScanner',
    'IgnoreFilter',
    'ScanOptions',
    # Hasher
    'DirectoryHasher',
    # Comparer
    'filter_hashes',
    'missing',
    # Sync
    'BenchSync',
    'SyncOptions',
    'fetch',
    'generate',
]
