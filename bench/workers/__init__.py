"""
Background workers for concurrent operations.

Provides a thread pool used for:
- Hashing the files of a tree
- Downloading missing files
"""

from bench.workers.thread_pool import (
    TaskOutcome,
    WorkerPool,
    resolve_pool_size,
)

__all__ = [
    'TaskOutcome',
    'WorkerPool',
    'resolve_pool_size',
]
