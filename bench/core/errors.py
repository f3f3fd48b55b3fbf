"""
Exception hierarchy for bench.

Fatal errors abort the running command. Per-item errors (a single
unreadable file, a single failed download) are caught where the item is
processed, logged, and recorded in the operation result instead.
"""

from __future__ import annotations


class BenchError(Exception):
    """Base class for all bench errors."""


class TraversalError(BenchError):
    """The directory tree could not be walked."""


class ReadError(BenchError):
    """A single file or manifest could not be read."""


class ResolutionError(BenchError):
    """An origin locator is not recognized."""


class TransportError(BenchError):
    """An HTTP request failed or returned a non-success status."""


class WriteError(BenchError):
    """A directory, fetched file or manifest could not be written."""


class ConfigError(BenchError):
    """Configuration values are invalid."""


__all__ = [
    'BenchError',
    'TraversalError',
    'ReadError',
    'ResolutionError',
    'TransportError',
    'WriteError',
    'ConfigError',
]
