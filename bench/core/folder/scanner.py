"""
Directory scanner and ignore filter.

Provides:
- Sorted, recursive enumeration of the regular files below a root
- Slash-normalized relative names
- Ignore files with glob and prefix patterns
- Configurable handling of walk errors
"""

from __future__ import annotations

import logging
import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from bench.core.errors import TraversalError


@dataclass
class ScanOptions:
    """Options for directory scanning."""
    follow_symlinks: bool = False

    # Relative names never listed (the manifest file itself)
    exclude_names: set[str] = field(default_factory=set)

    # Error handling
    ignore_walk_errors: bool = False


class IgnoreFilter:
    """
    Matches relative paths against ignore patterns.

    A path is ignored when, for any pattern:
    - the pattern ends with ``/`` and the path starts with it
    - the path equals the pattern
    - the path matches the pattern as a glob, where ``*`` and ``?``
      never match ``/`` and ``[...]`` is a character class
    """

    def __init__(self, patterns: Optional[list[str]] = None):
        self.patterns: list[str] = []
        self._compiled: list[tuple[str, Optional[re.Pattern]]] = []

        for pattern in patterns or []:
            self.add(pattern)

    def __len__(self) -> int:
        return len(self.patterns)

    def add(self, pattern: str) -> None:
        """Add a rule, skipping comments and blank lines."""
        pattern = pattern.strip()
        if not pattern or pattern.startswith('#'):
            return

        self.patterns.append(pattern)
        try:
            compiled = re.compile(self._pattern_to_regex(pattern))
        except re.error:
            # Malformed glob, still usable for prefix and exact matches
            compiled = None
        self._compiled.append((pattern, compiled))

    def match(self, path: str) -> bool:
        """Return True if ``path`` should be excluded."""
        path = path.replace(os.sep, '/')

        for pattern, regex in self._compiled:
            if pattern.endswith('/') and path.startswith(pattern):
                return True
            if path == pattern:
                return True
            if regex is not None and regex.fullmatch(path):
                return True

        return False

    @staticmethod
    def _pattern_to_regex(pattern: str) -> str:
        """Convert a glob pattern to a regex matching whole paths."""
        result = []
        i = 0

        while i < len(pattern):
            c = pattern[i]

            if c == '*':
                result.append('[^/]*')
            elif c == '?':
                result.append('[^/]')
            elif c == '[':
                # Character class
                j = i + 1
                if j < len(pattern) and pattern[j] in '!^':
                    result.append('[^')
                    j += 1
                else:
                    result.append('[')
                start = j
                while j < len(pattern) and pattern[j] != ']':
                    j += 1
                if j >= len(pattern):
                    raise re.error(f"unterminated character class in {pattern!r}")
                result.append(pattern[start:j].replace('\\', '\\\\'))
                result.append(']')
                i = j
            elif c == '\\' and i + 1 < len(pattern):
                i += 1
                result.append(re.escape(pattern[i]))
            else:
                result.append(re.escape(c))

            i += 1

        return ''.join(result)

    @classmethod
    def load(
        cls,
        path: Path | str,
        logger: Optional[logging.Logger] = None
    ) -> 'IgnoreFilter':
        """Create a filter from an ignore file. A missing file yields an empty filter."""
        logger = logger or logging.getLogger(__name__)
        path = Path(path)

        if not path.exists():
            logger.debug(f"IgnoreFilter - No ignore file at {path}")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8', errors='ignore') as f:
                patterns = f.read().split('\n')
        except OSError as e:
            logger.warning(f"IgnoreFilter - Could not read ignore file {path}: {e}")
            return cls()

        ignore_filter = cls(patterns)
        logger.info(f"IgnoreFilter - Loaded {len(ignore_filter)} rules from {path}")
        return ignore_filter


class FolderScanner:
    """
    Enumerates the regular files of a directory tree.

    Directories are never listed. Symlinks are listed when they resolve
    to a regular file; sockets, fifos and devices are skipped.
    """

    def __init__(
        self,
        options: Optional[ScanOptions] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.options = options or ScanOptions()
        self.logger = logger or logging.getLogger(__name__)

    def list_files(self, root_path: Path | str) -> list[str]:
        """
        List the relative names of all files below ``root_path``.

        Raises:
            TraversalError: If the root or a sub-directory can not be walked
        """
        return list(self.iter_files(root_path))

    def iter_files(self, root_path: Path | str) -> Iterator[str]:
        """Lazily yield relative file names in sorted walk order."""
        root_path = self._check_root(root_path)

        def on_walk_error(error: OSError) -> None:
            if self.options.ignore_walk_errors:
                self.logger.warning(f"FolderScanner - Walk error at {error.filename}: {error.strerror}")
                return
            raise TraversalError(f"Failed to walk {error.filename}: {error.strerror}") from error

        for dirpath, dirnames, filenames in os.walk(
            root_path,
            topdown=True,
            followlinks=self.options.follow_symlinks,
            onerror=on_walk_error
        ):
            current_path = Path(dirpath)

            # Sort for consistent ordering
            dirnames.sort()
            filenames.sort()

            for filename in filenames:
                file_path = current_path / filename
                rel_path = file_path.relative_to(root_path).as_posix()

                if rel_path in self.options.exclude_names:
                    continue

                if not self._is_regular_file(file_path):
                    self.logger.debug(f"FolderScanner - Skipping non-regular file {rel_path}")
                    continue

                yield rel_path

    def _check_root(self, root_path: Path | str) -> Path:
        root_path = Path(root_path)

        if not root_path.exists():
            self.logger.error(f"FolderScanner - Root path not found: {root_path}")
            raise TraversalError(f"Directory not found: {root_path}")

        if not root_path.is_dir():
            self.logger.error(f"FolderScanner - Root path is not a directory: {root_path}")
            raise TraversalError(f"Not a directory: {root_path}")

        return root_path.resolve()

    def _is_regular_file(self, path: Path) -> bool:
        """Check the entry resolves to regular file content."""
        try:
            # stat follows symlinks, broken links fail here
            return stat.S_ISREG(path.stat().st_mode)
        except OSError as e:
            self.logger.debug(f"FolderScanner - Failed to stat {path}: {e}")
            return False
