"""
File I/O service for writing files safely.

Handles:
- Atomic writes (temporary file in the target directory, then replace)
- Parent directory creation
- Keeping writes inside a tree root
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from bench.core.errors import WriteError


DEFAULT_FILE_MODE = 0o644


class FileIOService:
    """Service for safe file writes below a tree root."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def write_bytes(
        self,
        path: Path | str,
        data: bytes,
        atomic: bool = True
    ) -> int:
        """
        Write bytes to a file, creating parent directories.

        Args:
            path: Path to write to
            data: Content to write
            atomic: Write to a temporary file, then move it into place

        Returns:
            Number of bytes written

        Raises:
            WriteError: If the directory or the file can not be written
        """
        path = Path(path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            raise WriteError(f"Failed to create folder {path.parent}: {e}") from e

        try:
            if atomic:
                fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix='.bench-')
                try:
                    with os.fdopen(fd, 'wb') as f:
                        f.write(data)
                    # mkstemp creates 0600, manifests are served to other users
                    os.chmod(temp_path, DEFAULT_FILE_MODE)
                    os.replace(temp_path, path)
                except BaseException:
                    if os.path.exists(temp_path):
                        os.unlink(temp_path)
                    raise
            else:
                path.write_bytes(data)
        except PermissionError as e:
            raise WriteError(f"Permission denied: {path}") from e
        except (OSError, ValueError) as e:
            raise WriteError(f"Failed to write file {path}: {e}") from e

        self.logger.debug(f"FileIOService - Wrote {len(data)} bytes to {path}")
        return len(data)

    def write_text(
        self,
        path: Path | str,
        content: str,
        encoding: str = 'utf-8',
        atomic: bool = True
    ) -> int:
        """Encode and write text content."""
        return self.write_bytes(path, content.encode(encoding), atomic=atomic)

    def write_below(
        self,
        root: Path | str,
        relative_name: str,
        data: bytes,
        atomic: bool = False
    ) -> Path:
        """
        Write ``data`` to ``root/relative_name``.

        The resolved destination must stay inside ``root``.

        Raises:
            WriteError: If the name escapes the root or the write fails
        """
        target = resolve_below(root, relative_name)
        self.write_bytes(target, data, atomic=atomic)
        return target


def resolve_below(root: Path | str, relative_name: str) -> Path:
    """
    Join a slash-separated relative name onto a root directory.

    Raises:
        WriteError: If the name is absolute or points outside the root
    """
    root = Path(root).resolve()
    parts = [part for part in relative_name.split('/') if part and part != '.']

    if not parts or relative_name.startswith('/') or '..' in parts:
        raise WriteError(f"Refusing to write outside of {root}: {relative_name!r}")

    target = root.joinpath(*parts)
    try:
        resolved = target.resolve()
    except (OSError, ValueError) as e:
        raise WriteError(f"Invalid file name {relative_name!r}: {e}") from e

    try:
        resolved.relative_to(root)
    except ValueError:
        raise WriteError(f"Refusing to write outside of {root}: {relative_name!r}") from None

    return target
