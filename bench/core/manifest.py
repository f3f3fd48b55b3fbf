"""
Manifest codec.

A manifest is a UTF-8 text file with one ``name:digest`` pair per line,
optionally preceded by an origin line::

    #@https://example.com/tree
    bin/tool:3f786850e387550fdab836ed7e6dc881de23001b
    README:89e6c98d92887913cadf06b2adb97f26cde4849b

Malformed lines are dropped while decoding, never reported as errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from bench.core.errors import ReadError
from bench.core.models import (
    HASH_SPLIT,
    LINE_SEPARATOR,
    PATCH_FILE,
    SOURCE_MARKER,
    HashItem,
    Manifest,
)
from bench.services.file_io import FileIOService


logger = logging.getLogger(__name__)


def encode(manifest: Manifest) -> str:
    """Render a manifest as text."""
    lines: list[str] = []

    if manifest.origin:
        lines.append(SOURCE_MARKER + manifest.origin)

    lines.extend(str(item) for item in manifest.items)

    return ''.join(line + LINE_SEPARATOR for line in lines)


def decode(text: str, log: Optional[logging.Logger] = None) -> Manifest:
    """
    Parse manifest text.

    The last origin line wins if several are present. Lines without a
    separator, or with an empty name or digest, are skipped.
    """
    log = log or logger
    items: list[HashItem] = []
    origin: Optional[str] = None
    dropped = 0

    for line in text.split(LINE_SEPARATOR):
        if line.startswith(SOURCE_MARKER):
            origin = line[len(SOURCE_MARKER):].strip()
            log.info(f"Manifest - Found source in patch: {origin}")
            continue

        line = line.strip()
        if not line:
            continue

        name, sep, digest = line.rpartition(HASH_SPLIT)
        if not sep or not name or not digest:
            dropped += 1
            continue

        items.append(HashItem(name, digest))

    if dropped:
        log.debug(f"Manifest - Dropped {dropped} malformed lines")
    log.info(f"Manifest - Parsed {len(items)} hash items")

    return Manifest(items=items, origin=origin or None)


def read_manifest(path: Path | str, log: Optional[logging.Logger] = None) -> Manifest:
    """
    Read and decode a manifest file.

    Raises:
        ReadError: If the file can not be read or is not UTF-8
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ReadError(f"Failed to read manifest {path}: {e}") from e
    return decode(text, log)


def write_manifest(
    directory: Path | str,
    manifest: Manifest,
    name: str = PATCH_FILE,
    log: Optional[logging.Logger] = None
) -> Path:
    """
    Write a manifest into ``directory``, replacing any previous one.

    Raises:
        WriteError: If the manifest file can not be written
    """
    log = log or logger
    target = Path(directory) / name

    if manifest.origin:
        log.info(f"Manifest - Generated patch with source {manifest.origin}")

    FileIOService(log).write_text(target, encode(manifest), atomic=True)
    log.info(f"Manifest - Wrote {len(manifest.items)} items to {target}")

    return target
