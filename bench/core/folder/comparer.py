"""
Manifest comparison.

Finds the reference items a local tree is missing. An item is present
locally only if both its name and its digest match, so a changed file
counts as missing and will be replaced. Items that exist only locally
are ignored; nothing is ever scheduled for deletion.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from bench.core.folder.scanner import IgnoreFilter
from bench.core.models import HashItem, HashSet


logger = logging.getLogger(__name__)


def missing(
    local: Iterable[HashItem],
    reference: Iterable[HashItem],
    log: Optional[logging.Logger] = None
) -> HashSet:
    """
    Return the reference items whose (name, digest) pair is absent locally.

    The result keeps the reference order.
    """
    log = log or logger
    local = list(local)
    reference = list(reference)

    log.info(f"FolderComparer - Comparing branches: local [{len(local)}] <-> reference [{len(reference)}]")

    missing_local = {item.signature: True for item in reference}
    for item in local:
        if item.signature in missing_local:
            missing_local[item.signature] = False

    missing_items = [item for item in reference if missing_local[item.signature]]
    log.info(f"FolderComparer - Missing in local branch: {len(missing_items)}")

    return missing_items


def filter_hashes(
    items: Iterable[HashItem],
    ignore_filter: IgnoreFilter,
    log: Optional[logging.Logger] = None
) -> HashSet:
    """Drop the items whose name the filter matches, keeping order."""
    log = log or logger
    items = list(items)

    filtered = [item for item in items if not ignore_filter.match(item.name)]
    log.info(f"FolderComparer - Ignored {len(items) - len(filtered)} files")

    return filtered
