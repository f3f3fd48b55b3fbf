"""
Directory hashing.

Builds the hash set of a tree, either one file at a time or by listing
the tree first and dispatching the list to a worker pool.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from bench.core.errors import ReadError
from bench.core.folder.scanner import FolderScanner, ScanOptions
from bench.core.models import HashItem, HashSet
from bench.services.hashing import HashingService
from bench.workers.thread_pool import WorkerPool


class DirectoryHasher:
    """
    Hashes every regular file below a root.

    Files that can not be read are logged and left out of the result,
    unless ``fail_fast`` is set, in which case the first one raises
    ``ReadError``.
    """

    def __init__(
        self,
        hashing: Optional[HashingService] = None,
        pool_size: int = 1,
        fail_fast: bool = False,
        scan_options: Optional[ScanOptions] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.hashing = hashing or HashingService()
        self.pool_size = pool_size
        self.fail_fast = fail_fast
        self.logger = logger or logging.getLogger(__name__)
        self.scanner = FolderScanner(scan_options, self.logger)

    def hash_tree(self, root_path: Path | str) -> HashSet:
        """
        Hash a directory tree.

        Raises:
            TraversalError: If the tree can not be walked
            ReadError: If ``fail_fast`` is set and a file is unreadable
        """
        root_path = Path(root_path).resolve()

        if self.pool_size < 2:
            hashes = self._hash_sequential(root_path)
        else:
            hashes = self._hash_pooled(root_path)

        self.logger.info(f"DirectoryHasher - Hashed {len(hashes)} files below {root_path}")
        return hashes

    def hash_item(self, root_path: Path, rel_path: str) -> HashItem:
        """
        Hash one file given by its relative name.

        Raises:
            ReadError: If the file can not be read
        """
        try:
            digest = self.hashing.hash_file(root_path / rel_path)
        except OSError as e:
            raise ReadError(f"Failed to hash {rel_path}: {e}") from e
        return HashItem(rel_path, digest)

    def _hash_sequential(self, root_path: Path) -> HashSet:
        hashes: HashSet = []

        for rel_path in self.scanner.iter_files(root_path):
            try:
                hashes.append(self.hash_item(root_path, rel_path))
            except ReadError as e:
                if self.fail_fast:
                    self.logger.error(f"DirectoryHasher - {e}")
                    raise
                self.logger.warning(f"DirectoryHasher - {e}")

        return hashes

    def _hash_pooled(self, root_path: Path) -> HashSet:
        files = self.scanner.list_files(root_path)

        pool: WorkerPool[str, HashItem] = WorkerPool(
            self.pool_size,
            stop_on_error=self.fail_fast,
            logger=self.logger
        )
        outcomes = pool.run(lambda rel_path: self.hash_item(root_path, rel_path), files)

        hashes: HashSet = []
        first_error: Optional[Exception] = None

        for outcome in outcomes:
            if outcome.succeeded:
                hashes.append(outcome.result)
            elif outcome.error is not None:
                self.logger.warning(f"DirectoryHasher - {outcome.error}")
                first_error = first_error or outcome.error

        if self.fail_fast and first_error is not None:
            raise first_error

        # Outcomes arrive in completion order, restore walk order
        position = {rel_path: index for index, rel_path in enumerate(files)}
        hashes.sort(key=lambda item: position[item.name])

        return hashes
