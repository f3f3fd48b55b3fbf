"""
Synchronization engine.

Provides the two user-facing operations:
- generate: hash a tree and write its manifest
- fetch: bring a tree up to date with a reference origin

Fetching only adds or replaces files; files missing from the reference
are never deleted, and on conflict the reference wins.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from bench.core import manifest as manifest_codec
from bench.core.errors import BenchError, ResolutionError
from bench.core.folder.comparer import filter_hashes, missing
from bench.core.folder.hasher import DirectoryHasher
from bench.core.folder.scanner import IgnoreFilter, ScanOptions
from bench.core.models import (
    IGNORE_FILE,
    PATCH_FILE,
    FetchFailure,
    FetchResult,
    GenerateResult,
    HashItem,
    HashSet,
    Manifest,
)
from bench.services.file_io import FileIOService
from bench.services.hashing import HashAlgorithm, HashingService
from bench.services.origin import DEFAULT_TIMEOUT, Origin, resolve_origin
from bench.workers.thread_pool import WorkerPool, resolve_pool_size


OriginResolver = Callable[..., Origin]


@dataclass
class SyncOptions:
    """Options for generate and fetch."""
    # Concurrency
    workers: int = 1
    dynamic: bool = True  # Scale pooled worker counts by CPU count

    # Abort on the first unreadable file or failed download
    fail_fast: bool = False

    algorithm: HashAlgorithm = HashAlgorithm.SHA1

    manifest_name: str = PATCH_FILE
    ignore_name: str = IGNORE_FILE

    http_timeout: float = DEFAULT_TIMEOUT
    ignore_walk_errors: bool = False

    @property
    def pool_size(self) -> int:
        return resolve_pool_size(self.workers, self.dynamic)


class BenchSync:
    """
    Generates manifests and fetches trees.

    Usage:
        sync = BenchSync(SyncOptions(workers=4))
        sync.generate('/srv/tree', 'https://example.com/tree')
        result = sync.fetch('/home/me/tree')
    """

    def __init__(
        self,
        options: Optional[SyncOptions] = None,
        logger: Optional[logging.Logger] = None,
        origin_resolver: Optional[OriginResolver] = None
    ):
        self.options = options or SyncOptions()
        self.logger = logger or logging.getLogger(__name__)
        self._resolve = origin_resolver or resolve_origin
        self._file_io = FileIOService(self.logger)

    # -------------------------------------------------------------------------
    # Generate
    # -------------------------------------------------------------------------

    def generate(
        self,
        target_dir: Path | str,
        source_label: Optional[str] = ""
    ) -> GenerateResult:
        """
        Hash ``target_dir`` and write its manifest.

        Args:
            target_dir: Root of the tree
            source_label: Origin recorded in the manifest, omitted if empty

        Raises:
            TraversalError: If the tree can not be walked
            WriteError: If the manifest can not be written
        """
        start_time = time.time()
        target_dir = Path(target_dir).resolve()

        ignore_filter = IgnoreFilter.load(target_dir / self.options.ignore_name, self.logger)
        hashes = self._hasher().hash_tree(target_dir)
        filtered = filter_hashes(hashes, ignore_filter, self.logger)

        manifest = Manifest(items=filtered, origin=source_label or None)
        path = manifest_codec.write_manifest(
            target_dir, manifest, self.options.manifest_name, self.logger
        )

        return GenerateResult(
            manifest_path=path,
            items=len(filtered),
            ignored=len(hashes) - len(filtered),
            duration=time.time() - start_time,
        )

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    def fetch(
        self,
        target_dir: Path | str,
        source: Optional[str] = None
    ) -> FetchResult:
        """
        Update ``target_dir`` from a reference origin.

        Args:
            target_dir: Root of the local tree
            source: Reference locator, defaults to the origin recorded in
                the local manifest

        Raises:
            ResolutionError: If no usable reference locator is available
            BenchError: If a manifest can not be scanned or written, or
                with ``fail_fast`` when an item can not be fetched
        """
        start_time = time.time()
        target_dir = Path(target_dir).resolve()

        with self._open_origin(str(target_dir)) as local:
            local_manifest = local.scan()

        locator = source or local_manifest.origin
        if not locator:
            self.logger.error("BenchSync - No source given and none recorded in the local manifest")
            raise ResolutionError(f"No source given and none recorded in {target_dir / self.options.manifest_name}")

        with self._open_origin(locator) as reference:
            reference_manifest = reference.scan()
            reference_label = reference_manifest.origin

            verified = reference_label == locator
            if verified:
                self.logger.info(f"BenchSync - Verified origin: {reference_label}")
            else:
                self.logger.warning(f"BenchSync - Unverified origin: {reference_label or '<none>'} (fetched from {locator})")

            missing_items = missing(local_manifest.items, reference_manifest.items, self.logger)
            fetched, failed = self._fetch_items(reference, target_dir, missing_items)

        self.logger.info(f"BenchSync - Fetched {len(fetched)} files from origin")
        if failed:
            self.logger.warning(f"BenchSync - Failed to fetch {len(failed)} files, they stay missing")

        manifest_codec.write_manifest(
            target_dir,
            Manifest(
                items=self._settled_items(local_manifest.items, reference_manifest.items, failed),
                origin=reference_label,
            ),
            self.options.manifest_name,
            self.logger,
        )

        return FetchResult(
            source=locator,
            reference_label=reference_label,
            verified=verified,
            missing=missing_items,
            fetched=fetched,
            failed=failed,
            duration=time.time() - start_time,
        )

    def fetch_item(self, origin: Origin, target_dir: Path, item: HashItem) -> str:
        """
        Download one item and write it below ``target_dir``.

        Raises:
            BenchError: If the fetch or the write fails
        """
        data = origin.get(item.name)
        self._file_io.write_below(target_dir, item.name, data)
        self.logger.debug(f"BenchSync - Fetched {item.name} ({len(data)} bytes)")
        return item.name

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _fetch_items(
        self,
        origin: Origin,
        target_dir: Path,
        items: HashSet
    ) -> tuple[list[str], list[FetchFailure]]:
        fetched: list[str] = []
        failed: list[FetchFailure] = []

        if self.options.pool_size < 2:
            for item in items:
                try:
                    fetched.append(self.fetch_item(origin, target_dir, item))
                except BenchError as e:
                    if self.options.fail_fast:
                        self.logger.error(f"BenchSync - Failed to fetch {item.name}: {e}")
                        raise
                    self.logger.warning(f"BenchSync - Failed to fetch {item.name}: {e}")
                    failed.append(FetchFailure(item.name, str(e)))
            return fetched, failed

        pool: WorkerPool[HashItem, str] = WorkerPool(
            self.options.pool_size,
            stop_on_error=self.options.fail_fast,
            logger=self.logger
        )
        outcomes = pool.run(lambda item: self.fetch_item(origin, target_dir, item), items)

        first_error: Optional[Exception] = None
        for outcome in outcomes:
            if outcome.succeeded:
                fetched.append(outcome.result)
            elif outcome.error is not None:
                self.logger.warning(f"BenchSync - Failed to fetch {outcome.job.name}: {outcome.error}")
                failed.append(FetchFailure(outcome.job.name, str(outcome.error)))
                first_error = first_error or outcome.error

        if self.options.fail_fast and first_error is not None:
            raise first_error

        return fetched, failed

    def _settled_items(
        self,
        local_items: HashSet,
        reference_items: HashSet,
        failed: list[FetchFailure]
    ) -> HashSet:
        """
        Items to record after a fetch.

        Failed items keep their previous local entry, or are dropped if
        there was none, so the next fetch sees them as missing again.
        """
        if not failed:
            return list(reference_items)

        failed_names = {failure.name for failure in failed}
        previous = {item.name: item for item in local_items}

        settled: HashSet = []
        for item in reference_items:
            if item.name not in failed_names:
                settled.append(item)
            elif item.name in previous:
                settled.append(previous[item.name])
        return settled

    def _open_origin(self, locator: Optional[str]) -> Origin:
        return self._resolve(
            locator,
            manifest_name=self.options.manifest_name,
            timeout=self.options.http_timeout,
            logger=self.logger,
        )

    def _hasher(self) -> DirectoryHasher:
        scan_options = ScanOptions(
            exclude_names={self.options.manifest_name},
            ignore_walk_errors=self.options.ignore_walk_errors,
        )
        return DirectoryHasher(
            hashing=HashingService(self.options.algorithm),
            pool_size=self.options.pool_size,
            fail_fast=self.options.fail_fast,
            scan_options=scan_options,
            logger=self.logger,
        )


def generate(
    target_dir: Path | str,
    source_label: Optional[str] = "",
    options: Optional[SyncOptions] = None,
    logger: Optional[logging.Logger] = None
) -> GenerateResult:
    """Generate the manifest of ``target_dir``."""
    return BenchSync(options, logger).generate(target_dir, source_label)


def fetch(
    target_dir: Path | str,
    source: Optional[str] = None,
    options: Optional[SyncOptions] = None,
    logger: Optional[logging.Logger] = None
) -> FetchResult:
    """Update ``target_dir`` from ``source`` or its recorded origin."""
    return BenchSync(options, logger).fetch(target_dir, source)
