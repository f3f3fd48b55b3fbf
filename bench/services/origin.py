"""
Origins a tree can be fetched from.

An origin serves individual files by relative name and a manifest
describing all of them. Two kinds exist:
- FileOrigin: a directory on the local filesystem
- HTTPOrigin: a base URL served over HTTP(S)

``resolve_origin`` picks the kind from the locator string.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx

from bench.core import manifest as manifest_codec
from bench.core.errors import ReadError, ResolutionError, TransportError
from bench.core.models import PATCH_FILE, Manifest


HTTP_SCHEMES = ('http://', 'https://')

DEFAULT_TIMEOUT = 30.0


class Origin(ABC):
    """A readable store of files plus their manifest."""

    def __init__(
        self,
        locator: str,
        manifest_name: str = PATCH_FILE,
        logger: Optional[logging.Logger] = None
    ):
        self.locator = locator
        self.manifest_name = manifest_name
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def get(self, name: str) -> bytes:
        """
        Fetch a file by its relative name.

        Raises:
            BenchError: If the file is not accessible
        """

    @abstractmethod
    def scan(self) -> Manifest:
        """
        Fetch and decode the manifest stored at the origin.

        Raises:
            BenchError: If the manifest is not accessible
        """

    def close(self) -> None:
        """Release resources held by the origin."""

    def __enter__(self) -> 'Origin':
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.locator!r})"


class FileOrigin(Origin):
    """Origin backed by a local directory."""

    @property
    def root(self) -> Path:
        return Path(self.locator)

    def get(self, name: str) -> bytes:
        parts = [part for part in name.split('/') if part and part != '.']
        if not parts or name.startswith('/') or '..' in parts:
            raise ReadError(f"Refusing to read outside of {self.root}: {name!r}")

        path = self.root.joinpath(*parts)
        try:
            return path.read_bytes()
        except (OSError, ValueError) as e:
            self.logger.warning(f"FileOrigin - Local file {path}: {e}")
            raise ReadError(f"Failed to read {path}: {e}") from e

    def scan(self) -> Manifest:
        path = self.root / self.manifest_name

        if not path.exists():
            # First run: nothing generated or fetched yet
            self.logger.warning(f"FileOrigin - No manifest at {path}, assuming empty tree")
            return Manifest()

        result = manifest_codec.read_manifest(path, self.logger)
        self.logger.info(f"FileOrigin - Fetched {len(result.items)} items from local origin")
        return result


class HTTPOrigin(Origin):
    """Origin backed by an HTTP(S) server."""

    def __init__(
        self,
        locator: str,
        manifest_name: str = PATCH_FILE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(locator, manifest_name, logger)

        # Trailing slash so relative names are appended to the base path
        base_url = locator if locator.endswith('/') else locator + '/'

        try:
            self.client = httpx.Client(
                base_url=base_url,
                timeout=timeout,
                transport=transport,
                follow_redirects=True,
            )
        except httpx.InvalidURL as e:
            raise ResolutionError(f"Invalid origin URL {locator}: {e}") from e

    def get(self, name: str) -> bytes:
        url = quote(name.lstrip('/'), safe='/')
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.logger.warning(f"HTTPOrigin - HTTP request {e.request.url}: {e.response.status_code}")
            raise TransportError(
                f"GET {e.request.url} returned {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning(f"HTTPOrigin - HTTP request {name}: {e}")
            raise TransportError(f"GET {name} from {self.locator} failed: {e}") from e

        return response.content

    def scan(self) -> Manifest:
        data = self.get(self.manifest_name)

        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise TransportError(f"Manifest at {self.locator} is not UTF-8: {e}") from e

        result = manifest_codec.decode(text, self.logger)
        self.logger.info(f"HTTPOrigin - Fetched {len(result.items)} items from http origin")
        return result

    def close(self) -> None:
        self.client.close()


def resolve_origin(
    locator: Optional[str],
    manifest_name: str = PATCH_FILE,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
    logger: Optional[logging.Logger] = None
) -> Origin:
    """
    Find a fitting origin for a locator.

    Raises:
        ResolutionError: If the locator is neither an HTTP(S) URL nor an
            absolute filesystem path
    """
    if not locator:
        raise ResolutionError("Unknown origin: no source given")

    if locator.lower().startswith(HTTP_SCHEMES):
        return HTTPOrigin(locator, manifest_name, timeout=timeout, transport=transport, logger=logger)

    if os.path.isabs(locator):
        return FileOrigin(locator, manifest_name, logger=logger)

    raise ResolutionError(f"Unknown origin: {locator}")
