"""
Settings management.

Settings are read from a JSON file and may be overridden per run from
the command line.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Optional

from bench.core.errors import ConfigError
from bench.core.folder.sync import SyncOptions
from bench.services.hashing import HashAlgorithm


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

CONFIG_ENV_VAR = 'BENCH_CONFIG'


@dataclass
class BenchSettings:
    """Tunable settings for generate and fetch."""
    workers: int = 1
    dynamic: bool = True
    fail_fast: bool = False
    algorithm: HashAlgorithm = HashAlgorithm.SHA1
    http_timeout: float = 30.0
    ignore_walk_errors: bool = False
    log_level: str = 'WARNING'

    def validate(self) -> 'BenchSettings':
        """
        Check values are usable.

        Raises:
            ConfigError: If a value is out of range
        """
        if not isinstance(self.workers, int) or isinstance(self.workers, bool) or self.workers < 1:
            raise ConfigError(f"workers must be a positive integer, got {self.workers!r}")
        if not isinstance(self.http_timeout, (int, float)) or self.http_timeout <= 0:
            raise ConfigError(f"http_timeout must be positive, got {self.http_timeout!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        return self

    def merged(self, **overrides: Any) -> 'BenchSettings':
        """Return a copy with the non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes).validate()

    def to_sync_options(self) -> SyncOptions:
        """Build the options used by the sync engine."""
        return SyncOptions(
            workers=self.workers,
            dynamic=self.dynamic,
            fail_fast=self.fail_fast,
            algorithm=self.algorithm,
            http_timeout=float(self.http_timeout),
            ignore_walk_errors=self.ignore_walk_errors,
        )


class SettingsManager:
    """Manager for loading/saving settings."""

    def __init__(
        self,
        settings_path: Optional[Path | str] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.settings_path = Path(settings_path) if settings_path else self._get_default_path()
        self.logger = logger or logging.getLogger(__name__)
        self._settings: Optional[BenchSettings] = None

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        override = os.environ.get(CONFIG_ENV_VAR)
        if override:
            return Path(override)

        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'bench' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'bench' / 'settings.json'

    @property
    def settings(self) -> BenchSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> BenchSettings:
        """
        Load settings from disk.

        A missing or unparsable file yields the defaults.

        Raises:
            ConfigError: If the file holds invalid values
        """
        if not self.settings_path.exists():
            return BenchSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(f"SettingsManager - Ignoring unreadable settings {self.settings_path}: {e}")
            return BenchSettings()

        if not isinstance(data, dict):
            self.logger.warning(f"SettingsManager - Ignoring settings {self.settings_path}: not an object")
            return BenchSettings()

        self.logger.debug(f"SettingsManager - Loaded settings from {self.settings_path}")
        return self._from_dict(data)

    def save(self, settings: Optional[BenchSettings] = None) -> Path:
        """
        Save settings to disk.

        Raises:
            ConfigError: If the settings file can not be written
        """
        settings = settings or self.settings

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._to_dict(settings), f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save settings to {self.settings_path}: {e}") from e

        self._settings = settings
        return self.settings_path

    def _to_dict(self, settings: BenchSettings) -> dict:
        """Convert settings to a dictionary for JSON serialization."""
        data = asdict(settings)
        data['algorithm'] = settings.algorithm.label
        return data

    def _from_dict(self, data: dict) -> BenchSettings:
        """Convert a dictionary back to settings."""
        defaults = BenchSettings()

        algorithm = data.get('algorithm', defaults.algorithm)
        if isinstance(algorithm, str):
            algorithm = HashAlgorithm.from_string(algorithm)

        settings = BenchSettings(
            workers=data.get('workers', defaults.workers),
            dynamic=bool(data.get('dynamic', defaults.dynamic)),
            fail_fast=bool(data.get('fail_fast', defaults.fail_fast)),
            algorithm=algorithm,
            http_timeout=data.get('http_timeout', defaults.http_timeout),
            ignore_walk_errors=bool(data.get('ignore_walk_errors', defaults.ignore_walk_errors)),
            log_level=str(data.get('log_level', defaults.log_level)).upper(),
        )
        return settings.validate()
