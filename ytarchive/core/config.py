"""
Application configuration manager.
Stores settings in a JSON file under the user's config directory.
"""

import json
import logging
from pathlib import Path

from ytarchive.core.constants import (
    CONFIG_PATH, DEFAULT_OUTPUT_ROOT, FailurePolicy, FALLBACK_WARNING_DELAY_SEC,
)

# Validation bounds
_WARNING_DELAY_MAX = 30

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'output_root': str(DEFAULT_OUTPUT_ROOT),
    'cookies_from_browser': None,
    'cookies_path': None,
    'user_agent': None,
    'on_failure': FailurePolicy.ABORT,
    'overwrite': False,
    'keep_temp': False,
    'tools_dir': None,
    'fallback_warning_delay': FALLBACK_WARNING_DELAY_SEC,
}


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        self.path = config_path or CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load config %s: %s", self.path, e)
                return
            if not isinstance(saved, dict):
                logger.warning("Ignoring config %s: top level is not an object", self.path)
                return
            for key, value in saved.items():
                if key not in _DEFAULTS:
                    logger.warning("Ignoring unknown config key %r", key)
                    continue
                self._data[key] = self._validate(key, value)

    def save(self):
        """Persist config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        value = self._validate(key, value)
        self._data[key] = value
        self.save()

    def override(self, **values):
        """Apply per-run overrides (e.g. CLI flags) without saving. None means 'not given'."""
        for key, value in values.items():
            if value is None:
                continue
            self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'on_failure':
            if value not in FailurePolicy.ALL:
                logger.warning("Invalid on_failure %r — using %s", value, FailurePolicy.ABORT)
                return FailurePolicy.ABORT

        if key == 'fallback_warning_delay':
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning("Invalid fallback_warning_delay %r — using default", value)
                return FALLBACK_WARNING_DELAY_SEC
            return max(0, min(_WARNING_DELAY_MAX, value))

        if key in ('overwrite', 'keep_temp'):
            return bool(value)

        if key in ('output_root', 'cookies_path', 'tools_dir') and value is not None:
            return str(Path(str(value)).expanduser())

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def output_root(self) -> Path:
        return Path(self._data.get('output_root') or DEFAULT_OUTPUT_ROOT)

    @property
    def cookies_path(self) -> Path | None:
        value = self._data.get('cookies_path')
        return Path(value) if value else None

    @property
    def tools_dir(self) -> Path | None:
        value = self._data.get('tools_dir')
        return Path(value) if value else None

    @property
    def on_failure(self) -> str:
        return self._data.get('on_failure', FailurePolicy.ABORT)

    @property
    def overwrite(self) -> bool:
        return self._data.get('overwrite', False)

    @property
    def keep_temp(self) -> bool:
        return self._data.get('keep_temp', False)

    @property
    def fallback_warning_delay(self) -> float:
        return self._data.get('fallback_warning_delay', FALLBACK_WARNING_DELAY_SEC)
