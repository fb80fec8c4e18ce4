from __future__ import annotations

import fcntl
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from aegis.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()
DEFAULT_DB_PATH = "./data/aegis.db"


@dataclass(frozen=True, slots=True)
class AutomodSettings:
    """Tunables for the automod pipeline.

    Defaults mirror the values the bot has always shipped with; YAML only
    needs to list the keys it wants to override.
    """

    spam_threshold: int = 5
    spam_window_ms: int = 3000
    sweep_interval_seconds: float = 10.0
    spam_timeout_ms: int = 5 * 60 * 1000
    config_cache_ttl_seconds: float = 5 * 60
    notice_delete_after_seconds: float = 5.0

    @property
    def config_cache_ttl_ms(self) -> int:
        return int(self.config_cache_ttl_seconds * 1000)


# (lower bound, inclusive) per field; anything else only has to be non-negative
_MINIMUMS = {
    "spam_threshold": (1, True),
    "spam_window_ms": (1, True),
    "sweep_interval_seconds": (0, False),
    "spam_timeout_ms": (0, False),
}


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    dictionary-like access helpers plus typed shortcuts for the automod and
    database sections.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found; using defaults.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file and replace the in-memory copy."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def automod_settings(self) -> AutomodSettings:
        """Build :class:`AutomodSettings` from the ``automod`` section.

        Values that cannot be coerced to the expected type are logged and
        replaced by the default.
        """
        section = self._section("automod")
        defaults = AutomodSettings()
        values: Dict[str, Any] = {}
        for field_name in AutomodSettings.__dataclass_fields__:
            if field_name not in section:
                continue
            default_value = getattr(defaults, field_name)
            try:
                value = type(default_value)(section[field_name])
            except (TypeError, ValueError):
                logger.error(
                    "[APP CONFIGURATION] Invalid value %r for automod.%s; using %r",
                    section[field_name],
                    field_name,
                    default_value,
                )
                continue
            minimum, inclusive = _MINIMUMS.get(field_name, (0, True))
            if value < minimum or (not inclusive and value == minimum):
                logger.error(
                    "[APP CONFIGURATION] automod.%s must be %s %r; using %r",
                    field_name,
                    ">=" if inclusive else ">",
                    minimum,
                    default_value,
                )
                continue
            values[field_name] = value
        return AutomodSettings(**values)

    @property
    def database_path(self) -> Path:
        """Return the SQLite database path (default ``./data/aegis.db``)."""
        value = self._section("database").get("path") or DEFAULT_DB_PATH
        return Path(str(value)).resolve()
