"""
proxylogger.config — YAML Configuration Store
==============================================

Reads ``config.yml`` into a nested dict and exposes dotted-path lookups
(``store.get_str("discord.logger-guildid")``).  The file is written from
:data:`DEFAULT_CONFIG` the first time the service starts, and can be
re-read at any time with :meth:`ConfigStore.reload` (the bot does so on
a 30-minute schedule and on ``/reloadconfig``).

Secrets may live in ``.env`` instead of the YAML file: ``DISCORD_TOKEN``
overrides ``discord.bot-token``.

Usage::

    from proxylogger.config import load_config

    store = load_config()              # ./config.yml, or $PROXYLOGGER_CONFIG
    if store.logging_enabled:
        print(store.guild_id)
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yml"

DEFAULT_CONFIG: dict[str, Any] = {
    "discord": {
        "bot-token": "",
        "logger-guildid": "",
        "logger": False,
        "admin-role-id": None,
    },
    "proxy": {
        "servers": [],
    },
    "reload": {
        "interval-minutes": 30,
    },
    "api": {
        "host": "127.0.0.1",
        "port": 8765,
    },
}


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""


class ConfigStore:
    """Thread-safe key/value view over a YAML file.

    Keys are dotted paths into nested mappings.  A missing key, or a
    path that runs through a non-mapping value, yields the caller's
    default.
    """

    def __init__(self, path: str | Path = DEFAULT_CONFIG_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._data: dict[str, Any] = {}

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def load(self) -> None:
        """Read the file (creating it from defaults if missing) and validate.

        Raises
        ------
        ConfigError
            If the defaults cannot be written, or the file is not valid
            YAML or not a mapping.
        """
        with self._lock:
            if not self.path.exists():
                try:
                    self._write_defaults()
                except OSError as exc:
                    raise ConfigError(f"Failed to write defaults to {self.path}: {exc}") from exc

            try:
                with open(self.path, encoding="utf-8") as fh:
                    raw = yaml.safe_load(fh)
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"Failed to read {self.path}: {exc}") from exc

            if raw is None:
                raw = {}
            if not isinstance(raw, dict):
                raise ConfigError(
                    f"{self.path} must contain a mapping at the top level, "
                    f"got {type(raw).__name__}"
                )
            self._data = raw

        self.validate()
        logger.info("Configuration loaded from %s", self.path)

    def reload(self) -> bool:
        """Re-read the file.  On failure keep the previous values.

        Returns True when the new file was applied.
        """
        try:
            self.load()
        except ConfigError:
            logger.exception("Config reload failed; keeping previous values")
            return False
        logger.info("Configuration reloaded")
        return True

    def _write_defaults(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            yaml.safe_dump(DEFAULT_CONFIG, fh, default_flow_style=False, sort_keys=False)
        logger.info("Wrote default configuration to %s", self.path.resolve())

    def validate(self) -> list[str]:
        """Log every required setting that is missing and return their keys."""
        missing: list[str] = []
        if not self.bot_token:
            missing.append("discord.bot-token")
        if not self.guild_id:
            missing.append("discord.logger-guildid")
        for key in missing:
            logger.error("Required setting %s is missing or empty", key)
        return missing

    # -------------------------------------------------------------------
    # Generic lookups
    # -------------------------------------------------------------------
    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            node: Any = self._data
            for part in key.split("."):
                if not isinstance(node, dict) or part not in node:
                    return default
                node = node[part]
            return default if node is None else node

    def get_str(self, key: str, default: str = "") -> str:
        value = self.get(key)
        return default if value is None else str(value)

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key)
        try:
            return int(value) if value is not None else default
        except (TypeError, ValueError):
            logger.warning("Setting %s is not an integer: %r", key, value)
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == "true"

    def get_list(self, key: str) -> list:
        value = self.get(key)
        return list(value) if isinstance(value, list) else []

    def get_section(self, key: str) -> dict[str, Any]:
        value = self.get(key)
        return dict(value) if isinstance(value, dict) else {}

    # -------------------------------------------------------------------
    # Typed settings
    # -------------------------------------------------------------------
    @property
    def bot_token(self) -> str:
        return os.getenv("DISCORD_TOKEN") or self.get_str("discord.bot-token")

    @property
    def guild_id(self) -> str:
        return self.get_str("discord.logger-guildid").strip()

    @property
    def logging_enabled(self) -> bool:
        return self.get_bool("discord.logger", False)

    @property
    def admin_role_id(self) -> int | None:
        value = self.get_int("discord.admin-role-id", 0)
        return value or None

    @property
    def servers(self) -> list[str]:
        return [str(name) for name in self.get_list("proxy.servers") if str(name).strip()]

    @property
    def reload_interval_minutes(self) -> int:
        return max(1, self.get_int("reload.interval-minutes", 30))

    @property
    def api_host(self) -> str:
        return self.get_str("api.host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return self.get_int("api.port", 8765)


def load_config(path: str | Path | None = None) -> ConfigStore:
    """Build and load a :class:`ConfigStore`.

    *path* defaults to ``$PROXYLOGGER_CONFIG`` or ``config.yml`` in the
    working directory.
    """
    store = ConfigStore(path or os.getenv("PROXYLOGGER_CONFIG", DEFAULT_CONFIG_PATH))
    store.load()
    return store
