"""
Folio Configuration Management
==============================

Layered configuration with dot-notation access.

Configuration Loading Priority (highest to lowest):
1. Runtime overrides (``set``)
2. Environment variables (FOLIO_*)
3. config/{FOLIO_ENV}.py (environment-specific)
4. config/app.py (base configuration)
5. Built-in defaults

Keys used by Folio:
    app.debug            Expose exception details in 500 responses
    app.url              Base URL for absolute URL generation
    router.persist       Load routes from the route table
    router.table         Path of the JSON route table
    content.path         Content root directory
    content.directory    Page directory inside the content root
    content.extension    Page file extension
    content.home         Content identifier of the home page
    log.level            debug, info, warning, error, critical
    log.format           text or json
    log.file             Optional log file

Example:
    # config/app.py
    config = {
        "router": {"persist": True, "table": "storage/routes.json"},
        "content": {"path": "content"},
    }

    config = Config()
    config.load_from_path(Path("config"))
    config.get_bool("router.persist")  # True
"""

from __future__ import annotations

import copy
import importlib.util
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, TypeVar, Union

import orjson

T = TypeVar("T")

ENV_PREFIX = "FOLIO_"

DEFAULTS: Dict[str, Any] = {
    "app": {
        "debug": False,
        "url": None,
    },
    "router": {
        "persist": False,
        "table": None,
    },
    "content": {
        "path": None,
        "directory": "pages",
        "extension": ".md",
        "home": "home",
    },
    "log": {
        "level": "info",
        "format": "text",
        "file": None,
    },
}


@dataclass
class ConfigSource:
    """Represents a configuration source with priority."""
    name: str
    data: Dict[str, Any]
    priority: int = 0


class Config:
    """
    Configuration container.

    Example:
        config = Config()
        config.set("content.path", "/srv/site/content")

        config.get("content.path")               # "/srv/site/content"
        config.get("content.directory")          # "pages" (default)
        config.get("missing.key", "fallback")    # "fallback"
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None, defaults: bool = True) -> None:
        self._sources: List[ConfigSource] = []
        self._cache: Dict[str, Any] = {}
        self._merged: Dict[str, Any] = {}
        self._dirty = True

        if defaults:
            self.add_source("defaults", copy.deepcopy(DEFAULTS), priority=0)
        if data:
            self.add_source("init", data, priority=50)

    def load_from_path(self, config_path: Union[str, Path]) -> "Config":
        """
        Load configuration from a directory.

        Loads:
        - app.py (base configuration)
        - {FOLIO_ENV}.py (environment-specific)
        - FOLIO_* environment variables
        """
        config_path = Path(config_path)

        if config_path.exists():
            base_config = config_path / "app.py"
            if base_config.exists():
                self.add_source("app", self._load_python_config(base_config), priority=10)

            env = os.getenv("FOLIO_ENV", "development")
            env_config = config_path / f"{env}.py"
            if env_config.exists():
                self.add_source(f"env:{env}", self._load_python_config(env_config), priority=20)

        self.load_env()
        return self

    def _load_python_config(self, path: Path) -> Dict[str, Any]:
        """Load configuration from a Python file."""
        spec = importlib.util.spec_from_file_location("folio_config", path)
        if spec is None or spec.loader is None:
            return {}

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        # Look for 'config' dict or all public module variables
        if hasattr(module, "config"):
            return module.config

        return {
            key: value
            for key, value in vars(module).items()
            if not key.startswith("_")
        }

    def load_env(self, environ: Optional[Dict[str, str]] = None) -> "Config":
        """Load overrides from FOLIO_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for key, value in environ.items():
            if key.startswith(ENV_PREFIX) and key != "FOLIO_ENV":
                # FOLIO_ROUTER_PERSIST -> router.persist
                config_key = key[len(ENV_PREFIX):].lower().replace("_", ".")
                overrides[config_key] = self._parse_env_value(value)

        if overrides:
            self._sources = [s for s in self._sources if s.name != "env_vars"]
            self.add_source("env_vars", self._unflatten(overrides), priority=100)
        return self

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        # JSON (for complex values)
        if value.startswith(("{", "[")):
            try:
                return orjson.loads(value)
            except orjson.JSONDecodeError:
                pass

        return value

    def _unflatten(self, flat: Dict[str, Any]) -> Dict[str, Any]:
        """Convert flat dot-notation keys to nested dict."""
        result: Dict[str, Any] = {}

        for key, value in flat.items():
            parts = key.split(".")
            current = result

            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = value

        return result

    def add_source(
        self,
        name: str,
        data: Dict[str, Any],
        priority: int = 0,
    ) -> None:
        """Add a configuration source."""
        self._sources.append(ConfigSource(name=name, data=data, priority=priority))
        self._dirty = True
        self._cache.clear()

    def _merge(self) -> None:
        """Merge all sources into a single configuration."""
        if not self._dirty:
            return

        # Lower priority first, so higher overrides
        self._merged = {}
        for source in sorted(self._sources, key=lambda s: s.priority):
            self._deep_merge(self._merged, copy.deepcopy(source.data))

        self._dirty = False
        self._cache.clear()

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Deep merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: T = None) -> Union[Any, T]:
        """
        Get configuration value using dot notation.

        A key that is absent or set to None yields ``default``.
        """
        self._merge()

        if key in self._cache:
            return self._cache[key]

        current: Any = self._merged
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        if current is None:
            return default

        self._cache[key] = current
        return current

    def get_int(self, key: str, default: int = 0) -> int:
        """Get configuration value as integer."""
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on")
        return bool(value)

    def get_list(self, key: str, default: Optional[List] = None) -> List:
        """Get configuration value as list."""
        value = self.get(key, default)
        if value is None:
            return default or []
        if isinstance(value, list):
            return value
        return [value]

    def set(self, key: str, value: Any) -> None:
        """
        Set a runtime configuration value.

        Runtime values have the highest priority.
        """
        runtime_source = next((s for s in self._sources if s.name == "runtime"), None)
        if runtime_source is None:
            runtime_source = ConfigSource(name="runtime", data={}, priority=1000)
            self._sources.append(runtime_source)

        parts = key.split(".")
        current = runtime_source.data
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value

        self._dirty = True
        self._cache.clear()

    def has(self, key: str) -> bool:
        """Check if configuration key exists."""
        return self.get(key) is not None

    def all(self) -> Dict[str, Any]:
        """Get all configuration as dict."""
        self._merge()
        return copy.deepcopy(self._merged)

    def section(self, prefix: str) -> Dict[str, Any]:
        """Get all values under a prefix."""
        value = self.get(prefix)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)


__all__ = [
    "ENV_PREFIX",
    "DEFAULTS",
    "ConfigSource",
    "Config",
]
