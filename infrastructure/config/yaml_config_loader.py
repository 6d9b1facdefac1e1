# infrastructure/config/yaml_config_loader.py
"""
Browser configuration from YAML files.

    url: http://localhost:8000
    headers:
      Accept-Language: en
    auth: [admin, ${ADMIN_PASSWORD}]
    refresh_max_interval: 10
    cookies:
      cookie-1:
        Name: userName
        Value: john.doe
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from domain.config import BrowserConfig
from domain.exceptions import ConfigurationError
from infrastructure.config.env_provider import EnvProvider

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class YamlConfigLoader:
    def __init__(self, env: Optional[EnvProvider] = None):
        self._env = env

    def load_from_file(self, path: str) -> BrowserConfig:
        p = Path(path)
        if not p.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file is not valid YAML: {path}: {e}") from e

        if data is None:
            raise ConfigurationError(f"Config file is empty: {path}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file is invalid: {path}")

        return self.load_from_dict(data)

    def load_from_dict(self, data: Mapping[str, Any]) -> BrowserConfig:
        values = self._env_values()
        return BrowserConfig.from_dict(self._interpolate(dict(data), values))

    def _env_values(self) -> Dict[str, str]:
        env = self._env or EnvProvider()
        return env.get()

    def _interpolate(self, value: Any, env: Dict[str, str]) -> Any:
        if isinstance(value, str):
            return _PLACEHOLDER.sub(lambda m: self._lookup(m.group(1), env), value)
        if isinstance(value, dict):
            return {k: self._interpolate(v, env) for k, v in value.items()}
        if isinstance(value, list):
            return [self._interpolate(v, env) for v in value]
        return value

    def _lookup(self, name: str, env: Dict[str, str]) -> str:
        if name not in env:
            raise ConfigurationError(f"Config references undefined variable: {name}")
        return env[name]
