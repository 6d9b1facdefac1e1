# infrastructure/browser_factory.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from application.ports.logger import LoggerPort
from application.session import BrowserSession
from domain.config import BrowserConfig
from infrastructure.config.yaml_config_loader import YamlConfigLoader
from infrastructure.http.transport_registry import TransportRegistry, default_registry
from infrastructure.logging.loguru_logger import LoguruLogger


def create_session(
    config: Union[BrowserConfig, Mapping[str, Any], str],
    logger: Optional[LoggerPort] = None,
    registry: Optional[TransportRegistry] = None,
) -> BrowserSession:
    """
    Wire a BrowserSession from a config object, a dict, or a YAML file path.
    """
    if isinstance(config, str):
        config = YamlConfigLoader().load_from_file(config)
    elif not isinstance(config, BrowserConfig):
        config = YamlConfigLoader().load_from_dict(config)

    logger = logger or LoguruLogger()
    transports = (registry or default_registry).with_logger(logger)
    return BrowserSession(config, transports, logger.bind(component="browser"))
