"""Bridge settings: environment variables, optionally overridden by a YAML file.

The environment is read when settings are loaded, not at import, so a dotenv
file loaded by the CLI is honoured.

Example ``config.yaml``::

    interval: 60
    mqtt:
      host: broker.lan
      username: cocoro
      password: secret
    cocoro:
      app_secret: ...
      terminal_key: ...
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import BaseModel, Field, ValidationError

from cocoro_mqtt.const import (
    COCORO_DEFAULT_API_BASE,
    COCORO_DEFAULT_API_TIMEOUT,
    COCORO_DEFAULT_HASS_TOPIC,
    COCORO_DEFAULT_INTERVAL,
    COCORO_DEFAULT_MQTT_HOST,
    COCORO_DEFAULT_MQTT_PORT,
    COCORO_DEFAULT_TOPIC,
)
from cocoro_mqtt.logging_abstraction import get_logger

logger = get_logger(__name__)

# section -> setting -> environment variable
ENV_VARS: dict[str | None, dict[str, str]] = {
    None: {"interval": "COCORO_INTERVAL"},
    "mqtt": {
        "host": "COCORO_MQTT_HOST",
        "port": "COCORO_MQTT_PORT",
        "username": "COCORO_MQTT_USER",
        "password": "COCORO_MQTT_PASS",
        "topic": "COCORO_TOPIC",
        "ha_topic": "COCORO_HASS_TOPIC",
    },
    "cocoro": {
        "app_secret": "COCORO_APP_SECRET",
        "terminal_key": "COCORO_TERMINAL_KEY",
        "api_base": "COCORO_API_BASE",
        "api_timeout": "COCORO_API_TIMEOUT",
    },
}


class MQTTSettings(BaseModel):
    host: str = COCORO_DEFAULT_MQTT_HOST
    port: int = COCORO_DEFAULT_MQTT_PORT
    username: str | None = None
    password: str | None = None
    topic: str = COCORO_DEFAULT_TOPIC
    ha_topic: str = COCORO_DEFAULT_HASS_TOPIC


class CloudSettings(BaseModel):
    app_secret: str | None = None
    terminal_key: str | None = None
    api_base: str = COCORO_DEFAULT_API_BASE
    api_timeout: int = Field(default=COCORO_DEFAULT_API_TIMEOUT, gt=0)


class BridgeSettings(BaseModel):
    interval: float = Field(default=COCORO_DEFAULT_INTERVAL, ge=0)
    mqtt: MQTTSettings = Field(default_factory=MQTTSettings)
    cocoro: CloudSettings = Field(default_factory=CloudSettings)


def settings_from_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect the settings present in the environment; empty variables are ignored."""
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    for section, variables in ENV_VARS.items():
        values = {key: env[var] for key, var in variables.items() if env.get(var)}
        if section is None:
            data.update(values)
        elif values:
            data[section] = values
    return data


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], cast("Mapping[str, Any]", value))
        else:
            merged[key] = value
    return merged


def load_settings(config_file: Path | None = None, environ: Mapping[str, str] | None = None) -> BridgeSettings:
    """Return the bridge settings, applying ``config_file`` over the environment.

    Raises:
        OSError: if the file cannot be read
        ValueError: if the file is not valid YAML or any setting is invalid

    """
    data = settings_from_env(environ)

    if config_file is not None:
        logger.debug("Parsing config file: %s", config_file)
        try:
            with config_file.open() as f:
                config_data: object = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Failed to parse config file {config_file}: {e}"
            raise ValueError(msg) from e

        if config_data is None:
            logger.warning("Config file %s is empty, using environment settings", config_file)
        elif not isinstance(config_data, dict):
            msg = f"Config file {config_file} must contain a mapping"
            raise ValueError(msg)
        else:
            data = _merge(data, cast("dict[str, Any]", config_data))
            logger.info("Loaded settings from %s", config_file)

    try:
        return BridgeSettings.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid settings: {e}"
        raise ValueError(msg) from e
