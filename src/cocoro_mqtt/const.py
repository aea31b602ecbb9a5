import os

from cocoro_mqtt import __version__

__all__ = [
    "AIR_CLEANER_TYPE",
    "COCORO_AVAILABILITY_OFFLINE",
    "COCORO_AVAILABILITY_ONLINE",
    "COCORO_DEBUG",
    "COCORO_DEFAULT_API_BASE",
    "COCORO_DEFAULT_API_TIMEOUT",
    "COCORO_DEFAULT_HASS_TOPIC",
    "COCORO_DEFAULT_INTERVAL",
    "COCORO_DEFAULT_MQTT_HOST",
    "COCORO_DEFAULT_MQTT_PORT",
    "COCORO_DEFAULT_TOPIC",
    "COCORO_HASS_BIRTH_MSG",
    "COCORO_HASS_STATUS_TOPIC",
    "COCORO_HASS_WILL_MSG",
    "COCORO_LOG_FORMAT",
    "COCORO_LOG_HUMAN_OUTPUT",
    "COCORO_LOG_JSON_FILE",
    "COCORO_PERF_THRESHOLD_MS",
    "COCORO_PERF_TRACKING",
    "COCORO_VERSION",
    "PUBLISHER_TASK_NAME",
    "SUBSCRIBER_TASK_NAME",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
COCORO_VERSION: str = __version__

# Device class reported by the cloud API for air purifiers
AIR_CLEANER_TYPE: str = "AIR_CLEANER"

# Defaults for settings that config.py reads from the environment at load time
COCORO_DEFAULT_INTERVAL: float = 30.0
COCORO_DEFAULT_MQTT_HOST: str = "homeassistant.local"
COCORO_DEFAULT_MQTT_PORT: int = 1883
COCORO_DEFAULT_TOPIC: str = "cocoro"
COCORO_DEFAULT_HASS_TOPIC: str = "homeassistant"
COCORO_DEFAULT_API_BASE: str = "https://hms.cloudlabs.sharp.co.jp/hems/pfApi/ta/"
COCORO_DEFAULT_API_TIMEOUT: int = 8

COCORO_HASS_STATUS_TOPIC = os.environ.get("COCORO_HASS_STATUS_TOPIC", "status")
COCORO_HASS_BIRTH_MSG = os.environ.get("COCORO_HASS_BIRTH_MSG", "online")
COCORO_HASS_WILL_MSG = os.environ.get("COCORO_HASS_WILL_MSG", "offline")
COCORO_AVAILABILITY_ONLINE: bytes = b"online"
COCORO_AVAILABILITY_OFFLINE: bytes = b"offline"

COCORO_DEBUG = os.environ.get("COCORO_DEBUG", "0").casefold() in YES_ANSWER

# Logging Configuration
COCORO_LOG_FORMAT: str = os.environ.get("COCORO_LOG_FORMAT", "human")  # "json", "human", or "both"
COCORO_LOG_JSON_FILE: str = os.environ.get("COCORO_LOG_JSON_FILE", "/var/log/cocoro_mqtt.json")
COCORO_LOG_HUMAN_OUTPUT: str = os.environ.get("COCORO_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path

# Performance Instrumentation
COCORO_PERF_TRACKING: bool = os.environ.get("COCORO_PERF_TRACKING", "true").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("COCORO_PERF_THRESHOLD_MS", "2000")
COCORO_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 2000

SUBSCRIBER_TASK_NAME = "CocoroBridge_SUBSCRIBER"
PUBLISHER_TASK_NAME = "CocoroBridge_PUBLISHER"
