from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import dotenv
import uvloop

from cocoro_mqtt.bridge import CocoroBridge
from cocoro_mqtt.cloud_api import CocoroCloudAPI
from cocoro_mqtt.config import BridgeSettings, load_settings
from cocoro_mqtt.const import COCORO_DEBUG, COCORO_VERSION
from cocoro_mqtt.correlation import correlation_context
from cocoro_mqtt.logging_abstraction import get_logger
from cocoro_mqtt.mqtt.client import MQTTClient

logger = get_logger(__name__)

# Suppress verbose MQTT library warnings
mqtt_logger = logging.getLogger("mqtt")
mqtt_logger.setLevel(logging.ERROR)
mqtt_logger.propagate = False


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cocoro Air to MQTT bridge")
    _ = parser.add_argument(
        "-D",
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    _ = parser.add_argument("--config", help="Path to a YAML settings file", default=None, type=Path)
    _ = parser.add_argument(
        "--interval",
        help="Seconds between two state refreshes (overrides settings)",
        default=None,
        type=float,
    )
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {COCORO_VERSION}")
    return parser.parse_args(argv)


def load_env_file(env_file: Path) -> bool:
    """Load environment variables from a dotenv file. Returns True if any were loaded."""
    env_path = env_file.expanduser().resolve()
    if not env_path.exists():
        logger.error(
            "Environment file not found",
            extra={"path": str(env_path)},
        )
        return False
    loaded_any = dotenv.load_dotenv(env_path, override=True)
    if loaded_any:
        logger.info(
            "Environment variables loaded",
            extra={"source": str(env_path)},
        )
    else:
        logger.warning(
            "No environment variables loaded from file",
            extra={"path": str(env_path)},
        )
    return loaded_any


def build_bridge(settings: BridgeSettings) -> tuple[CocoroBridge, CocoroCloudAPI]:
    cloud_api = CocoroCloudAPI(
        app_secret=settings.cocoro.app_secret,
        terminal_key=settings.cocoro.terminal_key,
        api_base=settings.cocoro.api_base,
        api_timeout=settings.cocoro.api_timeout,
    )
    mqtt_client = MQTTClient(
        host=settings.mqtt.host,
        port=settings.mqtt.port,
        username=settings.mqtt.username,
        password=settings.mqtt.password,
        topic=settings.mqtt.topic,
        ha_topic=settings.mqtt.ha_topic,
    )
    bridge = CocoroBridge(cocoro_client=cloud_api, mqtt_client=mqtt_client, interval=settings.interval)
    return bridge, cloud_api


async def run(settings: BridgeSettings) -> None:
    """Run the bridge until it fails or the process receives SIGINT/SIGTERM."""
    bridge, cloud_api = build_bridge(settings)
    loop = asyncio.get_running_loop()
    start_task = asyncio.current_task()
    assert start_task is not None

    def _on_signal(signum: int) -> None:
        logger.info("Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
        _ = start_task.cancel()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, _on_signal, signum)
    try:
        await bridge.start()
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            _ = loop.remove_signal_handler(signum)
        await cloud_api.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Cocoro MQTT bridge."""
    with correlation_context():
        args = parse_cli(argv)
        if args.debug or COCORO_DEBUG:
            for name in list(logging.root.manager.loggerDict):
                if name.startswith("cocoro_mqtt"):
                    get_logger(name).set_level(logging.DEBUG)
            logger.info("Debug logging enabled")

        logger.info(
            "Starting Cocoro MQTT bridge",
            extra={"version": COCORO_VERSION},
        )

        if args.env:
            _ = load_env_file(args.env)

        try:
            settings = load_settings(args.config)
        except (OSError, ValueError) as e:
            logger.error("Failed to load settings: %s", e)
            return 2
        if args.interval is not None:
            settings = settings.model_copy(update={"interval": args.interval})

        try:
            uvloop.run(run(settings))
        except asyncio.CancelledError:
            logger.info("Cocoro MQTT bridge cancelled, shutting down...")
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception(
                "Fatal error in main loop",
                extra={"error": str(e)},
            )
            return 1
        finally:
            logger.info("Cocoro MQTT bridge shutdown complete")
    return 0


__all__ = ["build_bridge", "load_env_file", "main", "parse_cli", "run"]


if __name__ == "__main__":
    sys.exit(main())
