# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
#!/usr/bin/env python3
import asyncio
import argparse
import logging
from .circuit_api import CircuitError, ConversationError
from .mixins.helpers import ConfigError
from .mixins.mqtt import MqttError
from .core import Circuit2Mqtt


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="circuit2mqtt", exit_on_error=True)
    p.add_argument(
        "-c",
        "--config",
        help="Directory or file path for config.yaml (defaults to /config/config.yaml)",
    )
    return p


def setup_logging() -> None:
    logging.basicConfig(
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=logging.INFO,
    )


async def async_main() -> int:
    setup_logging()
    logger = logging.getLogger(__name__)

    parser = build_parser()
    args = parser.parse_args()

    try:
        async with Circuit2Mqtt(args=args) as circuit2mqtt:
            logger.info(f"starting circuit2mqtt {circuit2mqtt.config['version']}")
            logger.info(f"config loaded from {circuit2mqtt.config['config_from']} ({circuit2mqtt.config['config_path']})")
            await circuit2mqtt.main_loop()
    except ConfigError as err:
        logger.error(f"Fatal config error was found: {err}")
        return 1
    except MqttError as err:
        logger.error(f"MQTT service problems: {err}")
        return 1
    except ConversationError as err:
        logger.error(f"bot failed: {err}")
        return 1
    except CircuitError as err:
        logger.error(f"Circuit service problems: {err}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Shutdown requested (Ctrl+C). Exiting gracefully...")
    except asyncio.CancelledError:
        logger.warning("Main loop cancelled.")
    except Exception as err:
        logger.error(f"Unhandled exception: {err}", exc_info=True)
        return 1
    finally:
        logger.info("circuit2mqtt stopped.")

    return 0


def main() -> int:
    try:
        return asyncio.run(async_main())
    except RuntimeError as err:
        # Fallback for nested loops (Jupyter, tests, etc.)
        if "asyncio.run() cannot be called from a running event loop" in str(err):
            loop = asyncio.get_event_loop()
            return loop.run_until_complete(async_main())
        raise
