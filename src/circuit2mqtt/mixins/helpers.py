# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations
from importlib.metadata import version as pkg_version
import logging
import os
import pathlib
import signal
import threading
from types import FrameType
import yaml

from typing import TYPE_CHECKING, Any, cast

if TYPE_CHECKING:
    from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt

READY_FILE = os.getenv("READY_FILE", "/tmp/circuit2mqtt.ready")

# MQTT topic to set the light state
DEFAULT_COMMAND_TOPIC = "/circuit/rgbw/set"
# MQTT topic the light reports its actual state on
DEFAULT_STATE_TOPIC = "/circuit/rgbw"


class ConfigError(ValueError):
    """Raised when the configuration file is invalid."""

    pass


class HelpersMixin:
    # Utility functions ---------------------------------------------------------------------------

    def _handle_signal(self: Circuit2Mqtt, signum: int, frame: FrameType | None = None) -> None:
        sig_name = signal.Signals(signum).name
        self.logger.warning(f"{sig_name} received - stopping service loop")
        self.running = False

        for task in getattr(self, "tasks", []):
            self.loop.call_soon_threadsafe(task.cancel)

        def _force_exit() -> None:
            self.logger.warning("force-exiting process after signal")
            os._exit(0)

        timer = threading.Timer(5.0, _force_exit)
        timer.daemon = True
        timer.start()

    def mark_ready(self: Circuit2Mqtt) -> None:
        pathlib.Path(READY_FILE).touch()

    def heartbeat_ready(self: Circuit2Mqtt) -> None:
        pathlib.Path(READY_FILE).touch()

    def load_config(self: Circuit2Mqtt, config_arg: Any | None = None) -> dict[str, Any]:
        version = os.getenv("APP_VERSION") or pkg_version("circuit2mqtt")
        tier = os.getenv("APP_TIER", "prod")
        if tier == "dev":
            version += ":DEV"

        config_from = "env"
        config: dict[str, str | bool | int | dict] = {}

        # Determine config file path
        config_path = config_arg or "/config"
        config_path = os.path.expanduser(config_path)
        config_path = os.path.abspath(config_path)

        if os.path.isdir(config_path):
            config_file = os.path.join(config_path, "config.yaml")
        elif os.path.isfile(config_path):
            config_file = config_path
            config_path = os.path.dirname(config_file)
        else:
            # If it's not a valid path but looks like a filename, handle gracefully
            if config_path.endswith(".yaml"):
                config_file = config_path
            else:
                config_file = os.path.join(config_path, "config.yaml")

        # Try to load from YAML
        if os.path.exists(config_file):
            try:
                with open(config_file, "r") as f:
                    config = yaml.safe_load(f) or {}
                config_from = "file"
            except Exception as e:
                logging.warning(f"Failed to load config from {config_file}: {e}")
        else:
            logging.warning(f"Config file not found at {config_file}, falling back to environment vars")

        # Merge with environment vars (env vars override nothing if file exists)
        mqtt = cast(dict[str, Any], config.get("mqtt", {}))
        circuit = cast(dict[str, Any], config.get("circuit", {}))

        try:
            # fmt: off
            mqtt = {
                  "host":                 mqtt.get("host")           or os.getenv("MQTT_HOST"),
                  "port":     int(cast(str, mqtt.get("port")         or os.getenv("MQTT_PORT", 1883))),
                  "qos":      int(cast(str, mqtt.get("qos")          or os.getenv("MQTT_QOS", 0))),
                  "username":             mqtt.get("username")       or os.getenv("MQTT_USERNAME", ""),
                  "password":             mqtt.get("password")       or os.getenv("MQTT_PASSWORD", ""),
                  "tls_enabled":          mqtt.get("tls_enabled")    or (os.getenv("MQTT_TLS_ENABLED", "false").lower() == "true"),
                  "tls_ca_cert":          mqtt.get("tls_ca_cert")    or os.getenv("MQTT_TLS_CA_CERT"),
                  "tls_cert":             mqtt.get("tls_cert")       or os.getenv("MQTT_TLS_CERT"),
                  "tls_key":              mqtt.get("tls_key")        or os.getenv("MQTT_TLS_KEY"),
                  "prefix":               mqtt.get("prefix")         or os.getenv("MQTT_PREFIX", "circuit2mqtt"),
                  "command_topic":        mqtt.get("command_topic")  or os.getenv("MQTT_COMMAND_TOPIC", DEFAULT_COMMAND_TOPIC),
                  "state_topic":          mqtt.get("state_topic")    or os.getenv("MQTT_STATE_TOPIC", DEFAULT_STATE_TOPIC),
            }

            circuit = {
                "domain":                 circuit.get("domain")          or os.getenv("CIRCUIT_DOMAIN", "circuitsandbox.net"),
                "client_id":              circuit.get("client_id")       or os.getenv("CIRCUIT_CLIENT_ID"),
                "client_secret":          circuit.get("client_secret")   or os.getenv("CIRCUIT_CLIENT_SECRET"),
                "scope":                  circuit.get("scope")           or os.getenv("CIRCUIT_SCOPE", "ALL"),
                "conv_id":                circuit.get("conv_id")         or os.getenv("CIRCUIT_CONV_ID"),
                "bot_owner_email":        circuit.get("bot_owner_email") or os.getenv("CIRCUIT_BOT_OWNER_EMAIL"),
                "first_name":             circuit.get("first_name")      or os.getenv("CIRCUIT_BOT_FIRST_NAME", "Light"),
                "last_name":              circuit.get("last_name")       or os.getenv("CIRCUIT_BOT_LAST_NAME", "Bot"),
                "login_interval": float(cast(str, circuit.get("login_interval") or os.getenv("CIRCUIT_LOGIN_INTERVAL", 5))),
            }
            # fmt: on
        except (TypeError, ValueError) as err:
            raise ConfigError(f"invalid numeric value in config: {err}") from err

        config = {
            "mqtt": mqtt,
            "circuit": circuit,
            "debug": str(config.get("debug") or os.getenv("DEBUG", "")).lower() == "true",
            "config_from": config_from,
            "config_path": config_path,
            "version": version,
        }

        # Validate required fields
        if not cast(dict, config["mqtt"]).get("host"):
            raise ConfigError("`mqtt.host` required in config file or MQTT_HOST env var")
        if not cast(dict, config["circuit"]).get("client_id"):
            raise ConfigError("`circuit.client_id` required in config file or CIRCUIT_CLIENT_ID env var")
        if not cast(dict, config["circuit"]).get("client_secret"):
            raise ConfigError("`circuit.client_secret` required in config file or CIRCUIT_CLIENT_SECRET env var")

        return config
