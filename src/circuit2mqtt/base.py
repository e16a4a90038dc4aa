# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import aiohttp
import argparse
import asyncio
import logging
from paho.mqtt.client import Client
from types import TracebackType

from typing import Any, Self, cast

from circuit2mqtt.circuit_api import CircuitClient
from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt
from circuit2mqtt.retry import RetryPolicy
from circuit2mqtt.state import FormPhase, LightStateStore


class Base:
    def __init__(self: Circuit2Mqtt, args: argparse.Namespace | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)

        self.loop = asyncio.get_running_loop()

        self.session: aiohttp.ClientSession
        self.circuit: CircuitClient

        self.args = args
        self.logger = logging.getLogger(__name__)

        # now load self.config right away
        cfg_arg = getattr(args, "config", None)
        self.config = self.load_config(cfg_arg)

        # down in trenches if we have to
        if self.config.get("debug"):
            logging.getLogger("circuit2mqtt").setLevel(logging.DEBUG)

        self.mqtt_config = self.config["mqtt"]
        self.circuit_config = self.config["circuit"]

        self.qos = self.mqtt_config["qos"]
        self.command_topic = self.mqtt_config["command_topic"]
        self.state_topic = self.mqtt_config["state_topic"]

        self.mqttc: Client
        self.client_id = self.get_new_client_id()

        self.running = False
        self.tasks: list[asyncio.Task] = []

        # what the light is doing now, and the form that shows it
        self.store = LightStateStore()
        self.form_phase = FormPhase.UNPOSTED
        self.form_lock = asyncio.Lock()
        self.conversation: dict[str, Any] | None = None

        self.user: dict[str, Any] | None = None
        self.logged_in = asyncio.Event()
        self.logon_attempts = 0
        self.logon_policy = RetryPolicy(interval=self.circuit_config["login_interval"])

    async def __aenter__(self: Self) -> Circuit2Mqtt:
        super_enter = getattr(super(), "__enter__", None)
        if callable(super_enter):
            super_enter()

        timeout = aiohttp.ClientTimeout(total=15)
        self.session = aiohttp.ClientSession(timeout=timeout)
        self.circuit = CircuitClient(self.session, cast(Any, self).circuit_config)

        self.running = True
        try:
            await cast(Any, self).mqttc_create()
        except Exception:
            self.running = False
            await self.session.close()
            raise

        return cast(Circuit2Mqtt, self)

    async def __aexit__(self: Self, exc_type: BaseException | None, exc_val: BaseException | None, exc_tb: TracebackType) -> None:
        super_exit = getattr(super(), "__exit__", None)
        if callable(super_exit):
            super_exit(exc_type, exc_val, exc_tb)

        self.running = False

        if cast(Any, self).session and not cast(Any, self).session.closed:
            await cast(Any, self).session.close()

        if getattr(self, "mqttc", None) is not None:
            try:
                cast(Any, self).mqttc.loop_stop()
            except Exception as e:
                cast(Any, self).logger.debug(f"mqtt loop_stop failed: {e}")

            if cast(Any, self).mqttc.is_connected():
                try:
                    cast(Any, self).mqttc.disconnect()
                    cast(Any, self).logger.info("disconnected from MQTT broker")
                except Exception as e:
                    cast(Any, self).logger.warning(f"error during MQTT disconnect: {e}")

        cast(Any, self).logger.info("exiting gracefully")
