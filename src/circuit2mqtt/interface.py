# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import argparse
import asyncio
import logging
from types import FrameType

from aiohttp import ClientSession
from paho.mqtt.client import Client, MQTTMessage

from typing import Any, Protocol

from .circuit_api import CircuitClient
from .retry import RetryPolicy
from .state import FormPhase, LightStateStore


class CircuitServiceProtocol(Protocol):
    """Attributes and methods the mixins expect to find on the composed service."""

    args: argparse.Namespace | None
    config: dict[str, Any]
    mqtt_config: dict[str, Any]
    circuit_config: dict[str, Any]
    logger: logging.Logger
    loop: asyncio.AbstractEventLoop
    running: bool

    session: ClientSession
    circuit: CircuitClient
    mqttc: Client
    client_id: str
    qos: int
    command_topic: str
    state_topic: str

    store: LightStateStore
    form_phase: FormPhase
    form_lock: asyncio.Lock
    conversation: dict[str, Any] | None
    user: dict[str, Any] | None
    logged_in: asyncio.Event
    logon_attempts: int
    logon_policy: RetryPolicy
    tasks: list[asyncio.Task]

    # helpers
    def load_config(self, config_arg: Any | None = None) -> dict[str, Any]: ...
    def mark_ready(self) -> None: ...
    def heartbeat_ready(self) -> None: ...
    def _handle_signal(self, signum: int, frame: FrameType | None = None) -> None: ...

    # mqtt
    def get_new_client_id(self) -> str: ...
    async def mqttc_create(self) -> None: ...
    def mqtt_on_connect(self, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None: ...
    def mqtt_on_disconnect(self, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None: ...
    def mqtt_on_message(self, client: Client, userdata: Any, msg: MQTTMessage) -> None: ...
    def mqtt_on_subscribe(self, client: Client, userdata: Any, mid: int, reason_code_list: Any, properties: Any) -> None: ...
    async def mqtt_handle_message(self, topic: str, payload: bytes) -> None: ...
    async def mqtt_publish(self, topic: str, payload: str) -> bool: ...

    # light
    async def handle_light_state(self, payload: dict[str, Any]) -> None: ...
    async def publish_light_command(self) -> bool: ...

    # form
    async def send_control_form(self, conversation: dict[str, Any] | None = None) -> None: ...
    async def process_form_submission(self, event: dict[str, Any]) -> None: ...
    async def handle_circuit_event(self, event: dict[str, Any]) -> None: ...

    # session
    async def logon(self) -> dict[str, Any] | None: ...
    async def update_user_data(self, user: dict[str, Any] | None) -> dict[str, Any] | None: ...
    async def get_monitoring_conversation(self) -> dict[str, Any] | None: ...
    async def start(self) -> dict[str, Any]: ...

    # loops
    async def circuit_event_loop(self) -> None: ...
    async def heartbeat(self) -> None: ...
    async def main_loop(self) -> None: ...
