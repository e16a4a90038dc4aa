# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations
import asyncio
import json
import random
import ssl
import string

import paho.mqtt.client as mqtt
from paho.mqtt.client import Client, MQTTMessage

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt


class MqttError(RuntimeError):
    """Raised when the MQTT broker cannot be reached."""

    pass


class MqttMixin:
    def get_new_client_id(self: Circuit2Mqtt) -> str:
        return self.mqtt_config["prefix"] + "-" + "".join(random.choices(string.ascii_lowercase + string.digits, k=8))

    async def mqttc_create(self: Circuit2Mqtt) -> None:
        self.mqttc = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=False,
        )

        if self.mqtt_config.get("tls_enabled"):
            self.mqttc.tls_set(
                ca_certs=self.mqtt_config.get("tls_ca_cert"),
                certfile=self.mqtt_config.get("tls_cert"),
                keyfile=self.mqtt_config.get("tls_key"),
                cert_reqs=ssl.CERT_REQUIRED,
                tls_version=ssl.PROTOCOL_TLS,
            )
        if self.mqtt_config.get("username"):
            self.mqttc.username_pw_set(
                username=self.mqtt_config.get("username"),
                password=self.mqtt_config.get("password"),
            )

        self.mqttc.on_connect = self.mqtt_on_connect
        self.mqttc.on_disconnect = self.mqtt_on_disconnect
        self.mqttc.on_message = self.mqtt_on_message
        self.mqttc.on_subscribe = self.mqtt_on_subscribe

        host = self.mqtt_config["host"]
        port = self.mqtt_config["port"]
        try:
            await asyncio.to_thread(self.mqttc.connect, host, port=port, keepalive=60)
        except (OSError, ValueError) as err:
            self.logger.error(f"failed to connect to MQTT broker {host}:{port}: {err}")
            raise MqttError(f"cannot connect to MQTT broker {host}:{port}: {err}") from err

        self.mqttc.loop_start()
        self.logger.info(f"connecting to MQTT broker {host}:{port} as {self.client_id}")

    # Callbacks (run on the paho network thread) --------------------------------------------------

    def mqtt_on_connect(self: Circuit2Mqtt, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if reason_code.is_failure:
            self.logger.error(f"MQTT connection refused: {reason_code}")
            return
        self.logger.info(f"MQTT connected as {self.client_id}")

        # subscription failures are logged and retried on the next connect, never fatal
        result, _ = client.subscribe(self.state_topic, qos=self.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self.logger.error(f"error subscribing to {self.state_topic}: {mqtt.error_string(result)}")

    def mqtt_on_disconnect(self: Circuit2Mqtt, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if self.running:
            self.logger.warning(f"MQTT connection lost ({reason_code}), reconnecting")
        else:
            self.logger.info("MQTT connection closed")

    def mqtt_on_subscribe(self: Circuit2Mqtt, client: Client, userdata: Any, mid: int, reason_code_list: Any, properties: Any) -> None:
        for rc in reason_code_list:
            if rc.is_failure:
                self.logger.error(f"error subscribing to {self.state_topic}: {rc}")
            else:
                self.logger.info(f"subscription to {self.state_topic} successful, qos: {rc.value}")

    def mqtt_on_message(self: Circuit2Mqtt, client: Client, userdata: Any, msg: MQTTMessage) -> None:
        asyncio.run_coroutine_threadsafe(self.mqtt_handle_message(msg.topic, msg.payload), self.loop)

    # Message handling ----------------------------------------------------------------------------

    async def mqtt_handle_message(self: Circuit2Mqtt, topic: str, payload: bytes) -> None:
        self.logger.info(f"received MQTT message on {topic}: {payload!r}")

        if topic != self.state_topic:
            self.logger.warning(f"unhandled MQTT topic: {topic}")
            return

        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as err:
            self.logger.warning(f"failed to decode light state on {topic}: {err}")
            return

        if not isinstance(data, dict):
            self.logger.warning(f"ignoring light state on {topic} that is not an object: {data!r}")
            return

        try:
            await self.handle_light_state(data)
        except Exception as err:
            self.logger.exception(f"error handling light state from {topic}: {err}")

    async def mqtt_publish(self: Circuit2Mqtt, topic: str, payload: str) -> bool:
        info = await asyncio.to_thread(self.mqttc.publish, topic, payload, qos=self.qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.error(f"failed to publish to {topic}: {mqtt.error_string(info.rc)}")
            return False
        return True
