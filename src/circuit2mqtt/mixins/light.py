# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations
import json

from typing import TYPE_CHECKING, Any

from circuit2mqtt.codec import decode_light_state, encode_light_command

if TYPE_CHECKING:
    from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt


class LightMixin:
    async def handle_light_state(self: Circuit2Mqtt, payload: dict[str, Any]) -> None:
        """The light reported its state: remember it and refresh the form.

        This is the light echoing what it is doing, so no command goes back out.
        """
        update = decode_light_state(payload)
        state = self.store.apply(**update)
        if self.store.changed:
            self.logger.debug(f"light state now intensity={state.intensity}, color={state.color}, effect={state.effect}")

        await self.send_control_form()

    async def publish_light_command(self: Circuit2Mqtt) -> bool:
        command = encode_light_command(self.store.get())
        payload = json.dumps(command)
        self.logger.info(f"sending {payload} to {self.command_topic}")

        return await self.mqtt_publish(self.command_topic, payload)
