# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations
import asyncio

from typing import TYPE_CHECKING, Any

from circuit2mqtt.circuit_api import CircuitError
from circuit2mqtt.codec import build_control_form, decode_form_submission
from circuit2mqtt.state import FormPhase

if TYPE_CHECKING:
    from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt


class FormMixin:
    async def send_control_form(self: Circuit2Mqtt, conversation: dict[str, Any] | None = None) -> None:
        """Post the control form once, then keep updating that same post.

        The lock makes a refresh that arrives while the first post is in flight
        wait for its itemId and update instead of posting a second form.
        Post and update failures are logged here and never raised.
        """
        conversation = conversation or self.conversation

        if self.form_phase is FormPhase.CREATING:
            self.logger.debug("control form is being posted, refresh queued behind it")

        async with self.form_lock:
            state = self.store.get()
            item = build_control_form(state)

            if state.item_id:
                item["itemId"] = state.item_id
                try:
                    await self.circuit.update_text_item(item)
                    self.logger.debug(f"updated control form {state.item_id}")
                except (CircuitError, asyncio.TimeoutError) as err:
                    self.logger.error(f"failed to update control form {state.item_id}: {err}")
                return

            if not conversation:
                self.logger.info("not ready to send form, no conversation yet")
                return

            self.form_phase = FormPhase.CREATING
            try:
                posted = await self.circuit.add_text_item(conversation["convId"], item)
                self.store.apply(item_id=posted["itemId"])
                self.form_phase = FormPhase.POSTED
                self.logger.info(f"posted control form {posted['itemId']} to {conversation['convId']}")
            except (CircuitError, asyncio.TimeoutError) as err:
                self.logger.error(f"failed to post control form to {conversation['convId']}: {err}")
            finally:
                if self.form_phase is FormPhase.CREATING:
                    self.form_phase = FormPhase.UNPOSTED

    async def process_form_submission(self: Circuit2Mqtt, event: dict[str, Any]) -> None:
        form = event.get("form") or {}
        self.logger.info(f"process form submission {form.get('id')}: {form.get('data')}")

        update = decode_form_submission(form.get("data") or [])
        state = self.store.apply(**update)
        self.logger.info(f"intensity set to {state.intensity}, color set to {state.color} and effect is {state.effect}")

        # the form the user just submitted stays as-is; the light's echo refreshes it
        await self.publish_light_command()

    async def handle_circuit_event(self: Circuit2Mqtt, event: dict[str, Any]) -> None:
        match event.get("type"):
            case "formSubmission":
                await self.process_form_submission(event)
            case _:
                self.logger.debug(f"ignoring Circuit event {event.get('type')}")
