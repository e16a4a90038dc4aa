# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from circuit2mqtt.circuit_api import CircuitError
from circuit2mqtt.mixins.form import FormMixin
from circuit2mqtt.mixins.light import LightMixin
from circuit2mqtt.state import EFFECT_CHRISTMAS, FormPhase, LightStateStore

CONVERSATION = {"convId": "conv-1"}


# ---------------------------------------------------------------------------
# Fake class that composes the reconciliation mixins with mocked collaborators
# ---------------------------------------------------------------------------
class FakeBridge(LightMixin, FormMixin):
    def __init__(self, conversation: dict[str, Any] | None = None) -> None:
        self.logger = MagicMock()
        self.store = LightStateStore()
        self.form_phase = FormPhase.UNPOSTED
        self.form_lock = asyncio.Lock()
        self.conversation = conversation
        self.command_topic = "/circuit/rgbw/set"

        self.circuit = MagicMock()
        self.circuit.add_text_item = AsyncMock(return_value={"itemId": "item-1"})
        self.circuit.update_text_item = AsyncMock(return_value={})

        self.mqtt_publish = AsyncMock(return_value=True)

    def published(self) -> dict[str, Any]:
        topic, payload = self.mqtt_publish.call_args.args
        assert topic == "/circuit/rgbw/set"
        return json.loads(payload)


def _submission(*controls: tuple[str, Any]) -> dict[str, Any]:
    return {"type": "formSubmission", "form": {"id": "controlForm", "data": [{"name": n, "value": v} for n, v in controls]}}


# ===========================================================================
# Device state -> form refresh
# ===========================================================================
class TestHandleLightState:
    @pytest.mark.asyncio
    async def test_updates_store_and_refreshes_form(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.handle_light_state({"color": {"r": 0, "g": 0, "b": 255}, "brightness": 200, "effect": "colorful"})

        state = bridge.store.get()
        assert state.color == "blue"
        assert state.intensity == 75
        bridge.circuit.add_text_item.assert_awaited_once()
        conv_id, item = bridge.circuit.add_text_item.call_args.args
        assert conv_id == "conv-1"
        assert item["form"]["id"] == "controlForm"

    @pytest.mark.asyncio
    async def test_never_publishes_command(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.handle_light_state({"brightness": 255})

        bridge.mqtt_publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_zero_color_keeps_previous_color(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.store.apply(color="green")

        await bridge.handle_light_state({"color": {"r": 0, "g": 0, "b": 0}})

        assert bridge.store.get().color == "green"

    @pytest.mark.asyncio
    async def test_two_events_create_once_then_update(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.handle_light_state({"brightness": 64})
        await bridge.handle_light_state({"brightness": 255})

        bridge.circuit.add_text_item.assert_awaited_once()
        bridge.circuit.update_text_item.assert_awaited_once()
        item = bridge.circuit.update_text_item.call_args.args[0]
        assert item["itemId"] == "item-1"
        assert bridge.form_phase is FormPhase.POSTED


# ===========================================================================
# Upsert rule
# ===========================================================================
class TestSendControlForm:
    @pytest.mark.asyncio
    async def test_skips_without_conversation(self):
        bridge = FakeBridge()

        await bridge.send_control_form()

        bridge.circuit.add_text_item.assert_not_called()
        bridge.circuit.update_text_item.assert_not_called()
        assert bridge.form_phase is FormPhase.UNPOSTED

    @pytest.mark.asyncio
    async def test_explicit_conversation_used(self):
        bridge = FakeBridge()

        await bridge.send_control_form({"convId": "conv-9"})

        assert bridge.circuit.add_text_item.call_args.args[0] == "conv-9"
        assert bridge.store.get().item_id == "item-1"

    @pytest.mark.asyncio
    async def test_failed_create_goes_back_to_unposted(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.circuit.add_text_item = AsyncMock(side_effect=CircuitError("boom"))

        await bridge.send_control_form()

        assert bridge.form_phase is FormPhase.UNPOSTED
        assert bridge.store.get().item_id is None
        bridge.logger.error.assert_called()

        # next refresh tries to create again
        bridge.circuit.add_text_item = AsyncMock(return_value={"itemId": "item-2"})
        await bridge.send_control_form()
        assert bridge.store.get().item_id == "item-2"

    @pytest.mark.asyncio
    async def test_create_timeout_goes_back_to_unposted(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.circuit.add_text_item = AsyncMock(side_effect=asyncio.TimeoutError())

        await bridge.send_control_form()

        assert bridge.form_phase is FormPhase.UNPOSTED
        assert bridge.store.get().item_id is None
        bridge.logger.error.assert_called()

    @pytest.mark.asyncio
    async def test_unexpected_create_error_still_resets_phase(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.circuit.add_text_item = AsyncMock(side_effect=KeyError("itemId"))

        with pytest.raises(KeyError):
            await bridge.send_control_form()

        assert bridge.form_phase is FormPhase.UNPOSTED

    @pytest.mark.asyncio
    async def test_update_timeout_is_logged(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.store.apply(item_id="item-1")
        bridge.circuit.update_text_item = AsyncMock(side_effect=asyncio.TimeoutError())

        await bridge.send_control_form()

        bridge.logger.error.assert_called()
        assert bridge.store.get().item_id == "item-1"

    @pytest.mark.asyncio
    async def test_failed_update_is_logged(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.store.apply(item_id="item-1")
        bridge.circuit.update_text_item = AsyncMock(side_effect=CircuitError("gone"))

        await bridge.send_control_form()

        bridge.logger.error.assert_called()
        assert bridge.store.get().item_id == "item-1"

    @pytest.mark.asyncio
    async def test_refresh_during_create_waits_and_updates(self):
        bridge = FakeBridge(CONVERSATION)
        phases = []

        async def slow_add(conv_id, item):
            phases.append(bridge.form_phase)
            await asyncio.sleep(0.01)
            return {"itemId": "item-1"}

        bridge.circuit.add_text_item = AsyncMock(side_effect=slow_add)

        await asyncio.gather(bridge.send_control_form(), bridge.send_control_form())

        assert phases == [FormPhase.CREATING]
        assert bridge.form_phase is FormPhase.POSTED
        bridge.circuit.add_text_item.assert_awaited_once()
        bridge.circuit.update_text_item.assert_awaited_once()
        assert any("queued" in c.args[0] for c in bridge.logger.debug.call_args_list)


# ===========================================================================
# Form submission -> command
# ===========================================================================
class TestProcessFormSubmission:
    @pytest.mark.asyncio
    async def test_christmas_with_zero_intensity(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.process_form_submission(_submission(("intensity", "0"), ("color", "blue"), ("christmas", "true")))

        payload = bridge.published()
        assert payload["state"] == "ON"
        assert payload["effect"] == "christmas"
        assert "color" not in payload
        assert bridge.store.get().effect == EFFECT_CHRISTMAS

    @pytest.mark.asyncio
    async def test_colorful_off(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.process_form_submission(_submission(("intensity", "0"), ("color", "green"), ("christmas", "false")))

        payload = bridge.published()
        assert payload["state"] == "OFF"
        assert payload["color"] == {"r": 0, "g": 255, "b": 0}
        assert payload["brightness"] == 0
        assert payload["white_value"] == 0
        assert payload["effect"] == "colorful"

    @pytest.mark.asyncio
    async def test_does_not_repost_form(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.process_form_submission(_submission(("intensity", "50")))

        bridge.circuit.add_text_item.assert_not_called()
        bridge.circuit.update_text_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_field_leaves_state_untouched(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.store.apply(intensity=75, color="blue", effect=EFFECT_CHRISTMAS)

        await bridge.process_form_submission(_submission(("bogus", "1")))

        state = bridge.store.get()
        assert (state.intensity, state.color, state.effect) == (75, "blue", EFFECT_CHRISTMAS)
        bridge.mqtt_publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_form(self):
        bridge = FakeBridge(CONVERSATION)

        await bridge.process_form_submission({"type": "formSubmission"})

        assert bridge.published()["state"] == "OFF"


class TestHandleCircuitEvent:
    @pytest.mark.asyncio
    async def test_routes_form_submission(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.process_form_submission = AsyncMock()
        event = _submission(("intensity", "25"))

        await bridge.handle_circuit_event(event)

        bridge.process_form_submission.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_ignores_other_events(self):
        bridge = FakeBridge(CONVERSATION)
        bridge.process_form_submission = AsyncMock()

        await bridge.handle_circuit_event({"type": "itemAdded"})

        bridge.process_form_submission.assert_not_called()


class TestPublishLightCommand:
    @pytest.mark.asyncio
    async def test_payload_is_valid_json(self):
        bridge = FakeBridge()
        bridge.store.apply(intensity=100, color="red")

        assert await bridge.publish_light_command() is True

        assert bridge.published() == {
            "state": "ON",
            "color": {"r": 255, "g": 0, "b": 0},
            "brightness": 255,
            "white_value": 0,
            "effect": "colorful",
        }
