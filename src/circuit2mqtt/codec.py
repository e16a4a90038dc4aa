# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import logging
import math

from typing import Any, Iterable, Mapping

from .state import EFFECT_CHRISTMAS, EFFECT_COLORFUL, LightState

logger = logging.getLogger(__name__)

MAX_BRIGHTNESS = 255

FORM_ID = "controlForm"
INTENSITY_OPTIONS = [("Off", "0"), ("25%", "25"), ("50%", "50"), ("75%", "75"), ("100%", "100")]
COLOR_OPTIONS = [("RED", "red"), ("GREEN", "green"), ("BLUE", "blue")]

# Device -> canonical -----------------------------------------------------------------------------


def quantize_brightness(brightness: float) -> int:
    """Map a 0-255 brightness onto the 0/25/50/75/100 percent levels."""
    if brightness < MAX_BRIGHTNESS * 0.25:
        return 0
    if brightness < MAX_BRIGHTNESS * 0.5:
        return 25
    if brightness < MAX_BRIGHTNESS * 0.75:
        return 50
    if brightness < MAX_BRIGHTNESS:
        return 75
    return 100


def rgb_to_color(rgb: Mapping[str, Any]) -> str | None:
    """Pick the first positive channel, in red/green/blue order."""
    for channel, color in (("r", "red"), ("g", "green"), ("b", "blue")):
        try:
            if float(rgb.get(channel) or 0) > 0:
                return color
        except (TypeError, ValueError):
            logger.warning(f"ignoring non-numeric {channel} channel in color: {rgb!r}")
    return None


def decode_light_state(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a state topic payload into the light state fields it carries.

    Fields missing from the payload (or carrying no usable information) are left
    out of the result so they keep their current value.
    """
    update: dict[str, Any] = {}

    color = payload.get("color")
    if isinstance(color, Mapping):
        picked = rgb_to_color(color)
        if picked:
            update["color"] = picked

    if "brightness" in payload:
        try:
            brightness = float(payload["brightness"])
        except (TypeError, ValueError):
            logger.warning(f"ignoring non-numeric brightness: {payload['brightness']!r}")
        else:
            if math.isfinite(brightness):
                update["intensity"] = quantize_brightness(brightness)
            else:
                logger.warning(f"ignoring non-finite brightness: {payload['brightness']!r}")

    if payload.get("effect"):
        update["effect"] = payload["effect"]

    return update


# Canonical -> device -----------------------------------------------------------------------------


def intensity_to_brightness(intensity: Any) -> float:
    return int(intensity) * MAX_BRIGHTNESS / 100


def encode_light_command(state: LightState) -> dict[str, Any]:
    brightness = intensity_to_brightness(state.intensity)

    # color is meaningless for any other effect, and an effect means the light is on
    if not state.is_colorful:
        return {"state": "ON", "effect": state.effect, "brightness": brightness}

    return {
        "state": "OFF" if int(state.intensity) == 0 else "ON",
        "color": {
            "r": 255 if state.color == "red" else 0,
            "g": 255 if state.color == "green" else 0,
            "b": 255 if state.color == "blue" else 0,
        },
        "brightness": brightness,
        "white_value": 0,
        "effect": EFFECT_COLORFUL,
    }


# Canonical <-> form ------------------------------------------------------------------------------


def build_control_form(state: LightState) -> dict[str, Any]:
    intensity = state.intensity
    return {
        "content": "Control Form",
        "form": {
            "id": FORM_ID,
            "controls": [
                {"type": "LABEL", "text": "Intensity"},
                {
                    "type": "DROPDOWN",
                    "name": "intensity",
                    "defaultValue": str(intensity) if intensity is not None else "0",
                    "options": [{"text": text, "value": value} for text, value in INTENSITY_OPTIONS],
                },
                {"type": "LABEL", "text": "Color"},
                {
                    "type": "DROPDOWN",
                    "name": "color",
                    "defaultValue": state.color or "red",
                    "options": [{"text": text, "value": value} for text, value in COLOR_OPTIONS],
                },
                {
                    "type": "CHECKBOX",
                    "name": "christmas",
                    "text": "It's Christmas!",
                    "defaultValue": "true" if state.effect == EFFECT_CHRISTMAS else "false",
                },
                {
                    "type": "BUTTON",
                    "options": [{"text": "Submit", "notification": "Submitted", "action": "submit"}],
                },
            ],
        },
    }


def decode_form_submission(data: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Translate submitted form controls into light state fields.

    Unknown control names and unparseable intensities are logged and skipped.
    """
    update: dict[str, Any] = {}

    for control in data:
        if not isinstance(control, Mapping):
            logger.error(f"ignoring malformed control in submitted form: {control!r}")
            continue
        name = control.get("name") or control.get("key")
        value = control.get("value")
        logger.debug(f"form control {name}: {value}")

        match name:
            case "intensity":
                try:
                    update["intensity"] = int(value)
                except (TypeError, ValueError):
                    logger.error(f"ignoring non-numeric intensity in submitted form: {value!r}")
            case "color":
                update["color"] = value
            case "christmas":
                update["effect"] = EFFECT_CHRISTMAS if str(value).lower() == "true" else EFFECT_COLORFUL
            case _:
                logger.error(f"unknown key in submitted form: {name}")

    return update
