# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import argparse
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from circuit2mqtt import app
from circuit2mqtt.circuit_api import CircuitError, ConversationError
from circuit2mqtt.mixins.helpers import ConfigError
from circuit2mqtt.mixins.mqtt import MqttError


def _run(service_cls: MagicMock):
    parser = MagicMock()
    parser.parse_args.return_value = argparse.Namespace(config=None)
    return (
        patch("circuit2mqtt.app.Circuit2Mqtt", service_cls),
        patch("circuit2mqtt.app.build_parser", return_value=parser),
        patch("circuit2mqtt.app.setup_logging"),
    )


class TestAsyncMain:
    @pytest.mark.asyncio
    async def test_clean_run_exits_zero(self):
        service = MagicMock()
        service.config = {"version": "1.0", "config_from": "test", "config_path": "/tmp"}
        service.main_loop = AsyncMock()
        service_cls = MagicMock()
        service_cls.return_value.__aenter__.return_value = service

        p1, p2, p3 = _run(service_cls)
        with p1, p2, p3:
            assert await app.async_main() == 0

        service.main_loop.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ConfigError("no broker"), MqttError("refused"), ConversationError("nobody"), CircuitError("500"), RuntimeError("?")],
    )
    async def test_startup_failures_exit_one(self, error):
        service_cls = MagicMock()
        service_cls.return_value.__aenter__.side_effect = error

        p1, p2, p3 = _run(service_cls)
        with p1, p2, p3:
            assert await app.async_main() == 1

    @pytest.mark.asyncio
    async def test_fatal_conversation_failure_in_main_loop_exits_one(self):
        service = MagicMock()
        service.config = {"version": "1.0", "config_from": "test", "config_path": "/tmp"}
        service.main_loop = AsyncMock(side_effect=ConversationError("cannot get/create monitoring conversation"))
        service_cls = MagicMock()
        service_cls.return_value.__aenter__.return_value = service

        p1, p2, p3 = _run(service_cls)
        with p1, p2, p3:
            assert await app.async_main() == 1


class TestBuildParser:
    def test_config_option(self):
        args = app.build_parser().parse_args(["-c", "/etc/circuit2mqtt"])
        assert args.config == "/etc/circuit2mqtt"
