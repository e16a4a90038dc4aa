# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from typing import Any

import pytest


@pytest.fixture
def sample_circuit_config() -> dict[str, Any]:
    """Return a minimal valid config dict for circuit2mqtt."""
    return {
        "mqtt": {
            "host": "localhost",
            "port": 1883,
            "qos": 0,
            "username": "testuser",
            "password": "testpass",
            "tls_enabled": False,
            "prefix": "circuit2mqtt",
            "command_topic": "/circuit/rgbw/set",
            "state_topic": "/circuit/rgbw",
        },
        "circuit": {
            "domain": "circuitsandbox.net",
            "client_id": "test-client-id",
            "client_secret": "test-client-secret",
            "scope": "ALL",
            "conv_id": None,
            "bot_owner_email": "owner@example.com",
            "first_name": "Light",
            "last_name": "Bot",
            "login_interval": 5.0,
        },
        "debug": False,
        "config_from": "test",
        "config_path": "/tmp",
        "version": "0.0.0-test",
    }
