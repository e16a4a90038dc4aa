# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import os
import sys
import time

from circuit2mqtt.mixins.helpers import READY_FILE

# heartbeat touches the ready file every 60s
DEFAULT_MAX_AGE = 90


def is_ready(path: str = READY_FILE, max_age: float = DEFAULT_MAX_AGE, now: float | None = None) -> bool:
    """True when the ready file exists and was touched within `max_age` seconds."""
    try:
        mtime = os.stat(path).st_mtime
    except FileNotFoundError:
        return False
    return (now if now is not None else time.time()) - mtime < max_age


def main() -> int:
    max_age = int(os.getenv("HEALTH_MAX_AGE", str(DEFAULT_MAX_AGE)))
    return 0 if is_ready(max_age=max_age) else 1


if __name__ == "__main__":
    sys.exit(main())
