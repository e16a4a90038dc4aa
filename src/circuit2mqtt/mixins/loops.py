# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations
import asyncio
import signal

from typing import TYPE_CHECKING

from circuit2mqtt.circuit_api import CircuitError

if TYPE_CHECKING:
    from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt

EVENT_RECONNECT_INTERVAL = 5


class LoopsMixin:
    async def circuit_event_loop(self: Circuit2Mqtt) -> None:
        while self.running:
            try:
                async for event in self.circuit.events():
                    try:
                        await self.handle_circuit_event(event)
                    except Exception as err:
                        self.logger.exception(f"error handling Circuit event {event.get('type')}: {err}")
                self.logger.warning("Circuit event stream closed")
            except (CircuitError, asyncio.TimeoutError) as err:
                self.logger.error(f"Circuit event stream failed: {err}")
            except asyncio.CancelledError:
                self.logger.debug("circuit_event_loop cancelled")
                break

            if not self.running:
                break
            try:
                await asyncio.sleep(EVENT_RECONNECT_INTERVAL)
            except asyncio.CancelledError:
                self.logger.debug("circuit_event_loop cancelled during sleep")
                break

    async def heartbeat(self: Circuit2Mqtt) -> None:
        while self.running:
            self.heartbeat_ready()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                self.logger.debug("heartbeat cancelled during sleep")
                break

    # main loop
    async def main_loop(self: Circuit2Mqtt) -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                signal.signal(sig, self._handle_signal)
            except Exception:
                self.logger.debug(f"cannot install handler for {sig}")

        user = await self.logon()
        if not user:
            self.logger.warning("stopped before logging on to Circuit")
            return
        await self.update_user_data(user)
        await self.start()

        self.mark_ready()

        self.tasks = [
            asyncio.create_task(self.circuit_event_loop(), name="circuit_event_loop"),
            asyncio.create_task(self.heartbeat(), name="heartbeat"),
        ]

        try:
            await asyncio.gather(*self.tasks)
        except asyncio.CancelledError:
            self.logger.warning("main loop cancelled, shutting down")
        except Exception as err:
            self.logger.exception(f"unhandled exception in main loop: {err}")
            self.running = False
        finally:
            self.logger.info("all loops terminated, cleanup complete")
