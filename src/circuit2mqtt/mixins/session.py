# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations
import asyncio

from typing import TYPE_CHECKING, Any

from circuit2mqtt.circuit_api import CircuitError, ConversationError

if TYPE_CHECKING:
    from circuit2mqtt.interface import CircuitServiceProtocol as Circuit2Mqtt


class SessionMixin:
    async def logon(self: Circuit2Mqtt) -> dict[str, Any] | None:
        """Keep trying to log on to Circuit until it works.

        `logged_in` is set on the first success and stops any further attempts.
        Returns None only if the service is stopped before a logon succeeds.
        """
        self.logged_in.clear()
        self.logon_attempts = 0
        self.logger.info(f"logging on to Circuit as bot {self.circuit_config['client_id']}")

        while self.running and not self.logged_in.is_set():
            self.logon_attempts += 1
            try:
                user = await self.circuit.logon()
            except (CircuitError, asyncio.TimeoutError) as err:
                delay = self.logon_policy.get_delay(self.logon_attempts - 1)
                self.logger.warning(f"logon attempt {self.logon_attempts} failed: {err}; retrying in {delay:.1f} sec")
                try:
                    await asyncio.sleep(delay)
                except asyncio.CancelledError:
                    self.logger.debug("logon cancelled during sleep")
                    raise
                continue

            self.logged_in.set()
            self.user = user
            self.logger.info(f"bot logged on as {user.get('emailAddress')} after {self.logon_attempts} attempt(s)")
            return user

        return None

    async def update_user_data(self: Circuit2Mqtt, user: dict[str, Any] | None) -> dict[str, Any] | None:
        first_name = self.circuit_config["first_name"]
        last_name = self.circuit_config["last_name"]
        display_name = f"{first_name} {last_name}"

        if user and user.get("displayName") != display_name:
            try:
                await self.circuit.update_user({"userId": user.get("userId"), "firstName": first_name, "lastName": last_name})
            except CircuitError as err:
                self.logger.error(f"unable to update user data: {err}")
                raise
            user.update(firstName=first_name, lastName=last_name, displayName=display_name)
            self.logger.info(f"bot display name set to {display_name}")

        return user

    async def get_monitoring_conversation(self: Circuit2Mqtt) -> dict[str, Any] | None:
        conv_id = self.circuit_config.get("conv_id")
        if conv_id:
            self.logger.info(f"check if conversation {conv_id} exists")
            try:
                conv = await self.circuit.get_conversation_by_id(conv_id)
                if conv:
                    self.logger.info(f"conversation {conv_id} exists")
                    return conv
            except (CircuitError, asyncio.TimeoutError) as err:
                self.logger.error(f"unable to get configured conversation {conv_id}: {err}")

        owner = self.circuit_config.get("bot_owner_email")
        if not owner:
            raise ConversationError("no usable conversation configured and no bot_owner_email to fall back to")

        self.logger.info(f"conversation not configured or it does not exist, find direct conversation with {owner}")
        return await self.circuit.get_direct_conversation_with_user(owner, True)

    async def start(self: Circuit2Mqtt) -> dict[str, Any]:
        try:
            conv = await self.get_monitoring_conversation()
        except (CircuitError, asyncio.TimeoutError) as err:
            self.logger.error(f"cannot get/create monitoring conversation: {err}")
            raise ConversationError(f"cannot get/create monitoring conversation: {err}") from err

        if not conv:
            self.logger.error("cannot get/create monitoring conversation")
            raise ConversationError("cannot get/create monitoring conversation")

        self.conversation = conv
        await self.send_control_form(conv)
        return conv
