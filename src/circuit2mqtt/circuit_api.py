# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import aiohttp
import asyncio
from aiohttp import ClientError
import json
import logging

from typing import Any, AsyncIterator, cast


class CircuitError(RuntimeError):
    """Raised when a Circuit API call fails."""

    pass


class ConversationError(CircuitError):
    """Raised when no conversation can be found or created for the bot."""

    pass


class CircuitClient:
    """Thin async client for the Circuit REST and WebSocket APIs, acting as a bot."""

    def __init__(self, session: aiohttp.ClientSession, circuit_config: dict[str, Any]) -> None:
        self.logger = logging.getLogger(__name__)
        self.session = session
        self.config = circuit_config

        domain = circuit_config["domain"]
        self.token_url = f"https://{domain}/oauth/token"
        self.rest_url = f"https://{domain}/rest/v2"
        self.ws_url = f"wss://{domain}/api/v2/websocket"

        self.access_token: str | None = None
        self.user: dict[str, Any] = {}

    def get_headers(self) -> dict[str, str]:
        if not self.access_token:
            raise CircuitError("not logged on to Circuit")
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.access_token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.rest_url}{path}"
        try:
            async with self.session.request(method, url, headers=self.get_headers(), **kwargs) as r:
                if r.status == 404:
                    return None
                if r.status not in (200, 201, 204):
                    raise CircuitError(f"{method} {path} failed with status {r.status}")
                if r.status == 204:
                    return {}
                return await r.json()
        except (ClientError, asyncio.TimeoutError) as err:
            raise CircuitError(f"request error communicating with Circuit for {method} {path}: {err}") from err

    # Session -------------------------------------------------------------------------------------

    async def logon(self) -> dict[str, Any]:
        data = {
            "grant_type": "client_credentials",
            "client_id": self.config["client_id"],
            "client_secret": self.config["client_secret"],
            "scope": self.config["scope"],
        }
        try:
            async with self.session.post(self.token_url, data=data) as r:
                if r.status != 200:
                    raise CircuitError(f"logon failed with status {r.status}")
                token = await r.json()
        except (ClientError, asyncio.TimeoutError) as err:
            raise CircuitError(f"request error logging on to Circuit: {err}") from err

        self.access_token = token.get("access_token")
        if not self.access_token:
            raise CircuitError("logon response carried no access token")

        self.user = await self._request("GET", "/users/profile") or {}
        return self.user

    async def update_user(self, user: dict[str, Any]) -> None:
        await self._request("PUT", "/users/profile", json={k: v for k, v in user.items() if k != "userId"})

    # Conversations -------------------------------------------------------------------------------

    async def get_conversation_by_id(self, conv_id: str) -> dict[str, Any] | None:
        return cast(dict[str, Any] | None, await self._request("GET", f"/conversations/{conv_id}"))

    async def get_direct_conversation_with_user(self, email: str, create_if_missing: bool = False) -> dict[str, Any] | None:
        users = await self._request("GET", "/users/search", params={"emailAddress": email})
        if not users:
            raise ConversationError(f"no Circuit user found for {email}")
        user_id = users[0]["userId"]

        conv = await self._request("GET", f"/conversations/direct/{user_id}")
        if conv or not create_if_missing:
            return cast(dict[str, Any] | None, conv)

        self.logger.info(f"creating direct conversation with {email}")
        return cast(dict[str, Any] | None, await self._request("POST", "/conversations/direct", json={"participant": user_id}))

    # Items ---------------------------------------------------------------------------------------

    async def add_text_item(self, conv_id: str, item: dict[str, Any]) -> dict[str, Any]:
        body = {"content": item.get("content", ""), "formMetaData": json.dumps(item["form"]) if "form" in item else None}
        result = await self._request("POST", f"/conversations/{conv_id}/messages", json={k: v for k, v in body.items() if v is not None})
        if not result or "itemId" not in result:
            raise CircuitError(f"posting item to conversation {conv_id} returned no itemId")
        return cast(dict[str, Any], result)

    async def update_text_item(self, item: dict[str, Any]) -> dict[str, Any]:
        if "itemId" not in item:
            raise CircuitError("cannot update an item without itemId")
        body = {"content": item.get("content", ""), "formMetaData": json.dumps(item["form"]) if "form" in item else None}
        result = await self._request("PUT", f"/conversations/messages/{item['itemId']}", json={k: v for k, v in body.items() if v is not None})
        return cast(dict[str, Any], result or {})

    # Events --------------------------------------------------------------------------------------

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded events from the Circuit WebSocket until it closes."""
        try:
            async with self.session.ws_connect(self.ws_url, headers=self.get_headers(), heartbeat=30) as ws:
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        try:
                            event = json.loads(msg.data)
                        except json.JSONDecodeError:
                            self.logger.warning(f"failed to decode Circuit event: {msg.data!r}")
                            continue
                        if isinstance(event, dict):
                            yield event
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise CircuitError(f"Circuit event stream failed: {ws.exception()}")
        except (ClientError, asyncio.TimeoutError) as err:
            raise CircuitError(f"error connecting to Circuit event stream: {err}") from err
