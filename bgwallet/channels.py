# BGWallet - wallet background process
# Copyright (C) 2019-2020 The BGWallet Developers
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation files
# (the "Software"), to deal in the Software without restriction,
# including without limitation the rights to use, copy, modify, merge,
# publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so,
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS
# BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN
# ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
# CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiohttp
from aiohttp import web_ws

from .constants import WEBSOCKET_CLOSE_POLICY_VIOLATION
from .exceptions import ChannelClosedError
from .logs import logs


logger = logs.get_logger("channels")

MessageHandler = Callable[["Channel", Dict[str, Any]], Awaitable[None]]
DisconnectCallback = Callable[["Channel"], None]


class Channel:
    '''
    An open duplex message connection to one remote endpoint. The name is what the remote end
    declared when connecting, and the remote URL is where the remote end says it is (if known).

    Whoever the channel is handed to registers a message handler and optionally disconnect
    callbacks. The disconnect callbacks are called exactly once, when the remote end goes away.
    '''

    def __init__(self, name: str, remote_url: Optional[str]=None) -> None:
        self.name = name
        self.remote_url = remote_url
        self._message_handler: Optional[MessageHandler] = None
        self._disconnect_callbacks: List[DisconnectCallback] = []
        self._disconnected = False

    def __repr__(self) -> str:
        return f"Channel(name={self.name!r}, remote_url={self.remote_url!r})"

    @property
    def is_disconnected(self) -> bool:
        return self._disconnected

    def set_message_handler(self, handler: MessageHandler) -> None:
        self._message_handler = handler

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        if self._disconnected:
            callback(self)
            return
        self._disconnect_callbacks.append(callback)

    def notify_disconnected(self) -> None:
        if self._disconnected:
            return
        self._disconnected = True
        callbacks, self._disconnect_callbacks = self._disconnect_callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Disconnect callback failed for %r", self)

    async def dispatch_message(self, message: Dict[str, Any]) -> None:
        if self._message_handler is None:
            logger.debug("Dropping message for %r with no handler", self)
            return
        try:
            await self._message_handler(self, message)
        except Exception:
            # A broken handler must not take down the message loop for this channel.
            logger.exception("Message handler failed for %r", self)

    async def send_json(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def close(self, code: int=WEBSOCKET_CLOSE_POLICY_VIOLATION, reason: str="") -> None:
        raise NotImplementedError


class WebSocketChannel(Channel):
    def __init__(self, name: str, remote_url: Optional[str],
            websocket: web_ws.WebSocketResponse) -> None:
        super().__init__(name, remote_url)
        self.websocket = websocket

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.websocket.closed:
            raise ChannelClosedError(f"{self!r} is closed")
        try:
            await self.websocket.send_json(data)
        except ConnectionResetError:
            # Raised in aiohttp.WebSocketWriter: Ignore writes to closing connections.
            pass

    async def close(self, code: int=WEBSOCKET_CLOSE_POLICY_VIOLATION, reason: str="") -> None:
        if not self.websocket.closed:
            await self.websocket.close(code=code, message=reason.encode())

    async def message_loop(self) -> None:
        # Loop until the connection is closed. This is a broken usage of the `for` loop by
        # aiohttp, where the number of iterations is not bounded.
        async for message in self.websocket:
            if message.type == aiohttp.WSMsgType.text:
                try:
                    payload = json.loads(message.data)
                except ValueError:
                    logger.warning("Discarding non-JSON message from %r", self)
                    continue
                if not isinstance(payload, dict):
                    logger.warning("Discarding non-object message from %r", self)
                    continue
                await self.dispatch_message(payload)

            elif message.type == aiohttp.WSMsgType.binary:
                logger.warning("Discarding binary message from %r", self)

            elif message.type == aiohttp.WSMsgType.error:
                logger.error("Websocket error, %r", self, exc_info=self.websocket.exception())
