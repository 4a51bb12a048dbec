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

from typing import Callable, Optional, Set

from aiohttp import web, web_ws, WSCloseCode

from .channels import Channel, WebSocketChannel
from .constants import BADGE_BACKGROUND_COLOR, TRUSTED_CHANNEL_NAMES, \
    WEBSOCKET_CLOSE_POLICY_VIOLATION
from .logs import logs
from .notifications import PopupStateProtocol
from .types import StatusDict
from .util import constant_time_compare
from .version import PACKAGE_VERSION


ConnectHandler = Callable[[Channel], bool]


class HostBadge:
    '''The badge as currently rendered. Status queries read it back from here.'''

    def __init__(self) -> None:
        self.text = ""
        self.color = BADGE_BACKGROUND_COLOR
        self._logger = logs.get_logger("badge")

    def set_badge_text(self, text: str) -> None:
        if text != self.text:
            self._logger.debug("badge text '%s'", text)
        self.text = text

    def set_badge_background_color(self, color: str) -> None:
        self.color = color


class HostServer:
    '''
    The local web server the user interface surfaces and the remote callers connect to. Each
    websocket upgrade on `/v1/connect/{name}` is one channel, handed to the connect handler.
    '''

    def __init__(self, host: str, port: int, access_token: str,
            connect_handler: ConnectHandler, badge: HostBadge,
            popup_state: PopupStateProtocol) -> None:
        self.runner: Optional[web.AppRunner] = None
        self.is_alive = False
        self.host = host
        self.port = port
        self.access_token = access_token
        self.logger = logs.get_logger("host-server")

        self._connect_handler = connect_handler
        self._badge = badge
        self._popup_state = popup_state
        self._channels: Set[WebSocketChannel] = set()

        self.app = web.Application()
        self.app.on_startup.append(self.on_startup)
        self.app.on_shutdown.append(self.on_shutdown)
        self.app.add_routes([
            web.get("/v1/ping", self.handle_ping),
            web.get("/v1/status", self.handle_status),
            web.get("/v1/connect/{name}", self.handle_connect),
        ])

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    async def on_startup(self, app: web.Application) -> None:
        self.logger.debug("starting...")
        self.is_alive = True

    async def on_shutdown(self, app: web.Application) -> None:
        self.logger.debug("cleaning up...")
        for channel in list(self._channels):
            await channel.close(WSCloseCode.GOING_AWAY, "server shutdown")
        self.is_alive = False
        self.logger.debug("stopped.")

    async def start_async(self) -> None:
        self.runner = web.AppRunner(self.app, access_log=None)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port, reuse_address=True)
        await site.start()
        self.logger.debug("listening on %s:%d", self.host, self.port)

    async def stop_async(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None

    def get_status(self) -> StatusDict:
        return {
            "version": PACKAGE_VERSION,
            "badge_text": self._badge.text,
            "badge_color": self._badge.color,
            "popup_is_open": self._popup_state.popup_is_open,
            "channel_count": self.channel_count,
        }

    def _is_authorized(self, request: web.Request) -> bool:
        auth_string = request.headers.get('Authorization', "")
        (bearer, _, token) = auth_string.partition(' ')
        return bearer == "Bearer" and constant_time_compare(token, self.access_token)

    async def handle_ping(self, request: web.Request) -> web.Response:
        return web.json_response({ "value": "pong" })

    async def handle_status(self, request: web.Request) -> web.Response:
        if not self._is_authorized(request):
            raise web.HTTPUnauthorized(reason="Invalid access key")
        return web.json_response(self.get_status())

    async def handle_connect(self, request: web.Request) -> web_ws.WebSocketResponse:
        name = request.match_info["name"]
        remote_url: Optional[str] = None
        if name in TRUSTED_CHANNEL_NAMES:
            # Javascript clients do not support `Authorization` headers for web sockets, so the
            # token is passed in the query string.
            access_token = request.query.get('token', None)
            if access_token is None:
                self.logger.warning("Refused '%s' channel (no access token)", name)
                raise web.HTTPUnauthorized(reason="No access key")
            if not constant_time_compare(access_token, self.access_token):
                self.logger.warning("Refused '%s' channel (wrong access token)", name)
                raise web.HTTPUnauthorized(reason="Invalid access key")
        else:
            remote_url = request.headers.get('Origin') or request.headers.get('Referer')

        websocket = web.WebSocketResponse()
        await websocket.prepare(request)

        channel = WebSocketChannel(name, remote_url, websocket)
        self._channels.add(channel)
        self.logger.debug("Websocket connected, %r", channel)
        try:
            if not self._connect_handler(channel):
                await channel.close(WEBSOCKET_CLOSE_POLICY_VIOLATION, "connection refused")
                return websocket
            await channel.message_loop()
        finally:
            if not websocket.closed:
                await websocket.close()
            self._channels.discard(channel)
            self.logger.debug("Websocket disconnecting, %r", channel)
            channel.notify_disconnected()

        return websocket
