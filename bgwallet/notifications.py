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

from typing import Any, Protocol

from .logs import logs


logger = logs.get_logger("notifications")


class UrlOpenerProtocol(Protocol):
    def open_url(self, url: str) -> bool:
        ...


class PopupStateProtocol(Protocol):
    @property
    def popup_is_open(self) -> bool:
        ...


class NotificationManager:
    def __init__(self, platform: UrlOpenerProtocol, popup_url: str) -> None:
        self._platform = platform
        self._popup_url = popup_url

    def show_popup(self) -> None:
        logger.debug("Showing popup '%s'", self._popup_url)
        if not self._platform.open_url(self._popup_url):
            logger.error("Unable to show the popup '%s'", self._popup_url)


class PopupTrigger:
    '''
    The controller calls `trigger_ui` whenever something needs the user's attention. We only
    open the popup if it is not already open, never a second one.
    '''

    def __init__(self, popup_state: PopupStateProtocol,
            notification_manager: NotificationManager) -> None:
        self._popup_state = popup_state
        self._notification_manager = notification_manager

    def trigger_ui(self, *_args: Any) -> None:
        if not self._popup_state.popup_is_open:
            self._notification_manager.show_popup()
