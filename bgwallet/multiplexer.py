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

from typing import Optional, Protocol
from urllib.parse import urlsplit

from .channels import Channel
from .constants import ChannelKind, ChannelName, TRUSTED_CHANNEL_NAMES, TRUSTED_PROTOCOL_LABEL
from .exceptions import InvalidOriginError
from .logs import logs


logger = logs.get_logger("multiplexer")


class ChannelSetupProtocol(Protocol):
    def setup_trusted_communication(self, channel: Channel, protocol_label: str) -> None:
        ...

    def setup_untrusted_communication(self, channel: Channel, origin_domain: str) -> None:
        ...


def get_origin_domain(url: Optional[str]) -> str:
    """
    The host name of the given URL, without scheme, port, path or query.

    Raises `InvalidOriginError` if the URL cannot be parsed or has no host name.
    """
    if not url:
        raise InvalidOriginError("no remote url")
    try:
        hostname = urlsplit(url).hostname
    except ValueError as e:
        raise InvalidOriginError(f"unparseable remote url {url!r}") from e
    if not hostname:
        raise InvalidOriginError(f"remote url {url!r} has no host name")
    return hostname


class ConnectionMultiplexer:
    '''
    Routes each inbound channel to the controller. Internal user interface surfaces are trusted
    and are connected by name, anything else is untrusted and is connected with its origin.

    The only state shared between channels is whether the popup is open.
    '''

    def __init__(self, controller: ChannelSetupProtocol) -> None:
        self._controller = controller
        self._popup_is_open = False
        self._popup_channel: Optional[Channel] = None

    @property
    def popup_is_open(self) -> bool:
        return self._popup_is_open

    def classify_channel(self, channel: Channel) -> ChannelKind:
        if channel.name in TRUSTED_CHANNEL_NAMES:
            return ChannelKind.TRUSTED
        return ChannelKind.UNTRUSTED

    def connect_remote(self, channel: Channel) -> bool:
        '''
        Returns `False` if the channel could not be connected, the caller should close it. Other
        channels are unaffected.
        '''
        try:
            if self.classify_channel(channel) == ChannelKind.TRUSTED:
                self._connect_trusted(channel)
            else:
                self._connect_untrusted(channel)
        except Exception:
            logger.exception("Failed connecting %r", channel)
            return False
        return True

    def _connect_trusted(self, channel: Channel) -> None:
        if channel.name == ChannelName.POPUP:
            self._popup_is_open = True
            self._popup_channel = channel
            channel.on_disconnect(self._on_popup_disconnected)
        logger.debug("Connecting trusted channel '%s'", channel.name)
        self._controller.setup_trusted_communication(channel, TRUSTED_PROTOCOL_LABEL)

    def _connect_untrusted(self, channel: Channel) -> None:
        origin_domain = get_origin_domain(channel.remote_url)
        logger.debug("Connecting untrusted channel '%s' from '%s'", channel.name, origin_domain)
        self._controller.setup_untrusted_communication(channel, origin_domain)

    def _on_popup_disconnected(self, channel: Channel) -> None:
        # Only the most recently opened popup channel counts, an older one closing late does not
        # mean the current one has gone.
        if channel is self._popup_channel:
            self._popup_is_open = False
            self._popup_channel = None
