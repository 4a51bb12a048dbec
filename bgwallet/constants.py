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

from enum import Enum, IntEnum


## State persistence

# The primary store keeps the versioned document under this name in the data directory.
STORAGE_KEY = "wallet-config"
STORAGE_FILENAME = STORAGE_KEY + ".json"

# Set in the environment to get debug logging and suppress the first install welcome page.
DEBUG_ENVIRONMENT_KEY = "BGWALLET_DEBUG"

WELCOME_URL = "https://bgwallet.io/#how-it-works"


class InstallReason(Enum):
    INSTALL = "install"
    UPDATE = "update"


## Channels

class ChannelName:
    # The singleton user interface surface. Liveness of this one is tracked.
    POPUP = "popup"
    NOTIFICATION = "notification"


TRUSTED_CHANNEL_NAMES = frozenset({ ChannelName.POPUP, ChannelName.NOTIFICATION })

# Trusted channels are handed to the controller tagged with this.
TRUSTED_PROTOCOL_LABEL = "BGWallet"


class ChannelKind(IntEnum):
    TRUSTED = 1
    UNTRUSTED = 2


# https://www.rfc-editor.org/rfc/rfc6455#section-7.4.1
WEBSOCKET_CLOSE_POLICY_VIOLATION = 1008


## Controller

class ControllerEvent:
    STATE_UPDATED = "state-updated"


class PendingCountEvent:
    TRANSACTIONS = "update-badge:transactions"
    MESSAGES = "update-badge:messages"
    PERSONAL_MESSAGES = "update-badge:personal-messages"
    TYPED_MESSAGES = "update-badge:typed-messages"


PENDING_COUNT_EVENTS = [ PendingCountEvent.TRANSACTIONS, PendingCountEvent.MESSAGES,
    PendingCountEvent.PERSONAL_MESSAGES, PendingCountEvent.TYPED_MESSAGES ]


class RPCErrorCode(IntEnum):
    # Codes follow JSON-RPC 2.0 where there is an equivalent.
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # Application specific.
    WALLET_LOCKED = 4100
    UNKNOWN_PENDING_ITEM = 4200


## Badge

BADGE_BACKGROUND_COLOR = '#506F8B'


## Host

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9797
DEFAULT_SYNC_TIMEOUT = 10

POPUP_URL = "https://bgwallet.io/popup.html"
