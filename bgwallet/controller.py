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

'''
The wallet controller owns the application state and everything waiting on the user. The
background process only needs its boundary: the state change and pending count notifications,
the pending counts themselves, and the two ways of attaching a channel.

No signing or broadcasting happens here, approving an item only resolves it.
'''

from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from .channels import Channel
from .constants import ControllerEvent, PendingCountEvent, RPCErrorCode
from .events import TriggeredCallbacks
from .exceptions import ChannelClosedError, RPCError
from .logs import logs
from .types import ApplicationState, PendingCounts, PendingItem


logger = logs.get_logger("controller")

UserAttentionCallback = Callable[[], None]
MethodHandler = Callable[..., Any]


class PlatformProtocol(Protocol):
    def open_url(self, url: str) -> bool:
        ...


class PendingQueue:
    '''
    The items of one kind waiting on the user. Every change in the number of items is announced
    on the controller's event bus under this queue's event name.
    '''

    def __init__(self, events: TriggeredCallbacks, event_name: str,
            id_counter: "itertools.count[int]") -> None:
        self._events = events
        self._event_name = event_name
        self._id_counter = id_counter
        self._items: Dict[int, PendingItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._items

    def add(self, origin: str, params: Dict[str, Any]) -> PendingItem:
        item = PendingItem(next(self._id_counter), origin, copy.deepcopy(params))
        self._items[item.item_id] = item
        self._events.trigger_callback(self._event_name, len(self._items))
        return item

    def remove(self, item_id: int) -> PendingItem:
        item = self._items.pop(item_id)
        self._events.trigger_callback(self._event_name, len(self._items))
        return item

    def list_items(self) -> List[Dict[str, Any]]:
        return [ { "id": item.item_id, "origin": item.origin, "params": item.params }
            for item in self._items.values() ]


class WalletController:
    def __init__(self, init_state: ApplicationState, platform: PlatformProtocol,
            on_unconfirmed_message: UserAttentionCallback,
            on_unlock_request: UserAttentionCallback,
            on_unapproved_tx: UserAttentionCallback) -> None:
        self.events = TriggeredCallbacks()
        self.platform = platform

        self._state = copy.deepcopy(init_state)
        self._is_unlocked = False
        self._on_unconfirmed_message = on_unconfirmed_message
        self._on_unlock_request = on_unlock_request
        self._on_unapproved_tx = on_unapproved_tx

        # Item ids are unique across all the queues, so approval only needs the id.
        id_counter = itertools.count(1)
        self.transactions = PendingQueue(self.events, PendingCountEvent.TRANSACTIONS, id_counter)
        self.messages = PendingQueue(self.events, PendingCountEvent.MESSAGES, id_counter)
        self.personal_messages = PendingQueue(self.events, PendingCountEvent.PERSONAL_MESSAGES,
            id_counter)
        self.typed_messages = PendingQueue(self.events, PendingCountEvent.TYPED_MESSAGES,
            id_counter)

        self._trusted_channels: Set[Channel] = set()
        self._send_tasks: Set[asyncio.Task[None]] = set()

        self._trusted_methods: Dict[str, MethodHandler] = {
            "get_state": self._get_state_method,
            "unlock": self._unlock_method,
            "lock": self._lock_method,
            "list_pending": self._list_pending_method,
            "approve": self._approve_method,
            "reject": self._reject_method,
            "set_preference": self._set_preference_method,
            "open_url": self._open_url_method,
        }
        self._untrusted_methods: Dict[str, MethodHandler] = {
            "request_accounts": self._request_accounts_method,
            "send_transaction": self._send_transaction_method,
            "sign_message": self._sign_message_method,
            "sign_personal_message": self._sign_personal_message_method,
            "sign_typed_data": self._sign_typed_data_method,
        }

    @property
    def is_unlocked(self) -> bool:
        return self._is_unlocked

    def get_state(self) -> ApplicationState:
        return copy.deepcopy(self._state)

    def update_state(self, changes: Dict[str, Any]) -> None:
        self._state.update(copy.deepcopy(changes))
        self.events.trigger_callback(ControllerEvent.STATE_UPDATED, self._state)
        self._broadcast({ "method": "state_updated", "params": self.get_state() })

    def get_pending_counts(self) -> PendingCounts:
        return PendingCounts(len(self.transactions), len(self.messages),
            len(self.personal_messages), len(self.typed_messages))

    def _get_queues(self) -> List[PendingQueue]:
        return [ self.transactions, self.messages, self.personal_messages, self.typed_messages ]

    # Channel attachment.

    def setup_trusted_communication(self, channel: Channel, protocol_label: str) -> None:
        logger.debug("Trusted %s channel '%s' attached", protocol_label, channel.name)

        async def on_message(channel: Channel, message: Dict[str, Any]) -> None:
            await self._dispatch_message_async(channel, message, self._trusted_methods)

        self._trusted_channels.add(channel)
        channel.set_message_handler(on_message)
        channel.on_disconnect(self._trusted_channels.discard)
        self._send(channel, { "method": "state_updated", "params": self.get_state() })

    def setup_untrusted_communication(self, channel: Channel, origin_domain: str) -> None:
        logger.debug("Untrusted channel '%s' attached for '%s'", channel.name, origin_domain)

        async def on_message(channel: Channel, message: Dict[str, Any]) -> None:
            await self._dispatch_message_async(channel, message, self._untrusted_methods,
                origin_domain)

        channel.set_message_handler(on_message)

    async def _dispatch_message_async(self, channel: Channel, message: Dict[str, Any],
            methods: Dict[str, MethodHandler], *args: Any) -> None:
        request_id = message.get("id")
        method_name = message.get("method")
        params = message.get("params", {})
        response: Dict[str, Any]
        try:
            if not isinstance(method_name, str) or method_name not in methods:
                raise RPCError(RPCErrorCode.METHOD_NOT_FOUND,
                    f"Method '{method_name}' not found")
            if not isinstance(params, dict):
                raise RPCError(RPCErrorCode.INVALID_PARAMS, "Params must be an object")
            result = methods[method_name](params, *args)
        except RPCError as e:
            response = { "id": request_id, "error": { "code": e.code, "message": e.message } }
        except Exception:
            logger.exception("Method '%s' failed for %r", method_name, channel)
            response = { "id": request_id, "error": { "code": RPCErrorCode.INTERNAL_ERROR,
                "message": "Internal error" } }
        else:
            response = { "id": request_id, "result": result }
        await self._send_async(channel, response)

    def _broadcast(self, message: Dict[str, Any]) -> None:
        for channel in list(self._trusted_channels):
            self._send(channel, message)

    def _send(self, channel: Channel, message: Dict[str, Any]) -> None:
        task = asyncio.create_task(self._send_async(channel, message))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _send_async(self, channel: Channel, message: Dict[str, Any]) -> None:
        try:
            await channel.send_json(message)
        except ChannelClosedError:
            logger.debug("Dropped message for closed %r", channel)

    # Trusted methods.

    def _get_state_method(self, _params: Dict[str, Any]) -> ApplicationState:
        return self.get_state()

    def _unlock_method(self, _params: Dict[str, Any]) -> Dict[str, Any]:
        self._is_unlocked = True
        return { "is_unlocked": True }

    def _lock_method(self, _params: Dict[str, Any]) -> Dict[str, Any]:
        self._is_unlocked = False
        return { "is_unlocked": False }

    def _list_pending_method(self, _params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "transactions": self.transactions.list_items(),
            "messages": self.messages.list_items(),
            "personal_messages": self.personal_messages.list_items(),
            "typed_messages": self.typed_messages.list_items(),
        }

    def _approve_method(self, params: Dict[str, Any]) -> Dict[str, Any]:
        item = self._resolve_pending_item(params)
        return { "id": item.item_id, "status": "approved" }

    def _reject_method(self, params: Dict[str, Any]) -> Dict[str, Any]:
        item = self._resolve_pending_item(params)
        return { "id": item.item_id, "status": "rejected" }

    def _resolve_pending_item(self, params: Dict[str, Any]) -> PendingItem:
        item_id = params.get("id")
        if type(item_id) is not int:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Expected an integer 'id'")
        for queue in self._get_queues():
            if item_id in queue:
                return queue.remove(item_id)
        raise RPCError(RPCErrorCode.UNKNOWN_PENDING_ITEM, f"No pending item {item_id}")

    def _set_preference_method(self, params: Dict[str, Any]) -> Dict[str, Any]:
        key = params.get("key")
        if not isinstance(key, str) or "value" not in params:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Expected a 'key' and a 'value'")
        preferences = dict(self._state.get("preferences", {}))
        preferences[key] = params["value"]
        self.update_state({ "preferences": preferences })
        return preferences

    def _open_url_method(self, params: Dict[str, Any]) -> bool:
        url = params.get("url")
        if not isinstance(url, str) or not url.startswith(("https://", "http://")):
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Expected an http(s) 'url'")
        return self.platform.open_url(url)

    # Untrusted methods.

    def _get_accounts(self) -> List[str]:
        selected_address: Optional[str] = self._state.get("preferences", {}).get(
            "selected_address")
        return [ selected_address ] if selected_address else []

    def _request_accounts_method(self, _params: Dict[str, Any], origin: str) -> List[str]:
        if not self._is_unlocked:
            logger.debug("Account request from '%s' while locked", origin)
            self._on_unlock_request()
            raise RPCError(RPCErrorCode.WALLET_LOCKED, "The wallet is locked")
        return self._get_accounts()

    def _send_transaction_method(self, params: Dict[str, Any], origin: str) -> Dict[str, Any]:
        if "from" not in params:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Expected a 'from' address")
        item = self.transactions.add(origin, params)
        self._on_unapproved_tx()
        return { "pending_id": item.item_id }

    def _add_unconfirmed_message(self, queue: PendingQueue, params: Dict[str, Any],
            origin: str) -> Dict[str, Any]:
        if "data" not in params:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Expected message 'data'")
        item = queue.add(origin, params)
        self._on_unconfirmed_message()
        return { "pending_id": item.item_id }

    def _sign_message_method(self, params: Dict[str, Any], origin: str) -> Dict[str, Any]:
        return self._add_unconfirmed_message(self.messages, params, origin)

    def _sign_personal_message_method(self, params: Dict[str, Any],
            origin: str) -> Dict[str, Any]:
        return self._add_unconfirmed_message(self.personal_messages, params, origin)

    def _sign_typed_data_method(self, params: Dict[str, Any], origin: str) -> Dict[str, Any]:
        return self._add_unconfirmed_message(self.typed_messages, params, origin)
