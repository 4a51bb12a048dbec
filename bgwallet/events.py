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

from collections import defaultdict
import threading
import types
from typing import Any, Callable, Dict, List

from .logs import logs


class TriggeredCallbacks:
    '''
    Named publish/subscribe notifications.

    Subscribers of an event are called synchronously in the order they registered, and each is
    passed the event name followed by the event arguments. A subscriber that raises is logged and
    does not prevent delivery to the subscribers after it.
    '''

    def __init__(self) -> None:
        self._callbacks: Dict[str, List[Callable[..., None]]] = defaultdict(list)
        self._callback_lock = threading.Lock()
        self._callback_logger = logs.get_logger("callback-logger")

    def register_callback(self, callback: Callable[..., None], events: List[str]) -> None:
        with self._callback_lock:
            for event in events:
                if callback in self._callbacks[event]:
                    self._callback_logger.error("Callback reregistered %s %s", event, callback)
                    continue
                self._callbacks[event].append(callback)

    def unregister_callback(self, callback: Callable[..., None]) -> None:
        with self._callback_lock:
            for callbacks in self._callbacks.values():
                if callback in callbacks:
                    callbacks.remove(callback)

    def unregister_callbacks_for_object(self, owner: object) -> None:
        with self._callback_lock:
            for callbacks in self._callbacks.values():
                for callback in callbacks[:]:
                    if isinstance(callback, types.MethodType):
                        if callback.__self__ is owner:
                            callbacks.remove(callback)

    def callback_count(self, event: str) -> int:
        with self._callback_lock:
            return len(self._callbacks.get(event, []))

    def trigger_callback(self, event: str, *args: Any) -> None:
        with self._callback_lock:
            callbacks = self._callbacks[event][:]
        for callback in callbacks:
            try:
                callback(event, *args)
            except Exception:
                self._callback_logger.exception("Callback for '%s' raised", event)
