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

from .constants import BADGE_BACKGROUND_COLOR, PENDING_COUNT_EVENTS
from .events import TriggeredCallbacks
from .types import BadgeState, PendingCounts


class BadgeRendererProtocol(Protocol):
    def set_badge_text(self, text: str) -> None:
        ...

    def set_badge_background_color(self, color: str) -> None:
        ...


class PendingCountsSourceProtocol(Protocol):
    events: TriggeredCallbacks

    def get_pending_counts(self) -> PendingCounts:
        ...


def compute_badge(counts: PendingCounts) -> BadgeState:
    total = counts.total()
    return BadgeState(str(total) if total else "", BADGE_BACKGROUND_COLOR)


class BadgeAggregator:
    '''Keeps the badge showing the total number of items awaiting the user's attention.'''

    def __init__(self, controller: PendingCountsSourceProtocol,
            renderer: BadgeRendererProtocol) -> None:
        self._controller = controller
        self._renderer = renderer

    def start(self) -> None:
        self.update_badge()
        self._controller.events.register_callback(self.update_badge, PENDING_COUNT_EVENTS)

    def stop(self) -> None:
        self._controller.events.unregister_callbacks_for_object(self)

    def update_badge(self, *_args: Any) -> BadgeState:
        badge = compute_badge(self._controller.get_pending_counts())
        self._renderer.set_badge_text(badge.label)
        self._renderer.set_badge_background_color(badge.color)
        return badge
