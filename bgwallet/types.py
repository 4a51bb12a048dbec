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

from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional

from typing_extensions import TypedDict


ApplicationState = Dict[str, Any]
MigrateFunction = Callable[[ApplicationState], Awaitable[ApplicationState]]


class VersionedDocument(TypedDict):
    version: int
    data: ApplicationState


class MigrationDefinition(NamedTuple):
    version: int
    migrate: MigrateFunction


class LoadResult(NamedTuple):
    data: ApplicationState
    # `None` if there was no stored document and the first time state was used.
    stored_version: Optional[int]
    version: int


class StoreResult(NamedTuple):
    success: bool
    value: Any = None
    error: Optional[Exception] = None


class PendingCounts(NamedTuple):
    transactions: int
    messages: int
    personal_messages: int
    typed_messages: int

    def total(self) -> int:
        return self.transactions + self.messages + self.personal_messages + self.typed_messages


class BadgeState(NamedTuple):
    label: str
    color: str


class PendingItem(NamedTuple):
    item_id: int
    origin: str
    params: Dict[str, Any]


class StatusDict(TypedDict):
    version: str
    badge_text: str
    badge_color: str
    popup_is_open: bool
    channel_count: int
