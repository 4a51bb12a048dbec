import asyncio
import copy
from typing import Any, Dict, List, Optional

from bgwallet.channels import Channel
from bgwallet.constants import WEBSOCKET_CLOSE_POLICY_VIOLATION
from bgwallet.exceptions import ChannelClosedError, SecondaryStoreError
from bgwallet.storage import AbstractSyncStore
from bgwallet.types import ApplicationState


class MockChannel(Channel):
    def __init__(self, name: str, remote_url: Optional[str]=None) -> None:
        super().__init__(name, remote_url)
        self.sent: List[Dict[str, Any]] = []
        self.close_code: Optional[int] = None

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.close_code is not None:
            raise ChannelClosedError(f"{self!r} is closed")
        self.sent.append(copy.deepcopy(data))

    async def close(self, code: int=WEBSOCKET_CLOSE_POLICY_VIOLATION, reason: str="") -> None:
        self.close_code = code
        self.notify_disconnected()

    async def request(self, method: str, params: Any=None, request_id: int=1) -> Dict[str, Any]:
        message: Dict[str, Any] = { "id": request_id, "method": method }
        if params is not None:
            message["params"] = params
        await self.dispatch_message(message)
        return self.sent[-1]


class RecordingBadge:
    def __init__(self) -> None:
        self.texts: List[str] = []
        self.colors: List[str] = []

    def set_badge_text(self, text: str) -> None:
        self.texts.append(text)

    def set_badge_background_color(self, color: str) -> None:
        self.colors.append(color)


class RecordingPlatform:
    def __init__(self, result: bool=True) -> None:
        self.opened_urls: List[str] = []
        self._result = result

    def open_url(self, url: str) -> bool:
        self.opened_urls.append(url)
        return self._result


class PopupState:
    def __init__(self, popup_is_open: bool=False) -> None:
        self.popup_is_open = popup_is_open


class RecordingSyncStore(AbstractSyncStore):
    '''A secondary store that keeps what it is given, and can be made to fail.'''

    def __init__(self, state: Optional[ApplicationState]=None, supported: bool=True,
            enabled: bool=True, fail_fetch: bool=False, fail_sync: bool=False) -> None:
        self.state = state
        self.synced_states: List[ApplicationState] = []
        self.fetch_count = 0
        self._supported = supported
        self._enabled = enabled
        self.fail_fetch = fail_fetch
        self.fail_sync = fail_sync

    @property
    def is_supported(self) -> bool:
        return self._supported

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    async def fetch_async(self) -> ApplicationState:
        self.fetch_count += 1
        if self.fail_fetch:
            raise SecondaryStoreError("fetch failed")
        return copy.deepcopy(self.state) if self.state is not None else {}

    async def sync_async(self, state: ApplicationState) -> None:
        # Give other tasks the chance to run, as a real remote store would.
        await asyncio.sleep(0)
        if self.fail_sync:
            raise SecondaryStoreError("sync failed")
        self.synced_states.append(copy.deepcopy(state))
