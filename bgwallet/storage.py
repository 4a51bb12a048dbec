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
The primary store holds the single versioned document that the state loader reads on startup and
the persistence pipeline rewrites on every change. The secondary store is an optional remote copy
of the unwrapped application state, mirrored on a best effort basis.
'''

from __future__ import annotations

import asyncio
import copy
import json
import os
import stat
import threading
from typing import Any, cast, Dict, Optional

import aiohttp

from .constants import DEFAULT_SYNC_TIMEOUT
from .exceptions import SecondaryStoreError, StateLoadError
from .logs import logs
from .types import ApplicationState, StoreResult, VersionedDocument


logger = logs.get_logger("storage")


def is_versioned_document(value: Any) -> bool:
    return isinstance(value, dict) and type(value.get("version")) is int and \
        isinstance(value.get("data"), dict)


class AbstractStore:
    '''A single persistent slot holding one versioned document. No merging happens here.'''

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def get_state(self) -> Optional[VersionedDocument]:
        raise NotImplementedError

    def put_state(self, document: VersionedDocument) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryStore(AbstractStore):
    def __init__(self, document: Optional[VersionedDocument]=None) -> None:
        super().__init__()
        self._document = copy.deepcopy(document)
        self.write_count = 0

    def get_state(self) -> Optional[VersionedDocument]:
        with self._lock:
            return copy.deepcopy(self._document)

    def put_state(self, document: VersionedDocument) -> None:
        # The document should be JSON serialisable, as it would need to be for other stores.
        json.dumps(document)

        with self._lock:
            self._document = copy.deepcopy(document)
            self.write_count += 1


class JSONFileStore(AbstractStore):
    def __init__(self, path: str) -> None:
        super().__init__()
        self._path = path

    def get_path(self) -> str:
        return self._path

    def is_primed(self) -> bool:
        "Whether any data has ever been written to the storage."
        return os.path.exists(self._path)

    def get_state(self) -> Optional[VersionedDocument]:
        with self._lock:
            if not self.is_primed():
                return None
            try:
                with open(self._path, "rb") as f:
                    raw = f.read()
                document = json.loads(raw.decode('utf8'))
            except (OSError, UnicodeDecodeError, ValueError) as e:
                raise StateLoadError(f"Cannot read state file '{self._path}'") from e

        if not is_versioned_document(document):
            raise StateLoadError(f"State file '{self._path}' is not a versioned document")
        return cast(VersionedDocument, document)

    def put_state(self, document: VersionedDocument) -> None:
        raw = json.dumps(document, indent=4, sort_keys=True)
        with self._lock:
            temp_path = "%s.tmp.%s" % (self._path, os.getpid())
            with open(temp_path, "w", encoding='utf-8') as f:
                f.write(raw)
                f.flush()
                os.fsync(f.fileno())

            file_exists = os.path.exists(self._path)
            mode = os.stat(self._path).st_mode if file_exists else stat.S_IREAD | stat.S_IWRITE
            os.replace(temp_path, self._path)
            os.chmod(self._path, mode)

        logger.debug("saved '%s' at version %d", self._path, document["version"])


class AbstractSyncStore:
    '''
    The optional secondary store. It is only used when the host supports it and the user has
    enabled it. Both operations may fail, and callers are expected to use `try_fetch_async` and
    `try_sync_async` which never raise.
    '''

    @property
    def is_supported(self) -> bool:
        return False

    @property
    def is_enabled(self) -> bool:
        return False

    def is_active(self) -> bool:
        return self.is_supported and self.is_enabled

    async def fetch_async(self) -> ApplicationState:
        raise NotImplementedError

    async def sync_async(self, state: ApplicationState) -> None:
        raise NotImplementedError

    async def close_async(self) -> None:
        pass


class NullSyncStore(AbstractSyncStore):
    pass


class RemoteSyncStore(AbstractSyncStore):
    '''
    Mirrors the application state to a remote endpoint over HTTP. A `GET` returns the last synced
    state (404 if nothing has been synced yet) and a `PUT` replaces it.
    '''

    _session: Optional[aiohttp.ClientSession] = None

    def __init__(self, url: Optional[str], enabled: bool, token: Optional[str]=None,
            timeout: float=DEFAULT_SYNC_TIMEOUT,
            session: Optional[aiohttp.ClientSession]=None) -> None:
        self._url = url
        self._enabled = enabled
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @property
    def is_supported(self) -> bool:
        return self._url is not None

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _get_headers(self) -> Dict[str, str]:
        headers = { "Accept": "application/json" }
        if self._token is not None:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch_async(self) -> ApplicationState:
        assert self._url is not None
        try:
            async with self._get_session().get(self._url, headers=self._get_headers(),
                    timeout=self._timeout) as response:
                if response.status == 404:
                    return {}
                if response.status != 200:
                    raise SecondaryStoreError(
                        f"fetch failed with status {response.status} ({response.reason})")
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SecondaryStoreError(f"fetch failed: {e!r}") from e

        if not isinstance(data, dict):
            raise SecondaryStoreError("fetched data is not an object")
        return data

    async def sync_async(self, state: ApplicationState) -> None:
        assert self._url is not None
        try:
            async with self._get_session().put(self._url, json=state,
                    headers=self._get_headers(), timeout=self._timeout) as response:
                if response.status not in (200, 201, 204):
                    raise SecondaryStoreError(
                        f"sync failed with status {response.status} ({response.reason})")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SecondaryStoreError(f"sync failed: {e!r}") from e

    async def close_async(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None


async def try_fetch_async(store: AbstractSyncStore) -> StoreResult:
    try:
        data = await store.fetch_async()
    except SecondaryStoreError as e:
        logger.warning("Secondary store fetch failed, continuing without its data: %s", e)
        return StoreResult(False, error=e)
    return StoreResult(True, value=data)


async def try_sync_async(store: AbstractSyncStore, state: ApplicationState) -> StoreResult:
    try:
        await store.sync_async(state)
    except SecondaryStoreError as e:
        logger.warning("Secondary store sync failed: %s", e)
        return StoreResult(False, error=e)
    return StoreResult(True)
