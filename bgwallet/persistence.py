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

import asyncio
import copy
from typing import Optional

from .constants import ControllerEvent
from .events import TriggeredCallbacks
from .exceptions import StateLoadError
from .logs import logs
from .storage import AbstractStore, AbstractSyncStore, try_sync_async
from .types import ApplicationState, VersionedDocument


logger = logs.get_logger("persistence")


class PersistencePipeline:
    '''
    Mirrors every controller state change to the primary store, and if available to the
    secondary store.

    State changes are queued and a single worker processes them in order. For each one the
    stored envelope is read for its version, the new state is wrapped in it, the unwrapped state
    is handed to the secondary store and then the envelope is written to the primary store.
    As there is only ever the one worker, no two runs can interleave their reads and writes of
    the primary store.

    Secondary syncs do not hold up the primary writes. They go onto their own queue which a
    second worker sends one at a time, so the secondary store receives the states in the order
    they were announced and never ends up behind on an older one.
    '''

    _worker_task: Optional[asyncio.Task[None]] = None
    _sync_worker_task: Optional[asyncio.Task[None]] = None

    def __init__(self, primary: AbstractStore, secondary: AbstractSyncStore) -> None:
        self._primary = primary
        self._secondary = secondary
        self._queue: asyncio.Queue[ApplicationState] = asyncio.Queue()
        self._sync_queue: asyncio.Queue[ApplicationState] = asyncio.Queue()

    def start(self, events: TriggeredCallbacks) -> None:
        self._events = events
        events.register_callback(self.on_state_updated, [ ControllerEvent.STATE_UPDATED ])
        self._worker_task = asyncio.create_task(self._process_state_updates_loop())
        self._sync_worker_task = asyncio.create_task(self._process_secondary_syncs_loop())

    async def stop_async(self) -> None:
        self._events.unregister_callbacks_for_object(self)
        # Anything already queued is written out before we stop.
        await self.drain_async()
        for task in (self._worker_task, self._sync_worker_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._worker_task = None
        self._sync_worker_task = None

    async def drain_async(self) -> None:
        if self._worker_task is not None:
            await self._queue.join()
        if self._sync_worker_task is not None:
            await self._sync_queue.join()

    def on_state_updated(self, _event: str, state: ApplicationState) -> None:
        # The controller keeps mutating its state, what we persist is what it was at this point.
        self._queue.put_nowait(copy.deepcopy(state))

    async def _process_state_updates_loop(self) -> None:
        while True:
            state = await self._queue.get()
            try:
                self.persist_state(state)
            except Exception:
                logger.exception("Failed persisting state")
            finally:
                self._queue.task_done()

    async def _process_secondary_syncs_loop(self) -> None:
        while True:
            state = await self._sync_queue.get()
            try:
                await try_sync_async(self._secondary, state)
            except Exception:
                logger.exception("Failed syncing state to the secondary store")
            finally:
                self._sync_queue.task_done()

    def persist_state(self, state: ApplicationState) -> VersionedDocument:
        versioned_data = self.versionify_data(state)
        self.sync_data_with_secondary(state)
        self._primary.put_state(versioned_data)
        return versioned_data

    def versionify_data(self, state: ApplicationState) -> VersionedDocument:
        stored_document = self._primary.get_state()
        if stored_document is None:
            # The state loader always writes a document before the pipeline is started.
            raise StateLoadError("primary store has no versioned document")
        return { "version": stored_document["version"], "data": state }

    def sync_data_with_secondary(self, state: ApplicationState) -> ApplicationState:
        if self._secondary.is_active():
            self._sync_queue.put_nowait(state)
        return state
