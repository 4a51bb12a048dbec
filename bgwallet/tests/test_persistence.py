import asyncio
from unittest.mock import patch

import pytest

from bgwallet.constants import ControllerEvent
from bgwallet.events import TriggeredCallbacks
from bgwallet.exceptions import StateLoadError
from bgwallet.migrator import Migrator
from bgwallet.persistence import PersistencePipeline
from bgwallet.state_loader import load_state_from_persistence
from bgwallet.storage import MemoryStore, NullSyncStore

from .util import RecordingSyncStore


async def settle(pipeline: PersistencePipeline) -> None:
    await pipeline.drain_async()


def test_versionify_keeps_stored_version() -> None:
    primary = MemoryStore({ "version": 7, "data": { "old": True } })
    pipeline = PersistencePipeline(primary, NullSyncStore())
    assert pipeline.versionify_data({ "new": True }) == { "version": 7, "data": { "new": True } }


def test_versionify_without_stored_document() -> None:
    pipeline = PersistencePipeline(MemoryStore(), NullSyncStore())
    with pytest.raises(StateLoadError):
        pipeline.versionify_data({})


@pytest.mark.asyncio
async def test_state_updates_are_persisted_in_order() -> None:
    events = TriggeredCallbacks()
    primary = MemoryStore({ "version": 3, "data": {} })
    secondary = RecordingSyncStore()
    pipeline = PersistencePipeline(primary, secondary)
    pipeline.start(events)

    state = { "count": 0 }
    for i in range(1, 6):
        state["count"] = i
        events.trigger_callback(ControllerEvent.STATE_UPDATED, state)
    await settle(pipeline)

    assert primary.get_state() == { "version": 3, "data": { "count": 5 } }
    assert primary.write_count == 5
    # Each snapshot was taken when it was announced, not when it was written.
    assert secondary.synced_states == [ { "count": i } for i in range(1, 6) ]
    await pipeline.stop_async()


@pytest.mark.asyncio
async def test_secondary_not_synced_when_inactive() -> None:
    events = TriggeredCallbacks()
    primary = MemoryStore({ "version": 1, "data": {} })
    secondary = RecordingSyncStore(enabled=False)
    pipeline = PersistencePipeline(primary, secondary)
    pipeline.start(events)

    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "a": 1 })
    await settle(pipeline)

    assert primary.get_state() == { "version": 1, "data": { "a": 1 } }
    assert secondary.synced_states == []
    await pipeline.stop_async()


@pytest.mark.asyncio
async def test_secondary_failure_does_not_stop_primary_writes() -> None:
    events = TriggeredCallbacks()
    primary = MemoryStore({ "version": 1, "data": {} })
    secondary = RecordingSyncStore(fail_sync=True)
    pipeline = PersistencePipeline(primary, secondary)
    pipeline.start(events)

    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "a": 1 })
    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "a": 2 })
    await settle(pipeline)

    assert primary.write_count == 2
    assert primary.get_state() == { "version": 1, "data": { "a": 2 } }
    await pipeline.stop_async()


@pytest.mark.asyncio
async def test_primary_write_failure_does_not_stop_worker() -> None:
    events = TriggeredCallbacks()
    primary = MemoryStore({ "version": 1, "data": {} })
    pipeline = PersistencePipeline(primary, NullSyncStore())
    pipeline.start(events)

    with patch.object(primary, "put_state", side_effect=OSError("disk full")):
        events.trigger_callback(ControllerEvent.STATE_UPDATED, { "a": 1 })
        await settle(pipeline)

    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "a": 2 })
    await settle(pipeline)
    assert primary.get_state() == { "version": 1, "data": { "a": 2 } }
    await pipeline.stop_async()


@pytest.mark.asyncio
async def test_stop_writes_queued_updates_and_unsubscribes() -> None:
    events = TriggeredCallbacks()
    primary = MemoryStore({ "version": 1, "data": {} })
    pipeline = PersistencePipeline(primary, RecordingSyncStore())
    pipeline.start(events)

    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "a": 1 })
    await pipeline.stop_async()
    assert primary.get_state() == { "version": 1, "data": { "a": 1 } }
    assert events.callback_count(ControllerEvent.STATE_UPDATED) == 0


class SlowFirstSyncStore(RecordingSyncStore):
    '''The first sync takes longer than the ones after it.'''

    def __init__(self) -> None:
        super().__init__()
        self._delayed = False

    async def sync_async(self, state) -> None:
        if not self._delayed:
            self._delayed = True
            await asyncio.sleep(0.05)
        self.state = state
        await super().sync_async(state)


@pytest.mark.asyncio
async def test_slow_secondary_sync_does_not_roll_back_state() -> None:
    events = TriggeredCallbacks()
    primary = MemoryStore({ "version": 1, "data": {} })
    secondary = SlowFirstSyncStore()
    pipeline = PersistencePipeline(primary, secondary)
    pipeline.start(events)

    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "count": 1 })
    events.trigger_callback(ControllerEvent.STATE_UPDATED, { "count": 2 })
    await pipeline.stop_async()

    assert secondary.synced_states == [ { "count": 1 }, { "count": 2 } ]
    assert primary.get_state() == { "version": 1, "data": { "count": 2 } }

    result = await load_state_from_persistence(primary, secondary, Migrator([]), {})
    assert result.data == { "count": 2 }
