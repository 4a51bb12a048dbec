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

from typing import Optional

from .logs import logs
from .migrator import Migrator
from .storage import AbstractStore, AbstractSyncStore, try_fetch_async
from .types import ApplicationState, LoadResult, VersionedDocument


logger = logs.get_logger("state-loader")


def merge_secondary_data(document: VersionedDocument,
        secondary_data: ApplicationState) -> VersionedDocument:
    '''
    Shallow merge of the secondary store's state over the primary document's state. Top-level
    keys from the secondary store win, any key only present in the primary document is kept.
    '''
    return {
        "version": document["version"],
        "data": { **document["data"], **secondary_data },
    }


async def load_state_from_persistence(primary: AbstractStore, secondary: AbstractSyncStore,
        migrator: Migrator, first_time_state: ApplicationState) -> LoadResult:
    """
    Load the application state, bring it up to date and persist the result. This must complete
    before the controller is created and before any channel is accepted.

    Raises `StateLoadError` if the primary store cannot be read.
    Raises `MigrationError` if a migration fails.
    """
    stored_document = primary.get_state()
    stored_version: Optional[int] = None
    if stored_document is None:
        logger.debug("no stored state, using first time state")
        versioned_data = migrator.generate_initial_state(first_time_state)
    else:
        stored_version = stored_document["version"]
        versioned_data = stored_document

    if secondary.is_active():
        result = await try_fetch_async(secondary)
        if result.success and result.value:
            versioned_data = merge_secondary_data(versioned_data, result.value)

    versioned_data = await migrator.migrate_data(versioned_data)
    # Written back so that later starts do not repeat the migrations.
    primary.put_state(versioned_data)
    logger.debug("state loaded at version %d", versioned_data["version"])
    return LoadResult(versioned_data["data"], stored_version, versioned_data["version"])
