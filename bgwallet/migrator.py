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

import copy
from typing import Iterable, List

from .exceptions import MigrationError, MigrationListError
from .logs import logs
from .types import ApplicationState, MigrationDefinition, VersionedDocument


logger = logs.get_logger("migrator")


class Migrator:
    '''
    Advances a versioned document through the known migrations. Each migration is applied at
    most once, in ascending version order, and only if its version is above the version of the
    document.
    '''

    def __init__(self, migrations: Iterable[MigrationDefinition]) -> None:
        self.migrations: List[MigrationDefinition] = sorted(migrations, key=lambda m: m.version)

        previous_version = 0
        for migration in self.migrations:
            if type(migration.version) is not int or migration.version < 1:
                raise MigrationListError(f"invalid migration version {migration.version!r}")
            if migration.version == previous_version:
                raise MigrationListError(f"duplicate migration version {migration.version}")
            previous_version = migration.version

    @property
    def latest_version(self) -> int:
        if self.migrations:
            return self.migrations[-1].version
        return 0

    def generate_initial_state(self, seed: ApplicationState) -> VersionedDocument:
        return { "version": 0, "data": copy.deepcopy(seed) }

    def get_pending_migrations(self, version: int) -> List[MigrationDefinition]:
        return [ migration for migration in self.migrations if migration.version > version ]

    async def migrate_data(self, document: VersionedDocument) -> VersionedDocument:
        versioned_data: VersionedDocument = {
            "version": document["version"],
            "data": document["data"],
        }
        for migration in self.get_pending_migrations(versioned_data["version"]):
            logger.debug("applying migration %d", migration.version)
            try:
                data = await migration.migrate(versioned_data["data"])
            except Exception as e:
                logger.error("migration %d failed at version %d", migration.version,
                    versioned_data["version"])
                raise MigrationError(migration.version, versioned_data) from e
            versioned_data = { "version": migration.version, "data": data }
        return versioned_data
