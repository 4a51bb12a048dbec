from typing import List

from ..types import MigrationDefinition

from . import migration_0001_split_config
from . import migration_0002_transactions_by_id
from . import migration_0003_currency_preference


MIGRATIONS: List[MigrationDefinition] = [
    MigrationDefinition(migration.MIGRATION, migration.migrate)
    for migration in (
        migration_0001_split_config,
        migration_0002_transactions_by_id,
        migration_0003_currency_preference,
    )
]
