from migrator.models.base import Base
from migrator.models.records import KeyValueEntry
from migrator.models.runs import MigrationRun

__all__ = [
    "Base",
    "KeyValueEntry",
    "MigrationRun",
]
