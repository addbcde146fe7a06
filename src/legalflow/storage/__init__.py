"""
Storage adapters for LegalFlow.

Provides the repository interfaces the pipeline depends on, plus in-memory
and SQL implementations.
"""

from legalflow.storage.base import (
    CategoryStore,
    ClientStore,
    StyleProfileStore,
    TrainingDocumentStore,
    UsageLogger,
)
from legalflow.storage.memory import (
    InMemoryCategoryStore,
    InMemoryClientStore,
    InMemoryStyleProfileStore,
    InMemoryTrainingDocumentStore,
    InMemoryUsageLogger,
)
from legalflow.storage.sql import (
    SqlCategoryStore,
    SqlClientStore,
    SqlDatabase,
    SqlStyleProfileStore,
    SqlTrainingDocumentStore,
    SqlUsageLogger,
    get_sql_database,
)

__all__ = [
    "StyleProfileStore",
    "TrainingDocumentStore",
    "ClientStore",
    "CategoryStore",
    "UsageLogger",
    "InMemoryStyleProfileStore",
    "InMemoryTrainingDocumentStore",
    "InMemoryClientStore",
    "InMemoryCategoryStore",
    "InMemoryUsageLogger",
    "SqlDatabase",
    "get_sql_database",
    "SqlStyleProfileStore",
    "SqlTrainingDocumentStore",
    "SqlClientStore",
    "SqlCategoryStore",
    "SqlUsageLogger",
]
