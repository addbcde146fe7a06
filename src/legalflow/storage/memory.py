"""
Thread-safe in-memory storage, used by the CLI and the test suite.
"""

import threading
from collections import defaultdict
from uuid import UUID

import structlog

from legalflow.models.client import Client, ContractCategory
from legalflow.models.document import TrainingDocument
from legalflow.models.drafting import UsageRecord
from legalflow.models.style import MasterStyleProfile
from legalflow.storage.base import (
    CategoryStore,
    ClientStore,
    StyleProfileStore,
    TrainingDocumentStore,
    UsageLogger,
)

logger = structlog.get_logger(__name__)


class InMemoryStyleProfileStore(StyleProfileStore):
    """Active profile per tenant, swapped by reference under a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active: dict[str, MasterStyleProfile] = {}
        self._history: dict[str, list[MasterStyleProfile]] = defaultdict(list)

    def get_active(self, tenant_id: str) -> MasterStyleProfile | None:
        with self._lock:
            return self._active.get(tenant_id)

    def replace(self, tenant_id: str, profile: MasterStyleProfile) -> MasterStyleProfile:
        stored = profile.for_tenant(tenant_id)
        with self._lock:
            self._history[tenant_id].append(stored)
            self._active[tenant_id] = stored
        logger.info(
            "style_profile_replaced",
            tenant_id=tenant_id,
            profile_id=str(stored.id),
            source=stored.source.value,
        )
        return stored

    def history(self, tenant_id: str) -> list[MasterStyleProfile]:
        with self._lock:
            return list(reversed(self._history.get(tenant_id, [])))


class InMemoryTrainingDocumentStore(TrainingDocumentStore):
    def __init__(self, documents: list[TrainingDocument] | None = None):
        self._lock = threading.Lock()
        self._documents: dict[UUID, TrainingDocument] = {}
        for document in documents or []:
            self.add(document)

    def list_by_tenant(self, tenant_id: str) -> list[TrainingDocument]:
        with self._lock:
            docs = [d for d in self._documents.values() if d.tenant_id == tenant_id]
        return sorted(docs, key=lambda d: d.created_at)

    def add(self, document: TrainingDocument) -> TrainingDocument:
        with self._lock:
            self._documents[document.id] = document
        return document

    def get(self, tenant_id: str, document_id: UUID) -> TrainingDocument | None:
        with self._lock:
            document = self._documents.get(document_id)
        if document is None or document.tenant_id != tenant_id:
            return None
        return document


class InMemoryClientStore(ClientStore):
    def __init__(self, clients: list[Client] | None = None):
        self._clients: dict[UUID, Client] = {c.id: c for c in clients or []}

    def get(self, tenant_id: str, client_id: UUID) -> Client | None:
        client = self._clients.get(client_id)
        if client is None or client.tenant_id != tenant_id:
            return None
        return client

    def add(self, client: Client) -> Client:
        self._clients[client.id] = client
        return client


class InMemoryCategoryStore(CategoryStore):
    def __init__(self, categories: list[ContractCategory] | None = None):
        self._categories: dict[UUID, ContractCategory] = {c.id: c for c in categories or []}

    def get(self, tenant_id: str, category_id: UUID) -> ContractCategory | None:
        category = self._categories.get(category_id)
        if category is None or category.tenant_id != tenant_id:
            return None
        return category

    def add(self, category: ContractCategory) -> ContractCategory:
        self._categories[category.id] = category
        return category

    def list_by_tenant(self, tenant_id: str) -> list[ContractCategory]:
        return [c for c in self._categories.values() if c.tenant_id == tenant_id]


class InMemoryUsageLogger(UsageLogger):
    def __init__(self):
        self._lock = threading.Lock()
        self.records: list[UsageRecord] = []

    def record(
        self,
        tenant_id: str,
        user_id: str,
        operation: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        usage = UsageRecord(
            tenant_id=tenant_id,
            user_id=user_id,
            operation=operation,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        with self._lock:
            self.records.append(usage)
