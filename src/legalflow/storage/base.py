"""
Storage interfaces the style and drafting pipeline depends on.

Persistence itself belongs to the surrounding product; these are the
contracts the core needs from it.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from legalflow.models.client import Client, ContractCategory
from legalflow.models.document import TrainingDocument
from legalflow.models.style import MasterStyleProfile


class StyleProfileStore(ABC):
    """At most one active master style profile per tenant."""

    @abstractmethod
    def get_active(self, tenant_id: str) -> MasterStyleProfile | None:
        """Return the tenant's active profile, if any."""

    @abstractmethod
    def replace(self, tenant_id: str, profile: MasterStyleProfile) -> MasterStyleProfile:
        """
        Atomically make ``profile`` the tenant's active profile.

        Readers see either the previous profile or the new one, never a mix.
        Returns the stored (tenant-bound) profile.
        """

    @abstractmethod
    def history(self, tenant_id: str) -> list[MasterStyleProfile]:
        """All profiles ever stored for the tenant, newest first."""


class TrainingDocumentStore(ABC):
    @abstractmethod
    def list_by_tenant(self, tenant_id: str) -> list[TrainingDocument]:
        """Training documents of a tenant, oldest first."""

    @abstractmethod
    def add(self, document: TrainingDocument) -> TrainingDocument:
        ...

    @abstractmethod
    def get(self, tenant_id: str, document_id: UUID) -> TrainingDocument | None:
        ...


class ClientStore(ABC):
    @abstractmethod
    def get(self, tenant_id: str, client_id: UUID) -> Client | None:
        ...

    @abstractmethod
    def add(self, client: Client) -> Client:
        ...


class CategoryStore(ABC):
    @abstractmethod
    def get(self, tenant_id: str, category_id: UUID) -> ContractCategory | None:
        ...

    @abstractmethod
    def add(self, category: ContractCategory) -> ContractCategory:
        ...

    @abstractmethod
    def list_by_tenant(self, tenant_id: str) -> list[ContractCategory]:
        ...


class UsageLogger(ABC):
    """Best-effort accounting of completion calls."""

    @abstractmethod
    def record(
        self,
        tenant_id: str,
        user_id: str,
        operation: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        """Persist one usage record. Implementations log and swallow write failures."""
