"""
Client and category models consumed read-only by the drafting pipeline.
"""

from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ClientType(str, Enum):
    """Legal nature of a client."""

    INDIVIDUAL = "individual"
    COMPANY = "company"


class Client(BaseModel):
    """
    A firm's client.

    Every field here is a substitution variable in generated text. Optional
    fields that are absent are rendered as placeholders, never invented.
    """

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    full_name: str
    client_type: ClientType = ClientType.INDIVIDUAL
    document_type: str = Field(..., description="DNI, CUIT, Passport, ...")
    document_number: str

    address: str | None = None
    city: str | None = None
    zip_code: str | None = None

    # Organizations only
    legal_representative: str | None = None
    representative_id: str | None = None

    @property
    def is_organization(self) -> bool:
        return self.client_type == ClientType.COMPANY


class ContractCategory(BaseModel):
    """A legal subject-matter category (e.g. "Divorcios", "Juicios")."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    name: str
    is_judicial: bool = False
