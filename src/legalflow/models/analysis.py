"""
Structured contract analysis returned by the document assistant.
"""

from typing import Literal

from pydantic import BaseModel, Field


class KeyClause(BaseModel):
    title: str
    content: str = ""
    type: Literal["standard", "unusual"] = "standard"


class Risk(BaseModel):
    severity: Literal["High", "Medium", "Low"] = "Medium"
    description: str
    clause_ref: str = ""


class Obligation(BaseModel):
    party: Literal["Client", "Counterparty", "Both"] = "Both"
    description: str


class MissingClause(BaseModel):
    name: str
    reason: str = ""


class HighlightedVariable(BaseModel):
    label: str
    value: str


class ContractAnalysis(BaseModel):
    """Executive summary, clauses, obligations and risks of a contract."""

    summary: str
    key_clauses: list[KeyClause] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    obligations: list[Obligation] = Field(default_factory=list)
    missing_clauses: list[MissingClause] = Field(default_factory=list)
    recommended_changes: str = ""
    highlighted_variables: list[HighlightedVariable] = Field(default_factory=list)

    @property
    def high_risks(self) -> list[Risk]:
        return [r for r in self.risks if r.severity == "High"]
