"""
Business logic services for LegalFlow.
"""

from legalflow.services.llm_service import CompletionGateway, get_completion_gateway
from legalflow.services.style_analyzer import StyleAnalyzer, get_style_analyzer
from legalflow.services.profile_synthesizer import ProfileSynthesizer, get_profile_synthesizer
from legalflow.services.prompt_builder import ContractPromptBuilder, get_prompt_builder
from legalflow.services.contract_generator import (
    ContractGenerator,
    DraftingSession,
    get_contract_generator,
)
from legalflow.services.document_assistant import DocumentAssistant, get_document_assistant
from legalflow.services.document_loader import DocumentLoader, get_document_loader

__all__ = [
    "CompletionGateway",
    "get_completion_gateway",
    "StyleAnalyzer",
    "get_style_analyzer",
    "ProfileSynthesizer",
    "get_profile_synthesizer",
    "ContractPromptBuilder",
    "get_prompt_builder",
    "ContractGenerator",
    "DraftingSession",
    "get_contract_generator",
    "DocumentAssistant",
    "get_document_assistant",
    "DocumentLoader",
    "get_document_loader",
]
