"""
Training document loading and PDF text extraction service.
"""

from functools import lru_cache
from pathlib import Path
from uuid import UUID

import pdfplumber
import structlog

from legalflow.config import get_settings
from legalflow.exceptions import InvalidInput
from legalflow.models.document import TrainingDocument

logger = structlog.get_logger(__name__)

SUPPORTED_SUFFIXES = (".pdf", ".txt")

DOCUMENT_TYPE_KEYWORDS = {
    "Acuerdo de Confidencialidad": [
        "acuerdo de confidencialidad",
        "convenio de confidencialidad",
        "no divulgación",
        "non-disclosure",
    ],
    "Contrato de Locación": [
        "contrato de locación",
        "contrato de alquiler",
        "locador",
        "locatario",
    ],
    "Contrato de Locación de Servicios": [
        "locación de servicios",
        "prestación de servicios",
    ],
    "Contrato de Compraventa": [
        "compraventa",
        "boleto de compraventa",
    ],
    "Contrato de Trabajo": [
        "contrato de trabajo",
        "relación laboral",
        "empleador",
    ],
    "Convenio de Divorcio": [
        "divorcio",
        "convenio regulador",
    ],
    "Escrito Judicial": [
        "señor juez",
        "v.s.",
        "su señoría",
        "petitorio",
    ],
}


class DocumentLoader:
    """
    Service for loading training documents from disk.

    Handles PDF text extraction and plain-text files.
    """

    def __init__(self):
        self.settings = get_settings()

    def load(
        self,
        file_path: Path | str,
        tenant_id: str,
        contract_type: str | None = None,
        category_id: UUID | None = None,
    ) -> TrainingDocument:
        """
        Load a training document from a .pdf or .txt file.

        When no contract type is given it is guessed from the text.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Document not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise InvalidInput(f"Unsupported document type: {file_path.suffix}")

        if suffix == ".pdf":
            text, pages = self._extract_pdf_text(file_path)
        else:
            text, pages = file_path.read_text(encoding="utf-8"), 1

        if not text.strip():
            raise InvalidInput(f"No text could be extracted from {file_path.name}")

        document = self.load_text(
            text,
            tenant_id=tenant_id,
            contract_type=contract_type or self.guess_document_type(text) or "General",
            title=file_path.stem,
            category_id=category_id,
        )

        logger.info(
            "document_loaded",
            filename=file_path.name,
            pages=pages,
            words=document.word_count,
            contract_type=document.contract_type,
        )
        return document

    def load_text(
        self,
        text: str,
        tenant_id: str,
        contract_type: str,
        title: str = "",
        category_id: UUID | None = None,
    ) -> TrainingDocument:
        """Create a training document from raw text."""
        return TrainingDocument(
            tenant_id=tenant_id,
            title=title,
            text=text,
            contract_type=contract_type,
            category_id=category_id,
        )

    def _extract_pdf_text(self, file_path: Path) -> tuple[str, int]:
        """
        Extract text from PDF using pdfplumber.

        Returns (full_text, page_count).
        """
        parts = []
        try:
            with pdfplumber.open(file_path) as pdf:
                page_count = len(pdf.pages)
                for page in pdf.pages:
                    page_text = page.extract_text() or ""
                    if page_text.strip():
                        parts.append(page_text)
        except Exception as e:
            logger.error("pdf_extraction_failed", file=str(file_path), error=str(e))
            raise

        return "\n\n".join(parts), page_count

    def guess_document_type(self, text: str) -> str | None:
        """
        Attempt to identify the document type from its opening text.

        Uses keyword matching for common Argentine document types.
        """
        if not text:
            return None

        text_lower = text.lower()[:5000]
        for document_type, keywords in DOCUMENT_TYPE_KEYWORDS.items():
            if any(keyword in text_lower for keyword in keywords):
                return document_type
        return None


@lru_cache()
def get_document_loader() -> DocumentLoader:
    """Get cached document loader instance."""
    return DocumentLoader()
