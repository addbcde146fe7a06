"""
SQL storage adapters using SQLAlchemy.

Targets PostgreSQL in production; any SQLAlchemy URL works (the test suite
runs on in-memory SQLite).
"""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterator
from uuid import UUID, uuid4

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from legalflow.config import get_settings
from legalflow.models.client import Client, ContractCategory
from legalflow.models.document import TrainingDocument
from legalflow.models.style import MasterStyleProfile
from legalflow.storage.base import (
    CategoryStore,
    ClientStore,
    StyleProfileStore,
    TrainingDocumentStore,
    UsageLogger,
)

logger = structlog.get_logger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS style_profiles (
        id VARCHAR(36) PRIMARY KEY,
        tenant_id VARCHAR(64) NOT NULL,
        style_instruction TEXT NOT NULL,
        validation_checklist TEXT NOT NULL,
        examples TEXT NOT NULL,
        completeness_score INTEGER NOT NULL,
        missing_elements TEXT NOT NULL,
        suggestions TEXT NOT NULL,
        source VARCHAR(16) NOT NULL,
        is_active BOOLEAN NOT NULL,
        updated_at VARCHAR(40) NOT NULL
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS style_profiles_one_active
        ON style_profiles (tenant_id) WHERE is_active
    """,
    """
    CREATE TABLE IF NOT EXISTS training_documents (
        id VARCHAR(36) PRIMARY KEY,
        tenant_id VARCHAR(64) NOT NULL,
        title TEXT NOT NULL,
        text TEXT NOT NULL,
        contract_type VARCHAR(255) NOT NULL,
        category_id VARCHAR(36),
        style_summary TEXT,
        tone_label VARCHAR(255),
        created_at VARCHAR(40) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clients (
        id VARCHAR(36) PRIMARY KEY,
        tenant_id VARCHAR(64) NOT NULL,
        full_name TEXT NOT NULL,
        client_type VARCHAR(16) NOT NULL,
        document_type VARCHAR(32) NOT NULL,
        document_number VARCHAR(64) NOT NULL,
        address TEXT,
        city VARCHAR(255),
        zip_code VARCHAR(32),
        legal_representative TEXT,
        representative_id VARCHAR(64)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS contract_categories (
        id VARCHAR(36) PRIMARY KEY,
        tenant_id VARCHAR(64) NOT NULL,
        name VARCHAR(255) NOT NULL,
        is_judicial BOOLEAN NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_usage_logs (
        id VARCHAR(36) PRIMARY KEY,
        tenant_id VARCHAR(64) NOT NULL,
        user_id VARCHAR(64) NOT NULL,
        operation VARCHAR(64) NOT NULL,
        model_used VARCHAR(128) NOT NULL,
        input_tokens INTEGER NOT NULL,
        output_tokens INTEGER NOT NULL,
        estimated_cost REAL NOT NULL,
        success BOOLEAN NOT NULL,
        created_at VARCHAR(40) NOT NULL
    )
    """,
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqlDatabase:
    """
    Engine and session management shared by the SQL stores.
    """

    def __init__(self, database_url: str | None = None):
        settings = get_settings()
        self.database_url = database_url or settings.postgres_url

        if self.database_url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across sessions
            self.engine = create_engine(
                self.database_url,
                echo=settings.debug,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                self.database_url,
                echo=settings.debug,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
            )

        self.session_factory = sessionmaker(self.engine, class_=Session, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Get a database session; commits on success, rolls back on error."""
        with self.session_factory() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def create_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self.session() as session:
            for statement in SCHEMA:
                session.execute(text(statement))
        logger.info("sql_schema_ready", url=self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()

    def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("sql_health_check_failed", error=str(e))
            return False


# =============================================================================
# Style profiles
# =============================================================================


class SqlStyleProfileStore(StyleProfileStore):
    """
    Style profiles with history; exactly one active row per tenant.

    ``replace`` deactivates the old row and inserts the new one in a single
    transaction, so readers never see a partially written profile. On
    PostgreSQL the transaction first takes a per-tenant advisory lock so
    concurrent replaces for one tenant run one after the other.
    """

    def __init__(self, db: SqlDatabase):
        self.db = db

    def get_active(self, tenant_id: str) -> MasterStyleProfile | None:
        with self.db.session() as session:
            result = session.execute(
                text("""
                    SELECT * FROM style_profiles
                    WHERE tenant_id = :tenant_id AND is_active = :active
                    ORDER BY updated_at DESC
                    LIMIT 1
                """),
                {"tenant_id": tenant_id, "active": True},
            )
            row = result.mappings().fetchone()
            return self._row_to_profile(row) if row else None

    def replace(self, tenant_id: str, profile: MasterStyleProfile) -> MasterStyleProfile:
        stored = profile.for_tenant(tenant_id)
        with self.db.session() as session:
            self._lock_tenant(session, tenant_id)
            session.execute(
                text("""
                    UPDATE style_profiles SET is_active = :inactive
                    WHERE tenant_id = :tenant_id AND is_active = :active
                """),
                {"tenant_id": tenant_id, "active": True, "inactive": False},
            )
            session.execute(
                text("""
                    INSERT INTO style_profiles (
                        id, tenant_id, style_instruction, validation_checklist, examples,
                        completeness_score, missing_elements, suggestions, source,
                        is_active, updated_at
                    ) VALUES (
                        :id, :tenant_id, :style_instruction, :validation_checklist, :examples,
                        :completeness_score, :missing_elements, :suggestions, :source,
                        :is_active, :updated_at
                    )
                """),
                {
                    "id": str(stored.id),
                    "tenant_id": tenant_id,
                    "style_instruction": stored.style_instruction,
                    "validation_checklist": json.dumps(stored.validation_checklist, ensure_ascii=False),
                    "examples": stored.examples.model_dump_json(),
                    "completeness_score": stored.completeness_score,
                    "missing_elements": json.dumps(stored.missing_elements, ensure_ascii=False),
                    "suggestions": json.dumps(stored.suggestions, ensure_ascii=False),
                    "source": stored.source.value,
                    "is_active": True,
                    "updated_at": stored.updated_at.isoformat(),
                },
            )
        logger.info(
            "style_profile_replaced",
            tenant_id=tenant_id,
            profile_id=str(stored.id),
            source=stored.source.value,
        )
        return stored

    def _lock_tenant(self, session: Session, tenant_id: str) -> None:
        # SQLite serializes writers on its own
        if self.db.engine.dialect.name == "postgresql":
            session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:tenant_id))"),
                {"tenant_id": tenant_id},
            )

    def history(self, tenant_id: str) -> list[MasterStyleProfile]:
        with self.db.session() as session:
            result = session.execute(
                text("""
                    SELECT * FROM style_profiles
                    WHERE tenant_id = :tenant_id
                    ORDER BY updated_at DESC
                """),
                {"tenant_id": tenant_id},
            )
            return [self._row_to_profile(row) for row in result.mappings().fetchall()]

    @staticmethod
    def _row_to_profile(row: Any) -> MasterStyleProfile:
        return MasterStyleProfile(
            id=UUID(row["id"]),
            tenant_id=row["tenant_id"],
            style_instruction=row["style_instruction"],
            validation_checklist=json.loads(row["validation_checklist"]),
            examples=json.loads(row["examples"]),
            completeness_score=row["completeness_score"],
            missing_elements=json.loads(row["missing_elements"]),
            suggestions=json.loads(row["suggestions"]),
            source=row["source"],
            updated_at=row["updated_at"],
        )


# =============================================================================
# Training documents
# =============================================================================


class SqlTrainingDocumentStore(TrainingDocumentStore):
    def __init__(self, db: SqlDatabase):
        self.db = db

    def list_by_tenant(self, tenant_id: str) -> list[TrainingDocument]:
        with self.db.session() as session:
            result = session.execute(
                text("""
                    SELECT * FROM training_documents
                    WHERE tenant_id = :tenant_id
                    ORDER BY created_at ASC
                """),
                {"tenant_id": tenant_id},
            )
            return [self._row_to_document(row) for row in result.mappings().fetchall()]

    def add(self, document: TrainingDocument) -> TrainingDocument:
        with self.db.session() as session:
            session.execute(
                text("""
                    INSERT INTO training_documents (
                        id, tenant_id, title, text, contract_type, category_id,
                        style_summary, tone_label, created_at
                    ) VALUES (
                        :id, :tenant_id, :title, :text, :contract_type, :category_id,
                        :style_summary, :tone_label, :created_at
                    )
                """),
                {
                    "id": str(document.id),
                    "tenant_id": document.tenant_id,
                    "title": document.title,
                    "text": document.text,
                    "contract_type": document.contract_type,
                    "category_id": str(document.category_id) if document.category_id else None,
                    "style_summary": document.style_summary,
                    "tone_label": document.tone_label,
                    "created_at": document.created_at.isoformat(),
                },
            )
        logger.info("training_document_added", document_id=str(document.id))
        return document

    def get(self, tenant_id: str, document_id: UUID) -> TrainingDocument | None:
        with self.db.session() as session:
            result = session.execute(
                text("SELECT * FROM training_documents WHERE id = :id AND tenant_id = :tenant_id"),
                {"id": str(document_id), "tenant_id": tenant_id},
            )
            row = result.mappings().fetchone()
            return self._row_to_document(row) if row else None

    @staticmethod
    def _row_to_document(row: Any) -> TrainingDocument:
        return TrainingDocument(
            id=UUID(row["id"]),
            tenant_id=row["tenant_id"],
            title=row["title"],
            text=row["text"],
            contract_type=row["contract_type"],
            category_id=UUID(row["category_id"]) if row["category_id"] else None,
            style_summary=row["style_summary"],
            tone_label=row["tone_label"],
            created_at=row["created_at"],
        )


# =============================================================================
# Clients and categories
# =============================================================================


class SqlClientStore(ClientStore):
    def __init__(self, db: SqlDatabase):
        self.db = db

    def get(self, tenant_id: str, client_id: UUID) -> Client | None:
        with self.db.session() as session:
            result = session.execute(
                text("SELECT * FROM clients WHERE id = :id AND tenant_id = :tenant_id"),
                {"id": str(client_id), "tenant_id": tenant_id},
            )
            row = result.mappings().fetchone()
            if row is None:
                return None
            data = dict(row)
            data["id"] = UUID(data["id"])
            return Client.model_validate(data)

    def add(self, client: Client) -> Client:
        with self.db.session() as session:
            session.execute(
                text("""
                    INSERT INTO clients (
                        id, tenant_id, full_name, client_type, document_type, document_number,
                        address, city, zip_code, legal_representative, representative_id
                    ) VALUES (
                        :id, :tenant_id, :full_name, :client_type, :document_type, :document_number,
                        :address, :city, :zip_code, :legal_representative, :representative_id
                    )
                """),
                {**client.model_dump(mode="json"), "id": str(client.id)},
            )
        return client


class SqlCategoryStore(CategoryStore):
    def __init__(self, db: SqlDatabase):
        self.db = db

    def get(self, tenant_id: str, category_id: UUID) -> ContractCategory | None:
        with self.db.session() as session:
            result = session.execute(
                text("SELECT * FROM contract_categories WHERE id = :id AND tenant_id = :tenant_id"),
                {"id": str(category_id), "tenant_id": tenant_id},
            )
            row = result.mappings().fetchone()
            return self._row_to_category(row) if row else None

    def add(self, category: ContractCategory) -> ContractCategory:
        with self.db.session() as session:
            session.execute(
                text("""
                    INSERT INTO contract_categories (id, tenant_id, name, is_judicial)
                    VALUES (:id, :tenant_id, :name, :is_judicial)
                """),
                {
                    "id": str(category.id),
                    "tenant_id": category.tenant_id,
                    "name": category.name,
                    "is_judicial": category.is_judicial,
                },
            )
        return category

    def list_by_tenant(self, tenant_id: str) -> list[ContractCategory]:
        with self.db.session() as session:
            result = session.execute(
                text("SELECT * FROM contract_categories WHERE tenant_id = :tenant_id ORDER BY name"),
                {"tenant_id": tenant_id},
            )
            return [self._row_to_category(row) for row in result.mappings().fetchall()]

    @staticmethod
    def _row_to_category(row: Any) -> ContractCategory:
        return ContractCategory(
            id=UUID(row["id"]),
            tenant_id=row["tenant_id"],
            name=row["name"],
            is_judicial=bool(row["is_judicial"]),
        )


# =============================================================================
# Usage logging
# =============================================================================


class SqlUsageLogger(UsageLogger):
    """API usage rows. Write failures are logged and dropped."""

    def __init__(self, db: SqlDatabase):
        self.db = db

    def record(
        self,
        tenant_id: str,
        user_id: str,
        operation: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        try:
            with self.db.session() as session:
                session.execute(
                    text("""
                        INSERT INTO api_usage_logs (
                            id, tenant_id, user_id, operation, model_used,
                            input_tokens, output_tokens, estimated_cost, success, created_at
                        ) VALUES (
                            :id, :tenant_id, :user_id, :operation, :model_used,
                            :input_tokens, :output_tokens, :estimated_cost, :success, :created_at
                        )
                    """),
                    {
                        "id": str(uuid4()),
                        "tenant_id": tenant_id,
                        "user_id": user_id,
                        "operation": operation,
                        "model_used": model,
                        "input_tokens": input_tokens,
                        "output_tokens": output_tokens,
                        "estimated_cost": 0.0,
                        "success": True,
                        "created_at": _now(),
                    },
                )
        except SQLAlchemyError as e:
            logger.warning(
                "usage_logging_failed",
                tenant_id=tenant_id,
                operation=operation,
                error=str(e),
            )

    def count(self, tenant_id: str) -> int:
        with self.db.session() as session:
            result = session.execute(
                text("SELECT COUNT(*) FROM api_usage_logs WHERE tenant_id = :tenant_id"),
                {"tenant_id": tenant_id},
            )
            return result.scalar() or 0


@lru_cache()
def get_sql_database() -> SqlDatabase:
    """Get cached SQL database instance."""
    return SqlDatabase()
