"""
Command-line interface for LegalFlow.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from legalflow.config import get_settings
from legalflow.exceptions import LegalFlowError
from legalflow.models.client import ContractCategory
from legalflow.pipeline.orchestrator import StyleTrainingPipeline
from legalflow.pipeline.sampling import extract_strategic_samples
from legalflow.services.document_loader import get_document_loader
from legalflow.services.llm_service import get_completion_gateway
from legalflow.services.profile_synthesizer import ProfileSynthesizer
from legalflow.services.style_analyzer import StyleAnalyzer
from legalflow.storage.base import CategoryStore, StyleProfileStore, TrainingDocumentStore
from legalflow.storage.memory import (
    InMemoryCategoryStore,
    InMemoryStyleProfileStore,
    InMemoryTrainingDocumentStore,
)
from legalflow.storage.sql import (
    SqlCategoryStore,
    SqlDatabase,
    SqlStyleProfileStore,
    SqlTrainingDocumentStore,
)

logger = structlog.get_logger(__name__)

CLI_TENANT = "cli"


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """LegalFlow: Style DNA training and AI-assisted legal drafting."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    settings = get_settings()
    level = logging.DEBUG if debug else logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _stores(
    database_url: Optional[str],
) -> tuple[TrainingDocumentStore, StyleProfileStore, CategoryStore]:
    if not database_url:
        return InMemoryTrainingDocumentStore(), InMemoryStyleProfileStore(), InMemoryCategoryStore()

    db = SqlDatabase(database_url)
    db.create_schema()
    return SqlTrainingDocumentStore(db), SqlStyleProfileStore(db), SqlCategoryStore(db)


# =========================================================================
# Training Commands
# =========================================================================


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--tenant", required=True, help="Tenant (law firm) identifier")
@click.option("--type", "contract_type", help="Document type; guessed from the text when omitted")
@click.option("--category", help="Legal category of the documents")
@click.option("--judicial", is_flag=True, help="The category holds judicial filings")
@click.option("--database-url", help="SQLAlchemy URL; in-memory storage when omitted")
def train(
    paths: tuple[str, ...],
    tenant: str,
    contract_type: Optional[str],
    category: Optional[str],
    judicial: bool,
    database_url: Optional[str],
) -> None:
    """Train the firm's master style profile from documents."""
    if not paths:
        raise click.UsageError("No documents specified")

    documents, profiles, categories = _stores(database_url)
    gateway = get_completion_gateway()
    pipeline = StyleTrainingPipeline(
        documents=documents,
        profiles=profiles,
        categories=categories,
        analyzer=StyleAnalyzer(gateway),
        synthesizer=ProfileSynthesizer(gateway),
    )
    loader = get_document_loader()

    category_id = None
    if category:
        category_id = categories.add(
            ContractCategory(tenant_id=tenant, name=category, is_judicial=judicial)
        ).id

    try:
        click.echo(f"Loading {len(paths)} document(s)...")
        for path in paths:
            document = loader.load(path, tenant, contract_type, category_id=category_id)
            document = pipeline.add_document(document)
            click.echo(f"  {document.title}: {document.contract_type} ({document.tone_label})")

        click.echo("\nTraining style profile...")
        result = None
        for event in pipeline.run(tenant):
            click.echo(f"  {event}")
            if event.result is not None:
                result = event.result
    except LegalFlowError as e:
        raise click.ClickException(str(e)) from e

    profile = result.profile
    click.echo("\n=== Master Style Profile ===\n")
    click.echo(f"Source: {profile.source.value}")
    click.echo(f"Completeness: {profile.completeness_score}/100")
    click.echo(f"Documents analyzed: {result.analyzed_documents}")
    if result.degraded:
        click.echo(f"Degraded: simple profile used ({result.fallback_reason})")
    if profile.validation_checklist:
        click.echo(f"Checklist items: {len(profile.validation_checklist)}")
    if profile.missing_elements:
        click.echo("\nMissing elements:")
        for element in profile.missing_elements:
            click.echo(f"  - {element}")
    click.echo(f"\n{profile.style_instruction}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--type", "contract_type", help="Document type; guessed from the text when omitted")
@click.option("--category", help="Legal category of the document")
@click.option("--output", "-o", type=click.Path(), help="Output file for the analysis")
def analyze(
    path: str,
    contract_type: Optional[str],
    category: Optional[str],
    output: Optional[str],
) -> None:
    """Run deep style analysis on one document."""
    analyzer = StyleAnalyzer(get_completion_gateway())

    try:
        document = get_document_loader().load(path, CLI_TENANT, contract_type)
        analysis = analyzer.analyze_deep(document.text, document.contract_type, category)
    except LegalFlowError as e:
        raise click.ClickException(str(e)) from e

    data = analysis.model_dump_json(indent=2, exclude_none=True)
    if output:
        Path(output).write_text(data, encoding="utf-8")
        click.echo(f"Analysis written to: {output}")
    else:
        click.echo(data)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def sample(path: str) -> None:
    """Show the excerpts selected for style analysis."""
    try:
        document = get_document_loader().load(path, CLI_TENANT)
    except LegalFlowError as e:
        raise click.ClickException(str(e)) from e
    samples = extract_strategic_samples(document.text)

    click.echo(f"\n=== {document.title} ({len(document.text)} chars) ===\n")
    for excerpt in samples:
        click.echo(
            f"  {excerpt.label:<26} [{excerpt.start}, {excerpt.end})  "
            f"{excerpt.end - excerpt.start} chars"
        )


# =========================================================================
# Config Commands
# =========================================================================


@cli.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    click.echo("\n=== LegalFlow Configuration ===\n")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Debug: {settings.debug}")
    click.echo(f"\nPrimary LLM: {settings.primary_llm_provider} ({settings.primary_llm_model})")
    click.echo(f"Fallback LLM: {settings.fallback_llm_provider} ({settings.fallback_llm_model})")
    click.echo(f"Timeout: {settings.llm_timeout}s, retries: {settings.llm_max_retries}")
    click.echo(f"\nJurisdiction: {settings.jurisdiction}")
    click.echo(f"Drafting language: {settings.drafting_language}")
    click.echo(f"Missing-field placeholder: {settings.missing_field_placeholder}")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
