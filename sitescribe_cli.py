#!/usr/bin/env python3

import asyncio
import json
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from config.settings import Settings
from observability.logging import setup_logging_from_settings
from pipelines.security import SSRFError
from pricing.estimator import ComplexityEstimator
from storage.documents import InMemoryDocumentStore, SQLDocumentStore
from synthesis.orchestrator import SynthesisError
from synthesis.pipeline import DocumentationPipeline

console = Console()
app = typer.Typer(help="Sitescribe CLI - documentation from a product website")


def _settings(verbose: bool) -> Settings:
    settings = Settings.from_env()
    setup_logging_from_settings(settings, verbose=verbose)
    return settings


@app.command()
def estimate(
    url: str = typer.Argument(..., help="Product website"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw quote as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Quote the cost of documenting a site"""
    settings = _settings(verbose)
    try:
        with console.status(f"[bold blue]Analyzing {url}..."):
            quote = ComplexityEstimator(settings=settings).estimate(url)
    except SSRFError as e:
        console.print(f"❌ {e}", style="bold red")
        raise typer.Exit(1)

    if as_json:
        console.print_json(quote.model_dump_json())
        return

    factors = quote.complexity_factors
    table = Table(title=f"💰 Quote for {url}")
    table.add_column("Item", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Estimated pages", str(factors.estimated_pages))
    table.add_row("GitHub repositories", str(factors.github_repo_count))
    table.add_row("Stack Overflow questions", str(factors.stack_overflow_questions))
    table.add_row("Technical complexity", factors.technical_complexity)
    table.add_row("Tier", factors.complexity_tier)
    for key, value in quote.breakdown.items():
        table.add_row(key.replace('_', ' ').title(), f"{value:,.2f}")
    table.add_row("Total", f"{quote.estimated_total:,.2f} {quote.currency}")
    console.print(table)
    if quote.is_free:
        console.print(f"✅ {quote.free_reason}", style="bold green")


@app.command()
def generate(
    url: str = typer.Argument(..., help="Product website"),
    user_id: Optional[str] = typer.Option(None, "--user", help="Owner recorded on the stored document"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Also write the document JSON here"),
    no_store: bool = typer.Option(False, "--no-store", help="Keep the document in memory only"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Generate documentation for a site"""
    settings = _settings(verbose)
    store = InMemoryDocumentStore() if no_store else SQLDocumentStore(settings.database_url)

    async def run():
        pipeline = DocumentationPipeline.from_settings(settings, store=store)
        try:
            return await pipeline.run(url, user_id=user_id)
        finally:
            await pipeline.close()

    try:
        with console.status(f"[bold blue]Generating documentation for {url}..."):
            result = asyncio.run(run())
    except SSRFError as e:
        console.print(f"❌ {e}", style="bold red")
        raise typer.Exit(1)
    except SynthesisError as e:
        console.print(f"❌ Generation failed at {e.stage}: {e.message}", style="bold red")
        raise typer.Exit(2)

    document = result.document
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(document.to_dict(), f, indent=2, ensure_ascii=False)

    stats = document.research_stats
    console.print(f"✅ {document.title} (document {result.document_id})", style="bold green")
    console.print(f"   {stats['pages_analyzed']} pages, {stats['external_sources']} external sources, "
                  f"{len(document.sections)} sections, {len(document.citations)} citations")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8080, "--port", help="Bind port"),
):
    """Run the HTTP API"""
    uvicorn.run("server.api:app", host=host, port=port)


if __name__ == "__main__":
    app()
