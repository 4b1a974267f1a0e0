"""Command-line entrypoints for cleaning, verification and reconquest analysis."""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich import print
from rich.table import Table

from .catalog import ProductCatalog
from .config import Settings
from .errors import CatalogUnavailableError
from .line_filter import InvoiceLineFilter
from .matcher import CatalogMatcher
from .pipeline import ReconquestPipeline
from .schemas import Invoice, PipelineReport
from .verifier import ProductVerifier

app = typer.Typer(add_completion=False, help="Invoice reconquest CLI")


@app.callback()
def configure(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _load_invoices(json_path: Path) -> List[dict[str, Any]]:
    data = json.loads(json_path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("invoices", [])
    return data if isinstance(data, list) else []


def _dump_invoices(invoices: List[Invoice], output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    serializable = [inv.model_dump(mode="json", by_alias=True, exclude_none=True) for inv in invoices]
    output.write_text(json.dumps(serializable, indent=2, ensure_ascii=False), encoding="utf-8")


def _settings(catalog: Optional[Path], fallback: Optional[Path], threshold: Optional[float]) -> Settings:
    settings = Settings.from_env()
    if catalog:
        settings = replace(settings, catalog_path=catalog)
    if fallback:
        settings = replace(settings, catalog_fallback_path=fallback)
    if threshold is not None:
        settings = replace(settings, min_competitor_amount=threshold)
    return settings


def _print_report(report: PipelineReport) -> None:
    table = Table(title="Customers by competitor exposure")
    table.add_column("Customer")
    table.add_column("Invoices", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Soprema", justify="right")
    table.add_column("Competitor", justify="right")
    for customer in report.customers:
        table.add_row(
            customer.name,
            str(customer.invoice_count),
            f"{customer.total_amount:,.2f}",
            f"{customer.soprema_amount:,.2f}",
            f"{customer.competitor_amount:,.2f}",
        )
    print(table)

    selection = report.selection
    print(f"[bold]Invoices:[/bold] {len(report.invoices)}  [bold]with competitors:[/bold] {report.relevant_invoice_count}")
    if not selection.customers:
        print(f"[yellow]No customer above the {selection.threshold:,.0f} threshold[/yellow]")
        return
    print(f"[green]Eligible for reconquest (>= {selection.threshold:,.0f}):[/green]")
    for eligible in selection.customers:
        print(f"- {eligible.customer.name}: {eligible.customer.competitor_amount:,.2f} ({eligible.priority})")


@app.command()
def clean(input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with extracted invoices"), output: Path = typer.Option(..., help="Path to write cleaned JSON")) -> None:
    """Remove transport, tax, service, discount and fee lines from invoices."""
    line_filter = InvoiceLineFilter()
    invoices = [line_filter.clean_invoice(raw) for raw in _load_invoices(input)]
    _dump_invoices(invoices, output)
    removed = sum(len(inv.filtering.removed_lines) for inv in invoices if inv.filtering)
    print(f"Cleaned {len(invoices)} invoices ({removed} non-product lines removed) -> {output}")


@app.command()
def verify(input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with extracted invoices"), output: Path = typer.Option(..., help="Path to write verified JSON"), catalog: Optional[Path] = typer.Option(None, help="Filtered product catalog"), fallback: Optional[Path] = typer.Option(None, help="Unfiltered fallback catalog")) -> None:
    """Clean invoices, then correct brand classification against the catalog."""
    settings = _settings(catalog, fallback, None)
    line_filter = InvoiceLineFilter()
    verifier = ProductVerifier(
        CatalogMatcher(ProductCatalog(settings.catalog_path, settings.catalog_fallback_path), threshold=settings.match_threshold)
    )
    try:
        invoices = [verifier.verify_invoice(line_filter.clean_invoice(raw)) for raw in _load_invoices(input)]
    except CatalogUnavailableError as exc:
        print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1)
    _dump_invoices(invoices, output)
    reclassified = sum(inv.product_verification.reclassified_count for inv in invoices if inv.product_verification)
    print(f"Verified {len(invoices)} invoices ({reclassified} lines reclassified) -> {output}")


@app.command()
def analyze(input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with extracted invoices"), report: Optional[Path] = typer.Option(None, help="Optional path to write the analysis report"), catalog: Optional[Path] = typer.Option(None, help="Filtered product catalog"), fallback: Optional[Path] = typer.Option(None, help="Unfiltered fallback catalog"), threshold: Optional[float] = typer.Option(None, help="Minimum competitor amount"), no_verify: bool = typer.Option(False, "--no-verify", help="Skip catalog verification"), skip_on_error: bool = typer.Option(False, "--skip-verification-on-error", help="Continue unverified if the catalog is missing")) -> None:
    """Run the full pipeline and list customers eligible for a reconquest plan."""
    settings = _settings(catalog, fallback, threshold)
    pipeline = ReconquestPipeline.from_settings(settings, skip_verification_on_error=skip_on_error)
    if no_verify:
        pipeline.verifier = None
    try:
        result = pipeline.run(_load_invoices(input))
    except CatalogUnavailableError as exc:
        print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1)
    if report:
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(result.model_dump_json(indent=2, by_alias=True, exclude_none=True), encoding="utf-8")
        print(f"Report written to {report}")
    _print_report(result)


def main():
    app()


if __name__ == "__main__":
    main()
