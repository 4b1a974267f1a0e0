"""End-to-end flow: line filtering, catalog verification, aggregation, threshold gate."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from .aggregator import CustomerAggregator, ThresholdGate, coerce_invoice
from .catalog import ProductCatalog
from .config import Settings
from .errors import CatalogUnavailableError
from .line_filter import InvoiceLineFilter
from .matcher import CatalogMatcher
from .schemas import Invoice, PipelineReport
from .verifier import ProductVerifier

logger = logging.getLogger(__name__)


class ReconquestPipeline:
    def __init__(
        self,
        line_filter: Optional[InvoiceLineFilter] = None,
        verifier: Optional[ProductVerifier] = None,
        aggregator: Optional[CustomerAggregator] = None,
        gate: Optional[ThresholdGate] = None,
        skip_verification_on_error: bool = False,
    ) -> None:
        self.line_filter = line_filter or InvoiceLineFilter()
        self.verifier = verifier
        self.aggregator = aggregator or CustomerAggregator()
        self.gate = gate or ThresholdGate()
        self.skip_verification_on_error = skip_verification_on_error

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ReconquestPipeline":
        catalog = ProductCatalog(settings.catalog_path, settings.catalog_fallback_path)
        matcher = CatalogMatcher(catalog, threshold=settings.match_threshold)
        return cls(
            verifier=ProductVerifier(matcher),
            gate=ThresholdGate(settings.min_competitor_amount),
            **kwargs,
        )

    def prepare(self, invoices: Any) -> List[Invoice]:
        """Clean every invoice and, when a verifier is configured, correct brand classification."""
        raw_invoices = invoices if isinstance(invoices, list) else []
        cleaned = [self.line_filter.clean_invoice(coerce_invoice(raw)) for raw in raw_invoices]
        if self.verifier is None:
            return cleaned
        try:
            return [self.verifier.verify_invoice(invoice) for invoice in cleaned]
        except CatalogUnavailableError as exc:
            if not self.skip_verification_on_error:
                raise
            logger.warning("Catalog unavailable, continuing without verification: %s", exc.message)
            return cleaned

    def run(self, invoices: Any) -> PipelineReport:
        prepared = self.prepare(invoices)
        relevant = self.gate.filter_invoices_for_reconquest(prepared)
        customers = self.aggregator.get_clients_analysis_details(relevant)
        selection = self.gate.select_customers(customers)
        logger.info(
            "%d customer(s) analysed, %d above the %.0f threshold",
            selection.total_customers,
            selection.eligible_count,
            selection.threshold,
        )
        return PipelineReport(
            invoices=prepared,
            relevant_invoice_count=len(relevant),
            customers=customers,
            selection=selection,
        )
