"""Per-customer aggregation of invoices and selection of reconquest candidates."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from .config import HIGH_PRIORITY_THRESHOLD, MEDIUM_PRIORITY_THRESHOLD, MIN_COMPETITOR_AMOUNT
from .schemas import CustomerSummary, EligibleCustomer, Invoice, Priority, ReconquestSelection

logger = logging.getLogger(__name__)


def coerce_invoice(value: Any) -> Invoice:
    """Validate a raw invoice; unreadable input becomes an empty invoice."""
    if isinstance(value, Invoice):
        return value
    if isinstance(value, dict):
        try:
            return Invoice.model_validate(value)
        except ValidationError as exc:
            logger.warning("Unreadable invoice treated as empty: %s", exc.errors()[:1])
    return Invoice()


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def priority_for(competitor_amount: float) -> Priority:
    if competitor_amount > HIGH_PRIORITY_THRESHOLD:
        return "high"
    if competitor_amount > MEDIUM_PRIORITY_THRESHOLD:
        return "medium"
    return "low"


class CustomerAggregator:
    def get_clients_analysis_details(self, invoices: Any) -> List[CustomerSummary]:
        """Group invoices by customer and rank customers by competitor amount.

        Host-brand lines (``type == "soprema"`` or ``is_soprema``) win over
        competitor flags; lines flagged neither way only count towards the
        total and ``unclassified_amount``.
        """
        customers: Dict[str, CustomerSummary] = {}

        for raw in _as_list(invoices):
            invoice = coerce_invoice(raw)
            key = invoice.customer_key
            customer = customers.setdefault(key, CustomerSummary(name=key))
            customer.invoice_count += 1

            for line in invoice.products:
                amount = line.total_price
                customer.total_amount += amount
                if line.flagged_soprema:
                    customer.soprema_amount += amount
                elif line.flagged_competitor:
                    customer.competitor_amount += amount
                else:
                    customer.unclassified_amount += amount

        # sorted() is stable: ties keep first-seen order
        results = sorted(customers.values(), key=lambda c: c.competitor_amount, reverse=True)
        for customer in results:
            if customer.competitor_amount > 0:
                logger.debug(
                    "%s: competitor %.2f of %.2f total", customer.name, customer.competitor_amount, customer.total_amount
                )
        return results


class ThresholdGate:
    def __init__(self, min_competitor_amount: float = MIN_COMPETITOR_AMOUNT) -> None:
        self.min_competitor_amount = min_competitor_amount

    def filter_invoices_for_reconquest(self, invoices: Any) -> List[Invoice]:
        """Keep only invoices with at least one line flagged as competitor."""
        relevant: List[Invoice] = []
        total = 0
        for raw in _as_list(invoices):
            total += 1
            invoice = coerce_invoice(raw)
            competitor_lines = sum(1 for line in invoice.products if line.flagged_competitor)
            if competitor_lines:
                relevant.append(invoice)
            else:
                logger.debug("Invoice %s has no competitor product", invoice.display_id)
        logger.info("%d of %d invoice(s) contain competitor products", len(relevant), total)
        return relevant

    def meets_threshold(self, customer: CustomerSummary) -> bool:
        return customer.competitor_amount >= self.min_competitor_amount

    def eligible_customers(self, customers: Iterable[CustomerSummary]) -> List[CustomerSummary]:
        return [c for c in customers if self.meets_threshold(c)]

    def select_customers(self, customers: Iterable[CustomerSummary]) -> ReconquestSelection:
        """Build the hand-off for plan generation: eligible customers with their priority."""
        customers = list(customers)
        eligible = self.eligible_customers(customers)
        return ReconquestSelection(
            threshold=self.min_competitor_amount,
            total_customers=len(customers),
            eligible_count=len(eligible),
            total_competitor_amount=sum(c.competitor_amount for c in eligible),
            customers=[EligibleCustomer(customer=c, priority=priority_for(c.competitor_amount)) for c in eligible],
        )
