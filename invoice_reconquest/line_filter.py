"""Rule-based separation of product lines from charges (transport, taxes, labour, discounts, fees)."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable, Pattern, Sequence, Tuple

from . import keywords
from .schemas import Category, ClassificationResult, FilteringInfo, FilterResult, FilterSummary, Invoice, InvoiceLine, coerce_line
from .utils import fold_text

logger = logging.getLogger(__name__)

EMPTY_LINE_REASON = "Ligne vide ou sans désignation"
SHORT_LINE_REASON = "Désignation trop courte"
NEGATIVE_AMOUNT_REASON = "Montant négatif - probablement une remise"


class InvoiceLineFilter:
    def __init__(
        self,
        product_exceptions: Iterable[str] = keywords.PRODUCT_EXCEPTIONS,
        host_product_tokens: Iterable[str] = keywords.HOST_PRODUCT_TOKENS,
        non_product_patterns: Sequence[Tuple[str, Sequence[Pattern[str]]]] = keywords.NON_PRODUCT_PATTERNS,
    ) -> None:
        self.product_exceptions = tuple(fold_text(p) for p in product_exceptions)
        self.host_product_tokens = tuple(fold_text(t) for t in host_product_tokens)
        self.non_product_patterns = tuple((Category(c), tuple(p)) for c, p in non_product_patterns)

    def classify(self, line: Any) -> ClassificationResult:
        """Decide whether one invoice line is a product. Never raises."""
        parsed = coerce_line(line)
        if parsed is None or not parsed.designation or not parsed.designation.strip():
            return ClassificationResult(is_product=False, confidence=90, reason=EMPTY_LINE_REASON)

        designation = fold_text(parsed.designation)
        reference = fold_text(parsed.reference)

        # Exceptions first: real products whose names contain a charge keyword
        if self._is_exception(designation):
            return ClassificationResult(is_product=True, category=Category.PRODUCT_EXCEPTION, confidence=90)

        for category, patterns in self.non_product_patterns:
            for pattern in patterns:
                if pattern.search(designation) or (reference and pattern.search(reference)):
                    return ClassificationResult(
                        is_product=False,
                        category=category,
                        confidence=95,
                        reason=f'Détecté comme {category.value}: "{designation}"',
                    )

        if parsed.total_price < 0 and (parsed.quantity == 0 or parsed.unit_price == 0):
            return ClassificationResult(
                is_product=False, category=Category.DISCOUNTS, confidence=90, reason=NEGATIVE_AMOUNT_REASON
            )

        if len(designation) < 3 and not reference:
            return ClassificationResult(is_product=False, confidence=70, reason=SHORT_LINE_REASON)

        return ClassificationResult(is_product=True, confidence=85)

    def filter_lines(self, lines: Any) -> FilterResult:
        if not isinstance(lines, list):
            return FilterResult()

        products: list[InvoiceLine] = []
        non_products: list[InvoiceLine] = []
        category_counter: Counter[str] = Counter()

        for raw in lines:
            parsed = coerce_line(raw)
            check = self.classify(parsed)
            line = parsed or InvoiceLine()
            if check.is_product:
                products.append(line)
                continue
            non_products.append(line.model_copy(update={"filter_info": check}))
            if check.category is not None:
                category_counter[check.category.value] += 1
            logger.debug("Non-product line %r: %s", line.designation, check.reason)

        summary = FilterSummary(
            total_lines=len(lines),
            product_count=len(products),
            non_product_count=len(non_products),
            categories=dict(category_counter),
            total_product_amount=sum(p.total_price for p in products),
            total_non_product_amount=sum(p.total_price for p in non_products),
        )
        return FilterResult(product_lines=products, non_product_lines=non_products, summary=summary)

    def clean_invoice(self, invoice: Invoice | dict) -> Invoice:
        """Return a copy of the invoice holding only product lines and recomputed totals."""
        if not isinstance(invoice, Invoice):
            invoice = Invoice.model_validate(invoice or {})
        result = self.filter_lines(invoice.products)
        summary = result.summary
        if summary.non_product_count:
            logger.info(
                "Invoice %s: removed %d non-product line(s); declared total %s, products only %.2f, charges %.2f",
                invoice.display_id,
                summary.non_product_count,
                invoice.total_amount,
                summary.total_product_amount,
                summary.total_non_product_amount,
            )
        return invoice.model_copy(
            update={
                "products": result.product_lines,
                "total_products_only": summary.total_product_amount,
                "filtering": FilteringInfo(
                    original_product_count=len(invoice.products),
                    filtered_product_count=len(result.product_lines),
                    removed_lines=result.non_product_lines,
                    summary=summary,
                ),
            }
        )

    def _is_exception(self, designation: str) -> bool:
        if any(phrase in designation for phrase in self.product_exceptions):
            return True
        return any(token in designation for token in self.host_product_tokens)
