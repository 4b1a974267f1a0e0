"""Re-check brand classification of product lines against the catalog."""
from __future__ import annotations

import logging
from typing import Any

from .errors import CatalogUnavailableError
from .matcher import CatalogMatcher
from .schemas import Invoice, InvoiceLine, VerificationDetails, VerificationResult, VerificationSummary, coerce_line

logger = logging.getLogger(__name__)

REVIEW_CONFIDENCE = 50


class ProductVerifier:
    def __init__(self, matcher: CatalogMatcher, review_confidence: float = REVIEW_CONFIDENCE) -> None:
        self.matcher = matcher
        self.review_confidence = review_confidence

    def verify_products(self, products: Any) -> Any:
        """Reclassify competitor lines that match the catalog and flag weak host-brand lines.

        Anything other than a list is returned unchanged. A catalog that cannot
        be loaded is fatal; any other failure only skips the offending line.
        """
        if not isinstance(products, list):
            return products

        verified: list[InvoiceLine] = []
        summary = VerificationSummary(total_products=len(products))

        for raw in products:
            line = coerce_line(raw) or InvoiceLine()
            try:
                line = self._verify_line(line, summary)
            except CatalogUnavailableError:
                raise
            except Exception:
                logger.exception("Verification failed for line %r, keeping its classification", line.designation)
                summary.failed_count += 1
                if line.flagged_competitor:
                    summary.competitor_total += line.total_price
                else:
                    summary.soprema_total += line.total_price
            verified.append(line)

        logger.info(
            "Verified %d product(s): %d reclassified, %d flagged for review, soprema %.2f, competitor %.2f",
            summary.total_products,
            summary.reclassified_count,
            summary.review_count,
            summary.soprema_total,
            summary.competitor_total,
        )
        return VerificationResult(products=verified, summary=summary)

    def verify_invoice(self, invoice: Invoice) -> Invoice:
        result = self.verify_products(invoice.products)
        return invoice.model_copy(update={"products": result.products, "product_verification": result.summary})

    def _verify_line(self, line: InvoiceLine, summary: VerificationSummary) -> InvoiceLine:
        match = self.matcher.find_best_match(line.label)
        is_competitor = line.flagged_competitor

        if match.matched and is_competitor:
            logger.info(
                "Reclassified as soprema: %r -> %r (%s%%)", line.designation, match.matched_product, match.confidence
            )
            summary.reclassified_count += 1
            summary.soprema_total += line.total_price
            return line.model_copy(
                update={
                    "is_competitor": False,
                    "is_soprema": True,
                    "type": "soprema",
                    "verification_details": VerificationDetails(
                        reclassified=True,
                        original_classification="competitor",
                        matched_name=match.matched_product,
                        confidence=match.confidence,
                        method=match.method,
                        keyword_found=match.keyword_found,
                    ),
                }
            )

        if not match.matched and not is_competitor:
            summary.soprema_total += line.total_price
            if match.confidence < self.review_confidence:
                logger.warning("Weak catalog match for %r (%s%%)", line.designation, match.confidence)
                summary.review_count += 1
                return line.model_copy(
                    update={
                        "verification_details": VerificationDetails(
                            low_confidence=True, confidence=match.confidence, suggested_review=True
                        )
                    }
                )
            return line

        if is_competitor:
            summary.competitor_total += line.total_price
        else:
            summary.soprema_total += line.total_price
        return line.model_copy(
            update={"verification_details": VerificationDetails(verified=True, confidence=match.confidence)}
        )
