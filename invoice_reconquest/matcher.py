"""
Fuzzy matching of extracted product names against the host-brand catalog.

Matching pipeline:
  1. Exact match on normalized names (confidence 100)
  2. Brand keyword detection (SOPRALENE, ELASTOPHENE, ...)
  3. Per-entry composite score: edit-distance similarity, +10 when a brand
     keyword was seen, floor of 90 when one name contains the other, floor
     of the token-overlap score when at least two tokens are shared
  4. Late boost of +15 (capped at 100) for keyword hits scoring >= 70

A candidate is accepted as a host-brand product at confidence >= 85.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from . import keywords
from .catalog import ProductCatalog
from .config import MATCH_THRESHOLD
from .schemas import MatchResult
from .utils import normalize_product_name, similarity

logger = logging.getLogger(__name__)

KEYWORD_BONUS = 10
CONTAINMENT_FLOOR = 90
KEYWORD_BOOST = 15
KEYWORD_BOOST_MIN_SCORE = 70
MIN_TOKEN_LENGTH = 3
MIN_COMMON_TOKENS = 2


def _tokens(normalized: str) -> list[str]:
    return [t for t in normalized.split(" ") if len(t) >= MIN_TOKEN_LENGTH]


def token_overlap(candidate: str, entry: str) -> tuple[int, float]:
    """Return (common token count, overlap score in percent) for two normalized names."""
    candidate_tokens = _tokens(candidate)
    entry_tokens = _tokens(entry)
    # Repeated candidate tokens each count
    common = [t for t in candidate_tokens if t in entry_tokens]
    longest = max(len(candidate_tokens), len(entry_tokens))
    if not longest:
        return 0, 0.0
    return len(common), len(common) / longest * 100


class CatalogMatcher:
    def __init__(
        self,
        catalog: ProductCatalog,
        brand_keywords: Iterable[str] = keywords.HOST_BRAND_KEYWORDS,
        threshold: float = MATCH_THRESHOLD,
    ) -> None:
        self.catalog = catalog
        self.brand_keywords = tuple(brand_keywords)
        self.threshold = threshold

    def find_keyword(self, product_name: Optional[str]) -> Optional[str]:
        normalized = normalize_product_name(product_name)
        for keyword in self.brand_keywords:
            if keyword in normalized:
                return keyword
        return None

    def find_best_match(self, product_name: Optional[str]) -> MatchResult:
        entries = self.catalog.entries
        candidate = normalize_product_name(product_name)
        if not candidate:
            return MatchResult(matched=False, confidence=0)

        for name, normalized in entries:
            if normalized == candidate:
                return MatchResult(matched=True, confidence=100, matched_product=name, method="exact")

        keyword = self.find_keyword(product_name)
        best_score: float = 0
        best_match: Optional[str] = None

        for name, normalized in entries:
            score: float = similarity(candidate, normalized)
            if keyword:
                score += KEYWORD_BONUS
            if candidate in normalized or normalized in candidate:
                score = max(score, CONTAINMENT_FLOOR)
            common, overlap = token_overlap(candidate, normalized)
            if common >= MIN_COMMON_TOKENS:
                score = max(score, overlap)
            if score > best_score:
                best_score = score
                best_match = name

        if keyword and best_score >= KEYWORD_BOOST_MIN_SCORE:
            best_score = min(best_score + KEYWORD_BOOST, 100)

        logger.debug("Best catalog match for %r: %r (%s)", product_name, best_match, best_score)
        return MatchResult(
            matched=best_score >= self.threshold,
            confidence=best_score,
            matched_product=best_match,
            method="exact" if best_score == 100 else "fuzzy",
            keyword_found=keyword,
        )
