"""Data models used across the line filter, matcher, aggregator and CLI.

The upstream extraction step is untyped: clients arrive as strings or
objects, flags as booleans or "true"/"false" strings, amounts may be missing.
The validators below are the only place that branches on those shapes;
everything downstream works on the canonical models.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .utils import UNKNOWN_CLIENT, as_flag, safe_amount


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _optional_amount(value: Any) -> Optional[float]:
    if value is None:
        return None
    return safe_amount(value)


def _optional_model(model: Type[BaseModel], value: Any) -> Any:
    """Validate optional metadata; anything unreadable becomes None instead of failing the record."""
    if value is None or isinstance(value, model):
        return value
    if not isinstance(value, dict):
        return None
    try:
        return model.model_validate(value)
    except ValidationError:
        return None


class Category(str, Enum):
    TRANSPORT = "transport"
    SERVICES = "services"
    TAXES = "taxes"
    DISCOUNTS = "discounts"
    FEES = "fees"
    PRODUCT_EXCEPTION = "product_exception"


class ClassificationResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    is_product: bool = Field(alias="isProduct")
    category: Optional[Category] = None
    confidence: int = 0
    reason: Optional[str] = None


class VerificationDetails(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    verified: Optional[bool] = None
    reclassified: Optional[bool] = None
    original_classification: Optional[str] = Field(default=None, alias="originalClassification")
    matched_name: Optional[str] = Field(default=None, alias="matchedName")
    confidence: Optional[float] = None
    method: Optional[str] = None
    keyword_found: Optional[str] = Field(default=None, alias="keywordFound")
    low_confidence: Optional[bool] = Field(default=None, alias="lowConfidence")
    suggested_review: Optional[bool] = Field(default=None, alias="suggestedReview")


class InvoiceLine(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    designation: Optional[str] = None
    name: Optional[str] = None
    reference: Optional[str] = None
    brand: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = Field(default=None, alias="unitPrice")
    total_price: float = Field(default=0.0, alias="totalPrice")
    type: Optional[str] = None
    is_competitor: Optional[bool] = Field(default=None, alias="isCompetitor")
    is_soprema: Optional[bool] = Field(default=None, alias="isSoprema")
    verification_details: Optional[VerificationDetails] = Field(default=None, alias="verificationDetails")
    filter_info: Optional[ClassificationResult] = Field(default=None, alias="filterInfo")

    @field_validator("designation", "name", "reference", "brand", "type", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def _optional_number(cls, value: Any) -> Optional[float]:
        return _optional_amount(value)

    @field_validator("total_price", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return safe_amount(value)

    @field_validator("is_competitor", "is_soprema", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> Optional[bool]:
        return as_flag(value)

    @field_validator("verification_details", mode="before")
    @classmethod
    def _verification_details(cls, value: Any) -> Any:
        return _optional_model(VerificationDetails, value)

    @field_validator("filter_info", mode="before")
    @classmethod
    def _filter_info(cls, value: Any) -> Any:
        return _optional_model(ClassificationResult, value)

    @property
    def label(self) -> str:
        """Name used for catalog lookups."""
        return self.designation or self.name or ""

    @property
    def flagged_competitor(self) -> bool:
        return self.type == "competitor" or bool(self.is_competitor)

    @property
    def flagged_soprema(self) -> bool:
        return self.type == "soprema" or bool(self.is_soprema)


class Client(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class FilterSummary(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_lines: int = Field(default=0, alias="totalLines")
    product_count: int = Field(default=0, alias="productCount")
    non_product_count: int = Field(default=0, alias="nonProductCount")
    categories: Dict[str, int] = Field(default_factory=dict)
    total_product_amount: float = Field(default=0.0, alias="totalProductAmount")
    total_non_product_amount: float = Field(default=0.0, alias="totalNonProductAmount")


class FilterResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_lines: List[InvoiceLine] = Field(default_factory=list)
    non_product_lines: List[InvoiceLine] = Field(default_factory=list)
    summary: FilterSummary = Field(default_factory=FilterSummary)


class FilteringInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    original_product_count: int = Field(default=0, alias="originalProductCount")
    filtered_product_count: int = Field(default=0, alias="filteredProductCount")
    removed_lines: List[InvoiceLine] = Field(default_factory=list, alias="removedLines")
    summary: Optional[FilterSummary] = None


class VerificationSummary(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_products: int = Field(default=0, alias="totalProducts")
    reclassified_count: int = Field(default=0, alias="reclassifiedCount")
    review_count: int = Field(default=0, alias="reviewCount")
    failed_count: int = Field(default=0, alias="failedCount")
    soprema_total: float = Field(default=0.0, alias="sopremaTotal")
    competitor_total: float = Field(default=0.0, alias="competitorTotal")
    verification_completed: bool = Field(default=True, alias="verificationCompleted")


class VerificationResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    products: List[InvoiceLine] = Field(default_factory=list)
    summary: VerificationSummary = Field(default_factory=VerificationSummary)


class Invoice(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    number: Optional[str] = Field(default=None, validation_alias=AliasChoices("number", "invoiceNumber"))
    date: Optional[str] = None
    client: Union[Client, str, None] = None
    client_name: Optional[str] = Field(default=None, alias="clientName")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    products: List[InvoiceLine] = Field(default_factory=list)
    total_amount: Optional[float] = Field(default=None, alias="totalAmount")
    total_products_only: Optional[float] = Field(default=None, alias="totalProductsOnly")
    filtering: Optional[FilteringInfo] = Field(default=None, alias="_filtering")
    product_verification: Optional[VerificationSummary] = Field(default=None, alias="_productVerification")

    @field_validator("number", "date", "client_name", "customer_name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("client", mode="before")
    @classmethod
    def _client(cls, value: Any) -> Any:
        if isinstance(value, (Client, dict, str)):
            return value
        return None

    @field_validator("products", mode="before")
    @classmethod
    def _products(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        # Unreadable entries stay in place as empty lines so they are counted and rejected
        return [coerce_line(item) or InvoiceLine() for item in value]

    @field_validator("filtering", mode="before")
    @classmethod
    def _filtering_info(cls, value: Any) -> Any:
        return _optional_model(FilteringInfo, value)

    @field_validator("product_verification", mode="before")
    @classmethod
    def _product_verification(cls, value: Any) -> Any:
        return _optional_model(VerificationSummary, value)

    @field_validator("total_amount", "total_products_only", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Optional[float]:
        return _optional_amount(value)

    @property
    def customer_key(self) -> str:
        """Customer identity used for aggregation."""
        candidates = []
        if isinstance(self.client, Client):
            candidates.append(self.client.name)
        elif isinstance(self.client, str):
            candidates.append(self.client)
        candidates.extend([self.client_name, self.customer_name])
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        return UNKNOWN_CLIENT

    @property
    def display_id(self) -> str:
        """Fallback identifier for log messages and reports."""
        return self.number or "<unknown>"


class MatchResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    matched: bool
    confidence: float
    matched_product: Optional[str] = Field(default=None, alias="matchedProduct")
    method: Literal["exact", "fuzzy"] = "fuzzy"
    keyword_found: Optional[str] = Field(default=None, alias="keywordFound")


class CustomerSummary(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = UNKNOWN_CLIENT
    invoice_count: int = Field(default=0, alias="invoiceCount")
    total_amount: float = Field(default=0.0, alias="totalAmount")
    soprema_amount: float = Field(default=0.0, alias="sopremaAmount")
    competitor_amount: float = Field(default=0.0, alias="competitorAmount")
    unclassified_amount: float = Field(default=0.0, alias="unclassifiedAmount")

    @property
    def host_amount(self) -> float:
        return self.soprema_amount


Priority = Literal["high", "medium", "low"]


class EligibleCustomer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    customer: CustomerSummary
    priority: Priority


class ReconquestSelection(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    threshold: float
    total_customers: int = Field(default=0, alias="totalCustomers")
    eligible_count: int = Field(default=0, alias="eligibleCount")
    total_competitor_amount: float = Field(default=0.0, alias="totalCompetitorAmount")
    customers: List[EligibleCustomer] = Field(default_factory=list)


class PipelineReport(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    invoices: List[Invoice] = Field(default_factory=list)
    relevant_invoice_count: int = Field(default=0, alias="relevantInvoiceCount")
    customers: List[CustomerSummary] = Field(default_factory=list)
    selection: ReconquestSelection


def coerce_line(value: Any) -> Optional[InvoiceLine]:
    """Validate a raw line; None when it is not a readable mapping."""
    if isinstance(value, InvoiceLine):
        return value
    if isinstance(value, dict):
        try:
            return InvoiceLine.model_validate(value)
        except ValidationError:
            return None
    return None
