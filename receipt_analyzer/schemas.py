from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, StringConstraints
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


ISODateStr = Annotated[str, StringConstraints(pattern=r"^\d{4}-\d{2}-\d{2}$")]

# decimals internally, plain numbers on the wire
Money = Annotated[
	Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class Category(StrEnum):
	FOOD_AND_DINING = "Food & Dining"
	TRANSPORTATION = "Transportation"
	GROCERIES = "Groceries"
	HEALTHCARE = "Healthcare"
	ENTERTAINMENT = "Entertainment"
	BILLS_AND_UTILITIES = "Bills & Utilities"
	SHOPPING = "Shopping"
	OTHER = "Other"


class WireModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LineItem(WireModel):
	name: Annotated[str, StringConstraints(min_length=1)]
	price: Money = Field(gt=0, lt=1000)
	quantity: int = Field(default=1, ge=1)


class ParsedReceipt(WireModel):
	"""Draft produced by the parser; every field has a usable default."""

	merchant: str = "Unknown Store"
	date: ISODateStr
	items: list[LineItem] = Field(default_factory=list)
	tax: Money = Field(default=Decimal("0"), ge=0)
	tip: Money = Field(default=Decimal("0"), ge=0)
	total: Money = Field(default=Decimal("0"), ge=0)
	merchant_found: bool = False
	date_found: bool = False
	total_found: bool = False

	@property
	def is_malformed(self) -> bool:
		return not self.items and self.total == 0


class CategorizedItem(LineItem):
	model_config = ConfigDict(frozen=True)

	category: Category
	confidence: float = Field(ge=0.5, le=0.95)
	description: str = ""


class BudgetImpact(WireModel):
	model_config = ConfigDict(frozen=True)

	category: Category
	amount: Money
	percentage: float = Field(ge=0, le=100)


class ReceiptAnalysis(WireModel):
	model_config = ConfigDict(frozen=True)

	merchant: str
	date: ISODateStr
	total: Money = Field(ge=0)
	tax: Money = Field(ge=0)
	tip: Money = Field(ge=0)
	items: tuple[CategorizedItem, ...] = ()
	confidence: float = Field(ge=0, le=0.95)
	suggested_category: Category = Category.OTHER
	spending_insights: tuple[str, ...] = ()
	budget_impact: tuple[BudgetImpact, ...] = ()
	malformed: bool = False
	# fields a user should check before saving
	issues: tuple[str, ...] = ()
	location: Optional[str] = None
	payment_method: Optional[str] = None
	categorized_by: str = "keywords"


class TransactionDraft(WireModel):
	"""Fields the caller needs to insert an expense transaction."""

	amount: Money
	description: str
	merchant: str
	transaction_date: ISODateStr
	category: Category
	type: str = "expense"
	source: str = "ai"
	confidence_score: float


class ItemLabel(BaseModel):
	"""Category for the parsed item at ``index``, as the model judged it."""

	index: int
	category: str
	confidence: Optional[float] = None
	description: Optional[str] = None


class ReceiptLabels(BaseModel):
	items: list[ItemLabel] = Field(default_factory=list)
	location: Optional[str] = None
	payment_method: Optional[str] = None


class ProviderState(BaseModel):
	name: str
	kind: str  # "remote" | "local" | "fixture"
	available: bool
	reason: Optional[str] = None
	model: Optional[str] = None


class TierAttempt(BaseModel):
	provider: str
	ok: bool
	error_code: Optional[str] = None
	detail: Optional[str] = None
	elapsed_secs: float = 0.0


class Extraction(BaseModel):
	text: str
	provider: str
	attempts: list[TierAttempt] = Field(default_factory=list)


class ErrorBody(BaseModel):
	code: str
	message: str
	details: dict = Field(default_factory=dict)


class ErrorResponse(BaseModel):
	error: ErrorBody


class ScanResult(BaseModel):
	analysis: Optional[ReceiptAnalysis] = None
	error: Optional[ErrorBody] = None
	provider: Optional[str] = None
	attempts: list[TierAttempt] = Field(default_factory=list)

	@property
	def ok(self) -> bool:
		return self.analysis is not None


class AnalyzeTextRequest(BaseModel):
	text: str
