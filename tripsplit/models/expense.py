"""
Core Data Models for TripSplit

These models define the schemas for all data flowing through the system:
1. Stored records (trips, participants, expenses)
2. Derived settlement results (balances, settlement edges, summaries)
3. Payment-request messages handed to the notification sender

DESIGN DECISION: Derived results are frozen. Balances and settlements are
recomputed from scratch on every call and never mutated in place; the
planner returns updated copies instead.

Money is always Decimal.
"""

from datetime import date as date_type
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    Values are the labels shown to users, so they are stored as-is.
    """
    TRANSPORTATION = "Transportation"
    ACCOMMODATION = "Accommodation"
    FOOD = "Food"
    ACTIVITIES = "Activities"
    SHOPPING = "Shopping"
    OTHER = "Other"


# =============================================================================
# STORED RECORDS
# =============================================================================

class Trip(BaseModel):
    """A trip whose expenses are shared among its participants."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Trip name"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="3-letter currency code; all expenses share it"
    )
    location: Optional[str] = Field(default=None, max_length=200)
    start_date: Optional[date_type] = None
    end_date: Optional[date_type] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def validate_dates(self) -> 'Trip':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Trip end date cannot be before start date")
        return self


class Participant(BaseModel):
    """
    A member of a trip.

    The settlement core identifies participants by display name only.
    The id and email exist for storage and for delivering payment requests.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    trip_id: Optional[UUID] = None
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within a trip"
    )
    email: Optional[str] = Field(default=None, max_length=254)
    created_at: datetime = Field(default_factory=_utcnow)


class Expense(BaseModel):
    """
    A shared expense paid by one participant and split equally.

    Amount and split are NOT constrained here so that any stored record
    can be loaded. The balance aggregator rejects invalid ones with
    InvalidExpense before doing any arithmetic.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    trip_id: Optional[UUID] = None
    title: str = Field(default="", max_length=200)
    amount: Decimal = Field(
        ...,
        description="Amount in the trip currency (must be > 0)"
    )
    payer: str = Field(
        ...,
        description="Display name of whoever paid"
    )
    split_between: list[str] = Field(
        default_factory=list,
        description="Display names sharing the cost equally"
    )
    category: ExpenseCategory = ExpenseCategory.OTHER
    date: date_type = Field(default_factory=date_type.today)
    description: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=_utcnow)


class ExpenseDraft(BaseModel):
    """
    A new expense as entered by a user, before validation.

    All fields are optional because the form might be incomplete.
    ExpenseValidator reports what is missing; to_expense() is only
    valid once the draft passes validation.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    amount: Optional[Decimal] = None
    payer: Optional[str] = None
    split_between: list[str] = Field(default_factory=list)
    category: Optional[ExpenseCategory] = None
    date: Optional[date_type] = None
    description: Optional[str] = None

    def to_expense(self, trip_id: Optional[UUID] = None) -> Expense:
        """Build the Expense record to persist."""
        if self.amount is None or not self.payer:
            raise ValueError("Draft is incomplete: amount and payer are required")
        return Expense(
            trip_id=trip_id,
            title=self.title or "",
            amount=self.amount,
            payer=self.payer,
            split_between=list(self.split_between),
            category=self.category or ExpenseCategory.OTHER,
            date=self.date or date_type.today(),
            description=self.description,
        )


# =============================================================================
# DERIVED SETTLEMENT RESULTS
# =============================================================================

class OwedTo(BaseModel):
    """One outgoing payment a debtor should make."""
    model_config = ConfigDict(frozen=True)

    to: str
    amount: Decimal


class OwedFrom(BaseModel):
    """One incoming payment a creditor should receive."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(..., alias="from")
    amount: Decimal


class Balance(BaseModel):
    """
    Net position of one participant across all expenses.

    net > 0: should receive money. net < 0: should pay.
    owes / owed_by are filled in by the settlement planner.
    """
    model_config = ConfigDict(frozen=True)

    person: str
    net: Decimal = Decimal("0")
    owes: list[OwedTo] = Field(default_factory=list)
    owed_by: list[OwedFrom] = Field(default_factory=list)

    def is_settled(self, epsilon: Decimal) -> bool:
        return abs(self.net) < epsilon

    def is_creditor(self, epsilon: Decimal) -> bool:
        return self.net > epsilon

    def is_debtor(self, epsilon: Decimal) -> bool:
        return self.net < -epsilon


class SettlementEdge(BaseModel):
    """A single suggested payment from a debtor to a creditor."""
    model_config = ConfigDict(frozen=True)

    debtor: str
    creditor: str
    amount: Decimal = Field(..., gt=0)

    @model_validator(mode='after')
    def validate_parties(self) -> 'SettlementEdge':
        if self.debtor == self.creditor:
            raise ValueError("A participant cannot pay themselves")
        return self


class SettlementPlan(BaseModel):
    """Planner output: annotated balances plus the edges, in generation order."""
    model_config = ConfigDict(frozen=True)

    balances: list[Balance]
    settlements: list[SettlementEdge]


class SettlementSummary(BaseModel):
    """Everything the balances screen needs for one trip."""
    model_config = ConfigDict(frozen=True)

    balances: list[Balance]
    settlements: list[SettlementEdge]
    total_spent: Decimal
    total_outstanding: Decimal
    settled_count: int = Field(ge=0)

    @property
    def is_all_settled(self) -> bool:
        """True when nobody needs to pay anybody."""
        return not self.settlements

    def settlements_for(self, person: str) -> list[SettlementEdge]:
        """Edges where the person is either side."""
        return [
            edge for edge in self.settlements
            if edge.debtor == person or edge.creditor == person
        ]


# =============================================================================
# PAYMENT REQUESTS
# =============================================================================

class PaymentRequest(BaseModel):
    """
    Request that a debtor be reminded of one settlement edge.

    Serialized with camelCase keys for the send-expense-request function:
    {tripId, tripName, currency, debtorName, creditorName, amount}
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    trip_id: Optional[UUID] = None
    trip_name: str = "Trip"
    currency: str = "USD"
    debtor_name: str
    creditor_name: str
    amount: Decimal = Field(..., gt=0)

    # Delivery detail only, never part of the wire payload
    recipient_email: Optional[str] = Field(default=None, exclude=True)

    @field_serializer('amount')
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    @classmethod
    def from_edge(
        cls,
        edge: SettlementEdge,
        trip: Optional[Trip] = None,
        recipient_email: Optional[str] = None,
    ) -> 'PaymentRequest':
        return cls(
            trip_id=trip.id if trip else None,
            trip_name=trip.name if trip else "Trip",
            currency=trip.currency if trip else "USD",
            debtor_name=edge.debtor,
            creditor_name=edge.creditor,
            amount=edge.amount,
            recipient_email=recipient_email,
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready body for the notification function."""
        return self.model_dump(mode="json", by_alias=True)


class NotificationResult(BaseModel):
    """
    Outcome of a payment-request delivery.

    Purely informational: it never affects computed balances or settlements.
    """

    success: bool
    error: Optional[str] = None
    sent_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_response(cls, body: Any) -> 'NotificationResult':
        """Interpret a {success: true} / {error: string} response body."""
        if isinstance(body, dict):
            if body.get("success") is True:
                return cls(success=True)
            if body.get("error"):
                return cls(success=False, error=str(body["error"]))
        return cls(success=False, error="Unexpected response from notification service")

    @classmethod
    def failed(cls, error: str) -> 'NotificationResult':
        return cls(success=False, error=error)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_participant')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage expense validation.

    Stage 1: Schema validation (required fields, positive amount)
    Stage 2: Semantic validation (roster membership, dates, sanity limits)
    """

    validated_at: datetime = Field(default_factory=_utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool = Field(
        ...,
        description="Can this draft be saved?"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
