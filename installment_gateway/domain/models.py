"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

SCHEMA_VERSION = 1


class PlanKind(str, Enum):
    FULL = "full"
    INSTALLMENT = "installment"


class PlanStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PlanStatus.COMPLETED, PlanStatus.DEFAULTED, PlanStatus.CANCELLED)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PrincipalRequest:
    """Amount being financed and who it is for"""

    principal_amount: Decimal
    customer_name: str
    upfront_payment: Decimal = Decimal("0")


@dataclass(frozen=True)
class PaymentPlan:
    """Candidate repayment plan produced by the calculator (not persisted)"""

    duration: int  # months, 1 = pay in full
    monthly_payment: Decimal
    total_amount: Decimal
    interest_amount: Decimal
    upfront_payment: Decimal
    remaining_amount: Decimal
    description: str
    kind: PlanKind
    interest_rate: Decimal


@dataclass(frozen=True)
class PaymentPlansResponse:
    """All candidate plans for one principal request"""

    customer_name: str
    principal_amount: Decimal
    interest_rate: str  # display form, e.g. "19%"
    upfront_payment: Decimal
    remaining_amount: Decimal
    available_plans: List[PaymentPlan]
    schema_version: int = SCHEMA_VERSION


@dataclass(frozen=True)
class ScheduledPaymentDraft:
    """Schedule row before it is persisted"""

    sequence_number: int
    scheduled_date: date
    amount: Decimal
    is_upfront_payment: bool = False


@dataclass(frozen=True)
class ScheduleSummary:
    """Aggregate progress over a plan's scheduled payments"""

    total_payments: int
    completed_payments: int
    pending_payments: int
    failed_payments: int
    next_payment_date: Optional[date]
    amount_paid: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of one payment attempt as reported by the payment executor"""

    succeeded: bool
    failure_reason: Optional[str] = None
    external_check_id: Optional[str] = None
    processed_date: Optional[date] = None


@dataclass
class CustomerDetails:
    """Customer, billing address and bank account collected at checkout"""

    name: str
    email: str
    phone: str
    address1: str
    city: str
    state: str
    zip_code: str
    routing_number: str
    account_number: str
    bank_name: str
    phone_extension: str = ""
    address2: str = ""
    country: str = "US"


@dataclass(frozen=True)
class QuotedPlan:
    """Plan figures as submitted by the client, re-checked against a fresh quote"""

    duration: int
    total_amount: Decimal
    monthly_payment: Decimal
    interest_amount: Decimal
    upfront_payment: Decimal
    remaining_amount: Decimal

    @classmethod
    def from_plan(cls, plan: PaymentPlan) -> "QuotedPlan":
        return cls(
            duration=plan.duration,
            total_amount=plan.total_amount,
            monthly_payment=plan.monthly_payment,
            interest_amount=plan.interest_amount,
            upfront_payment=plan.upfront_payment,
            remaining_amount=plan.remaining_amount,
        )


@dataclass
class PlanCreationRequest:
    customer: CustomerDetails
    plan: QuotedPlan
    principal_amount: Optional[Decimal] = None
    start_date: Optional[date] = None


@dataclass(frozen=True)
class CheckRequest:
    """Single eCheck debit sent to the payment processor"""

    reference: str
    amount: Decimal
    check_date: date
    memo: str
    customer: CustomerDetails


@dataclass(frozen=True)
class ProcessorResult:
    """Raw processor response codes, kept untranslated"""

    result: str
    result_description: str
    verify_result: str = ""
    verify_result_description: str = ""
    check_number: str = ""
    check_id: str = ""

    @property
    def accepted(self) -> bool:
        return self.result == "0" and self.verify_result in ("0", "")


@dataclass
class PlanCreationResult:
    plan: object  # persisted plan row
    first_payment: object  # persisted first scheduled payment row
    processor_result: Optional[ProcessorResult] = None
