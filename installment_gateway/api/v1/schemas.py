"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from installment_gateway.domain.models import (
    CustomerDetails,
    PaymentPlan,
    PaymentPlansResponse,
    ProcessorResult,
    QuotedPlan,
    ScheduleSummary,
)
from installment_gateway.infrastructure.database.models import Customer, PaymentPlan as PlanRecord, ScheduledPayment
from installment_gateway.utils.masking import mask_account_number
from installment_gateway.utils.money import format_rate, from_cents

# Decimal in Python, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
MoneyInput = Annotated[Decimal, Field(max_digits=12, decimal_places=2)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Calculation


class CalculateRequest(CamelModel):
    """Request body for POST /payment-plans/calculate"""

    principal_amount: MoneyInput = Field(..., gt=0, description="Amount owed before interest")
    customer_name: str = Field(..., min_length=1, description="Customer full name")
    upfront_payment: MoneyInput = Field(Decimal("0"), ge=0, description="Optional amount paid today")


class PaymentPlanSchema(CamelModel):
    """Single candidate plan"""

    duration: int
    monthly_payment: Money
    total_amount: Money
    interest_amount: Money
    upfront_payment: Money
    remaining_amount: Money
    description: str
    kind: str

    @classmethod
    def from_domain(cls, plan: PaymentPlan) -> "PaymentPlanSchema":
        return cls(
            duration=plan.duration,
            monthly_payment=plan.monthly_payment,
            total_amount=plan.total_amount,
            interest_amount=plan.interest_amount,
            upfront_payment=plan.upfront_payment,
            remaining_amount=plan.remaining_amount,
            description=plan.description,
            kind=plan.kind.value,
        )


class PaymentPlansData(CamelModel):
    customer_name: str
    principal_amount: Money
    interest_rate: str
    upfront_payment: Money
    remaining_amount: Money
    available_plans: List[PaymentPlanSchema]
    schema_version: int

    @classmethod
    def from_domain(cls, quote: PaymentPlansResponse) -> "PaymentPlansData":
        return cls(
            customer_name=quote.customer_name,
            principal_amount=quote.principal_amount,
            interest_rate=quote.interest_rate,
            upfront_payment=quote.upfront_payment,
            remaining_amount=quote.remaining_amount,
            available_plans=[PaymentPlanSchema.from_domain(p) for p in quote.available_plans],
            schema_version=quote.schema_version,
        )


class CalculateResponse(CamelModel):
    """Response for POST /payment-plans/calculate"""

    success: bool = True
    data: PaymentPlansData


# Plan creation


class SelectedPlanSchema(CamelModel):
    """Plan figures the customer accepted"""

    duration: int = Field(..., ge=1)
    total_amount: MoneyInput = Field(..., gt=0)
    monthly_payment: MoneyInput = Field(..., gt=0)
    interest_amount: MoneyInput = Field(Decimal("0"), ge=0)
    upfront_payment: MoneyInput = Field(Decimal("0"), ge=0)
    remaining_amount: MoneyInput = Field(..., gt=0)

    def to_domain(self) -> QuotedPlan:
        return QuotedPlan(
            duration=self.duration,
            total_amount=self.total_amount,
            monthly_payment=self.monthly_payment,
            interest_amount=self.interest_amount,
            upfront_payment=self.upfront_payment,
            remaining_amount=self.remaining_amount,
        )


class CreatePlanRequest(CamelModel):
    """Request body for POST /payment-plans"""

    selected_plan: SelectedPlanSchema
    principal_amount: Optional[MoneyInput] = Field(None, gt=0)
    start_date: Optional[date] = None

    customer_name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = Field(..., min_length=7)
    phone_extension: str = ""
    address1: str = Field(..., min_length=1)
    address2: str = ""
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=2)
    zip_code: str = Field(..., alias="zip", pattern=r"^\d{5}(-\d{4})?$")
    country: str = "US"
    routing_number: str = Field(..., pattern=r"^\d{9}$")
    account_number: str = Field(..., pattern=r"^\d{4,17}$")
    bank_name: str = Field(..., min_length=1)

    def customer_details(self) -> CustomerDetails:
        return CustomerDetails(
            name=self.customer_name.strip(),
            email=self.email,
            phone=self.phone,
            phone_extension=self.phone_extension,
            address1=self.address1,
            address2=self.address2,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            country=self.country,
            routing_number=self.routing_number,
            account_number=self.account_number,
            bank_name=self.bank_name,
        )


class ProcessorResponseSchema(CamelModel):
    """Processor codes, passed through untranslated"""

    result: str
    result_description: str
    verify_result: str
    verify_result_description: str
    check_number: str
    check_id: str

    @classmethod
    def from_domain(cls, result: Optional[ProcessorResult]) -> Optional["ProcessorResponseSchema"]:
        if result is None:
            return None
        return cls(
            result=result.result,
            result_description=result.result_description,
            verify_result=result.verify_result,
            verify_result_description=result.verify_result_description,
            check_number=result.check_number,
            check_id=result.check_id,
        )


class PlanDetailsSchema(CamelModel):
    principal_amount: Money
    total_amount: Money
    monthly_payment: Money
    duration: int
    interest_rate: str
    interest_amount: Money
    upfront_payment: Money
    remaining_amount: Money
    first_payment_date: date
    last_payment_date: date


class FirstPaymentSchema(CamelModel):
    success: bool
    sequence_number: int
    amount: Money
    scheduled_date: date
    status: str
    processor_response: Optional[ProcessorResponseSchema] = None


class CreatePlanData(CamelModel):
    payment_plan_id: str
    customer_id: str
    plan_details: PlanDetailsSchema
    first_payment: FirstPaymentSchema
    message: str


class CreatePlanResponse(CamelModel):
    """Response for POST /payment-plans"""

    success: bool = True
    data: CreatePlanData


class FailureDetails(CamelModel):
    reason: str
    message: str
    suggestions: List[str]
    external_processor_response: Optional[ProcessorResponseSchema] = None
    payment_plan_id: Optional[str] = None


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    details: Optional[FailureDetails] = None


# Persisted plans


class AddressSchema(CamelModel):
    address1: str
    address2: Optional[str] = None
    city: str
    state: str
    zip_code: str = Field(..., alias="zip")
    country: str


class BankDetailsSchema(CamelModel):
    bank_name: str
    routing_number: str
    account_number: str


class CustomerSchema(CamelModel):
    id: str
    name: str
    email: str
    phone: str
    phone_extension: Optional[str] = None
    address: AddressSchema
    bank_details: BankDetailsSchema

    @classmethod
    def from_record(cls, customer: Customer) -> "CustomerSchema":
        return cls(
            id=str(customer.id),
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            phone_extension=customer.phone_extension,
            address=AddressSchema(
                address1=customer.address1,
                address2=customer.address2,
                city=customer.city,
                state=customer.state,
                zip_code=customer.zip_code,
                country=customer.country,
            ),
            bank_details=BankDetailsSchema(
                bank_name=customer.bank_name,
                routing_number=mask_account_number(customer.routing_number),
                account_number=mask_account_number(customer.account_number),
            ),
        )


class ScheduledPaymentSchema(CamelModel):
    """Single row of a payment schedule"""

    id: str
    sequence_number: int
    scheduled_date: date
    amount: Money
    is_upfront_payment: bool
    status: str
    processed_date: Optional[date] = None
    retry_count: int
    failure_reason: Optional[str] = None
    external_check_id: Optional[str] = None

    @classmethod
    def from_record(cls, payment: ScheduledPayment) -> "ScheduledPaymentSchema":
        return cls(
            id=str(payment.id),
            sequence_number=payment.sequence_number,
            scheduled_date=payment.scheduled_date,
            amount=payment.amount,
            is_upfront_payment=payment.is_upfront_payment,
            status=payment.status,
            processed_date=payment.processed_date,
            retry_count=payment.retry_count,
            failure_reason=payment.failure_reason,
            external_check_id=payment.external_check_id,
        )


class PersistedPlanSchema(CamelModel):
    """Accepted plan as stored"""

    id: str
    schema_version: int
    kind: str
    customer: Optional[CustomerSchema] = None
    principal_amount: Money
    interest_rate: str
    interest_amount: Money
    total_amount: Money
    total_amount_with_interest: Money
    monthly_payment: Money
    duration: int
    start_date: date
    end_date: date
    upfront_payment: Money
    remaining_amount: Money
    status: str
    total_payments: int
    completed_payments: int
    remaining_balance: Money
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, plan: PlanRecord, include_customer: bool = True) -> "PersistedPlanSchema":
        return cls(
            id=str(plan.id),
            schema_version=plan.schema_version,
            kind=plan.kind,
            customer=CustomerSchema.from_record(plan.customer) if include_customer and plan.customer else None,
            principal_amount=from_cents(plan.principal_cents),
            interest_rate=format_rate(plan.interest_rate),
            interest_amount=from_cents(plan.interest_cents),
            total_amount=from_cents(plan.total_cents),
            total_amount_with_interest=plan.total_payable,
            monthly_payment=from_cents(plan.monthly_payment_cents),
            duration=plan.duration_months,
            start_date=plan.start_date,
            end_date=plan.end_date,
            upfront_payment=from_cents(plan.upfront_cents),
            remaining_amount=from_cents(plan.remaining_cents),
            status=plan.status,
            total_payments=plan.total_payments,
            completed_payments=plan.completed_payments,
            remaining_balance=from_cents(plan.remaining_balance_cents),
            created_at=plan.created_at,
            updated_at=plan.updated_at,
        )


class PlanDetailsData(CamelModel):
    payment_plan: PersistedPlanSchema
    payment_schedule: List[ScheduledPaymentSchema]


class PlanDetailsResponse(CamelModel):
    """Response for GET /payment-plans/{plan_id}/details"""

    success: bool = True
    data: PlanDetailsData


class ScheduleSummarySchema(CamelModel):
    total_payments: int
    completed_payments: int
    pending_payments: int
    failed_payments: int
    next_payment_date: Optional[date] = None
    amount_paid: Money
    remaining_balance: Money

    @classmethod
    def from_domain(cls, summary: ScheduleSummary) -> "ScheduleSummarySchema":
        return cls(
            total_payments=summary.total_payments,
            completed_payments=summary.completed_payments,
            pending_payments=summary.pending_payments,
            failed_payments=summary.failed_payments,
            next_payment_date=summary.next_payment_date,
            amount_paid=summary.amount_paid,
            remaining_balance=summary.remaining_balance,
        )


class ScheduleData(CamelModel):
    plan_status: str
    summary: ScheduleSummarySchema
    schedule: List[ScheduledPaymentSchema]


class ScheduleResponse(CamelModel):
    """Response for GET /payment-plans/{plan_id}/schedule"""

    success: bool = True
    data: ScheduleData


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PlanListResponse(CamelModel):
    """Response for GET /payment-plans"""

    success: bool = True
    count: int
    pagination: Pagination
    data: List[PersistedPlanSchema]


class PlanResponse(CamelModel):
    """Response for POST /payment-plans/{plan_id}/cancel"""

    success: bool = True
    data: PersistedPlanSchema


# Payment outcomes


class PaymentOutcomeRequest(CamelModel):
    """Request body for POST /payment-plans/{plan_id}/payments/{sequence_number}/outcome"""

    succeeded: bool
    failure_reason: Optional[str] = Field(None, max_length=500)
    external_check_id: Optional[str] = None
    processed_date: Optional[date] = None


class PaymentResponse(CamelModel):
    """Response for payment outcome and retry endpoints"""

    success: bool = True
    plan_status: str
    data: ScheduledPaymentSchema
