"""Plan calculator - candidate repayment plans for a principal amount"""

from decimal import Decimal
from typing import Iterable, List, Optional

from installment_gateway.config import settings
from installment_gateway.domain.exceptions import PlanValidationError
from installment_gateway.domain.models import (
    PaymentPlan,
    PaymentPlansResponse,
    PlanKind,
    PrincipalRequest,
)
from installment_gateway.utils.money import (
    format_money,
    format_rate,
    has_sub_basis_point_precision,
    has_sub_cent_precision,
    round2,
)

FULL_PAYMENT_DURATION = 1


def validate_principal_request(request: PrincipalRequest) -> None:
    """
    Reject the request before any math is done.

    Requirements:
    - principal > 0
    - 0 <= upfront < principal
    - customer name present
    - no sub-cent amounts
    """
    if not request.customer_name or not request.customer_name.strip():
        raise PlanValidationError("Customer name is required")
    if request.principal_amount <= 0:
        raise PlanValidationError("Principal amount must be greater than zero")
    if request.upfront_payment < 0:
        raise PlanValidationError("Upfront payment cannot be negative")
    if request.upfront_payment >= request.principal_amount:
        raise PlanValidationError("Upfront payment must be less than the principal amount")
    if has_sub_cent_precision(request.principal_amount) or has_sub_cent_precision(request.upfront_payment):
        raise PlanValidationError("Amounts must not have more than two decimal places")


def normalize_durations(durations: Iterable[int]) -> List[int]:
    """De-duplicate and sort the catalog; pay-in-full is always offered"""
    catalog = set(durations)
    if any(d < 1 for d in catalog):
        raise PlanValidationError(f"Plan durations must be positive month counts, got {sorted(catalog)}")
    catalog.add(FULL_PAYMENT_DURATION)
    return sorted(catalog)


def build_full_payment_plan(principal: Decimal, rate: Decimal) -> PaymentPlan:
    """Pay in full: no interest, and the upfront split does not apply"""
    total = round2(principal)
    return PaymentPlan(
        duration=FULL_PAYMENT_DURATION,
        monthly_payment=total,
        total_amount=total,
        interest_amount=round2(0),
        upfront_payment=round2(0),
        remaining_amount=total,
        description=f"Pay in full: {format_money(total)} today",
        kind=PlanKind.FULL,
        interest_rate=rate,
    )


def build_installment_plan(duration: int, principal: Decimal, upfront: Decimal, rate: Decimal) -> PaymentPlan:
    """
    Flat simple interest on the post-upfront balance.

    interest = round2(remaining * rate)
    total    = remaining + interest
    monthly  = round2(total / duration)

    Example:
        1000.00, no upfront, 19%, 12 months
        interest 190.00, total 1190.00, monthly 99.17
    """
    remaining = round2(principal - upfront)
    interest = round2(remaining * rate)
    total = remaining + interest
    monthly = round2(total / duration)

    description = f"{duration} monthly payments of {format_money(monthly)}"
    if upfront > 0:
        description = f"{format_money(upfront)} upfront, then {description}"

    return PaymentPlan(
        duration=duration,
        monthly_payment=monthly,
        total_amount=total,
        interest_amount=interest,
        upfront_payment=round2(upfront),
        remaining_amount=remaining,
        description=description,
        kind=PlanKind.INSTALLMENT,
        interest_rate=rate,
    )


def installments_fundable(plan: PaymentPlan) -> bool:
    """
    Every installment, including the last one that absorbs the rounding
    remainder, must be at least one cent.

    Example:
        total 0.18 over 12 months: monthly 0.02, 11 x 0.02 = 0.22 > 0.18 -> not fundable
    """
    last_installment = plan.total_amount - plan.monthly_payment * (plan.duration - 1)
    return plan.monthly_payment > 0 and last_installment > 0


def calculate_payment_plans(
    principal_amount: Decimal,
    customer_name: str,
    upfront_payment: Decimal = Decimal("0"),
    durations: Optional[Iterable[int]] = None,
    interest_rate: Optional[Decimal] = None,
) -> PaymentPlansResponse:
    """
    Main entry point: quote one plan per configured duration.

    Pure and idempotent; the same input always yields the same response.
    Plans are ordered by ascending duration, so pay-in-full comes first.
    Installment durations the balance cannot fund are left out.

    Raises:
        PlanValidationError: Invalid amounts, empty name, or bad duration catalog
    """
    request = PrincipalRequest(
        principal_amount=Decimal(principal_amount),
        customer_name=customer_name,
        upfront_payment=Decimal(upfront_payment),
    )
    validate_principal_request(request)

    rate = Decimal(settings.interest_rate if interest_rate is None else interest_rate)
    if rate < 0:
        raise PlanValidationError("Interest rate cannot be negative")
    if has_sub_basis_point_precision(rate):
        raise PlanValidationError(f"Interest rate {rate} is finer than one basis point")

    catalog = normalize_durations(settings.plan_durations if durations is None else durations)

    principal = request.principal_amount
    upfront = request.upfront_payment

    plans = [
        build_full_payment_plan(principal, rate)
        if duration == FULL_PAYMENT_DURATION
        else build_installment_plan(duration, principal, upfront, rate)
        for duration in catalog
    ]
    plans = [p for p in plans if p.kind == PlanKind.FULL or installments_fundable(p)]

    return PaymentPlansResponse(
        customer_name=request.customer_name.strip(),
        principal_amount=round2(principal),
        interest_rate=format_rate(rate),
        upfront_payment=round2(upfront),
        remaining_amount=round2(principal - upfront),
        available_plans=plans,
    )


def select_plan(quote: PaymentPlansResponse, duration: int) -> PaymentPlan:
    """Pick the candidate for a duration from a quote"""
    for plan in quote.available_plans:
        if plan.duration == duration:
            return plan
    offered = [p.duration for p in quote.available_plans]
    raise PlanValidationError(f"No {duration}-month plan is offered (available: {offered})")
