"""Payment schedule generation and per-payment state machine"""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from installment_gateway.domain.exceptions import PaymentTransitionError, PlanValidationError
from installment_gateway.domain.models import (
    PaymentOutcome,
    PaymentPlan,
    PaymentStatus,
    PlanKind,
    PlanStatus,
    ScheduledPaymentDraft,
    ScheduleSummary,
)
from installment_gateway.utils.date_utils import monthly_dates
from installment_gateway.utils.money import round2

UNSPECIFIED_FAILURE = "unspecified"


def generate_payment_schedule(plan: PaymentPlan, start_date: date) -> List[ScheduledPaymentDraft]:
    """
    Build every scheduled payment for a chosen plan.

    Requirements:
    - Pay in full: one row for the total, dated start_date
    - Upfront payment > 0: sequence 1 is the upfront row, dated start_date
    - One installment per month, start_date + i calendar months
    - Last installment absorbs rounding remainder so installments sum to total_amount
    - Every installment is at least one cent, otherwise PlanValidationError

    Example:
        total 1190.00 over 12 months -> 11 x 99.17, last 99.13
    """
    if plan.kind == PlanKind.FULL:
        return [ScheduledPaymentDraft(sequence_number=1, scheduled_date=start_date, amount=plan.total_amount)]

    drafts: List[ScheduledPaymentDraft] = []
    if plan.upfront_payment > 0:
        drafts.append(
            ScheduledPaymentDraft(
                sequence_number=1,
                scheduled_date=start_date,
                amount=plan.upfront_payment,
                is_upfront_payment=True,
            )
        )

    last_amount = plan.total_amount - plan.monthly_payment * (plan.duration - 1)
    if plan.monthly_payment <= 0 or last_amount <= 0:
        raise PlanValidationError(
            f"{plan.total_amount} cannot be split into {plan.duration} installments of at least one cent"
        )

    for i, due_date in enumerate(monthly_dates(start_date, plan.duration), start=1):
        amount = last_amount if i == plan.duration else plan.monthly_payment
        drafts.append(
            ScheduledPaymentDraft(
                sequence_number=len(drafts) + 1,
                scheduled_date=due_date,
                amount=round2(amount),
            )
        )

    return drafts


def is_terminal_failure(payment, max_retries: int) -> bool:
    """A failed payment is final once every allowed retry has also failed"""
    return payment.status == PaymentStatus.FAILED.value and payment.retry_count > max_retries


def apply_payment_outcome(payment, outcome: PaymentOutcome) -> None:
    """
    Record one attempt on a pending payment.

    pending -> completed, or pending -> failed (retry_count counts failed attempts).
    Anything else is a consistency error.
    """
    if payment.status != PaymentStatus.PENDING.value:
        raise PaymentTransitionError(
            f"Payment #{payment.sequence_number} is {payment.status}; only pending payments accept outcomes"
        )

    payment.processed_date = outcome.processed_date or date.today()
    if outcome.external_check_id:
        payment.external_check_id = outcome.external_check_id

    if outcome.succeeded:
        payment.status = PaymentStatus.COMPLETED.value
    else:
        payment.status = PaymentStatus.FAILED.value
        payment.retry_count += 1
        payment.failure_reason = outcome.failure_reason or UNSPECIFIED_FAILURE


def request_payment_retry(payment, max_retries: int) -> None:
    """failed -> pending, while retries remain"""
    if payment.status != PaymentStatus.FAILED.value:
        raise PaymentTransitionError(
            f"Payment #{payment.sequence_number} is {payment.status}; only failed payments can be retried"
        )
    if is_terminal_failure(payment, max_retries):
        raise PaymentTransitionError(
            f"Payment #{payment.sequence_number} exhausted its {max_retries} retries"
        )
    payment.status = PaymentStatus.PENDING.value


def derive_plan_status(payments: Iterable, max_retries: int, default_threshold: Optional[int]) -> PlanStatus:
    """
    Plan status from its rows.

    - all completed                               -> completed
    - terminal failures >= default_threshold (>0) -> defaulted
    - otherwise                                   -> active
    """
    payments = list(payments)
    if payments and all(p.status == PaymentStatus.COMPLETED.value for p in payments):
        return PlanStatus.COMPLETED

    terminal_failures = sum(1 for p in payments if is_terminal_failure(p, max_retries))
    if default_threshold and terminal_failures >= default_threshold:
        return PlanStatus.DEFAULTED

    return PlanStatus.ACTIVE


def summarize_schedule(payments: Iterable, plan_status: Optional[PlanStatus] = None) -> ScheduleSummary:
    """
    Aggregate counts over a schedule.

    completed + pending + failed == total always holds. next_payment_date is the
    earliest pending row, or None when nothing is pending or the plan is closed.
    """
    payments = list(payments)
    completed = [p for p in payments if p.status == PaymentStatus.COMPLETED.value]
    pending = [p for p in payments if p.status == PaymentStatus.PENDING.value]
    failed = [p for p in payments if p.status == PaymentStatus.FAILED.value]

    next_payment_date = None
    if pending and not (plan_status and plan_status.is_terminal):
        next_payment_date = min(p.scheduled_date for p in pending)

    amount_paid = sum((p.amount for p in completed), Decimal("0"))
    outstanding = sum((p.amount for p in payments if p.status != PaymentStatus.COMPLETED.value), Decimal("0"))

    return ScheduleSummary(
        total_payments=len(payments),
        completed_payments=len(completed),
        pending_payments=len(pending),
        failed_payments=len(failed),
        next_payment_date=next_payment_date,
        amount_paid=round2(amount_paid),
        remaining_balance=round2(outstanding),
    )
