"""Schedule manager - owns a plan's lifecycle from creation to completion"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from installment_gateway.config import settings
from installment_gateway.domain.calculator import FULL_PAYMENT_DURATION, calculate_payment_plans, select_plan
from installment_gateway.domain.exceptions import (
    FirstPaymentFailedError,
    PaymentTransitionError,
    PlanNotFoundError,
    PlanValidationError,
    ProcessorAPIError,
)
from installment_gateway.domain.models import (
    CheckRequest,
    CustomerDetails,
    PaymentOutcome,
    PaymentPlan as CandidatePlan,
    PlanCreationRequest,
    PlanCreationResult,
    PlanStatus,
    ProcessorResult,
    QuotedPlan,
    ScheduleSummary,
)
from installment_gateway.domain.schedule import (
    apply_payment_outcome,
    derive_plan_status,
    generate_payment_schedule,
    request_payment_retry,
    summarize_schedule,
)
from installment_gateway.infrastructure.clients.processor import PaymentProcessorClient
from installment_gateway.infrastructure.database.models import PaymentPlan, ScheduledPayment
from installment_gateway.infrastructure.database.repositories import CustomerRepository, PlanRepository
from installment_gateway.infrastructure.observability.metrics import (
    payment_retry_counter,
    plan_status_counter,
    processor_failures_counter,
    record_payment_outcome as record_outcome_metrics,
)
from installment_gateway.utils.money import to_cents

QUOTE_FIELDS = ("total_amount", "monthly_payment", "interest_amount", "upfront_payment", "remaining_amount")


def first_payment_failure(result: Optional[ProcessorResult]) -> Tuple[str, str, List[str]]:
    """Reason code, message and customer-facing suggestions for a failed first payment"""
    if result is None:
        return (
            "processor_unavailable",
            "The payment processor could not be reached, so the first payment was not submitted.",
            ["Try again in a few minutes", "Contact support if the problem persists"],
        )
    if result.verify_result not in ("0", ""):
        return (
            "verification_failed",
            "The bank account could not be verified.",
            [
                "Double-check the routing and account numbers",
                "Confirm the account is a checking account that accepts ACH debits",
            ],
        )
    return (
        "payment_declined",
        "The first payment was declined by the payment processor.",
        ["Confirm the account has sufficient funds for the first payment", "Try a different bank account"],
    )


class ScheduleManager:
    """
    Creates plans with their full schedule and applies payment outcomes.

    Every write locks the plan row first, so outcome reports for the same plan
    serialize on its counters and status. Reads take no locks.
    """

    def __init__(
        self,
        db: Session,
        processor: Optional[PaymentProcessorClient] = None,
        max_retries: Optional[int] = None,
        default_threshold: Optional[int] = None,
    ):
        self.db = db
        self.processor = processor or PaymentProcessorClient()
        self.max_retries = settings.max_payment_retries if max_retries is None else max_retries
        self.default_threshold = (
            settings.default_after_terminal_failures if default_threshold is None else default_threshold
        )
        self.plans = PlanRepository(db)
        self.customers = CustomerRepository(db)

    # Creation

    def requote(self, request: PlanCreationRequest) -> Tuple[Decimal, CandidatePlan]:
        """Recompute the chosen plan server-side and reject figures that differ"""
        quoted = request.plan
        principal = request.principal_amount
        if principal is None:
            if quoted.duration == FULL_PAYMENT_DURATION:
                principal = quoted.total_amount
            else:
                principal = quoted.upfront_payment + quoted.remaining_amount

        quote = calculate_payment_plans(principal, request.customer.name, quoted.upfront_payment)
        chosen = select_plan(quote, quoted.duration)

        if QuotedPlan.from_plan(chosen) != quoted:
            mismatched = [f for f in QUOTE_FIELDS if getattr(chosen, f) != getattr(quoted, f)]
            raise PlanValidationError(
                f"Submitted {quoted.duration}-month plan does not match the current quote ({', '.join(mismatched)})"
            )
        return quote.principal_amount, chosen

    async def create_plan(self, request: PlanCreationRequest) -> PlanCreationResult:
        """
        Persist customer, plan and every scheduled payment, then submit payment #1.

        Flow:
        1. Re-quote and validate the submitted plan
        2. Create customer + plan + full schedule (one transaction)
        3. Submit the first scheduled payment to the processor
        4. Accepted: plan active (completed for pay in full)
           Failed: row failed, plan cancelled, FirstPaymentFailedError raised

        Raises:
            PlanValidationError: Invalid amounts or stale quote
            FirstPaymentFailedError: First payment declined or processor unavailable
        """
        principal, chosen = self.requote(request)
        start_date = request.start_date or date.today()
        schedule = generate_payment_schedule(chosen, start_date)

        try:
            customer = self.customers.create_customer(request.customer)
            db_plan = self.plans.create_plan(
                customer_id=customer.id,
                principal_cents=to_cents(principal),
                plan=chosen,
                start_date=start_date,
                schedule=schedule,
            )
            first_payment = db_plan.payments[0]

            result, outcome = await self.submit_payment(db_plan, first_payment, request.customer)
            apply_payment_outcome(first_payment, outcome)

            if outcome.succeeded:
                self.refresh_plan(db_plan)
            else:
                self.refresh_counters(db_plan)
                db_plan.status = PlanStatus.CANCELLED.value

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if not outcome.succeeded:
            reason, message, suggestions = first_payment_failure(result)
            raise FirstPaymentFailedError(db_plan.id, reason, message, suggestions, result)

        return PlanCreationResult(plan=db_plan, first_payment=first_payment, processor_result=result)

    async def submit_payment(
        self,
        plan: PaymentPlan,
        payment: ScheduledPayment,
        customer: CustomerDetails,
    ) -> Tuple[Optional[ProcessorResult], PaymentOutcome]:
        """Send one scheduled payment to the processor; failures become outcomes, never exceptions"""
        check = CheckRequest(
            reference=f"{plan.id}-{payment.sequence_number}",
            amount=payment.amount,
            check_date=payment.scheduled_date,
            memo=f"Payment {payment.sequence_number} of {plan.total_payments}",
            customer=customer,
        )
        try:
            result = await self.processor.submit_check(check)
        except ProcessorAPIError as e:
            processor_failures_counter.inc()
            logging.error(f"Processor error: {e}", extra={"plan_id": str(plan.id)})
            return None, PaymentOutcome(succeeded=False, failure_reason=str(e))

        if result.accepted:
            return result, PaymentOutcome(succeeded=True, external_check_id=result.check_id or None)

        failure_reason = result.result_description if result.result != "0" else result.verify_result_description
        return result, PaymentOutcome(
            succeeded=False,
            failure_reason=failure_reason,
            external_check_id=result.check_id or None,
        )

    # State transitions

    def record_payment_outcome(self, plan_id: uuid.UUID, sequence_number: int, outcome: PaymentOutcome) -> ScheduledPayment:
        """
        Apply an executor-reported outcome to one scheduled payment.

        Raises:
            PlanNotFoundError: Unknown plan or sequence number
            PaymentTransitionError: Plan closed or payment not pending
        """
        try:
            plan = self.lock_open_plan(plan_id)
            previous_status = plan.status
            payment = self.find_payment(plan, sequence_number)
            apply_payment_outcome(payment, outcome)
            self.refresh_plan(plan)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        record_outcome_metrics(payment.status, plan.status, previous_status)
        return payment

    def retry_payment(self, plan_id: uuid.UUID, sequence_number: int) -> ScheduledPayment:
        """Move a failed payment back to pending so the executor can attempt it again"""
        try:
            plan = self.lock_open_plan(plan_id)
            payment = self.find_payment(plan, sequence_number)
            request_payment_retry(payment, self.max_retries)
            self.refresh_plan(plan)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        payment_retry_counter.inc()
        return payment

    def cancel_plan(self, plan_id: uuid.UUID) -> PaymentPlan:
        """Close an open plan; its pending payments stay pending but can no longer change"""
        try:
            plan = self.lock_open_plan(plan_id)
            plan.status = PlanStatus.CANCELLED.value
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        plan_status_counter.labels(status=PlanStatus.CANCELLED.value).inc()
        return plan

    def lock_open_plan(self, plan_id: uuid.UUID) -> PaymentPlan:
        plan = self.plans.get_plan_for_update(plan_id)
        if plan is None:
            raise PlanNotFoundError(f"Payment plan {plan_id} not found")
        if plan.plan_status.is_terminal:
            raise PaymentTransitionError(f"Payment plan {plan_id} is {plan.status} and can no longer change")
        return plan

    @staticmethod
    def find_payment(plan: PaymentPlan, sequence_number: int) -> ScheduledPayment:
        for payment in plan.payments:
            if payment.sequence_number == sequence_number:
                return payment
        raise PlanNotFoundError(f"Payment plan {plan.id} has no payment #{sequence_number}")

    def refresh_counters(self, plan: PaymentPlan) -> ScheduleSummary:
        summary = summarize_schedule(plan.payments)
        plan.completed_payments = summary.completed_payments
        plan.remaining_balance_cents = to_cents(summary.remaining_balance)
        return summary

    def refresh_plan(self, plan: PaymentPlan) -> None:
        self.refresh_counters(plan)
        plan.status = derive_plan_status(plan.payments, self.max_retries, self.default_threshold).value

    # Reads

    def get_details(self, plan_id: uuid.UUID) -> PaymentPlan:
        plan = self.plans.get_plan_by_id(plan_id)
        if plan is None:
            raise PlanNotFoundError(f"Payment plan {plan_id} not found")
        return plan

    def get_schedule(self, plan_id: uuid.UUID) -> Tuple[PaymentPlan, ScheduleSummary]:
        plan = self.get_details(plan_id)
        return plan, summarize_schedule(plan.payments, plan.plan_status)

    def list_plans(self, page: int, limit: int, status: Optional[str] = None) -> Tuple[List[PaymentPlan], int]:
        if status is not None:
            try:
                PlanStatus(status)
            except ValueError:
                raise PlanValidationError(f"Unknown plan status '{status}'")
        return self.plans.list_plans(page, limit, status)
