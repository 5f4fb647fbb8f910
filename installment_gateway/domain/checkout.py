"""Checkout workflow: explicit steps with per-step inputs"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import IntEnum
from typing import Callable, List, Optional

from installment_gateway.domain.calculator import calculate_payment_plans, select_plan
from installment_gateway.domain.exceptions import CheckoutStateError
from installment_gateway.domain.models import (
    CustomerDetails,
    PaymentPlan,
    PaymentPlansResponse,
    PlanCreationRequest,
    PlanKind,
    QuotedPlan,
)


class CheckoutStep(IntEnum):
    AMOUNT = 1
    PLAN_SELECTION = 2
    CHECKOUT = 3
    CONFIRMATION = 4


@dataclass(frozen=True)
class AmountInput:
    """Step 1: what is owed and by whom"""

    amount: Decimal
    client_name: str
    upfront_payment: Decimal = Decimal("0")
    note: str = ""


Quoter = Callable[[Decimal, str, Decimal], PaymentPlansResponse]


def display_order(plans: List[PaymentPlan]) -> List[PaymentPlan]:
    """Installment plans by ascending duration, pay-in-full last"""
    return sorted(plans, key=lambda p: (p.kind == PlanKind.FULL, p.duration))


class CheckoutSession:
    """
    One customer's progress through amount -> plan selection -> checkout -> confirmation.

    Each step only accepts input when the session is at that step; back() and
    reset() are the only ways to revisit earlier steps.
    """

    def __init__(self, quoter: Quoter = calculate_payment_plans):
        self._quoter = quoter
        self.reset()

    def reset(self) -> None:
        self.step = CheckoutStep.AMOUNT
        self.amount_input: Optional[AmountInput] = None
        self.quote: Optional[PaymentPlansResponse] = None
        self.selected_plan: Optional[PaymentPlan] = None
        self.customer: Optional[CustomerDetails] = None
        self.payment_plan_id: Optional[str] = None

    def _require(self, step: CheckoutStep) -> None:
        if self.step != step:
            raise CheckoutStateError(f"Expected step {step.name}, session is at {self.step.name}")

    def submit_amount(self, amount_input: AmountInput) -> PaymentPlansResponse:
        self._require(CheckoutStep.AMOUNT)
        self.quote = self._quoter(amount_input.amount, amount_input.client_name, amount_input.upfront_payment)
        self.amount_input = amount_input
        self.step = CheckoutStep.PLAN_SELECTION
        return self.quote

    def select_plan(self, duration: int) -> PaymentPlan:
        self._require(CheckoutStep.PLAN_SELECTION)
        self.selected_plan = select_plan(self.quote, duration)
        self.step = CheckoutStep.CHECKOUT
        return self.selected_plan

    def submit_checkout(self, customer: CustomerDetails, start_date: Optional[date] = None) -> PlanCreationRequest:
        """Build the plan creation request; the session stays at CHECKOUT until confirm()"""
        self._require(CheckoutStep.CHECKOUT)
        self.customer = customer
        return PlanCreationRequest(
            customer=customer,
            plan=QuotedPlan.from_plan(self.selected_plan),
            principal_amount=self.quote.principal_amount,
            start_date=start_date,
        )

    def confirm(self, payment_plan_id: str) -> None:
        self._require(CheckoutStep.CHECKOUT)
        if self.customer is None:
            raise CheckoutStateError("Checkout details have not been submitted")
        self.payment_plan_id = payment_plan_id
        self.step = CheckoutStep.CONFIRMATION

    def back(self) -> CheckoutStep:
        if self.step == CheckoutStep.CONFIRMATION:
            raise CheckoutStateError("A confirmed checkout cannot go back; reset() to start over")
        if self.step == CheckoutStep.CHECKOUT:
            self.selected_plan = None
            self.customer = None
        elif self.step == CheckoutStep.PLAN_SELECTION:
            self.quote = None
        if self.step > CheckoutStep.AMOUNT:
            self.step = CheckoutStep(self.step - 1)
        return self.step
