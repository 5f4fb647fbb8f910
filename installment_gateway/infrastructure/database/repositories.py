"""Data access layer for customers, payment plans and scheduled payments"""

import uuid
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Query, Session, selectinload

from installment_gateway.domain.models import (
    CustomerDetails,
    PaymentPlan as CandidatePlan,
    PaymentStatus,
    PlanStatus,
    ScheduledPaymentDraft,
)
from installment_gateway.infrastructure.database.models import Customer, PaymentPlan, ScheduledPayment
from installment_gateway.utils.money import to_basis_points, to_cents


class CustomerRepository:
    """Repository for customers"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(self, details: CustomerDetails) -> Customer:
        db_customer = Customer(
            name=details.name,
            email=details.email,
            phone=details.phone,
            phone_extension=details.phone_extension or None,
            address1=details.address1,
            address2=details.address2 or None,
            city=details.city,
            state=details.state,
            zip_code=details.zip_code,
            country=details.country,
            bank_name=details.bank_name,
            routing_number=details.routing_number,
            account_number=details.account_number,
        )
        self.db.add(db_customer)
        self.db.flush()  # Get ID without committing
        return db_customer


class PlanRepository:
    """Repository for payment plans and their schedules"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(
        self,
        customer_id: uuid.UUID,
        principal_cents: int,
        plan: CandidatePlan,
        start_date: date,
        schedule: List[ScheduledPaymentDraft],
    ) -> PaymentPlan:
        """Create plan with every scheduled payment in the same flush"""
        db_plan = PaymentPlan(
            customer_id=customer_id,
            kind=plan.kind.value,
            principal_cents=principal_cents,
            upfront_cents=to_cents(plan.upfront_payment),
            remaining_cents=to_cents(plan.remaining_amount),
            interest_rate_bps=to_basis_points(plan.interest_rate),
            interest_cents=to_cents(plan.interest_amount),
            total_cents=to_cents(plan.total_amount),
            monthly_payment_cents=to_cents(plan.monthly_payment),
            duration_months=plan.duration,
            start_date=start_date,
            end_date=schedule[-1].scheduled_date,
            status=PlanStatus.PENDING.value,
            total_payments=len(schedule),
            completed_payments=0,
            remaining_balance_cents=sum(to_cents(draft.amount) for draft in schedule),
        )
        db_plan.payments = [
            ScheduledPayment(
                sequence_number=draft.sequence_number,
                scheduled_date=draft.scheduled_date,
                amount_cents=to_cents(draft.amount),
                is_upfront_payment=draft.is_upfront_payment,
                status=PaymentStatus.PENDING.value,
                retry_count=0,
            )
            for draft in schedule
        ]
        self.db.add(db_plan)
        self.db.flush()
        return db_plan

    def get_plan_by_id(self, plan_id: uuid.UUID) -> Optional[PaymentPlan]:
        """Fetch plan with customer and schedule (no locks)"""
        return (
            self.db.query(PaymentPlan)
            .options(selectinload(PaymentPlan.payments), selectinload(PaymentPlan.customer))
            .filter(PaymentPlan.id == plan_id)
            .first()
        )

    def for_update_query(self, plan_id: uuid.UUID) -> Query:
        """SELECT ... FOR UPDATE on this plan's row only"""
        return self.db.query(PaymentPlan).filter(PaymentPlan.id == plan_id).with_for_update()

    def get_plan_for_update(self, plan_id: uuid.UUID) -> Optional[PaymentPlan]:
        """Fetch plan holding a row lock until the transaction ends"""
        return self.for_update_query(plan_id).populate_existing().first()

    def list_plans(self, page: int, limit: int, status: Optional[str] = None) -> Tuple[List[PaymentPlan], int]:
        """Newest first, with the total row count for pagination"""
        query = self.db.query(PaymentPlan)
        if status:
            query = query.filter(PaymentPlan.status == status)

        total = query.count()
        plans = (
            query.options(selectinload(PaymentPlan.customer))
            .order_by(PaymentPlan.created_at.desc(), PaymentPlan.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return plans, total
