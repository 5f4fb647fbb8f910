"""SQLAlchemy ORM models for customers, payment plans and their schedules"""

import uuid
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from installment_gateway.domain.models import SCHEMA_VERSION, PaymentStatus, PlanStatus
from installment_gateway.utils.money import from_cents

Base = declarative_base()


class Customer(Base):
    """Customer with billing address and bank account"""

    __tablename__ = "customer"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, index=True)
    phone = Column(Text, nullable=False)
    phone_extension = Column(Text, nullable=True)
    address1 = Column(Text, nullable=False)
    address2 = Column(Text, nullable=True)
    city = Column(Text, nullable=False)
    state = Column(Text, nullable=False)
    zip_code = Column(Text, nullable=False)
    country = Column(Text, nullable=False, default="US")
    bank_name = Column(Text, nullable=False)
    routing_number = Column(Text, nullable=False)
    account_number = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    plans = relationship("PaymentPlan", back_populates="customer")


class PaymentPlan(Base):
    """Accepted installment or pay-in-full plan"""

    __tablename__ = "payment_plan"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customer.id"), nullable=False, index=True)
    schema_version = Column(Integer, nullable=False, default=SCHEMA_VERSION)
    kind = Column(Text, nullable=False)
    principal_cents = Column(BigInteger, nullable=False)
    upfront_cents = Column(BigInteger, nullable=False, default=0)
    remaining_cents = Column(BigInteger, nullable=False)
    interest_rate_bps = Column(Integer, nullable=False)
    interest_cents = Column(BigInteger, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    monthly_payment_cents = Column(BigInteger, nullable=False)
    duration_months = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default=PlanStatus.PENDING.value, index=True)
    total_payments = Column(Integer, nullable=False)
    completed_payments = Column(Integer, nullable=False, default=0)
    remaining_balance_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="plans")
    payments = relationship(
        "ScheduledPayment",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="ScheduledPayment.sequence_number",
    )

    @property
    def plan_status(self) -> PlanStatus:
        return PlanStatus(self.status)

    @property
    def interest_rate(self) -> Decimal:
        return Decimal(self.interest_rate_bps) / 10_000

    @property
    def total_payable(self) -> Decimal:
        """Everything the customer pays over the plan, upfront included"""
        return from_cents(sum(p.amount_cents for p in self.payments))


class ScheduledPayment(Base):
    """One expected disbursement within a plan"""

    __tablename__ = "scheduled_payment"
    __table_args__ = (UniqueConstraint("plan_id", "sequence_number", name="uq_scheduled_payment_sequence"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid, ForeignKey("payment_plan.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    is_upfront_payment = Column(Boolean, nullable=False, default=False)
    status = Column(Text, nullable=False, default=PaymentStatus.PENDING.value)
    processed_date = Column(Date, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    failure_reason = Column(Text, nullable=True)
    external_check_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    plan = relationship("PaymentPlan", back_populates="payments")

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)
