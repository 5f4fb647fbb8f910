"""Dependency injection for FastAPI endpoints"""

import uuid

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from installment_gateway.infrastructure.clients.processor import PaymentProcessorClient
from installment_gateway.infrastructure.database.session import get_db
from installment_gateway.services.schedule_manager import ScheduleManager


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_processor_client() -> PaymentProcessorClient:
    """Provide payment processor client instance"""
    return PaymentProcessorClient()


def get_schedule_manager(
    db: Session = Depends(get_db),
    processor: PaymentProcessorClient = Depends(get_processor_client),
) -> ScheduleManager:
    """Provide a schedule manager bound to the request's database session"""
    return ScheduleManager(db, processor)


def get_plan_uuid(plan_id: str) -> uuid.UUID:
    """Parse the plan_id path parameter"""
    try:
        return uuid.UUID(plan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid plan ID format")
