"""POST /payment-plans/{plan_id}/payments/{sequence_number}/... - payment executor callbacks"""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Path

from installment_gateway.api.v1.schemas import PaymentOutcomeRequest, PaymentResponse, ScheduledPaymentSchema
from installment_gateway.api.dependencies import get_plan_uuid, get_request_id, get_schedule_manager
from installment_gateway.domain.exceptions import PaymentTransitionError, PlanNotFoundError
from installment_gateway.domain.models import PaymentOutcome
from installment_gateway.infrastructure.observability.logging import log_payment_outcome
from installment_gateway.services.schedule_manager import ScheduleManager

router = APIRouter()


@router.post("/payment-plans/{plan_id}/payments/{sequence_number}/outcome", response_model=PaymentResponse)
def record_outcome(
    request_body: PaymentOutcomeRequest,
    sequence_number: int = Path(..., ge=1),
    plan_uuid: uuid.UUID = Depends(get_plan_uuid),
    manager: ScheduleManager = Depends(get_schedule_manager),
    request_id: str = Depends(get_request_id),
):
    """
    Record the result of one payment attempt.

    Only pending payments accept outcomes; completed payments are immutable and
    closed plans reject every write (409).
    """
    outcome = PaymentOutcome(
        succeeded=request_body.succeeded,
        failure_reason=request_body.failure_reason,
        external_check_id=request_body.external_check_id,
        processed_date=request_body.processed_date,
    )
    try:
        payment = manager.record_payment_outcome(plan_uuid, sequence_number, outcome)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentTransitionError as e:
        logging.warning(f"Rejected payment outcome: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    plan_status = payment.plan.status
    log_payment_outcome(
        request_id,
        str(plan_uuid),
        payment.sequence_number,
        payment.status,
        payment.retry_count,
        plan_status,
        payment.failure_reason,
    )
    return PaymentResponse(plan_status=plan_status, data=ScheduledPaymentSchema.from_record(payment))


@router.post("/payment-plans/{plan_id}/payments/{sequence_number}/retry", response_model=PaymentResponse)
def retry_payment(
    sequence_number: int = Path(..., ge=1),
    plan_uuid: uuid.UUID = Depends(get_plan_uuid),
    manager: ScheduleManager = Depends(get_schedule_manager),
    request_id: str = Depends(get_request_id),
):
    """Move a failed payment back to pending while retries remain"""
    try:
        payment = manager.retry_payment(plan_uuid, sequence_number)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentTransitionError as e:
        logging.warning(f"Rejected payment retry: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    plan_status = payment.plan.status
    log_payment_outcome(
        request_id,
        str(plan_uuid),
        payment.sequence_number,
        payment.status,
        payment.retry_count,
        plan_status,
    )
    return PaymentResponse(plan_status=plan_status, data=ScheduledPaymentSchema.from_record(payment))
