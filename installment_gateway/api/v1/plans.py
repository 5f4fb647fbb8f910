"""/payment-plans - create, list, inspect and cancel payment plans"""

import math
import time
import logging
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from installment_gateway.api.v1.schemas import (
    CreatePlanData,
    CreatePlanRequest,
    CreatePlanResponse,
    ErrorResponse,
    FailureDetails,
    FirstPaymentSchema,
    Pagination,
    PersistedPlanSchema,
    PlanDetailsData,
    PlanDetailsResponse,
    PlanDetailsSchema,
    PlanListResponse,
    PlanResponse,
    ProcessorResponseSchema,
    ScheduleData,
    ScheduledPaymentSchema,
    ScheduleResponse,
    ScheduleSummarySchema,
)
from installment_gateway.api.dependencies import get_plan_uuid, get_request_id, get_schedule_manager
from installment_gateway.config import settings
from installment_gateway.domain.exceptions import (
    FirstPaymentFailedError,
    PaymentTransitionError,
    PlanNotFoundError,
    PlanValidationError,
)
from installment_gateway.domain.models import PlanCreationRequest, PlanKind
from installment_gateway.infrastructure.observability.logging import log_plan_created
from installment_gateway.infrastructure.observability.metrics import record_plan_creation
from installment_gateway.services.schedule_manager import ScheduleManager
from installment_gateway.utils.money import format_rate, from_cents

router = APIRouter()


@router.post("/payment-plans", response_model=CreatePlanResponse, status_code=201)
async def create_plan(
    request_body: CreatePlanRequest,
    manager: ScheduleManager = Depends(get_schedule_manager),
    request_id: str = Depends(get_request_id),
):
    """
    Accept a quoted plan and start its schedule.

    Flow:
    1. Re-quote the selected plan and reject stale figures (400)
    2. Persist customer, plan and every scheduled payment
    3. Submit payment #1 to the processor
    4. Return plan details, or 402 with the processor's raw codes if payment #1 failed
    """
    start_time = time.time()
    kind = PlanKind.FULL if request_body.selected_plan.duration == 1 else PlanKind.INSTALLMENT

    try:
        created = await manager.create_plan(
            PlanCreationRequest(
                customer=request_body.customer_details(),
                plan=request_body.selected_plan.to_domain(),
                principal_amount=request_body.principal_amount,
                start_date=request_body.start_date,
            )
        )

    except PlanValidationError as e:
        logging.warning(f"Rejected plan: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except FirstPaymentFailedError as e:
        record_plan_creation(False, kind.value)
        logging.warning(
            f"First payment failed: {e.reason}",
            extra={"request_id": request_id, "plan_id": str(e.plan_id)},
        )
        body = ErrorResponse(
            error="First payment was not accepted",
            details=FailureDetails(
                reason=e.reason,
                message=e.message,
                suggestions=e.suggestions,
                external_processor_response=ProcessorResponseSchema.from_domain(e.processor_result),
                payment_plan_id=str(e.plan_id),
            ),
        )
        return JSONResponse(status_code=402, content=body.model_dump(mode="json", by_alias=True))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    plan = created.plan
    first = created.first_payment
    payments = plan.payments

    record_plan_creation(True, plan.kind)
    duration_ms = (time.time() - start_time) * 1000
    log_plan_created(
        request_id,
        str(plan.id),
        str(plan.customer_id),
        plan.duration_months,
        plan.total_payments,
        True,
        duration_ms,
        created.processor_result.result if created.processor_result else None,
    )

    return CreatePlanResponse(
        data=CreatePlanData(
            payment_plan_id=str(plan.id),
            customer_id=str(plan.customer_id),
            plan_details=PlanDetailsSchema(
                principal_amount=from_cents(plan.principal_cents),
                total_amount=from_cents(plan.total_cents),
                monthly_payment=from_cents(plan.monthly_payment_cents),
                duration=plan.duration_months,
                interest_rate=format_rate(plan.interest_rate),
                interest_amount=from_cents(plan.interest_cents),
                upfront_payment=from_cents(plan.upfront_cents),
                remaining_amount=from_cents(plan.remaining_cents),
                first_payment_date=payments[0].scheduled_date,
                last_payment_date=payments[-1].scheduled_date,
            ),
            first_payment=FirstPaymentSchema(
                success=True,
                sequence_number=first.sequence_number,
                amount=first.amount,
                scheduled_date=first.scheduled_date,
                status=first.status,
                processor_response=ProcessorResponseSchema.from_domain(created.processor_result),
            ),
            message=f"Payment plan created with {plan.total_payments} scheduled payment(s)",
        )
    )


@router.get("/payment-plans", response_model=PlanListResponse)
def list_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: Optional[str] = Query(None, description="Filter by plan status"),
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    """Admin listing, newest first"""
    try:
        plans, total = manager.list_plans(page, limit, status)
    except PlanValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PlanListResponse(
        count=len(plans),
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        data=[PersistedPlanSchema.from_record(p) for p in plans],
    )


@router.get("/payment-plans/{plan_id}/details", response_model=PlanDetailsResponse)
def get_plan_details(
    plan_uuid: uuid.UUID = Depends(get_plan_uuid),
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    """Plan with customer and full payment schedule"""
    try:
        plan = manager.get_details(plan_uuid)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PlanDetailsResponse(
        data=PlanDetailsData(
            payment_plan=PersistedPlanSchema.from_record(plan),
            payment_schedule=[ScheduledPaymentSchema.from_record(p) for p in plan.payments],
        )
    )


@router.get("/payment-plans/{plan_id}/schedule", response_model=ScheduleResponse)
def get_plan_schedule(
    plan_uuid: uuid.UUID = Depends(get_plan_uuid),
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    """
    Schedule with progress summary.

    Read-only and lock-free; clients poll this every ~30s.
    """
    try:
        plan, summary = manager.get_schedule(plan_uuid)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ScheduleResponse(
        data=ScheduleData(
            plan_status=plan.status,
            summary=ScheduleSummarySchema.from_domain(summary),
            schedule=[ScheduledPaymentSchema.from_record(p) for p in plan.payments],
        )
    )


@router.post("/payment-plans/{plan_id}/cancel", response_model=PlanResponse)
def cancel_plan(
    plan_uuid: uuid.UUID = Depends(get_plan_uuid),
    manager: ScheduleManager = Depends(get_schedule_manager),
    request_id: str = Depends(get_request_id),
):
    """Cancel an open plan; remaining pending payments are never attempted"""
    try:
        plan = manager.cancel_plan(plan_uuid)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentTransitionError as e:
        logging.warning(f"Rejected cancellation: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    logging.info("Payment plan cancelled", extra={"request_id": request_id, "plan_id": str(plan_uuid)})
    return PlanResponse(data=PersistedPlanSchema.from_record(plan, include_customer=False))
