"""POST /payment-plans/calculate - quote candidate repayment plans"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from installment_gateway.api.v1.schemas import CalculateRequest, CalculateResponse, PaymentPlansData
from installment_gateway.api.dependencies import get_request_id
from installment_gateway.domain.calculator import calculate_payment_plans
from installment_gateway.domain.exceptions import PlanValidationError
from installment_gateway.infrastructure.observability.metrics import quote_counter

router = APIRouter()


@router.post("/payment-plans/calculate", response_model=CalculateResponse)
def calculate_plans(
    request_body: CalculateRequest,
    request_id: str = Depends(get_request_id),
):
    """
    Quote one plan per configured duration.

    Stateless and idempotent: nothing is persisted, so clients may re-quote freely.
    """
    try:
        quote = calculate_payment_plans(
            principal_amount=request_body.principal_amount,
            customer_name=request_body.customer_name,
            upfront_payment=request_body.upfront_payment,
        )
    except PlanValidationError as e:
        logging.warning(f"Rejected quote: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    quote_counter.inc()
    return CalculateResponse(data=PaymentPlansData.from_domain(quote))
