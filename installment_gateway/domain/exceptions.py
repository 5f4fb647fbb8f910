"""Domain-specific exceptions"""

import uuid
from typing import List, Optional

from installment_gateway.domain.models import ProcessorResult


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class PlanValidationError(DomainException):
    """Request values violate plan constraints (amounts, durations, quote mismatch)"""

    pass


class PlanNotFoundError(DomainException):
    """Plan or scheduled payment does not exist"""

    pass


class PaymentTransitionError(DomainException):
    """Attempted a status change that the payment or plan state does not allow"""

    pass


class CheckoutStateError(DomainException):
    """Checkout workflow step called out of order"""

    pass


class ProcessorAPIError(DomainException):
    """Payment processor returned an error or is unavailable"""

    pass


class FirstPaymentFailedError(DomainException):
    """
    The first scheduled payment was not accepted, so the plan was cancelled.

    Carries the processor's raw result untranslated for diagnosis.
    """

    def __init__(
        self,
        plan_id: uuid.UUID,
        reason: str,
        message: str,
        suggestions: List[str],
        processor_result: Optional[ProcessorResult] = None,
    ):
        super().__init__(message)
        self.plan_id = plan_id
        self.reason = reason
        self.message = message
        self.suggestions = suggestions
        self.processor_result = processor_result
