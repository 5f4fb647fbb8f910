"""Payment processor HTTP client for submitting eCheck debits"""

import httpx
from typing import Any, Dict, Optional
from installment_gateway.domain.models import CheckRequest, ProcessorResult
from installment_gateway.domain.exceptions import ProcessorAPIError
from installment_gateway.infrastructure.observability.metrics import processor_latency_histogram
from installment_gateway.config import settings


class PaymentProcessorClient:
    """Client for the external eCheck processor"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client_id: str | None = None,
        api_key: str | None = None,
        test_mode: bool | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.processor_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.client_id = client_id or settings.processor_client_id
        self.api_key = api_key or settings.processor_api_key
        self.test_mode = settings.processor_test_mode if test_mode is None else test_mode
        self.transport = transport

    def build_payload(self, check: CheckRequest) -> Dict[str, Any]:
        customer = check.customer
        return {
            "clientId": self.client_id,
            "apiKey": self.api_key,
            "testMode": self.test_mode,
            "reference": check.reference,
            "amount": str(check.amount),
            "checkDate": check.check_date.isoformat(),
            "memo": check.memo,
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
            "phoneExtension": customer.phone_extension,
            "address1": customer.address1,
            "address2": customer.address2,
            "city": customer.city,
            "state": customer.state,
            "zip": customer.zip_code,
            "country": customer.country,
            "routingNumber": customer.routing_number,
            "accountNumber": customer.account_number,
            "bankName": customer.bank_name,
        }

    async def submit_check(self, check: CheckRequest) -> ProcessorResult:
        """
        Submit one eCheck debit.

        A decline is a normal ProcessorResult (result != "0"); only transport
        or protocol failures raise.

        Raises:
            ProcessorAPIError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with processor_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/checks",
                        json=self.build_payload(check),
                    )
                response.raise_for_status()
                data = response.json()

                return ProcessorResult(
                    result=str(data["result"]),
                    result_description=data["resultDescription"],
                    verify_result=str(data.get("verifyResult", "")),
                    verify_result_description=data.get("verifyResultDescription", ""),
                    check_number=str(data.get("checkNumber", "")),
                    check_id=str(data.get("checkId", "")),
                )

            except httpx.TimeoutException as e:
                raise ProcessorAPIError(f"Processor timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise ProcessorAPIError(f"Processor error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise ProcessorAPIError(f"Processor unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ProcessorAPIError(f"Invalid response from processor: {e}") from e
