"""Integration tests for API endpoints"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

SUBMIT_CHECK = "installment_gateway.infrastructure.clients.processor.PaymentProcessorClient.submit_check"


def quote(client: TestClient, principal=1000, upfront=0) -> dict:
    response = client.post(
        "/api/v1/payment-plans/calculate",
        json={"principalAmount": principal, "customerName": "Jordan Avery", "upfrontPayment": upfront},
    )
    assert response.status_code == 200
    return response.json()["data"]


def plan_payload(client: TestClient, customer_payload: dict, duration=12, principal=1000, upfront=0) -> dict:
    """Quote, pick one plan and build the checkout body the web client would post"""
    data = quote(client, principal, upfront)
    plan = next(p for p in data["availablePlans"] if p["duration"] == duration)
    selected = {k: plan[k] for k in ("duration", "totalAmount", "monthlyPayment", "interestAmount", "upfrontPayment", "remainingAmount")}
    return {
        **customer_payload,
        "selectedPlan": selected,
        "principalAmount": data["principalAmount"],
        "startDate": "2026-01-15",
    }


@pytest.fixture
def created_plan(client: TestClient, customer_payload: dict, accepted_result) -> dict:
    """A three-month plan whose first payment was accepted"""
    with patch(SUBMIT_CHECK, new_callable=AsyncMock) as mock_submit:
        mock_submit.return_value = accepted_result
        response = client.post("/api/v1/payment-plans", json=plan_payload(client, customer_payload, duration=3))
    assert response.status_code == 201
    return response.json()["data"]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    quote(client)
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "installment_quotes_total" in response.text


def test_request_id_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_calculate_endpoint(client: TestClient):
    """Test POST /api/v1/payment-plans/calculate"""
    data = quote(client, 1000)

    assert data["interestRate"] == "19%"
    assert data["remainingAmount"] == 1000.0
    assert data["schemaVersion"] == 1
    assert [p["duration"] for p in data["availablePlans"]] == [1, 3, 6, 12]

    twelve = data["availablePlans"][-1]
    assert twelve["totalAmount"] == 1190.0
    assert twelve["interestAmount"] == 190.0
    assert twelve["monthlyPayment"] == 99.17
    assert twelve["kind"] == "installment"
    assert data["availablePlans"][0]["kind"] == "full"


def test_calculate_with_upfront(client: TestClient):
    data = quote(client, 1000, 200)

    six = next(p for p in data["availablePlans"] if p["duration"] == 6)
    assert six["remainingAmount"] == 800.0
    assert six["totalAmount"] == 952.0
    assert six["description"].startswith("$200.00 upfront")


def test_calculate_upfront_not_below_principal(client: TestClient):
    response = client.post(
        "/api/v1/payment-plans/calculate",
        json={"principalAmount": 100, "customerName": "Jordan Avery", "upfrontPayment": 100},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.parametrize(
    "body",
    [
        {"customerName": "Jordan Avery"},  # Missing principal
        {"principalAmount": 0, "customerName": "Jordan Avery"},
        {"principalAmount": -5, "customerName": "Jordan Avery"},
        {"principalAmount": 10.001, "customerName": "Jordan Avery"},
        {"principalAmount": 100, "customerName": ""},
    ],
)
def test_calculate_invalid_body(client: TestClient, body: dict):
    response = client.post("/api/v1/payment-plans/calculate", json=body)

    assert response.status_code == 422
    assert response.json()["error"] == "Invalid request"
    assert response.json()["details"]["errors"]


@patch(SUBMIT_CHECK, new_callable=AsyncMock)
def test_create_plan(mock_submit: AsyncMock, client: TestClient, customer_payload: dict, accepted_result):
    """Test POST /api/v1/payment-plans with an accepted first payment"""
    mock_submit.return_value = accepted_result

    response = client.post("/api/v1/payment-plans", json=plan_payload(client, customer_payload))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["message"] == "Payment plan created with 12 scheduled payment(s)"
    assert data["planDetails"]["totalAmount"] == 1190.0
    assert data["planDetails"]["firstPaymentDate"] == "2026-02-15"
    assert data["planDetails"]["lastPaymentDate"] == "2027-01-15"
    assert data["firstPayment"]["success"] is True
    assert data["firstPayment"]["status"] == "completed"
    assert data["firstPayment"]["amount"] == 99.17
    assert data["firstPayment"]["processorResponse"]["checkId"] == "chk_accepted"
    mock_submit.assert_awaited_once()


@patch(SUBMIT_CHECK, new_callable=AsyncMock)
def test_create_plan_declined(mock_submit: AsyncMock, client: TestClient, customer_payload: dict, declined_result):
    """A declined first payment returns 402 with the processor's raw codes"""
    mock_submit.return_value = declined_result

    response = client.post("/api/v1/payment-plans", json=plan_payload(client, customer_payload))

    assert response.status_code == 402
    body = response.json()
    assert body["success"] is False
    assert body["details"]["reason"] == "payment_declined"
    assert body["details"]["externalProcessorResponse"]["result"] == "1"
    assert body["details"]["externalProcessorResponse"]["resultDescription"] == "Insufficient funds"
    assert body["details"]["suggestions"]

    plan_id = body["details"]["paymentPlanId"]
    details = client.get(f"/api/v1/payment-plans/{plan_id}/details").json()["data"]
    assert details["paymentPlan"]["status"] == "cancelled"
    assert details["paymentSchedule"][0]["status"] == "failed"


@patch(SUBMIT_CHECK, new_callable=AsyncMock)
def test_create_plan_stale_quote(mock_submit: AsyncMock, client: TestClient, customer_payload: dict):
    payload = plan_payload(client, customer_payload)
    payload["selectedPlan"]["monthlyPayment"] = 90.0

    response = client.post("/api/v1/payment-plans", json=payload)

    assert response.status_code == 400
    assert "monthly_payment" in response.json()["error"]
    mock_submit.assert_not_awaited()


@patch(SUBMIT_CHECK, new_callable=AsyncMock)
def test_create_plan_unfundable_duration(mock_submit: AsyncMock, client: TestClient, customer_payload: dict):
    """0.15 cannot be spread over 12 monthly payments without a negative last row"""
    data = quote(client, 0.15)
    assert [p["duration"] for p in data["availablePlans"]] == [1, 3, 6]

    payload = {
        **customer_payload,
        "principalAmount": 0.15,
        "startDate": "2026-01-15",
        "selectedPlan": {
            "duration": 12,
            "totalAmount": 0.18,
            "monthlyPayment": 0.02,
            "interestAmount": 0.03,
            "upfrontPayment": 0,
            "remainingAmount": 0.15,
        },
    }
    response = client.post("/api/v1/payment-plans", json=payload)

    assert response.status_code == 400
    assert response.json()["success"] is False
    mock_submit.assert_not_awaited()
    assert client.get("/api/v1/payment-plans").json()["pagination"]["total"] == 0


def test_unexpected_error_uses_envelope(client: TestClient):
    """Failures outside the domain errors still answer with the JSON envelope"""
    server = TestClient(client.app, raise_server_exceptions=False)
    plan_id = "00000000-0000-0000-0000-000000000000"

    with patch(
        "installment_gateway.services.schedule_manager.ScheduleManager.get_schedule",
        side_effect=RuntimeError("connection reset"),
    ):
        response = server.get(f"/api/v1/payment-plans/{plan_id}/schedule", headers={"X-Request-ID": "req-500"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    assert response.headers["X-Request-ID"] == "req-500"


@pytest.mark.parametrize(
    "field,value",
    [
        ("routingNumber", "12345"),
        ("accountNumber", "12ab"),
        ("email", "not-an-email"),
        ("zip", "ABCDE"),
    ],
)
def test_create_plan_invalid_customer_fields(client: TestClient, customer_payload: dict, field: str, value: str):
    payload = plan_payload(client, customer_payload)
    payload[field] = value

    response = client.post("/api/v1/payment-plans", json=payload)

    assert response.status_code == 422


def test_plan_details(client: TestClient, created_plan: dict):
    response = client.get(f"/api/v1/payment-plans/{created_plan['paymentPlanId']}/details")

    assert response.status_code == 200
    data = response.json()["data"]
    plan = data["paymentPlan"]
    assert plan["status"] == "active"
    assert plan["kind"] == "installment"
    assert plan["totalAmountWithInterest"] == plan["totalAmount"]
    assert plan["customer"]["bankDetails"]["accountNumber"] == "*****6789"
    assert plan["customer"]["address"]["zip"] == "78701"
    assert [p["sequenceNumber"] for p in data["paymentSchedule"]] == [1, 2, 3]


def test_plan_schedule(client: TestClient, created_plan: dict):
    response = client.get(f"/api/v1/payment-plans/{created_plan['paymentPlanId']}/schedule")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["planStatus"] == "active"
    assert data["summary"]["totalPayments"] == 3
    assert data["summary"]["completedPayments"] == 1
    assert data["summary"]["pendingPayments"] == 2
    assert data["summary"]["nextPaymentDate"] == "2026-03-15"


def test_plan_not_found(client: TestClient):
    fake_uuid = "00000000-0000-0000-0000-000000000000"
    response = client.get(f"/api/v1/payment-plans/{fake_uuid}/details")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_invalid_plan_id(client: TestClient):
    response = client.get("/api/v1/payment-plans/not-a-uuid/schedule")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid plan ID format"


def test_record_outcomes_to_completion(client: TestClient, created_plan: dict):
    plan_id = created_plan["paymentPlanId"]

    for sequence in (2, 3):
        response = client.post(
            f"/api/v1/payment-plans/{plan_id}/payments/{sequence}/outcome",
            json={"succeeded": True, "externalCheckId": f"chk_{sequence}", "processedDate": "2026-03-15"},
        )
        assert response.status_code == 200

    body = response.json()
    assert body["planStatus"] == "completed"
    assert body["data"]["status"] == "completed"
    assert body["data"]["processedDate"] == "2026-03-15"


def test_failed_payment_retry(client: TestClient, created_plan: dict):
    plan_id = created_plan["paymentPlanId"]
    outcome_url = f"/api/v1/payment-plans/{plan_id}/payments/2/outcome"

    response = client.post(outcome_url, json={"succeeded": False, "failureReason": "Insufficient funds"})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "failed"
    assert response.json()["data"]["retryCount"] == 1

    # A failed payment takes no outcome until it is retried
    assert client.post(outcome_url, json={"succeeded": True}).status_code == 409

    response = client.post(f"/api/v1/payment-plans/{plan_id}/payments/2/retry")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"

    assert client.post(outcome_url, json={"succeeded": True}).status_code == 200


def test_completed_payment_is_immutable(client: TestClient, created_plan: dict):
    plan_id = created_plan["paymentPlanId"]

    response = client.post(f"/api/v1/payment-plans/{plan_id}/payments/1/outcome", json={"succeeded": False})

    assert response.status_code == 409


def test_outcome_unknown_payment(client: TestClient, created_plan: dict):
    plan_id = created_plan["paymentPlanId"]

    response = client.post(f"/api/v1/payment-plans/{plan_id}/payments/9/outcome", json={"succeeded": True})

    assert response.status_code == 404


def test_cancel_plan(client: TestClient, created_plan: dict):
    plan_id = created_plan["paymentPlanId"]

    response = client.post(f"/api/v1/payment-plans/{plan_id}/cancel")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"

    assert client.post(f"/api/v1/payment-plans/{plan_id}/cancel").status_code == 409
    response = client.post(f"/api/v1/payment-plans/{plan_id}/payments/2/outcome", json={"succeeded": True})
    assert response.status_code == 409

    summary = client.get(f"/api/v1/payment-plans/{plan_id}/schedule").json()["data"]["summary"]
    assert summary["nextPaymentDate"] is None


@patch(SUBMIT_CHECK, new_callable=AsyncMock)
def test_list_plans(mock_submit: AsyncMock, client: TestClient, customer_payload: dict, accepted_result):
    mock_submit.return_value = accepted_result
    for principal in (100, 200, 300):
        client.post("/api/v1/payment-plans", json=plan_payload(client, customer_payload, duration=3, principal=principal))
    client.post("/api/v1/payment-plans", json=plan_payload(client, customer_payload, duration=1, principal=50))

    response = client.get("/api/v1/payment-plans?page=1&limit=3")
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 3
    assert body["pagination"] == {"page": 1, "limit": 3, "total": 4, "pages": 2}

    completed = client.get("/api/v1/payment-plans?status=completed").json()
    assert completed["count"] == 1
    assert completed["data"][0]["duration"] == 1

    assert client.get("/api/v1/payment-plans?status=bogus").status_code == 400
    assert client.get("/api/v1/payment-plans?limit=0").status_code == 422
