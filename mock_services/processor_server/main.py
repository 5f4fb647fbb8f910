from decimal import Decimal, InvalidOperation
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import os
import uuid

app = FastAPI(title="Mock Payment Processor", version="1.0.0")
# Checks above this amount are declined, to exercise limit failures locally
MAX_CHECK_AMOUNT = Decimal(os.environ.get("MOCK_MAX_CHECK_AMOUNT", "25000"))


class CheckPayload(BaseModel):
    clientId: str
    apiKey: str
    reference: str
    amount: str
    checkDate: str
    routingNumber: str
    accountNumber: str
    name: str
    testMode: bool = True


def routing_number_valid(routing: str) -> bool:
    """ABA checksum: 3*(d1+d4+d7) + 7*(d2+d5+d8) + (d3+d6+d9) divisible by 10"""
    if len(routing) != 9 or not routing.isdigit():
        return False
    d = [int(c) for c in routing]
    return (3 * (d[0] + d[3] + d[6]) + 7 * (d[1] + d[4] + d[7]) + (d[2] + d[5] + d[8])) % 10 == 0


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/checks")
def submit_check(payload: CheckPayload):
    try:
        amount = Decimal(payload.amount)
    except InvalidOperation:
        raise HTTPException(status_code=400, detail="amount must be a decimal string")

    check_number = str(uuid.uuid4().int)[:8]
    check_id = str(uuid.uuid4())

    if not routing_number_valid(payload.routingNumber):
        return {"result": "0", "resultDescription": "Check accepted for verification",
                "verifyResult": "4", "verifyResultDescription": "Invalid routing number",
                "checkNumber": check_number, "checkId": check_id}
    if payload.accountNumber.endswith("0000"):
        return {"result": "1", "resultDescription": "Insufficient funds",
                "verifyResult": "0", "verifyResultDescription": "Account verified",
                "checkNumber": check_number, "checkId": check_id}
    if amount > MAX_CHECK_AMOUNT:
        return {"result": "2", "resultDescription": f"Check amount exceeds limit of {MAX_CHECK_AMOUNT}",
                "verifyResult": "0", "verifyResultDescription": "Account verified",
                "checkNumber": check_number, "checkId": check_id}
    return {"result": "0", "resultDescription": "Check accepted",
            "verifyResult": "0", "verifyResultDescription": "Account verified",
            "checkNumber": check_number, "checkId": check_id}
