"""Pytest fixtures for testing"""

import os

# Point the app at SQLite before any installment_gateway module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date
from typing import Generator
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from installment_gateway.api.main import create_app
from installment_gateway.domain.models import CustomerDetails, ProcessorResult
from installment_gateway.infrastructure.database.models import Base
from installment_gateway.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

START_DATE = date(2026, 1, 15)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def accepted_result() -> ProcessorResult:
    return ProcessorResult(
        result="0",
        result_description="Check accepted",
        verify_result="0",
        verify_result_description="Account verified",
        check_number="10001",
        check_id="chk_accepted",
    )


@pytest.fixture
def declined_result() -> ProcessorResult:
    return ProcessorResult(
        result="1",
        result_description="Insufficient funds",
        verify_result="0",
        verify_result_description="Account verified",
        check_number="10002",
        check_id="chk_declined",
    )


@pytest.fixture
def accepting_processor(accepted_result: ProcessorResult) -> AsyncMock:
    """Processor stand-in that accepts every check"""
    processor = AsyncMock()
    processor.submit_check.return_value = accepted_result
    return processor


@pytest.fixture
def customer_details() -> CustomerDetails:
    return CustomerDetails(
        name="Jordan Avery",
        email="jordan.avery@example.com",
        phone="5125550142",
        address1="400 Congress Ave",
        city="Austin",
        state="TX",
        zip_code="78701",
        routing_number="021000021",
        account_number="123456789",
        bank_name="First Test Bank",
    )


@pytest.fixture
def customer_payload() -> dict:
    """Checkout fields as the web client posts them"""
    return {
        "customerName": "Jordan Avery",
        "email": "jordan.avery@example.com",
        "phone": "5125550142",
        "phoneExtension": "",
        "address1": "400 Congress Ave",
        "address2": "Suite 200",
        "city": "Austin",
        "state": "TX",
        "zip": "78701",
        "country": "US",
        "routingNumber": "021000021",
        "accountNumber": "123456789",
        "bankName": "First Test Bank",
    }
