"""Pytest fixtures for testing"""

import pytest
from datetime import timedelta
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from mortgage_engine.api.main import create_app
from mortgage_engine.config import Settings
from mortgage_engine.domain.models import ApplicantInfo, LoanScenario
from mortgage_engine.infrastructure.database.models import Base, BankRecord, MortgageRateRecord
from mortgage_engine.infrastructure.database.repositories import ApplicationRepository, BankRepository
from mortgage_engine.infrastructure.database.session import build_engine, get_db
from mortgage_engine.services.engine import MortgageEngine
from mortgage_engine.utils.date_utils import utc_now


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def config() -> Settings:
    return Settings()


@pytest.fixture
def catalog(db: Session) -> dict:
    """
    Seed two active banks and one inactive bank with a mix of rates.

    Effective right now: HSBC fixed 2.50%, BOC fixed 2.75%, BOC floating 3.00%.
    Not effective: an expired HSBC rate, a future HSBC rate, an inactive BOC rate.
    """
    now = utc_now()
    last_month = now - timedelta(days=30)

    hsbc = BankRecord(name_zh_hant="滙豐銀行", name_en="HSBC", code="HSBC", sort_order=1)
    boc = BankRecord(name_zh_hant="中國銀行(香港)", name_en="Bank of China (Hong Kong)", code="BOCHK", sort_order=2)
    closed = BankRecord(name_zh_hant="舊銀行", name_en="Defunct Bank", code="OLD", is_active=False, sort_order=3)
    db.add_all([hsbc, boc, closed])
    db.flush()

    rates = {
        "hsbc_fixed": MortgageRateRecord(
            bank_id=hsbc.id,
            rate_type="fixed",
            interest_rate=Decimal("0.025"),
            max_ltv=Decimal("0.9"),
            processing_fee=Decimal("5000"),
            effective_date=last_month,
        ),
        "boc_fixed": MortgageRateRecord(
            bank_id=boc.id,
            rate_type="fixed",
            interest_rate=Decimal("0.0275"),
            effective_date=last_month,
        ),
        "boc_floating": MortgageRateRecord(
            bank_id=boc.id,
            rate_type="floating",
            interest_rate=Decimal("0.03"),
            processing_fee_rate=Decimal("0.001"),
            effective_date=last_month,
        ),
        "hsbc_expired": MortgageRateRecord(
            bank_id=hsbc.id,
            rate_type="fixed",
            interest_rate=Decimal("0.015"),
            effective_date=now - timedelta(days=365),
            expiry_date=now - timedelta(days=31),
        ),
        "hsbc_future": MortgageRateRecord(
            bank_id=hsbc.id,
            rate_type="fixed",
            interest_rate=Decimal("0.02"),
            effective_date=now + timedelta(days=30),
        ),
        "boc_inactive": MortgageRateRecord(
            bank_id=boc.id,
            rate_type="fixed",
            interest_rate=Decimal("0.01"),
            effective_date=last_month,
            is_active=False,
        ),
    }
    db.add_all(rates.values())
    db.commit()

    return {
        "hsbc": hsbc.id,
        "boc": boc.id,
        "closed": closed.id,
        **{name: rate.id for name, rate in rates.items()},
    }


@pytest.fixture
def mortgage_engine(db: Session, config: Settings) -> MortgageEngine:
    return MortgageEngine(config, BankRepository(db), ApplicationRepository(db))


@pytest.fixture
def applicant() -> ApplicantInfo:
    return ApplicantInfo(
        name="Chan Tai Man",
        phone="+852 9123 4567",
        email="tm.chan@example.com",
        monthly_income=Decimal("85000"),
        occupation="Engineer",
    )


@pytest.fixture
def scenario(catalog: dict) -> LoanScenario:
    """6M flat, 20% down, 20 years at an explicit 3%"""
    return LoanScenario(
        property_price=Decimal("6000000"),
        down_payment=Decimal("1200000"),
        term_months=240,
        annual_rate_percent=Decimal("3"),
        bank_id=catalog["hsbc"],
    )
