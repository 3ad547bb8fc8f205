"""
Pytest fixtures for testing
"""
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from ledger.config import Settings
from ledger.infrastructure.db.session import Base
from ledger.infrastructure.db import models  # noqa: F401  регистрирует таблицы в Base.metadata
from ledger.application.accounts import CreateAccountUseCase
from ledger.application.pockets import CreatePocketUseCase
from ledger.application.sub_pockets import CreateSubPocketUseCase
from ledger.application.prices import PriceLookupError


class FakePriceLookup:
    """Цены из словаря; неизвестный тикер - PriceLookupError"""

    def __init__(self, prices=None):
        self.prices = {k.upper(): Decimal(str(v)) for k, v in (prices or {}).items()}
        self.calls = []

    def get_price(self, symbol: str) -> Decimal:
        self.calls.append(symbol)
        if symbol.upper() not in self.prices:
            raise PriceLookupError(f"No price for {symbol}")
        return self.prices[symbol.upper()]


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests"""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite:///:memory:", ALPHA_VANTAGE_API_KEY="test-key")


@pytest.fixture
def price_lookup():
    return FakePriceLookup({"VOO": "500"})


@pytest.fixture
def account_id(db_session, settings):
    """Normal-счёт в COP"""
    return CreateAccountUseCase(db_session, settings).execute(
        name="Bancolombia", color="#FFD700", currency="COP"
    )


@pytest.fixture
def pocket_id(db_session, account_id):
    return CreatePocketUseCase(db_session).execute(account_id=account_id, name="Daily")


@pytest.fixture
def second_pocket_id(db_session, account_id):
    return CreatePocketUseCase(db_session).execute(account_id=account_id, name="Savings")


@pytest.fixture
def fixed_pocket_id(db_session, account_id):
    return CreatePocketUseCase(db_session).execute(
        account_id=account_id, name="Fixed", pocket_type="fixed"
    )


@pytest.fixture
def sub_pocket_id(db_session, fixed_pocket_id):
    """Обязательство 1200 на 12 месяцев"""
    return CreateSubPocketUseCase(db_session).execute(
        pocket_id=fixed_pocket_id, name="Insurance", target_value="1200", periodicity_months=12
    )


@pytest.fixture
def investment_account_id(db_session, settings):
    return CreateAccountUseCase(db_session, settings).execute(
        name="Brokerage", color="#00AAFF", currency="USD", account_type="investment"
    )


@pytest.fixture
def failing_price_lookup():
    """Lookup без единой цены - любой запрос падает"""
    return FakePriceLookup({})
