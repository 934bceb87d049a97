"""Pytest fixtures for testing"""

import pytest
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from kot_ledger.api.main import create_app
from kot_ledger.infrastructure.database.models import Base, Customer
from kot_ledger.infrastructure.database.repositories import CustomerRepository
from kot_ledger.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
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
def make_customer(db: Session) -> Callable[..., Customer]:
    """Factory for committed customers with zero balances"""

    def _make(customer_id: str = "cust_1", name: str = "Ravi", contact: str = "9800000000") -> Customer:
        customer = CustomerRepository(db).create(name=name, contact=contact, customer_id=customer_id)
        db.commit()
        return customer

    return _make


@pytest.fixture
def customer(make_customer) -> Customer:
    return make_customer()
