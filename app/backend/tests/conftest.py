from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from washledger.db.base import Base
from washledger.db.dependencies import get_db_session
import washledger.models.entities  # noqa: F401
from washledger.main import create_app
from washledger.models.entities import (
    FixedCostItem,
    Order,
    OrderLine,
    StaffKpi,
    StoreProfile,
    User,
    VariableCost,
)

TEST_TABLES = [
    User.__table__,
    StoreProfile.__table__,
    Order.__table__,
    OrderLine.__table__,
    VariableCost.__table__,
    FixedCostItem.__table__,
    StaffKpi.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
