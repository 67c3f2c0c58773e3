from __future__ import annotations

from collections.abc import Generator
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wip_engine.core.config import Settings
from wip_engine.db.base import Base
from wip_engine.db.dependencies import get_db_session
import wip_engine.models.entities  # noqa: F401
from wip_engine.main import create_app
from wip_engine.models.entities import (
    Client,
    Employee,
    ServiceLineExternal,
    ServiceLineMaster,
    TransactionType,
    WipTransaction,
)
from wip_engine.services.result_cache import InMemoryResultCache, get_result_cache


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()
    cache = InMemoryResultCache()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_result_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "fiscal_year_start_month": 9,
        "ledger_source_strategy": "transactions",
        "cache_enabled": True,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def add_transaction(
    db: Session,
    *,
    client_id: int,
    task_id: int,
    serv_line_code: str,
    t_type: TransactionType,
    tran_date: datetime,
    amount: str,
    cost: str | None = None,
    hours: str | None = None,
    emp_code: str | None = None,
) -> WipTransaction:
    row = WipTransaction(
        client_id=client_id,
        task_id=task_id,
        task_code=f"T{task_id}",
        serv_line_code=serv_line_code,
        emp_code=emp_code,
        t_type=t_type,
        tran_date=tran_date,
        amount=Decimal(amount),
        cost=Decimal(cost) if cost is not None else None,
        hours=Decimal(hours) if hours is not None else None,
    )
    db.add(row)
    return row


@pytest.fixture()
def ledger(db_session: Session) -> dict[str, int]:
    """Two clients in group G1 with activity in FY2024 (September start).

    Client 1 over FY2024: time 1850, disb 200, adj -100, fees billed 800,
    cost 520 (partner P001 excluded), hours 19, tasks 10/20/30.
    """

    db = db_session
    db.add_all(
        [
            ServiceLineMaster(code="TAX", name="Tax", sort_order=1),
            ServiceLineMaster(code="AUD", name="Audit", sort_order=2),
        ]
    )
    db.flush()
    db.add_all(
        [
            ServiceLineExternal(serv_line_code="TAXC", master_code="TAX", sub_group_code="TAXG"),
            ServiceLineExternal(serv_line_code="TAXP", master_code="TAX", sub_group_code="TAXG"),
            ServiceLineExternal(serv_line_code="AUDX", master_code="AUD", sub_group_code="AUDG"),
            Employee(emp_code="P001", emp_name="Partner", emp_cat_code="CARL", active=True),
            Employee(emp_code="E001", emp_name="Senior", emp_cat_code="STAFF", active=True),
            Client(id=1, client_code="C001", client_name="Acme", group_code="G1", group_desc="Acme Group"),
            Client(id=2, client_code="C002", client_name="Beta", group_code="G1", group_desc="Acme Group"),
        ]
    )
    db.flush()

    tx = TransactionType
    add_transaction(db, client_id=1, task_id=10, serv_line_code="TAXC", t_type=tx.TIME,
                    tran_date=datetime(2023, 10, 5), amount="1000.00", cost="400.00", hours="10", emp_code="E001")
    add_transaction(db, client_id=1, task_id=10, serv_line_code="TAXC", t_type=tx.TIME,
                    tran_date=datetime(2023, 10, 6), amount="500.00", cost="300.00", hours="5", emp_code="P001")
    add_transaction(db, client_id=1, task_id=10, serv_line_code="TAXC", t_type=tx.DISBURSEMENT,
                    tran_date=datetime(2023, 11, 1), amount="200.00")
    add_transaction(db, client_id=1, task_id=10, serv_line_code="TAXC", t_type=tx.ADJUSTMENT_TIME,
                    tran_date=datetime(2023, 12, 1), amount="-100.00")
    add_transaction(db, client_id=1, task_id=10, serv_line_code="TAXC", t_type=tx.FEE_TIME,
                    tran_date=datetime(2024, 1, 10), amount="-800.00")
    add_transaction(db, client_id=1, task_id=20, serv_line_code="AUDX", t_type=tx.TIME,
                    tran_date=datetime(2024, 2, 1), amount="300.00", cost="100.00", hours="3", emp_code="E001")
    add_transaction(db, client_id=1, task_id=20, serv_line_code="AUDX", t_type=tx.PROVISION,
                    tran_date=datetime(2024, 2, 15), amount="-40.00")
    add_transaction(db, client_id=1, task_id=30, serv_line_code="ZZZ", t_type=tx.TIME,
                    tran_date=datetime(2024, 3, 1), amount="50.00", cost="20.00", hours="1", emp_code="E001")
    # FY2025, outside the FY2024 window.
    add_transaction(db, client_id=1, task_id=10, serv_line_code="TAXC", t_type=tx.TIME,
                    tran_date=datetime(2024, 9, 10), amount="999.00", cost="1.00", hours="1", emp_code="E001")
    add_transaction(db, client_id=2, task_id=40, serv_line_code="TAXP", t_type=tx.TIME,
                    tran_date=datetime(2023, 9, 15), amount="700.00", cost="350.00", hours="7", emp_code="E001")
    db.commit()
    return {"client_id": 1, "other_client_id": 2}


@pytest.fixture()
def settings_factory():
    return make_settings


@pytest.fixture()
def add_tx():
    return add_transaction
