from __future__ import annotations

import csv
import io
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy.orm import Session

from washledger.engine.records import VariableCostCategory
from washledger.models.entities import (
    FixedCostItem,
    KpiPeriodType,
    Order,
    OrderLine,
    RoleType,
    StaffKpi,
    StoreProfile,
    User,
    VariableCost,
)

AS_OF = "2024-03-20T12:00:00"


def _headers(*, username: str = "chairman") -> dict[str, str]:
    return {"X-USERNAME": username}


@dataclass
class SeededStores:
    chairman: User
    owner_a: User
    owner_b: User
    manager_a: User
    staff_a: User


def _create_user(db: Session, *, username: str, role: RoleType, managed_by: User | None = None) -> User:
    row = User(
        username=username,
        display_name=username.replace("-", " ").title(),
        role=role,
        managed_by_id=managed_by.id if managed_by is not None else None,
        active=True,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _create_order(
    db: Session,
    *,
    owner: User,
    created_at: datetime,
    total: str,
    lines: list[tuple[str, str, int, str | None]],
) -> Order:
    row = Order(owner_id=owner.id, created_at=created_at, total_amount=Decimal(total))
    for position, (service_name, unit_price, quantity, min_price) in enumerate(lines):
        row.lines.append(
            OrderLine(
                position=position,
                service_name=service_name,
                unit_price=Decimal(unit_price),
                quantity=quantity,
                min_price=Decimal(min_price) if min_price is not None else None,
            )
        )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _seed_stores(db: Session) -> SeededStores:
    chairman = _create_user(db, username="chairman", role=RoleType.CHAIRMAN)
    owner_a = _create_user(db, username="owner-a", role=RoleType.OWNER, managed_by=chairman)
    owner_b = _create_user(db, username="owner-b", role=RoleType.OWNER, managed_by=chairman)
    manager_a = _create_user(db, username="manager-a", role=RoleType.MANAGER, managed_by=owner_a)
    staff_a = _create_user(db, username="staff-a", role=RoleType.STAFF, managed_by=manager_a)
    _create_user(db, username="customer", role=RoleType.CUSTOMER, managed_by=owner_a)

    db.add_all(
        [
            StoreProfile(owner_id=owner_a.id, store_name="Sunrise Laundry", store_phone="0900000001"),
            StoreProfile(owner_id=owner_b.id, store_name="Bluebird Wash"),
        ]
    )
    db.commit()

    _create_order(
        db,
        owner=owner_a,
        created_at=datetime(2024, 3, 1, 9, 0),
        total="100000",
        lines=[("Wash & Fold", "25000", 4, None)],
    )
    _create_order(
        db,
        owner=owner_a,
        created_at=datetime(2024, 3, 15, 14, 0),
        total="200000",
        lines=[("Dry Clean", "150000", 1, None), ("Ironing", "10", 1, "50")],
    )
    _create_order(
        db,
        owner=owner_b,
        created_at=datetime(2024, 3, 10, 10, 0),
        total="80000",
        lines=[("Wash & Fold", "20000", 4, None)],
    )

    db.add_all(
        [
            VariableCost(
                owner_id=owner_a.id,
                description="Detergent",
                amount=Decimal("30000"),
                incurred_at=datetime(2024, 3, 5, 8, 0),
                category=VariableCostCategory.RAW_MATERIAL,
            ),
            FixedCostItem(owner_id=owner_a.id, name="Rent", amount=Decimal("3100000")),
            FixedCostItem(owner_id=owner_b.id, name="Rent", amount=Decimal("1550000")),
            StaffKpi(
                user_id=staff_a.id,
                owner_id=owner_a.id,
                period_type=KpiPeriodType.WEEKLY,
                start_date=date(2024, 3, 4),
                end_date=date(2024, 3, 10),
                orders_processed=12,
                on_time_rate=Decimal("90.00"),
                avg_rating=Decimal("4.50"),
            ),
            StaffKpi(
                user_id=manager_a.id,
                owner_id=owner_a.id,
                period_type=KpiPeriodType.WEEKLY,
                start_date=date(2024, 3, 11),
                end_date=date(2024, 3, 17),
                orders_processed=8,
                on_time_rate=Decimal("70.00"),
                avg_rating=Decimal("4.00"),
            ),
        ]
    )
    db.commit()
    return SeededStores(
        chairman=chairman,
        owner_a=owner_a,
        owner_b=owner_b,
        manager_a=manager_a,
        staff_a=staff_a,
    )


def test_summary_for_single_store_this_month(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    response = client.get(
        "/api/v1/reports/summary",
        headers=_headers(),
        params={"period": "this_month", "owner_id": str(seeded.owner_a.id), "as_of": AS_OF},
    )

    assert response.status_code == 200
    payload = response.json()
    summary = payload["summary"]
    assert payload["as_of"] == "2024-03-20T12:00:00+07:00"
    assert payload["window"] == {
        "start": "2024-03-01T00:00:00+07:00",
        "end": "2024-03-31T23:59:59.999999+07:00",
    }
    assert payload["owner_ids"] == [str(seeded.owner_a.id)]
    assert Decimal(summary["total_revenue"]) == Decimal("300000")
    assert summary["order_count"] == 2
    assert Decimal(summary["average_order_value"]) == Decimal("150000")
    assert Decimal(summary["total_variable_costs"]) == Decimal("30000")
    assert Decimal(summary["prorated_fixed_costs"]) == Decimal("3100000")
    assert Decimal(summary["profit"]) == Decimal("-2830000")
    assert [row["name"] for row in summary["revenue_by_service"]] == ["Dry Clean", "Wash & Fold", "Ironing"]
    ironing = summary["revenue_by_service"][2]
    assert Decimal(ironing["revenue"]) == Decimal("50")

    series = payload["series"]
    assert len(series) == 31
    assert series[0]["label"] == "1/3"
    assert Decimal(series[0]["revenue"]) == Decimal("100000")
    assert Decimal(series[0]["fixed_costs"]) == Decimal("100000")
    assert Decimal(series[14]["revenue"]) == Decimal("200000")
    assert sum(Decimal(point["revenue"]) for point in series) == Decimal("300000")


def test_chairman_default_scope_covers_every_store(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    response = client.get(
        "/api/v1/reports/summary",
        headers=_headers(username="chairman"),
        params={"period": "this_month", "as_of": AS_OF},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["owner_ids"] == [str(seeded.owner_a.id), str(seeded.owner_b.id)]
    assert Decimal(payload["summary"]["total_revenue"]) == Decimal("380000")
    assert payload["summary"]["order_count"] == 3
    assert Decimal(payload["summary"]["prorated_fixed_costs"]) == Decimal("4650000")


def test_store_staff_are_limited_to_their_own_store(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    own_store = client.get(
        "/api/v1/reports/summary",
        headers=_headers(username="staff-a"),
        params={"period": "today", "as_of": AS_OF},
    )
    other_store = client.get(
        "/api/v1/reports/summary",
        headers=_headers(username="manager-a"),
        params={"owner_id": str(seeded.owner_b.id), "as_of": AS_OF},
    )

    assert own_store.status_code == 200
    assert own_store.json()["owner_ids"] == [str(seeded.owner_a.id)]
    assert own_store.json()["summary"]["order_count"] == 0
    assert Decimal(own_store.json()["summary"]["prorated_fixed_costs"]) == Decimal("100000")
    assert other_store.status_code == 403


def test_unknown_user_and_customer_are_rejected(client: TestClient, db_session: Session) -> None:
    _seed_stores(db_session)

    unknown = client.get("/api/v1/reports/summary", headers=_headers(username="ghost"))
    customer = client.get("/api/v1/reports/summary", headers=_headers(username="customer"))

    assert unknown.status_code == 401
    assert customer.status_code == 403


def test_invalid_period_token_is_rejected(client: TestClient, db_session: Session) -> None:
    _seed_stores(db_session)

    response = client.get(
        "/api/v1/reports/summary",
        headers=_headers(),
        params={"period": "last_decade"},
    )

    assert response.status_code == 422


def test_profit_series_for_week_and_all_time(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    week = client.get(
        "/api/v1/reports/profit-series",
        headers=_headers(),
        params={"period": "this_week", "owner_id": str(seeded.owner_a.id), "as_of": AS_OF},
    )
    all_time = client.get(
        "/api/v1/reports/profit-series",
        headers=_headers(),
        params={"period": "all_time", "owner_id": str(seeded.owner_a.id), "as_of": AS_OF},
    )

    assert week.status_code == 200
    assert [point["label"] for point in week.json()["points"]] == [
        "18/3",
        "19/3",
        "20/3",
        "21/3",
        "22/3",
        "23/3",
        "24/3",
    ]
    assert all(Decimal(point["revenue"]) == 0 for point in week.json()["points"])

    assert all_time.status_code == 200
    points = all_time.json()["points"]
    assert [point["label"] for point in points] == ["3/2024"]
    assert Decimal(points[0]["revenue"]) == Decimal("300000")
    assert Decimal(points[0]["fixed_costs"]) == Decimal("3100000")


def test_store_comparison_side_by_side(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    response = client.get(
        "/api/v1/reports/comparison",
        headers=_headers(),
        params={
            "period": "this_month",
            "owner_id": [str(seeded.owner_b.id), str(seeded.owner_a.id)],
            "as_of": AS_OF,
        },
    )

    assert response.status_code == 200
    stores = response.json()["stores"]
    assert [row["store_name"] for row in stores] == ["Bluebird Wash", "Sunrise Laundry"]

    store_b, store_a = stores
    assert Decimal(store_b["total_revenue"]) == Decimal("80000")
    assert store_b["staff"]["kpi_record_count"] == 0

    assert Decimal(store_a["total_revenue"]) == Decimal("300000")
    assert [service["name"] for service in store_a["top_services"]] == ["Dry Clean", "Wash & Fold", "Ironing"]
    assert store_a["staff"]["kpi_record_count"] == 2
    assert store_a["staff"]["total_orders_processed"] == 20
    assert Decimal(store_a["staff"]["avg_on_time_rate"]) == Decimal("80")
    assert Decimal(store_a["staff"]["avg_rating"]) == Decimal("4.25")


def test_store_comparison_rules(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    empty = client.get("/api/v1/reports/comparison", headers=_headers(), params={"as_of": AS_OF})
    owner_view = client.get(
        "/api/v1/reports/comparison",
        headers=_headers(username="owner-a"),
        params={"owner_id": [str(seeded.owner_a.id)]},
    )
    too_many = client.get(
        "/api/v1/reports/comparison",
        headers=_headers(),
        params={"owner_id": [str(uuid.uuid4()) for _ in range(5)]},
    )
    unknown_store = client.get(
        "/api/v1/reports/comparison",
        headers=_headers(),
        params={"owner_id": [str(seeded.owner_a.id), str(uuid.uuid4())]},
    )

    assert empty.status_code == 200
    assert empty.json()["stores"] == []
    assert owner_view.status_code == 403
    assert too_many.status_code == 422
    assert unknown_store.status_code == 403


def test_export_profit_series_csv(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    response = client.get(
        "/api/v1/exports/profit-series",
        headers=_headers(),
        params={"format": "csv", "period": "this_week", "owner_id": str(seeded.owner_a.id), "as_of": AS_OF},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="profit-this_week-2024-03-20.csv"' in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Period", "Revenue", "TotalCosts", "Profit", "VariableCosts", "FixedCosts"]
    assert len(rows) == 8
    assert rows[1] == ["18/3", "0.00", "100000.00", "-100000.00", "0.00", "100000.00"]


def test_export_profit_series_xlsx_and_unknown_format(client: TestClient, db_session: Session) -> None:
    seeded = _seed_stores(db_session)

    xlsx = client.get(
        "/api/v1/exports/profit-series",
        headers=_headers(),
        params={"format": "xlsx", "period": "this_quarter", "owner_id": str(seeded.owner_b.id), "as_of": AS_OF},
    )
    pdf = client.get(
        "/api/v1/exports/profit-series",
        headers=_headers(),
        params={"format": "pdf", "as_of": AS_OF},
    )

    assert xlsx.status_code == 200
    workbook = load_workbook(io.BytesIO(xlsx.content))
    sheet = workbook["profit"]
    values = [[cell.value for cell in row] for row in sheet.iter_rows()]
    assert values[0] == ["Period", "Revenue", "TotalCosts", "Profit", "VariableCosts", "FixedCosts"]
    assert [row[0] for row in values[1:]] == ["1/2024", "2/2024", "3/2024"]
    assert values[3][1] == "80000.00"
    assert pdf.status_code == 422
