"""Read-only record store projecting ORM rows into engine records."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from washledger.engine import records
from washledger.models.entities import FixedCostItem, Order, StaffKpi, StoreProfile, VariableCost


class RecordStore:
    """Loads everything a report needs for a set of stores in one pass."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Stores ----------
    def store_names(self, owner_ids: Collection[UUID]) -> dict[UUID, str]:
        if not owner_ids:
            return {}
        rows = self.db.scalars(select(StoreProfile).where(StoreProfile.owner_id.in_(owner_ids))).all()
        return {row.owner_id: row.store_name for row in rows}

    # ---------- Dated records ----------
    def list_orders(self, owner_ids: Collection[UUID]) -> list[records.Order]:
        if not owner_ids:
            return []
        rows = self.db.scalars(
            select(Order)
            .where(Order.owner_id.in_(owner_ids))
            .options(selectinload(Order.lines))
            .order_by(Order.created_at.asc())
        ).all()
        return [
            records.Order(
                id=str(row.id),
                created_at=row.created_at,
                total_amount=row.total_amount,
                owner_id=row.owner_id,
                items=tuple(
                    records.OrderLine(
                        service_name=line.service_name,
                        unit_price=line.unit_price,
                        quantity=line.quantity,
                        min_price=line.min_price,
                    )
                    for line in row.lines
                ),
            )
            for row in rows
        ]

    def list_variable_costs(self, owner_ids: Collection[UUID]) -> list[records.VariableCost]:
        if not owner_ids:
            return []
        rows = self.db.scalars(
            select(VariableCost)
            .where(VariableCost.owner_id.in_(owner_ids))
            .order_by(VariableCost.incurred_at.asc())
        ).all()
        return [
            records.VariableCost(
                id=str(row.id),
                date=row.incurred_at,
                amount=row.amount,
                owner_id=row.owner_id,
                category=row.category,
            )
            for row in rows
        ]

    def list_fixed_costs(self, owner_ids: Collection[UUID]) -> list[records.FixedCostItem]:
        if not owner_ids:
            return []
        rows = self.db.scalars(
            select(FixedCostItem)
            .where(FixedCostItem.owner_id.in_(owner_ids))
            .order_by(FixedCostItem.name.asc())
        ).all()
        return [
            records.FixedCostItem(id=str(row.id), name=row.name, amount=row.amount, owner_id=row.owner_id)
            for row in rows
        ]

    def list_kpis(self, user_ids: Collection[UUID]) -> list[records.StaffKpi]:
        if not user_ids:
            return []
        rows = self.db.scalars(
            select(StaffKpi).where(StaffKpi.user_id.in_(user_ids)).order_by(StaffKpi.start_date.asc())
        ).all()
        return [
            records.StaffKpi(
                id=str(row.id),
                user_id=row.user_id,
                owner_id=row.owner_id,
                start_date=row.start_date,
                orders_processed=row.orders_processed,
                on_time_rate=row.on_time_rate,
                avg_rating=row.avg_rating,
            )
            for row in rows
        ]

    def load(
        self,
        owner_ids: Collection[UUID],
        *,
        staff_ids: Collection[UUID] = (),
    ) -> records.RecordSet:
        return records.RecordSet(
            orders=tuple(self.list_orders(owner_ids)),
            variable_costs=tuple(self.list_variable_costs(owner_ids)),
            fixed_costs=tuple(self.list_fixed_costs(owner_ids)),
            kpis=tuple(self.list_kpis(staff_ids)),
        )
