"""ORM model package."""

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

__all__ = [
    "FixedCostItem",
    "KpiPeriodType",
    "Order",
    "OrderLine",
    "RoleType",
    "StaffKpi",
    "StoreProfile",
    "User",
    "VariableCost",
]
