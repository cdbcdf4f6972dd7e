"""In-memory record and result types consumed and produced by the engine."""

from __future__ import annotations

import enum
from collections.abc import Hashable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_EVEN, Decimal

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")

TenantId = Hashable
DateValue = datetime | date | str | None


def q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_EVEN)


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return q2(numerator / denominator)


class VariableCostCategory(str, enum.Enum):
    RAW_MATERIAL = "raw_material"
    UTILITIES = "utilities"
    MAINTENANCE = "maintenance"
    SUPPLIES = "supplies"
    MARKETING = "marketing"
    OTHER = "other"


class Granularity(str, enum.Enum):
    DAY = "day"
    MONTH = "month"


# ---------- Source records ----------
@dataclass(frozen=True, slots=True)
class OrderLine:
    service_name: str
    unit_price: Decimal
    quantity: int
    min_price: Decimal | None = None

    @property
    def billed_amount(self) -> Decimal:
        """Line value under the floor-price rule."""

        nominal = self.unit_price * self.quantity
        return max(nominal, self.min_price or ZERO)


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    created_at: DateValue
    total_amount: Decimal
    owner_id: TenantId
    items: tuple[OrderLine, ...] = ()


@dataclass(frozen=True, slots=True)
class VariableCost:
    id: str
    date: DateValue
    amount: Decimal
    owner_id: TenantId
    category: VariableCostCategory = VariableCostCategory.OTHER


@dataclass(frozen=True, slots=True)
class FixedCostItem:
    id: str
    name: str
    amount: Decimal
    owner_id: TenantId


@dataclass(frozen=True, slots=True)
class StaffKpi:
    id: str
    user_id: Hashable
    owner_id: TenantId
    start_date: DateValue
    orders_processed: int
    on_time_rate: Decimal
    avg_rating: Decimal


@dataclass(frozen=True, slots=True)
class RecordSet:
    """Snapshot of everything the Record Store yielded for one request."""

    orders: tuple[Order, ...] = ()
    variable_costs: tuple[VariableCost, ...] = ()
    fixed_costs: tuple[FixedCostItem, ...] = ()
    kpis: tuple[StaffKpi, ...] = ()


# ---------- Results ----------
@dataclass(frozen=True, slots=True)
class Bucket:
    label: str
    start: datetime
    end: datetime
    granularity: Granularity


@dataclass(frozen=True, slots=True)
class ProfitChartDataPoint:
    label: str
    revenue: Decimal
    variable_costs: Decimal
    fixed_costs: Decimal

    @property
    def total_costs(self) -> Decimal:
        return self.variable_costs + self.fixed_costs

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.total_costs


@dataclass(frozen=True, slots=True)
class ServiceRevenue:
    name: str
    revenue: Decimal
    count: int


@dataclass(frozen=True, slots=True)
class AggregateResult:
    total_revenue: Decimal
    order_count: int
    total_variable_costs: Decimal
    prorated_fixed_costs: Decimal
    revenue_by_service: tuple[ServiceRevenue, ...] = field(default_factory=tuple)

    @property
    def total_costs(self) -> Decimal:
        return self.total_variable_costs + self.prorated_fixed_costs

    @property
    def profit(self) -> Decimal:
        return self.total_revenue - self.total_costs

    @property
    def average_order_value(self) -> Decimal:
        return safe_div(self.total_revenue, Decimal(self.order_count))
