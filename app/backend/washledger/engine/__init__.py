"""Pure period-based financial aggregation engine."""

from washledger.engine.aggregation import FinancialReport, aggregate, build_report, profit_series
from washledger.engine.comparison import StaffKpiSummary, StoreComparison, compare
from washledger.engine.filtering import filter_by_period, filter_by_range
from washledger.engine.periods import UNBOUNDED, ReportPeriod, TimeRange, resolve_period
from washledger.engine.proration import ProrationContext, prorate_fixed_costs
from washledger.engine.records import (
    AggregateResult,
    Bucket,
    FixedCostItem,
    Granularity,
    Order,
    OrderLine,
    ProfitChartDataPoint,
    RecordSet,
    ServiceRevenue,
    StaffKpi,
    VariableCost,
    VariableCostCategory,
)
from washledger.engine.series import build_buckets, build_profit_series, granularity_for

__all__ = [
    "AggregateResult",
    "Bucket",
    "FinancialReport",
    "FixedCostItem",
    "Granularity",
    "Order",
    "OrderLine",
    "ProfitChartDataPoint",
    "ProrationContext",
    "RecordSet",
    "ReportPeriod",
    "ServiceRevenue",
    "StaffKpi",
    "StaffKpiSummary",
    "StoreComparison",
    "TimeRange",
    "UNBOUNDED",
    "VariableCost",
    "VariableCostCategory",
    "aggregate",
    "build_buckets",
    "build_profit_series",
    "build_report",
    "compare",
    "filter_by_period",
    "filter_by_range",
    "granularity_for",
    "profit_series",
    "prorate_fixed_costs",
    "resolve_period",
]
