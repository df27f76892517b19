"""Analytics aggregation use cases."""

from .periods import AnalyticsQuery, DateRange, Granularity, resolve_branch_scope
from .reports import ExportFormat, ReportType
from .service import AnalyticsService

__all__ = [
    "AnalyticsQuery",
    "AnalyticsService",
    "DateRange",
    "ExportFormat",
    "Granularity",
    "ReportType",
    "resolve_branch_scope",
]
