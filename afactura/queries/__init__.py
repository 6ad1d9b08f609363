"""Query package."""

from afactura.queries.executor import DashboardSummary, QueryExecutor

__all__ = ["DashboardSummary", "QueryExecutor"]
