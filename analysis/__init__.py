"""Pure data helpers for the chart builder.

This package normalizes chart data shapes, classifies column types, and
aggregates rows. It must not import Django or perform any database I/O.
"""

from .rows import NormalizedData, normalize_chart_data

__all__ = ["NormalizedData", "normalize_chart_data"]
