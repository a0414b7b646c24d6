"""
Ad-Tech Time Series Case Study
==============================

Exploration, forecasting and A/B rollout analysis of hourly advertising
metrics.

Modules:
--------
- core: Confidence intervals per variation, variation comparison, traffic split checks
- diagnostics: Data quality checks, traffic mix / Simpson drill-down
- exploration: Revenue ratios and hourly panel construction
- forecasting: Seasonal naive, ETS and ARIMA behind a fit/forecast interface
- optimization: Forecast-driven ad selection
- viz: matplotlib charts
- data: CSV loaders
- pipelines: End-to-end analyses

Example Usage:
--------------
>>> from adtech_ts.data import loaders
>>> from adtech_ts.core import intervals
>>>
>>> days = loaders.load_rollout_days("./data")
>>> for name, day in days.items():
...     print(name, intervals.compute_group_statistics(day)['table'])
>>>
>>> combined = intervals.combine(days.values())
>>> print(intervals.compute_group_statistics(combined)['table'])

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Expose key modules at package level for convenience
from adtech_ts.data import loaders
from adtech_ts.core import intervals, comparison, randomization

__all__ = [
    "loaders",
    "intervals",
    "comparison",
    "randomization",
]
