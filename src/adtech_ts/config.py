"""
Analysis Settings
=================

Module-level defaults shared by the loaders, the statistical functions and the
pipelines. Every function that reads one of these also accepts it as a keyword
argument, so a caller can override a value for a single run.

The data directory can be redirected with the ``ADTECH_TS_DATA_DIR``
environment variable.
"""

import os
from pathlib import Path

# Paths
DATA_DIR = Path(os.environ.get("ADTECH_TS_DATA_DIR", "./data"))
HOURLY_AD_FILE = "hourly_ad_category_data.csv"
ROLLOUT_DAY_FILES = ["day1.csv", "day2.csv", "day3.csv"]

# Rollout schedule: share of traffic sent to the new optimizer on each day
ROLLOUT_TREATMENT_SHARE = {
    "day1": 0.20,
    "day2": 0.50,
    "day3": 0.80,
}
BASELINE_VARIATION = "baseline"

# Confidence intervals
# Two-sided 95% normal critical value. Fixed on purpose; see DESIGN.md for the
# small-sample (t-distribution) question.
Z_CRITICAL = 1.96

# Traffic split check (two-stage SRM gating)
SPLIT_ALPHA = 0.01
SPLIT_PP_THRESHOLD = 0.01

# Forecasting
SEASON_LENGTH = 24        # hourly data, daily seasonality
FORECAST_HORIZON = 23     # hours in the held-out test day
TEST_CUTOFF = "2021-11-23"
FORECAST_METHODS = ["snaive", "ets", "arima"]

# Part III ad selection
EXPLORE_SHARE = 0.10
