"""
Summaries of the Hourly Ad Data
===============================

Revenue ratios per ad category and the reshaping needed before the series
can be decomposed or forecast.

Example Usage:
--------------
>>> from adtech_ts.exploration import summary
>>>
>>> print(summary.revenue_ratios_by_ad_type(ads))
>>> panel = summary.to_hourly_panel(ads, value_col='rpc')
"""

import pandas as pd


def revenue_ratios_by_ad_type(df: pd.DataFrame) -> pd.DataFrame:
    """
    Revenue per click and per impression for each ad type.

    Ratios are computed from totals (Σ revenue / Σ clicks), not as the mean
    of hourly ratios. Hours without reported revenue are left out.

    Returns
    -------
    pd.DataFrame
        Columns: ad_type, rpc, rpi, total_rev, clicks, imps
    """
    for col in ("ad_type", "total_rev", "clicks", "imps"):
        if col not in df.columns:
            raise KeyError(f"Column '{col}' not found")

    reported = df[df["total_rev"].notna()].copy()
    reported["ad_type"] = reported["ad_type"].astype(object)
    totals = (
        reported.groupby("ad_type", sort=True)[["total_rev", "clicks", "imps"]]
        .sum()
        .reset_index()
    )
    totals["rpc"] = totals["total_rev"] / totals["clicks"]
    totals["rpi"] = totals["total_rev"] / totals["imps"]
    return totals[["ad_type", "rpc", "rpi", "total_rev", "clicks", "imps"]]


def to_hourly_panel(
    df: pd.DataFrame,
    value_col: str = "rpc",
    time_col: str = "ts",
    key_col: str = "ad_type",
) -> pd.DataFrame:
    """
    Wide hourly table: one column per ad type, one row per hour.

    Hours missing from the data become NaN rows so the index is regular
    (freq='h'), which the forecasting models require.

    Raises
    ------
    ValueError
        If the same (hour, ad type) appears twice
    """
    valid = df.dropna(subset=[time_col, key_col])
    if valid.duplicated(subset=[time_col, key_col]).any():
        raise ValueError(f"Duplicate ({time_col}, {key_col}) rows; deduplicate before pivoting")

    panel = valid.pivot(index=time_col, columns=key_col, values=value_col).sort_index()
    panel.columns = panel.columns.astype(str)
    panel.columns.name = key_col
    full_index = pd.date_range(panel.index.min(), panel.index.max(), freq="h", name=time_col)
    return panel.reindex(full_index)


def describe_series(df: pd.DataFrame, value_col: str = "rpc", key_col: str = "ad_type") -> pd.DataFrame:
    """pandas ``describe()`` of ``value_col`` per ad type."""
    grouped = df.assign(**{key_col: df[key_col].astype(object)}).groupby(key_col, sort=True)
    return grouped[value_col].describe()
