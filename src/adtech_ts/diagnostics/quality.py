"""
Data Quality Checks for the Hourly Ad Data
==========================================

Checks run before any summary or model:
- missing values per column (hours with no revenue reported, etc.)
- impossible rows where an ad received more clicks than impressions,
  typically a session counted in more than one metric

Example Usage:
--------------
>>> from adtech_ts.diagnostics import quality
>>>
>>> report = quality.quality_report(ads)
>>> print(report['missing'])
>>> print(f"clicks > imps: {report['clicks_exceed_imps']['count']}")
"""

from typing import Dict, Any

import pandas as pd


def missing_value_summary(df: pd.DataFrame) -> pd.Series:
    """Number of missing values per column, in column order."""
    return df.isna().sum().astype(int)


def clicks_exceed_impressions(
    df: pd.DataFrame,
    imps_col: str = "imps",
    clicks_col: str = "clicks",
) -> Dict[str, Any]:
    """
    Rows reporting more clicks than impressions.

    Rows where either count is missing are not flagged.

    Returns
    -------
    dict
        - count: Number of offending rows
        - share: count / rows with both fields present
        - rows: The offending rows
    """
    for col in (imps_col, clicks_col):
        if col not in df.columns:
            raise KeyError(f"Column '{col}' not found")

    both = df[imps_col].notna() & df[clicks_col].notna()
    bad = both & (df[imps_col] < df[clicks_col])
    n_both = int(both.sum())

    return {
        'count': int(bad.sum()),
        'share': bad.sum() / n_both if n_both else 0.0,
        'rows': df.loc[bad],
    }


def quality_report(df: pd.DataFrame, verbose: bool = False) -> Dict[str, Any]:
    """
    Combined quality summary of the hourly ad data.

    Returns
    -------
    dict
        - n_rows: Row count
        - dtypes: Column dtypes as strings
        - missing: Missing values per column
        - clicks_exceed_imps: Result of :func:`clicks_exceed_impressions`
          (None when the columns are absent)
        - duplicate_keys: Repeated (ts, ad_type) pairs, when both exist
    """
    report = {
        'n_rows': len(df),
        'dtypes': df.dtypes.astype(str).to_dict(),
        'missing': missing_value_summary(df),
        'clicks_exceed_imps': None,
        'duplicate_keys': None,
    }

    if {"imps", "clicks"} <= set(df.columns):
        report['clicks_exceed_imps'] = clicks_exceed_impressions(df)
    if {"ts", "ad_type"} <= set(df.columns):
        report['duplicate_keys'] = int(df.duplicated(subset=["ts", "ad_type"]).sum())

    if verbose:
        print(f"Rows: {report['n_rows']:,}")
        print("Missing values:")
        for col, n in report['missing'].items():
            if n:
                print(f"  {col}: {n:,}")
        if report['clicks_exceed_imps'] is not None:
            print(f"Rows with clicks > imps: {report['clicks_exceed_imps']['count']:,}")
        if report['duplicate_keys']:
            print(f"Duplicate (ts, ad_type) rows: {report['duplicate_keys']:,}")

    return report
