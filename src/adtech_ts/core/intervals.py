"""
Confidence Intervals per Experiment Variation
=============================================

Point estimates and approximate 95% confidence intervals for revenue per
session (RPS), per variation (daily view) or per variation and date (combined
drill-down view).

For every group:

    mean             = Σ rps / N
    stddev           = sample standard deviation (N - 1 denominator)
    margin_of_error  = z × stddev / √N,   z = 1.96
    lower, upper     = mean ∓ margin_of_error

Example Usage:
--------------
>>> from adtech_ts.core import intervals
>>> from adtech_ts.data import loaders
>>>
>>> day1 = loaders.load_experiment_day("./data/day1.csv")
>>> result = intervals.compute_group_statistics(day1)
>>> print(result['table'])
>>>
>>> # Combined view: recompute from the raw rows of every day
>>> combined = intervals.combine([day1, day2, day3])
>>> result = intervals.compute_group_statistics(combined, group_keys=("variation", "date"))
"""

import warnings
from typing import Dict, Any, Iterable, Sequence, Union

import numpy as np
import pandas as pd

from adtech_ts import config


STAT_COLUMNS = [
    "count",
    "mean",
    "stddev",
    "margin_of_error",
    "lower",
    "upper",
    "interval_defined",
]


def margin_of_error(
    stddev: Union[float, np.ndarray],
    n: Union[int, np.ndarray],
    z: float = config.Z_CRITICAL,
) -> Union[float, np.ndarray]:
    """
    Half-width of a normal-approximation confidence interval for a mean.

    Parameters
    ----------
    stddev : float or np.ndarray
        Sample standard deviation(s), non-negative
    n : int or np.ndarray
        Sample size(s), at least 1
    z : float, default=1.96
        Critical value of the standard normal distribution

    Returns
    -------
    float or np.ndarray
        z × stddev / √n, same shape as the broadcast inputs

    Notes
    -----
    Non-increasing in n for fixed stddev and increasing in stddev for fixed n.
    The normal critical value is only asymptotically correct; for small groups
    a t quantile would give a wider interval.

    Example
    -------
    >>> margin_of_error(np.sqrt(2), 2)
    1.96
    """
    stddev = np.asarray(stddev, dtype=float)
    n = np.asarray(n, dtype=float)

    if np.any(n < 1):
        raise ValueError("n must be at least 1")
    if np.any(stddev < 0):
        raise ValueError("stddev must be non-negative")
    if z <= 0:
        raise ValueError("z must be positive")

    moe = z * stddev / np.sqrt(n)
    return float(moe) if moe.ndim == 0 else moe


def _exclusion_mask(
    observations: pd.DataFrame,
    group_keys: Sequence[str],
    value_col: str,
) -> tuple:
    """Return (excluded mask, numeric values, per-reason counts)."""
    raw = observations[value_col]
    values = pd.to_numeric(raw, errors="coerce").astype(float)

    missing_value = raw.isna()
    # Present but unusable: non-numeric text, inf, or negative revenue
    invalid_value = ~missing_value & (values.isna() | ~np.isfinite(values) | (values < 0))

    excluded = missing_value | invalid_value
    reasons = {
        f"missing_{value_col}": int(missing_value.sum()),
        f"invalid_{value_col}": int(invalid_value.sum()),
    }
    for key in group_keys:
        missing_key = observations[key].isna()
        reasons[f"missing_{key}"] = int(missing_key.sum())
        excluded = excluded | missing_key

    return excluded, values, reasons


def _empty_table(group_keys: Sequence[str]) -> pd.DataFrame:
    table = pd.DataFrame(columns=list(group_keys) + STAT_COLUMNS)
    table["count"] = table["count"].astype(int)
    table["interval_defined"] = table["interval_defined"].astype(bool)
    for col in ["mean", "stddev", "margin_of_error", "lower", "upper"]:
        table[col] = table[col].astype(float)
    return table


def compute_group_statistics(
    observations: pd.DataFrame,
    group_keys: Sequence[str] = ("variation",),
    value_col: str = "rps",
    z: float = config.Z_CRITICAL,
) -> Dict[str, Any]:
    """
    Mean, standard deviation and 95% confidence interval per group.

    Groups are the distinct tuples of ``group_keys`` values, listed in the
    order they first appear in ``observations``. Rows with a missing group key,
    or a missing, non-numeric, non-finite or negative value, are excluded
    before grouping and counted.

    Parameters
    ----------
    observations : pd.DataFrame
        Experiment rows; must contain ``value_col`` and every group key
    group_keys : sequence of str, default=("variation",)
        ("variation",) for the daily view, ("variation", "date") for the
        combined drill-down
    value_col : str, default='rps'
        Metric column
    z : float, default=1.96
        Normal critical value used for the margin of error

    Returns
    -------
    dict
        Dictionary with keys:
        - table: DataFrame, one row per group; columns are the group keys
          followed by count, mean, stddev, margin_of_error, lower, upper,
          interval_defined
        - n_observations: Rows in the input
        - n_qualifying: Rows used in the statistics
        - n_excluded: Rows dropped by the exclusion policy
        - exclusions: Count per reason (a row failing two checks counts
          under both, but only once in n_excluded)
        - group_keys: The grouping used

    Raises
    ------
    ValueError
        If observations is empty or group_keys is empty
    KeyError
        If a group key or value_col is not a column

    Notes
    -----
    - A group with a single row has no sample standard deviation. It is
      reported with stddev = 0, margin_of_error = 0 (lower = upper = mean)
      and interval_defined = False, so no NaN reaches plotted bounds.
    - z is fixed at 1.96 regardless of N. This is the large-sample normal
      approximation, not a t-distribution interval.
    - Groups with no qualifying rows do not appear in the table.
    - A UserWarning reports the excluded count when it is non-zero.

    Example
    -------
    >>> df = pd.DataFrame({
    ...     'variation': ['treatment', 'treatment', 'baseline'],
    ...     'date': pd.to_datetime(['2021-12-01'] * 3),
    ...     'rps': [1.0, 3.0, 2.0],
    ... })
    >>> result = compute_group_statistics(df)
    >>> result['table'][['variation', 'count', 'mean', 'stddev']]
       variation  count  mean    stddev
    0  treatment      2   2.0  1.414214
    1   baseline      1   2.0  0.000000
    """
    group_keys = list(group_keys)
    if not group_keys:
        raise ValueError("group_keys must name at least one column")
    if len(observations) == 0:
        raise ValueError("observations must be non-empty")

    missing_cols = [c for c in group_keys + [value_col] if c not in observations.columns]
    if missing_cols:
        raise KeyError(f"Columns not found in observations: {missing_cols}")

    excluded, values, reasons = _exclusion_mask(observations, group_keys, value_col)
    n_observations = len(observations)
    n_excluded = int(excluded.sum())

    if n_excluded > 0:
        warnings.warn(
            f"Excluded {n_excluded:,} of {n_observations:,} observations "
            f"with missing or invalid fields: {reasons}",
            UserWarning,
            stacklevel=2,
        )

    keep = ~excluded.to_numpy()
    qualifying = observations.loc[keep, group_keys].copy()
    qualifying[value_col] = values.to_numpy()[keep]

    if len(qualifying) == 0:
        table = _empty_table(group_keys)
    else:
        for key in group_keys:
            if isinstance(qualifying[key].dtype, pd.CategoricalDtype):
                # plain labels so only observed categories form groups
                qualifying[key] = qualifying[key].astype(object)
        qualifying["_position"] = np.arange(len(qualifying))

        table = (
            qualifying.groupby(group_keys, sort=False)
            .agg(
                count=(value_col, "size"),
                mean=(value_col, "mean"),
                stddev=(value_col, "std"),
                _first=("_position", "min"),
            )
            .reset_index()
            .sort_values("_first", kind="stable")
            .drop(columns="_first")
            .reset_index(drop=True)
        )

        table["count"] = table["count"].astype(int)
        table["interval_defined"] = table["count"] >= 2
        table.loc[~table["interval_defined"], "stddev"] = 0.0
        table["margin_of_error"] = margin_of_error(
            table["stddev"].to_numpy(), table["count"].to_numpy(), z=z
        )
        table["lower"] = table["mean"] - table["margin_of_error"]
        table["upper"] = table["mean"] + table["margin_of_error"]
        table = table[group_keys + STAT_COLUMNS]

    return {
        "table": table,
        "n_observations": n_observations,
        "n_qualifying": n_observations - n_excluded,
        "n_excluded": n_excluded,
        "exclusions": reasons,
        "group_keys": tuple(group_keys),
    }


def combine(observation_sets: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """
    Stack several days of observations into one frame.

    Every row of every input is kept, duplicates included; the result gets a
    fresh RangeIndex. Statistics for the combined view must be recomputed
    from this frame. Averaging the per-day means instead gives a different
    answer whenever the traffic split changes between days.

    Parameters
    ----------
    observation_sets : iterable of pd.DataFrame
        One frame per day, in rollout order

    Returns
    -------
    pd.DataFrame
        Row-wise concatenation of the inputs

    Raises
    ------
    ValueError
        If no frames are given
    TypeError
        If an element is not a DataFrame
    """
    frames = list(observation_sets)
    if not frames:
        raise ValueError("observation_sets must contain at least one DataFrame")
    for frame in frames:
        if not isinstance(frame, pd.DataFrame):
            raise TypeError(f"Expected pandas DataFrame, got {type(frame).__name__}")

    combined = pd.concat(frames, ignore_index=True)

    # concat falls back to object when the per-day category sets differ
    if "variation" in combined.columns and all(
        isinstance(f["variation"].dtype, pd.CategoricalDtype)
        for f in frames if "variation" in f.columns
    ):
        combined["variation"] = combined["variation"].astype("category")

    return combined


if __name__ == "__main__":
    # Demo: traffic mix shifts across days
    print("=" * 80)
    print("Confidence Interval Demo")
    print("=" * 80)

    np.random.seed(42)
    days = []
    for day, share, level in [("2021-12-01", 0.2, 10.0), ("2021-12-02", 0.5, 6.0), ("2021-12-03", 0.8, 2.0)]:
        n = 1000
        is_treatment = np.random.rand(n) < share
        rps = np.where(is_treatment, level + 1.0, level) + np.random.normal(0, 1, n)
        days.append(pd.DataFrame({
            "variation": np.where(is_treatment, "optimizer", "baseline"),
            "date": pd.Timestamp(day),
            "rps": np.clip(rps, 0, None),
        }))

    for i, day in enumerate(days, start=1):
        print(f"\n📊 DAY {i}")
        print("-" * 80)
        print(compute_group_statistics(day)["table"].to_string(index=False))

    print("\n📊 COMBINED")
    print("-" * 80)
    print(compute_group_statistics(combine(days))["table"].to_string(index=False))
