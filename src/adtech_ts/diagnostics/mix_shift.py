"""
Traffic Mix Shift Across Rollout Days
=====================================

When the treatment share moves from 20% to 50% to 80% while the overall
revenue level also changes day to day, the pooled comparison can point the
opposite way from every single day (Simpson's paradox). The treatment gets
most of its sessions on the low-revenue day, so its pooled mean is dragged
down even though it wins each day.

This module provides the drill-down used to spot that:
- per variation × date means and counts
- the traffic mix per date
- the naive re-aggregation of daily means (the wrong way to combine)
- a per-day vs pooled winner check

Example Usage:
--------------
>>> from adtech_ts.core import intervals
>>> from adtech_ts.diagnostics import mix_shift
>>>
>>> combined = intervals.combine([day1, day2, day3])
>>> print(mix_shift.daily_breakdown(combined))
>>> check = mix_shift.simpson_check(combined, control='baseline', treatment='optimizer')
>>> print(check['reversal'])
"""

from typing import Dict, Any, Sequence

import numpy as np
import pandas as pd

from adtech_ts.core import intervals


def daily_breakdown(
    observations: pd.DataFrame,
    value_col: str = "rps",
) -> pd.DataFrame:
    """
    Mean metric and session count per variation and date.

    Returns
    -------
    pd.DataFrame
        Columns: variation, date, mean_rps, n. Rows in first-appearance
        order of (variation, date).
    """
    result = intervals.compute_group_statistics(
        observations, group_keys=("variation", "date"), value_col=value_col
    )
    table = result["table"]
    return pd.DataFrame({
        'variation': table['variation'],
        'date': table['date'],
        'mean_rps': table['mean'],
        'n': table['count'],
    })


def traffic_mix(observations: pd.DataFrame) -> pd.DataFrame:
    """
    Share of sessions per variation on each date.

    Returns
    -------
    pd.DataFrame
        Index: date. Columns: variation labels. Each row sums to 1.
    """
    valid = observations.dropna(subset=["variation", "date"])
    counts = pd.crosstab(valid["date"], valid["variation"].astype(object))
    return counts.div(counts.sum(axis=1), axis=0)


def average_of_daily_means(daily_tables: Sequence[pd.DataFrame]) -> pd.Series:
    """
    Unweighted mean of each variation's daily means.

    This is the shortcut that ignores how many sessions each day contributed.
    It does NOT reproduce the statistics of the combined observations; it is
    here so the difference can be shown side by side.

    Parameters
    ----------
    daily_tables : sequence of pd.DataFrame
        ``table`` outputs of ``compute_group_statistics`` grouped by variation

    Returns
    -------
    pd.Series
        Index: variation. Values: average of the daily means.
    """
    if not daily_tables:
        raise ValueError("daily_tables must not be empty")
    stacked = pd.concat(list(daily_tables), ignore_index=True)
    stacked['variation'] = stacked['variation'].astype(object)
    return stacked.groupby('variation', sort=False)['mean'].mean()


def _winner(
    mean_control: np.ndarray,
    mean_treatment: np.ndarray,
    control: str,
    treatment: str,
) -> np.ndarray:
    """Label with the higher mean per position; None on a tie."""
    winner = np.full(len(mean_control), None, dtype=object)
    winner[mean_treatment > mean_control] = treatment
    winner[mean_treatment < mean_control] = control
    return winner


def simpson_check(
    observations: pd.DataFrame,
    control: str,
    treatment: str,
    value_col: str = "rps",
) -> Dict[str, Any]:
    """
    Compare the winner on each date with the winner on the pooled data.

    Returns
    -------
    dict
        Dictionary with keys:
        - daily: DataFrame (date, mean_control, mean_treatment, winner)
          for dates where both arms have data; winner is None on a tie
        - pooled_control, pooled_treatment: Pooled means
        - pooled_winner: Label with the higher pooled mean, or None on a tie
        - consistent_daily_winner: Label winning every date, or None (ties
          never count as a win)
        - reversal: True when one arm wins every date but loses pooled
        - treatment_share: Treatment share of sessions per date
    """
    stats_by_day = intervals.compute_group_statistics(
        observations, group_keys=("variation", "date"), value_col=value_col
    )["table"]
    pivot = stats_by_day.pivot(index='date', columns='variation', values='mean')

    for label in (control, treatment):
        if label not in pivot.columns:
            raise ValueError(f"Variation '{label}' not found in observations")

    both = pivot[[control, treatment]].dropna().sort_index()
    daily = pd.DataFrame({
        'date': both.index,
        'mean_control': both[control].to_numpy(),
        'mean_treatment': both[treatment].to_numpy(),
    })
    daily['winner'] = _winner(
        daily['mean_control'].to_numpy(), daily['mean_treatment'].to_numpy(), control, treatment
    )

    pooled = intervals.compute_group_statistics(
        observations, group_keys=("variation",), value_col=value_col
    )["table"].set_index('variation')['mean']
    pooled_control = float(pooled[control])
    pooled_treatment = float(pooled[treatment])
    pooled_winner = _winner(
        np.array([pooled_control]), np.array([pooled_treatment]), control, treatment
    )[0]

    winners = daily['winner'].unique()
    consistent = winners[0] if len(winners) == 1 and winners[0] is not None else None

    mix = traffic_mix(observations)
    treatment_share = mix[treatment] if treatment in mix.columns else pd.Series(dtype=float)

    return {
        'daily': daily,
        'pooled_control': pooled_control,
        'pooled_treatment': pooled_treatment,
        'pooled_winner': pooled_winner,
        'consistent_daily_winner': consistent,
        'reversal': (
            consistent is not None and pooled_winner is not None and consistent != pooled_winner
        ),
        'treatment_share': treatment_share,
    }
