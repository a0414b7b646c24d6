"""
Baseline vs Optimizer Comparison
================================

Welch's t-test on revenue per session for two variations of the same
observation set. Answers "which strategy is performing better?" for one day
of the rollout, alongside the per-variation intervals.

Example Usage:
--------------
>>> from adtech_ts.core import comparison
>>>
>>> result = comparison.compare_variations(day1, control='baseline', treatment='optimizer')
>>> print(f"Lift: {result['relative_lift']:.1%}, p={result['p_value']:.4f}")
"""

from typing import Dict, Any

import numpy as np
import pandas as pd
from scipy import stats


def _arm_values(observations: pd.DataFrame, label: str, value_col: str) -> np.ndarray:
    rows = observations[observations["variation"] == label]
    values = pd.to_numeric(rows[value_col], errors="coerce").astype(float)
    values = values[np.isfinite(values) & (values >= 0)]
    return values.to_numpy()


def compare_variations(
    observations: pd.DataFrame,
    control: str,
    treatment: str,
    value_col: str = "rps",
    alpha: float = 0.05,
) -> Dict[str, Any]:
    """
    Welch's t-test of treatment vs control on a continuous metric.

    Rows with a missing or invalid value are dropped, the same rows the
    interval estimator excludes.

    Parameters
    ----------
    observations : pd.DataFrame
        Must contain 'variation' and ``value_col``
    control : str
        Variation label of the baseline
    treatment : str
        Variation label of the new strategy
    value_col : str, default='rps'
        Metric column
    alpha : float, default=0.05
        Significance level

    Returns
    -------
    dict
        Dictionary with keys:
        - control, treatment: Labels compared
        - n_control, n_treatment: Rows used
        - mean_control, mean_treatment: Group means
        - difference: Treatment - Control
        - relative_lift: difference / mean_control (NaN if control mean is 0)
        - t_statistic, p_value: Welch test
        - ci_lower, ci_upper: CI of the difference (Welch-Satterthwaite df)
        - significant: p_value < alpha
        - better: Label with the higher mean when significant, else None

    Raises
    ------
    ValueError
        If either arm has fewer than 2 usable rows
    """
    if not 0 < alpha < 1:
        raise ValueError("alpha must be between 0 and 1")

    x_c = _arm_values(observations, control, value_col)
    x_t = _arm_values(observations, treatment, value_col)

    if len(x_c) < 2 or len(x_t) < 2:
        raise ValueError(
            f"Each variation needs at least 2 observations "
            f"(got {control}={len(x_c)}, {treatment}={len(x_t)})"
        )

    mean_c = x_c.mean()
    mean_t = x_t.mean()
    var_c = x_c.var(ddof=1)
    var_t = x_t.var(ddof=1)
    n_c = len(x_c)
    n_t = len(x_t)

    t_stat, p_value = stats.ttest_ind(x_t, x_c, equal_var=False)

    se = np.sqrt(var_c / n_c + var_t / n_t)
    difference = mean_t - mean_c

    if se > 0:
        # Welch-Satterthwaite degrees of freedom
        df = (var_c / n_c + var_t / n_t) ** 2 / (
            (var_c / n_c) ** 2 / (n_c - 1) + (var_t / n_t) ** 2 / (n_t - 1)
        )
        t_critical = stats.t.ppf(1 - alpha / 2, df)
    else:
        t_critical = 0.0

    ci_lower = difference - t_critical * se
    ci_upper = difference + t_critical * se
    significant = bool(p_value < alpha)

    if significant:
        better = treatment if difference > 0 else control
    else:
        better = None

    return {
        'control': control,
        'treatment': treatment,
        'n_control': n_c,
        'n_treatment': n_t,
        'mean_control': float(mean_c),
        'mean_treatment': float(mean_t),
        'difference': float(difference),
        'relative_lift': float(difference / mean_c) if mean_c != 0 else np.nan,
        't_statistic': float(t_stat),
        'p_value': float(p_value),
        'ci_lower': float(ci_lower),
        'ci_upper': float(ci_upper),
        'significant': significant,
        'better': better,
    }
