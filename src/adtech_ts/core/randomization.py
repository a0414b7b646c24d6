"""
Traffic Split Checks for the Staged Rollout
===========================================

The optimizer was rolled out at 20%, 50% and 80% of traffic on consecutive
days. Before reading any revenue number, check that the sessions actually
landed in that ratio: a sample ratio mismatch (SRM) means the assignment or
the logging is broken and the day's comparison cannot be trusted.

Example Usage:
--------------
>>> from adtech_ts.core import randomization
>>>
>>> counts = randomization.observed_split(day1, control='baseline', treatment='optimizer')
>>> result = randomization.traffic_split_check(
...     counts['n_control'], counts['n_treatment'], expected_treatment_share=0.2
... )
>>> print(f"SRM detected: {result['srm_detected']}")
"""

from typing import Dict, Any

import numpy as np
import pandas as pd
from scipy import stats

from adtech_ts import config


def observed_split(
    observations: pd.DataFrame,
    control: str,
    treatment: str,
) -> Dict[str, int]:
    """Count rows per arm (rows of any other label are ignored)."""
    labels = observations["variation"]
    return {
        'n_control': int((labels == control).sum()),
        'n_treatment': int((labels == treatment).sum()),
    }


def traffic_split_check(
    n_control: int,
    n_treatment: int,
    expected_treatment_share: float,
    alpha: float = config.SPLIT_ALPHA,
    pp_threshold: float = config.SPLIT_PP_THRESHOLD,
) -> Dict[str, Any]:
    """
    Sample ratio mismatch check against a planned rollout share.

    Two-stage gating:
    - Stage A (statistical): chi-square goodness-of-fit p-value < alpha
    - Stage B (practical): observed treatment share differs from the plan by
      more than ``pp_threshold``
    - srm_severe = A and B (stop and investigate)
    - srm_warning = A but not B (large samples make tiny drifts detectable)

    Parameters
    ----------
    n_control : int
        Sessions on the baseline
    n_treatment : int
        Sessions on the new strategy
    expected_treatment_share : float
        Planned share for the treatment, strictly between 0 and 1
    alpha : float, default=0.01
        Significance level (conservative to limit false alarms)
    pp_threshold : float, default=0.01
        Practical threshold in share units (0.01 = 1 percentage point)

    Returns
    -------
    dict
        Dictionary with keys:
        - n_control, n_treatment: Observed counts
        - expected_control, expected_treatment: Counts under the plan
        - expected_treatment_share, observed_treatment_share
        - chi2_statistic, p_value
        - srm_detected: Stage A result
        - pp_deviation: |observed - expected| treatment share
        - practical_significant: Stage B result
        - srm_severe, srm_warning

    Raises
    ------
    ValueError
        If a count is not positive or the share is outside (0, 1)
    """
    if n_control <= 0 or n_treatment <= 0:
        raise ValueError("Sample sizes must be positive")
    if not 0 < expected_treatment_share < 1:
        raise ValueError("expected_treatment_share must be between 0 and 1")

    n_total = n_control + n_treatment
    expected = np.array([1 - expected_treatment_share, expected_treatment_share]) * n_total
    observed = np.array([n_control, n_treatment])

    chi2_statistic = float(np.sum((observed - expected) ** 2 / expected))
    p_value = float(1 - stats.chi2.cdf(chi2_statistic, df=1))

    observed_share = n_treatment / n_total
    pp_deviation = abs(observed_share - expected_treatment_share)

    srm_detected = p_value < alpha
    practical_significant = pp_deviation > pp_threshold

    return {
        'n_control': n_control,
        'n_treatment': n_treatment,
        'expected_control': float(expected[0]),
        'expected_treatment': float(expected[1]),
        'expected_treatment_share': expected_treatment_share,
        'observed_treatment_share': observed_share,
        'chi2_statistic': chi2_statistic,
        'p_value': p_value,
        'srm_detected': srm_detected,
        'pp_deviation': pp_deviation,
        'practical_significant': practical_significant,
        'srm_severe': srm_detected and practical_significant,
        'srm_warning': srm_detected and not practical_significant,
    }
