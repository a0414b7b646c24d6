"""
Forecast Evaluation
===================

Hold out the final day, forecast it, and score each model with the usual
point-forecast accuracy measures. MASE and RMSSE scale the errors by the
in-sample seasonal naive errors, so they are comparable across ad types with
very different revenue levels: values below 1 beat the seasonal naive
benchmark on the training data.

Example Usage:
--------------
>>> from adtech_ts.forecasting import evaluation, models
>>>
>>> train, test = evaluation.train_test_split_by_time(panel, cutoff='2021-11-23')
>>> forecasts = models.forecast_panel(train, horizon=len(test))
>>> table = evaluation.accuracy_table(forecasts, test, train)
>>> print(table.head())
"""

from typing import Dict, Tuple, Union

import numpy as np
import pandas as pd

from adtech_ts import config


METRICS = ["ME", "RMSE", "MAE", "MPE", "MAPE", "MASE", "RMSSE"]


def train_test_split_by_time(
    panel: Union[pd.DataFrame, pd.Series],
    cutoff: Union[str, pd.Timestamp],
) -> Tuple[Union[pd.DataFrame, pd.Series], Union[pd.DataFrame, pd.Series]]:
    """
    Split on a timestamp: rows strictly before ``cutoff`` train, the rest test.

    Raises
    ------
    ValueError
        If either side would be empty
    """
    cutoff = pd.Timestamp(cutoff)
    train = panel[panel.index < cutoff]
    test = panel[panel.index >= cutoff]
    if len(train) == 0 or len(test) == 0:
        raise ValueError(
            f"cutoff {cutoff} leaves an empty split "
            f"(data spans {panel.index.min()} to {panel.index.max()})"
        )
    return train, test


def _scale(train: pd.Series, season_length: int, power: int) -> float:
    history = train.dropna().to_numpy(dtype=float)
    lag = season_length if len(history) > season_length else 1
    if len(history) <= lag:
        return np.nan
    diffs = np.abs(history[lag:] - history[:-lag]) ** power
    return float(diffs.mean())


def accuracy_metrics(
    actual: pd.Series,
    predicted: pd.Series,
    train: pd.Series,
    season_length: int = config.SEASON_LENGTH,
) -> Dict[str, float]:
    """
    Point forecast accuracy of ``predicted`` against ``actual``.

    Series are aligned on their index; timestamps where the actual value is
    missing are skipped.

    Returns
    -------
    dict
        ME, RMSE, MAE, MPE and MAPE (percent), MASE, RMSSE, n (points scored)

    Notes
    -----
    - Errors are actual - predicted (positive ME = under-forecast)
    - MPE/MAPE skip points where the actual value is 0
    - The MASE/RMSSE scale uses lag ``season_length`` differences of the
      training series (lag 1 when it is shorter than one season)
    """
    actual, predicted = actual.align(predicted, join="inner")
    mask = actual.notna() & predicted.notna()
    y = actual[mask].to_numpy(dtype=float)
    yhat = predicted[mask].to_numpy(dtype=float)

    if len(y) == 0:
        raise ValueError("No overlapping non-missing points to score")

    errors = y - yhat
    nonzero = y != 0
    pct = 100 * errors[nonzero] / y[nonzero] if nonzero.any() else np.array([np.nan])

    mae_scale = _scale(train, season_length, power=1)
    mse_scale = _scale(train, season_length, power=2)

    mae = float(np.mean(np.abs(errors)))
    mse = float(np.mean(errors ** 2))

    return {
        'ME': float(np.mean(errors)),
        'RMSE': float(np.sqrt(mse)),
        'MAE': mae,
        'MPE': float(np.mean(pct)),
        'MAPE': float(np.mean(np.abs(pct))),
        'MASE': mae / mae_scale if mae_scale else np.nan,
        'RMSSE': float(np.sqrt(mse / mse_scale)) if mse_scale else np.nan,
        'n': int(len(y)),
    }


def accuracy_table(
    forecasts: pd.DataFrame,
    test: pd.DataFrame,
    train: pd.DataFrame,
    season_length: int = config.SEASON_LENGTH,
) -> pd.DataFrame:
    """
    Accuracy of every (ad_type, model) forecast in a long forecast table.

    Parameters
    ----------
    forecasts : pd.DataFrame
        Output of ``models.forecast_panel`` (ts, ad_type, model, forecast)
    test : pd.DataFrame
        Wide held-out panel (columns = ad types)
    train : pd.DataFrame
        Wide training panel, used for the MASE/RMSSE scale

    Returns
    -------
    pd.DataFrame
        Columns: ad_type, model, ME, RMSE, MAE, MPE, MAPE, MASE, RMSSE, n;
        sorted by ad_type then MASE (best model first)
    """
    rows = []
    for (ad_type, model), group in forecasts.groupby(["ad_type", "model"], sort=False):
        if ad_type not in test.columns:
            raise KeyError(f"ad_type '{ad_type}' not in test panel")
        predicted = group.set_index("ts")["forecast"]
        metrics = accuracy_metrics(test[ad_type], predicted, train[ad_type], season_length)
        rows.append({'ad_type': ad_type, 'model': model, **metrics})

    table = pd.DataFrame(rows, columns=["ad_type", "model"] + METRICS + ["n"])
    return table.sort_values(["ad_type", "MASE"], kind="stable").reset_index(drop=True)


def best_models(table: pd.DataFrame, metric: str = "MASE") -> pd.DataFrame:
    """Lowest-``metric`` model per ad type."""
    if metric not in METRICS:
        raise ValueError(f"Unknown metric '{metric}'. Available: {METRICS}")
    idx = table.groupby("ad_type", sort=True)[metric].idxmin()
    return table.loc[idx.dropna()].reset_index(drop=True)
