"""
Forecasting Models for Hourly Ad Metrics
========================================

A narrow interface over statsmodels so the pipelines never touch model
internals:

    model = fit_model(series, method)      # 'snaive', 'ets' or 'arima'
    future = forecast(model, horizon)      # pd.Series on future timestamps

Methods:
- snaive: seasonal naive, the value at the same hour on the previous day
- ets: Holt-Winters exponential smoothing (statsmodels); trend, damping and
  seasonality chosen by AICc
- arima: ARIMA with trend and Fourier terms for the daily cycle (statsmodels);
  order chosen by AICc from a small grid

Also provides model-based gap filling and STL decomposition.

Example Usage:
--------------
>>> from adtech_ts.forecasting import models
>>>
>>> series = models.interpolate_missing(panel['dog_food'])
>>> fitted = models.fit_model(series, 'ets')
>>> print(models.forecast(fitted, 23).head())
>>> components = models.stl_decompose(series, period=24)
"""

import itertools
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.holtwinters import ExponentialSmoothing
from statsmodels.tsa.seasonal import STL

from adtech_ts import config


METHODS = ["snaive", "ets", "arima"]


@dataclass
class FittedModel:
    """Container for a fitted forecasting model."""
    method: str
    season_length: int
    index: pd.DatetimeIndex
    result: Any
    spec: Dict[str, Any] = field(default_factory=dict)


def _regular_series(series: pd.Series) -> pd.Series:
    """Return ``series`` with an explicit DatetimeIndex frequency."""
    if not isinstance(series.index, pd.DatetimeIndex):
        raise ValueError("series must have a DatetimeIndex")
    if series.index.freq is not None:
        return series.astype(float)
    freq = pd.infer_freq(series.index) if len(series) >= 3 else None
    if freq is None:
        raise ValueError("series index must be regular; reindex to a fixed frequency first")
    return series.asfreq(freq).astype(float)


def _future_index(index: pd.DatetimeIndex, horizon: int) -> pd.DatetimeIndex:
    return pd.date_range(index[-1] + index.freq, periods=horizon, freq=index.freq, name=index.name)


def _fourier_terms(positions: np.ndarray, period: int, k: int) -> pd.DataFrame:
    terms = {}
    for i in range(1, k + 1):
        angle = 2 * np.pi * i * positions / period
        terms[f"sin{i}"] = np.sin(angle)
        terms[f"cos{i}"] = np.cos(angle)
    return pd.DataFrame(terms)


def _fit_snaive(series: pd.Series, season_length: int) -> FittedModel:
    if len(series) < season_length:
        raise ValueError(f"snaive needs at least one season ({season_length} points)")
    return FittedModel(
        method="snaive",
        season_length=season_length,
        index=series.index,
        result=series.to_numpy()[-season_length:],
    )


def _fit_ets(series: pd.Series, season_length: int) -> FittedModel:
    if len(series) < 2 * season_length:
        raise ValueError(f"ets needs at least two seasons ({2 * season_length} points)")

    candidates = []
    for trend, damped, seasonal in itertools.product([None, "add"], [False, True], [None, "add"]):
        if damped and trend is None:
            continue
        candidates.append({"trend": trend, "damped_trend": damped, "seasonal": seasonal})

    best, best_spec, best_aicc = None, None, np.inf
    for spec in candidates:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", ConvergenceWarning)
                warnings.simplefilter("ignore", RuntimeWarning)
                result = ExponentialSmoothing(
                    series,
                    trend=spec["trend"],
                    damped_trend=spec["damped_trend"],
                    seasonal=spec["seasonal"],
                    seasonal_periods=season_length if spec["seasonal"] else None,
                    initialization_method="estimated",
                ).fit()
        except (ValueError, np.linalg.LinAlgError):
            continue
        aicc = result.aicc
        if np.isfinite(aicc) and aicc < best_aicc:
            best, best_spec, best_aicc = result, spec, aicc

    if best is None:
        raise RuntimeError("No ETS configuration could be fitted to the series")

    return FittedModel("ets", season_length, series.index, best, {**best_spec, "aicc": best_aicc})


def _fit_arima(series: pd.Series, season_length: int, fourier_k: int = 2) -> FittedModel:
    if len(series) < 10:
        raise ValueError("arima needs at least 10 points")

    positions = np.arange(len(series))
    exog = _fourier_terms(positions, season_length, fourier_k) if fourier_k else None
    if exog is not None:
        exog.index = series.index

    best, best_spec, best_aicc = None, None, np.inf
    for p, d, q in itertools.product([0, 1, 2], [0, 1], [0, 1]):
        trend = "ct" if d == 0 else "t"
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", ConvergenceWarning)
                warnings.simplefilter("ignore", UserWarning)
                result = ARIMA(series, exog=exog, order=(p, d, q), trend=trend).fit()
        except (ValueError, np.linalg.LinAlgError):
            continue
        aicc = result.aicc
        if np.isfinite(aicc) and aicc < best_aicc:
            best, best_spec, best_aicc = result, {"order": (p, d, q), "trend": trend}, aicc

    if best is None:
        raise RuntimeError("No ARIMA order could be fitted to the series")

    best_spec.update({"fourier_k": fourier_k, "aicc": best_aicc})
    return FittedModel("arima", season_length, series.index, best, best_spec)


def fit_model(
    series: pd.Series,
    method: str,
    season_length: int = config.SEASON_LENGTH,
) -> FittedModel:
    """
    Fit one forecasting model to a regular, gap-free series.

    Parameters
    ----------
    series : pd.Series
        Values on a regular DatetimeIndex (hourly for the ad data)
    method : str
        One of 'snaive', 'ets', 'arima'
    season_length : int, default=24
        Observations per seasonal cycle

    Returns
    -------
    FittedModel
        Pass to :func:`forecast`

    Raises
    ------
    ValueError
        Unknown method, irregular index, NaN values, or a series too short
        for the method (snaive: one season, ets: two seasons, arima: 10)
    RuntimeError
        If no candidate configuration could be estimated
    """
    if method not in METHODS:
        raise ValueError(f"Unknown method '{method}'. Available: {METHODS}")
    if season_length < 1:
        raise ValueError("season_length must be positive")

    series = _regular_series(series)
    if series.isna().any():
        raise ValueError("series contains missing values; call interpolate_missing first")

    if method == "snaive":
        return _fit_snaive(series, season_length)
    elif method == "ets":
        return _fit_ets(series, season_length)
    else:
        return _fit_arima(series, season_length)


def forecast(model: FittedModel, horizon: int) -> pd.Series:
    """
    Point forecasts for the ``horizon`` steps after the training data.

    Returns
    -------
    pd.Series
        Indexed by the future timestamps, named after the method
    """
    if horizon < 1:
        raise ValueError("horizon must be at least 1")

    future = _future_index(model.index, horizon)

    if model.method == "snaive":
        last_season = model.result
        values = last_season[np.arange(horizon) % model.season_length]
    elif model.method == "ets":
        values = np.asarray(model.result.forecast(horizon))
    elif model.method == "arima":
        exog = None
        k = model.spec.get("fourier_k")
        if k:
            positions = np.arange(len(model.index), len(model.index) + horizon)
            exog = _fourier_terms(positions, model.season_length, k)
            exog.index = future
        values = np.asarray(model.result.forecast(horizon, exog=exog))
    else:
        raise ValueError(f"Unknown method '{model.method}'")

    return pd.Series(values, index=future, name=model.method)


def forecast_panel(
    panel: pd.DataFrame,
    horizon: int,
    methods: Optional[List[str]] = None,
    season_length: int = config.SEASON_LENGTH,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Fit every method to every column of a wide panel and forecast.

    Returns
    -------
    pd.DataFrame
        Long table with columns ts, ad_type, model, forecast
    """
    if methods is None:
        methods = METHODS

    frames = []
    for column in panel.columns:
        for method in methods:
            fitted = fit_model(panel[column], method, season_length=season_length)
            predicted = forecast(fitted, horizon)
            if verbose:
                print(f"   ✓ {column} / {method}: {fitted.spec or 'seasonal naive'}")
            frames.append(pd.DataFrame({
                'ts': predicted.index,
                'ad_type': column,
                'model': method,
                'forecast': predicted.to_numpy(),
            }))

    return pd.concat(frames, ignore_index=True)


def interpolate_missing(series: pd.Series) -> pd.Series:
    """
    Fill gaps with in-sample predictions of an AR(1) model with linear trend.

    The state-space ARIMA skips missing observations during estimation and
    still predicts at those timestamps, so gaps are filled from the fitted
    dynamics rather than by straight-line interpolation. Observed values are
    never changed.

    Raises
    ------
    ValueError
        If the series has no observed values or an irregular index
    """
    series = _regular_series(series)
    missing = series.isna()
    if not missing.any():
        return series.copy()
    if missing.all():
        raise ValueError("series has no observed values to interpolate from")

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        warnings.simplefilter("ignore", UserWarning)
        result = ARIMA(series, order=(1, 0, 0), trend="ct").fit()

    predicted = pd.Series(np.asarray(result.predict()), index=series.index)
    return series.where(~missing, predicted)


def stl_decompose(
    series: pd.Series,
    period: int = config.SEASON_LENGTH,
    robust: bool = True,
) -> pd.DataFrame:
    """
    Seasonal-trend decomposition using LOESS (statsmodels STL).

    Gaps are filled with :func:`interpolate_missing` first.

    Returns
    -------
    pd.DataFrame
        Columns: observed, trend, seasonal, resid
    """
    series = _regular_series(series)
    if series.isna().any():
        series = interpolate_missing(series)
    if len(series) < 2 * period:
        raise ValueError(f"STL needs at least two periods ({2 * period} points)")

    result = STL(series, period=period, robust=robust).fit()
    return pd.DataFrame({
        'observed': series,
        'trend': result.trend,
        'seasonal': result.seasonal,
        'resid': result.resid,
    })
