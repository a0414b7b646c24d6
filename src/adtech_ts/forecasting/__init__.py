"""Forecasting models and accuracy evaluation."""

from adtech_ts.forecasting import models, evaluation

__all__ = ["models", "evaluation"]
