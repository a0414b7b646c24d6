"""Tests for the forecasting model interface."""

import numpy as np
import pandas as pd
import pytest
from adtech_ts.forecasting import models


class TestSeasonalNaive:
    """Tests for the snaive method."""

    def test_repeats_last_day(self, hourly_series):
        """Each forecast hour equals the same hour of the last training day."""
        fitted = models.fit_model(hourly_series, 'snaive')
        predicted = models.forecast(fitted, 30)

        last_day = hourly_series.iloc[-24:].to_numpy()
        np.testing.assert_allclose(predicted.iloc[:24].to_numpy(), last_day)
        np.testing.assert_allclose(predicted.iloc[24:].to_numpy(), last_day[:6])

    def test_future_index(self, hourly_series):
        """Forecasts start one hour after the data and stay hourly."""
        predicted = models.forecast(models.fit_model(hourly_series, 'snaive'), 5)

        assert predicted.index[0] == hourly_series.index[-1] + pd.Timedelta(hours=1)
        assert (np.diff(predicted.index.asi8) == pd.Timedelta(hours=1).value).all()
        assert predicted.name == 'snaive'

    def test_too_short(self, hourly_series):
        with pytest.raises(ValueError, match="one season"):
            models.fit_model(hourly_series.iloc[:10], 'snaive')


class TestETS:
    """Tests for the ets method."""

    def test_forecast_tracks_cycle(self, hourly_series):
        """A seasonal series gets a seasonal forecast close to the true cycle."""
        fitted = models.fit_model(hourly_series, 'ets')
        predicted = models.forecast(fitted, 24)

        hours = np.arange(len(hourly_series), len(hourly_series) + 24)
        truth = 1.0 + 0.3 * np.sin(2 * np.pi * hours / 24)

        assert len(predicted) == 24
        assert np.isfinite(predicted).all()
        assert np.mean(np.abs(predicted.to_numpy() - truth)) < 0.1
        assert fitted.spec['seasonal'] == 'add'

    def test_needs_two_seasons(self, hourly_series):
        with pytest.raises(ValueError, match="two seasons"):
            models.fit_model(hourly_series.iloc[:30], 'ets')


class TestARIMA:
    """Tests for the arima method."""

    def test_forecast(self, hourly_series):
        """ARIMA with Fourier terms follows the daily cycle."""
        fitted = models.fit_model(hourly_series, 'arima')
        predicted = models.forecast(fitted, 24)

        hours = np.arange(len(hourly_series), len(hourly_series) + 24)
        truth = 1.0 + 0.3 * np.sin(2 * np.pi * hours / 24)

        assert len(predicted) == 24
        assert np.isfinite(predicted).all()
        assert np.mean(np.abs(predicted.to_numpy() - truth)) < 0.1
        assert len(fitted.spec['order']) == 3


class TestFitModelValidation:
    """Error handling shared by all methods."""

    def test_unknown_method(self, hourly_series):
        with pytest.raises(ValueError, match="Unknown method"):
            models.fit_model(hourly_series, 'prophet')

    def test_missing_values(self, hourly_series):
        gappy = hourly_series.copy()
        gappy.iloc[5] = np.nan
        with pytest.raises(ValueError, match="interpolate_missing"):
            models.fit_model(gappy, 'snaive')

    def test_irregular_index(self, hourly_series):
        irregular = hourly_series.drop(hourly_series.index[[3, 10, 11]])
        with pytest.raises(ValueError, match="regular"):
            models.fit_model(irregular, 'snaive')

    def test_not_datetime(self):
        with pytest.raises(ValueError, match="DatetimeIndex"):
            models.fit_model(pd.Series(np.ones(50)), 'snaive')

    def test_horizon(self, hourly_series):
        fitted = models.fit_model(hourly_series, 'snaive')
        with pytest.raises(ValueError, match="horizon"):
            models.forecast(fitted, 0)

    def test_index_without_freq_is_inferred(self, hourly_series):
        """A regular index that lost its freq (boolean slicing) still works."""
        sliced = hourly_series[hourly_series.index < hourly_series.index[-1]]
        fitted = models.fit_model(sliced, 'snaive')
        assert fitted.index.freq is not None


class TestForecastPanel:
    def test_long_table(self, hourly_series):
        panel = pd.DataFrame({'a': hourly_series, 'b': hourly_series * 2})
        table = models.forecast_panel(panel, horizon=6, methods=['snaive', 'ets'])

        assert list(table.columns) == ['ts', 'ad_type', 'model', 'forecast']
        assert len(table) == 2 * 2 * 6
        assert set(table['model']) == {'snaive', 'ets'}


class TestInterpolateMissing:
    """Tests for interpolate_missing."""

    def test_fills_gaps_only(self, hourly_series):
        """Observed values are unchanged and every gap is filled."""
        gappy = hourly_series.copy()
        gaps = [20, 21, 22, 80, 150]
        gappy.iloc[gaps] = np.nan

        filled = models.interpolate_missing(gappy)

        assert not filled.isna().any()
        observed = ~gappy.isna()
        np.testing.assert_allclose(filled[observed], hourly_series[observed])
        # fills stay inside the range of the data
        assert filled.iloc[gaps].between(0.5, 1.5).all()

    def test_no_gaps_is_identity(self, hourly_series):
        pd.testing.assert_series_equal(models.interpolate_missing(hourly_series), hourly_series)

    def test_all_missing(self, hourly_series):
        with pytest.raises(ValueError, match="no observed values"):
            models.interpolate_missing(hourly_series * np.nan)


class TestSTL:
    """Tests for stl_decompose."""

    def test_components_add_up(self, hourly_series):
        components = models.stl_decompose(hourly_series)

        assert list(components.columns) == ['observed', 'trend', 'seasonal', 'resid']
        total = components['trend'] + components['seasonal'] + components['resid']
        np.testing.assert_allclose(total, components['observed'], atol=1e-8)
        # the daily cycle ends up in the seasonal component
        assert components['seasonal'].max() - components['seasonal'].min() > 0.4

    def test_gaps_filled_first(self, hourly_series):
        gappy = hourly_series.copy()
        gappy.iloc[[10, 11]] = np.nan
        components = models.stl_decompose(gappy)
        assert not components.isna().any().any()

    def test_too_short(self, hourly_series):
        with pytest.raises(ValueError, match="two periods"):
            models.stl_decompose(hourly_series.iloc[:30])
