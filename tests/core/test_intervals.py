"""Unit tests for the confidence interval estimator."""

import warnings

import pytest
import numpy as np
import pandas as pd
from adtech_ts.core import intervals
from adtech_ts.diagnostics import mix_shift


def _obs(rows):
    df = pd.DataFrame(rows, columns=["variation", "date", "rps"])
    df["date"] = pd.to_datetime(df["date"])
    return df


class TestMarginOfError:
    """Tests for margin_of_error."""

    def test_known_value(self):
        """1.96 × √2 / √2 = 1.96."""
        assert intervals.margin_of_error(np.sqrt(2), 2) == pytest.approx(1.96)

    def test_non_increasing_in_n(self):
        """More samples give a narrower interval for the same spread."""
        n = np.arange(1, 200)
        moe = intervals.margin_of_error(np.full(len(n), 3.0), n)
        assert np.all(np.diff(moe) <= 0)

    def test_increasing_in_stddev(self):
        """Larger spread gives a wider interval for the same n."""
        sd = np.linspace(0.1, 10, 50)
        moe = intervals.margin_of_error(sd, np.full(len(sd), 25))
        assert np.all(np.diff(moe) > 0)

    def test_custom_z(self):
        """z scales the half-width linearly."""
        assert intervals.margin_of_error(2.0, 4, z=2.576) == pytest.approx(2.576)

    def test_invalid_inputs(self):
        """Test error handling for invalid inputs."""
        with pytest.raises(ValueError, match="at least 1"):
            intervals.margin_of_error(1.0, 0)
        with pytest.raises(ValueError, match="non-negative"):
            intervals.margin_of_error(-1.0, 10)
        with pytest.raises(ValueError, match="z must be positive"):
            intervals.margin_of_error(1.0, 10, z=0)


class TestComputeGroupStatistics:
    """Tests for compute_group_statistics."""

    def test_three_row_scenario(self):
        """Two treatment rows and a single baseline row."""
        df = _obs([
            ("treatment", "2021-12-01", 1.0),
            ("treatment", "2021-12-01", 3.0),
            ("baseline", "2021-12-01", 2.0),
        ])
        result = intervals.compute_group_statistics(df)
        table = result['table'].set_index('variation')

        assert list(result['table']['variation']) == ['treatment', 'baseline']
        assert table.loc['treatment', 'count'] == 2
        assert table.loc['treatment', 'mean'] == pytest.approx(2.0)
        assert table.loc['treatment', 'stddev'] == pytest.approx(np.sqrt(2))
        assert table.loc['treatment', 'margin_of_error'] == pytest.approx(1.96)
        assert table.loc['treatment', 'interval_defined']

        # Single observation resolves to the zero sentinel, never NaN
        assert table.loc['baseline', 'count'] == 1
        assert table.loc['baseline', 'mean'] == pytest.approx(2.0)
        assert table.loc['baseline', 'stddev'] == 0.0
        assert table.loc['baseline', 'margin_of_error'] == 0.0
        assert table.loc['baseline', 'lower'] == table.loc['baseline', 'upper'] == 2.0
        assert not table.loc['baseline', 'interval_defined']

        assert result['n_excluded'] == 0
        assert not result['table'][['stddev', 'margin_of_error', 'lower', 'upper']].isna().any().any()

    def test_column_order(self):
        """Keys first, then the statistics."""
        df = _obs([("a", "2021-12-01", 1.0), ("a", "2021-12-01", 2.0)])
        result = intervals.compute_group_statistics(df, group_keys=("variation", "date"))
        assert list(result['table'].columns) == ['variation', 'date'] + intervals.STAT_COLUMNS

    def test_first_appearance_order(self):
        """Output order follows the input, not alphabetical order."""
        df = _obs([
            ("c", "2021-12-02", 1.0),
            ("a", "2021-12-01", 1.0),
            ("c", "2021-12-01", 2.0),
            ("b", "2021-12-01", 3.0),
            ("a", "2021-12-02", 4.0),
        ])
        by_variation = intervals.compute_group_statistics(df)['table']
        assert list(by_variation['variation']) == ['c', 'a', 'b']

        by_day = intervals.compute_group_statistics(df, group_keys=("variation", "date"))['table']
        keys = list(zip(by_day['variation'], by_day['date'].dt.strftime("%m-%d")))
        assert keys == [('c', '12-02'), ('a', '12-01'), ('c', '12-01'), ('b', '12-01'), ('a', '12-02')]

    def test_counts_partition_qualifying_rows(self):
        """Per-group counts add up to the qualifying rows in both views."""
        np.random.seed(42)
        n = 500
        df = pd.DataFrame({
            'variation': np.random.choice(['baseline', 'optimizer'], n),
            'date': pd.to_datetime('2021-12-01') + pd.to_timedelta(np.random.randint(0, 3, n), unit='D'),
            'rps': np.random.exponential(2.0, n),
        })
        df.loc[np.random.choice(n, 40, replace=False), 'rps'] = np.nan

        with pytest.warns(UserWarning, match="Excluded 40"):
            daily = intervals.compute_group_statistics(df)
        with pytest.warns(UserWarning):
            drill = intervals.compute_group_statistics(df, group_keys=("variation", "date"))

        for result in (daily, drill):
            assert result['n_qualifying'] == n - 40
            assert result['table']['count'].sum() == result['n_qualifying']
        assert len(drill['table']) == 6

    def test_interval_bounds(self):
        """lower <= mean <= upper and the width is twice the margin."""
        np.random.seed(7)
        df = pd.DataFrame({
            'variation': np.random.choice(['a', 'b', 'c'], 300),
            'date': pd.Timestamp('2021-12-01'),
            'rps': np.random.gamma(2.0, 1.5, 300),
        })
        table = intervals.compute_group_statistics(df)['table']

        assert (table['lower'] <= table['mean']).all()
        assert (table['mean'] <= table['upper']).all()
        width = table['upper'] - table['lower']
        np.testing.assert_allclose(width, 2 * table['margin_of_error'], rtol=1e-12)

    def test_matches_direct_computation(self):
        """Mean and sample standard deviation agree with numpy."""
        np.random.seed(3)
        values = np.random.normal(5, 2, 80)
        df = pd.DataFrame({'variation': 'x', 'date': pd.Timestamp('2021-12-01'), 'rps': values})
        row = intervals.compute_group_statistics(df)['table'].iloc[0]

        assert row['mean'] == pytest.approx(values.mean())
        assert row['stddev'] == pytest.approx(values.std(ddof=1))
        assert row['margin_of_error'] == pytest.approx(1.96 * values.std(ddof=1) / np.sqrt(80))

    def test_variation_with_no_rps_is_dropped(self):
        """A variation whose every row lacks rps produces no row."""
        df = _obs([
            ("optimizer", "2021-12-01", np.nan),
            ("optimizer", "2021-12-01", np.nan),
            ("optimizer", "2021-12-01", np.nan),
            ("baseline", "2021-12-01", 1.0),
            ("baseline", "2021-12-01", 2.0),
        ])
        with pytest.warns(UserWarning, match="Excluded 3 of 5"):
            result = intervals.compute_group_statistics(df)

        assert list(result['table']['variation']) == ['baseline']
        assert result['n_excluded'] == 3
        assert result['exclusions']['missing_rps'] == 3

    def test_invalid_values_excluded(self):
        """Text, infinite and negative revenue are excluded and counted."""
        df = pd.DataFrame({
            'variation': ['a', 'a', 'a', 'a', None, 'a'],
            'date': pd.to_datetime(['2021-12-01'] * 6),
            'rps': ['1.0', 'oops', np.inf, -2.0, 3.0, '2.0'],
        })
        with pytest.warns(UserWarning):
            result = intervals.compute_group_statistics(df)

        assert result['n_excluded'] == 4
        assert result['exclusions']['invalid_rps'] == 3
        assert result['exclusions']['missing_variation'] == 1
        row = result['table'].iloc[0]
        assert row['count'] == 2
        assert row['mean'] == pytest.approx(1.5)

    def test_missing_date_only_matters_when_grouped_by_date(self):
        """A missing date excludes a row from the drill-down, not the daily view."""
        df = pd.DataFrame({
            'variation': ['a', 'a', 'a'],
            'date': pd.to_datetime(['2021-12-01', None, '2021-12-01']),
            'rps': [1.0, 2.0, 3.0],
        })
        daily = intervals.compute_group_statistics(df)
        assert daily['n_excluded'] == 0

        with pytest.warns(UserWarning):
            drill = intervals.compute_group_statistics(df, group_keys=("variation", "date"))
        assert drill['n_excluded'] == 1
        assert drill['exclusions']['missing_date'] == 1

    def test_all_rows_excluded(self):
        """Every row excluded gives an empty table with the usual columns."""
        df = _obs([("a", "2021-12-01", np.nan), ("b", "2021-12-01", np.nan)])
        with pytest.warns(UserWarning):
            result = intervals.compute_group_statistics(df)

        assert len(result['table']) == 0
        assert list(result['table'].columns) == ['variation'] + intervals.STAT_COLUMNS
        assert result['n_qualifying'] == 0

    def test_unused_categories_not_reported(self):
        """Declared but unobserved categories do not become zero-count rows."""
        df = _obs([("a", "2021-12-01", 1.0), ("a", "2021-12-01", 2.0)])
        df['variation'] = pd.Categorical(df['variation'], categories=['a', 'b'])
        table = intervals.compute_group_statistics(df)['table']
        assert list(table['variation']) == ['a']

    def test_deterministic(self):
        """Two runs give identical tables."""
        np.random.seed(11)
        df = pd.DataFrame({
            'variation': np.random.choice(['b', 'a'], 200),
            'date': pd.Timestamp('2021-12-01'),
            'rps': np.random.exponential(1.0, 200),
        })
        first = intervals.compute_group_statistics(df)['table']
        second = intervals.compute_group_statistics(df)['table']

        pd.testing.assert_frame_equal(first, second)
        assert first.to_csv(index=False) == second.to_csv(index=False)

    def test_input_not_modified(self):
        """The observations frame is left untouched."""
        df = _obs([("a", "2021-12-01", 1.0), ("a", "2021-12-01", np.nan)])
        before = df.copy()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            intervals.compute_group_statistics(df)
        pd.testing.assert_frame_equal(df, before)

    def test_invalid_inputs(self):
        """Test error handling for invalid inputs."""
        empty = pd.DataFrame(columns=['variation', 'date', 'rps'])
        with pytest.raises(ValueError, match="non-empty"):
            intervals.compute_group_statistics(empty)

        df = _obs([("a", "2021-12-01", 1.0)])
        with pytest.raises(KeyError, match="segment"):
            intervals.compute_group_statistics(df, group_keys=("segment",))
        with pytest.raises(ValueError, match="at least one column"):
            intervals.compute_group_statistics(df, group_keys=())


class TestCombine:
    """Tests for combine."""

    def test_keeps_every_row(self, rollout_days):
        """Row count is the sum of the inputs and the index is fresh."""
        combined = intervals.combine(rollout_days)
        assert len(combined) == sum(len(d) for d in rollout_days)
        assert list(combined.index) == list(range(len(combined)))

    def test_duplicates_preserved(self, rollout_days):
        """Combining a day with itself doubles it, no deduplication."""
        day = rollout_days[0]
        combined = intervals.combine([day, day])
        assert len(combined) == 2 * len(day)

        table = intervals.compute_group_statistics(combined)['table'].set_index('variation')
        single = intervals.compute_group_statistics(day)['table'].set_index('variation')
        assert (table['count'] == 2 * single['count']).all()
        np.testing.assert_allclose(table['mean'], single['mean'])

    def test_equals_raw_concatenation(self, rollout_days):
        """Statistics of the combined set equal those of the literal concatenation."""
        combined = intervals.compute_group_statistics(intervals.combine(rollout_days))['table']
        raw = pd.concat(rollout_days, ignore_index=True)
        direct = intervals.compute_group_statistics(raw)['table']
        pd.testing.assert_frame_equal(combined, direct)

    def test_differs_from_reaggregated_daily_means(self, rollout_days):
        """Averaging the daily means does not reproduce the combined statistics."""
        combined = intervals.compute_group_statistics(intervals.combine(rollout_days))['table']
        pooled = combined.set_index('variation')['mean']

        daily_tables = [intervals.compute_group_statistics(d)['table'] for d in rollout_days]
        naive = mix_shift.average_of_daily_means(daily_tables)

        assert pooled['baseline'] == pytest.approx(6.6)
        assert pooled['optimizer'] == pytest.approx(4.4)
        assert naive['baseline'] == pytest.approx(5.0)
        assert naive['optimizer'] == pytest.approx(6.0)
        # Not just different numbers: the ranking flips
        assert pooled['baseline'] > pooled['optimizer']
        assert naive['optimizer'] > naive['baseline']

    def test_categorical_variation_kept(self, rollout_days):
        """Categorical labels stay categorical even when the day sets differ."""
        days = [d.assign(variation=d['variation'].astype('category')) for d in rollout_days]
        days[0] = days[0][days[0]['variation'] == 'baseline'].assign(
            variation=lambda d: d['variation'].cat.remove_unused_categories()
        )
        combined = intervals.combine(days)
        assert isinstance(combined['variation'].dtype, pd.CategoricalDtype)

    def test_invalid_inputs(self):
        """Test error handling for invalid inputs."""
        with pytest.raises(ValueError, match="at least one"):
            intervals.combine([])
        with pytest.raises(TypeError, match="DataFrame"):
            intervals.combine([pd.DataFrame({'rps': [1.0]}), [1, 2, 3]])
