"""Shared fixtures: a three-day rollout with a traffic mix shift and a small hourly ad panel."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def _day(date, baseline_rps, optimizer_rps):
    rows = [("baseline", date, v) for v in baseline_rps]
    rows += [("optimizer", date, v) for v in optimizer_rps]
    return pd.DataFrame(rows, columns=["variation", "date", "rps"]).assign(
        date=lambda d: pd.to_datetime(d["date"])
    )


@pytest.fixture
def rollout_days():
    """
    Optimizer beats baseline by 1.0 on every day, but gets most of its
    traffic on the low-revenue day, so it loses on the pooled data.

    day1 (20%): baseline mean 9 (n=8), optimizer mean 10 (n=2)
    day2 (50%): baseline mean 5 (n=5), optimizer mean 6 (n=5)
    day3 (80%): baseline mean 1 (n=2), optimizer mean 2 (n=8)
    Pooled: baseline 6.6, optimizer 4.4
    """
    return [
        _day("2021-12-01", [8.0, 10.0] * 4, [9.5, 10.5]),
        _day("2021-12-02", [4.0, 6.0, 5.0, 4.0, 6.0], [5.5, 6.5, 6.0, 5.5, 6.5]),
        _day("2021-12-03", [0.5, 1.5], [1.5, 2.5] * 4),
    ]


@pytest.fixture
def rollout_dir(tmp_path, rollout_days):
    """The rollout fixture written as day1.csv..day3.csv."""
    for i, day in enumerate(rollout_days, start=1):
        out = day.copy()
        out["date"] = out["date"].dt.strftime("%Y-%m-%d")
        out.to_csv(tmp_path / f"day{i}.csv", index=False)
    return tmp_path


def make_hourly_ads(n_days=5, ad_types=("cat_toys", "dog_food"), seed=42):
    """Hourly ad rows with a daily revenue cycle per ad type."""
    np.random.seed(seed)
    ts = pd.date_range("2021-11-19", periods=24 * n_days, freq="h")
    hours = np.arange(len(ts))
    frames = []
    for k, ad_type in enumerate(ad_types):
        imps = np.random.poisson(1000, len(ts))
        clicks = np.random.binomial(imps, 0.05)
        rpc = 0.5 + 0.1 * k + 0.2 * np.sin(2 * np.pi * hours / 24) + np.random.normal(0, 0.02, len(ts))
        frames.append(pd.DataFrame({
            "ts": ts,
            "ad_type": ad_type,
            "imps": imps,
            "clicks": clicks,
            "total_rev": rpc * clicks,
        }))
    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def hourly_ads():
    return make_hourly_ads()


@pytest.fixture
def hourly_series():
    """Seven days of a noisy daily cycle on a regular hourly index."""
    np.random.seed(0)
    index = pd.date_range("2021-11-01", periods=24 * 7, freq="h", name="ts")
    hours = np.arange(len(index))
    values = 1.0 + 0.3 * np.sin(2 * np.pi * hours / 24) + np.random.normal(0, 0.03, len(index))
    return pd.Series(values, index=index, name="dog_food")


@pytest.fixture
def ads_factory():
    """The hourly generator, for tests that need a different shape."""
    return make_hourly_ads
