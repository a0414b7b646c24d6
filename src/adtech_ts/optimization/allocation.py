"""
Forecast-Driven Ad Selection
============================

Use tomorrow's RPC forecasts to decide which ad category to show each hour.

Showing only the top forecast starves every other category of new data, and
tomorrow's model is trained on what we chose to show today. The allocation
below therefore keeps a small exploration share spread over the other ad
types so each one still gets impressions to learn from.

Example Usage:
--------------
>>> from adtech_ts.optimization import allocation
>>>
>>> wide = forecasts[forecasts['model'] == 'ets'].pivot(index='ts', columns='ad_type', values='forecast')
>>> print(allocation.choose_ads(wide))
>>> shares = allocation.allocate_traffic(wide, explore_share=0.1)
"""

import pandas as pd

from adtech_ts import config


def choose_ads(forecasts: pd.DataFrame) -> pd.DataFrame:
    """
    Ad type with the highest forecast per hour.

    Parameters
    ----------
    forecasts : pd.DataFrame
        Wide table: index = hour, columns = ad types, values = forecast RPC

    Returns
    -------
    pd.DataFrame
        Columns: ts, ad_type, expected_rpc. Hours where every forecast is
        missing are dropped.
    """
    if forecasts.shape[1] == 0:
        raise ValueError("forecasts must have at least one ad type column")

    available = forecasts.dropna(how="all")
    best = available.idxmax(axis=1)
    return pd.DataFrame({
        'ts': available.index,
        'ad_type': best.to_numpy(),
        'expected_rpc': available.max(axis=1).to_numpy(),
    })


def allocate_traffic(
    forecasts: pd.DataFrame,
    explore_share: float = config.EXPLORE_SHARE,
) -> pd.DataFrame:
    """
    Traffic share per ad type and hour: greedy with uniform exploration.

    The best forecast gets ``1 - explore_share``; the other ad types split
    ``explore_share`` evenly. With a single ad type it gets everything.

    Returns
    -------
    pd.DataFrame
        Same shape as ``forecasts``; every row sums to 1

    Raises
    ------
    ValueError
        If explore_share is outside [0, 1)
    """
    if not 0 <= explore_share < 1:
        raise ValueError("explore_share must be in [0, 1)")
    if forecasts.shape[1] == 0:
        raise ValueError("forecasts must have at least one ad type column")

    n_ads = forecasts.shape[1]
    available = forecasts.dropna(how="all")
    best = available.idxmax(axis=1)

    if n_ads == 1:
        return pd.DataFrame(1.0, index=available.index, columns=available.columns)

    shares = pd.DataFrame(explore_share / (n_ads - 1), index=available.index, columns=available.columns)
    for ts, ad_type in best.items():
        shares.loc[ts, ad_type] = 1 - explore_share
    return shares


def expected_rpc(forecasts: pd.DataFrame, shares: pd.DataFrame) -> pd.Series:
    """Traffic-weighted forecast RPC per hour for a given allocation."""
    aligned = forecasts.loc[shares.index, shares.columns]
    return (aligned.fillna(0) * shares).sum(axis=1)
