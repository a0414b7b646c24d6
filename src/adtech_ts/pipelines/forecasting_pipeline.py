"""
Hourly Ad Metrics Forecasting Pipeline

Parts I-III of the case study on the hourly ad category data.

Pipeline Steps:
1. Load the hourly data and run quality checks
2. Summarize revenue per click / per impression by ad type
3. Build the hourly panel and decompose each series (STL)
4. Hold out the last day, fill gaps in the training data only
5. Fit seasonal naive, ETS and ARIMA per ad type and forecast the test day
6. Score forecasts (MASE etc.) and pick the best model per ad type
7. Turn the best forecasts into an hourly ad allocation
"""

from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import pandas as pd

from adtech_ts import config
from adtech_ts.data import loaders
from adtech_ts.diagnostics import quality
from adtech_ts.exploration import summary
from adtech_ts.forecasting import models, evaluation
from adtech_ts.optimization import allocation
from adtech_ts.viz import plots


def run_forecasting_analysis(
    data_dir: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
    cutoff: Union[str, pd.Timestamp] = config.TEST_CUTOFF,
    horizon: int = config.FORECAST_HORIZON,
    methods: Optional[List[str]] = None,
    value_col: str = "rpc",
    season_length: int = config.SEASON_LENGTH,
    explore_share: float = config.EXPLORE_SHARE,
    verbose: bool = True,
) -> Dict[str, Any]:
    """
    Run exploration, forecasting and ad selection on the hourly data.

    Parameters
    ----------
    data_dir : str or Path, optional
        Directory holding the hourly CSV. Defaults to ``config.DATA_DIR``.
    output_dir : str or Path, optional
        Where to write charts. No files are written when None.
    cutoff : str or Timestamp, default='2021-11-23'
        First timestamp of the test period
    horizon : int, default=23
        Hours to forecast
    methods : list of str, optional
        Subset of 'snaive', 'ets', 'arima'. Defaults to all three.
    value_col : str, default='rpc'
        Metric to model
    season_length : int, default=24
        Hours per seasonal cycle
    explore_share : float, default=0.1
        Traffic kept for non-best ad types in the allocation
    verbose : bool, default=True
        Print progress and results

    Returns
    -------
    Dict[str, Any]
        quality, ratios, stl (per ad type), forecasts, accuracy, best_models,
        choices, allocation
    """
    output_dir = Path(output_dir) if output_dir is not None else None
    if methods is None:
        methods = config.FORECAST_METHODS

    results = {}

    # ========================================================================
    # STEP 1: Load & check
    # ========================================================================
    if verbose:
        print("=" * 70)
        print("HOURLY AD METRICS FORECASTING PIPELINE")
        print("=" * 70)
        print("\n[1/7] Loading hourly ad data and checking quality...")

    ads = loaders.load_hourly_ad_data(data_dir, verbose=verbose)
    results['quality'] = quality.quality_report(ads, verbose=verbose)

    # ========================================================================
    # STEP 2: Summaries
    # ========================================================================
    if verbose:
        print("\n[2/7] Revenue per click / impression by ad type...")

    results['ratios'] = summary.revenue_ratios_by_ad_type(ads)
    if verbose:
        print(results['ratios'][["ad_type", "rpc", "rpi"]].to_string(index=False))

    # ========================================================================
    # STEP 3: Panel & STL
    # ========================================================================
    if verbose:
        print(f"\n[3/7] Building hourly {value_col} panel and STL decomposition...")

    panel = summary.to_hourly_panel(ads, value_col=value_col)
    results['stl'] = {}
    for column in panel.columns:
        results['stl'][column] = models.stl_decompose(panel[column], period=season_length)
        if output_dir is not None:
            fig = plots.plot_stl(results['stl'][column], title=f"STL: {column}")
            plots.save_figure(fig, output_dir / f"stl_{column}.png")

    if verbose:
        print(f"   ✓ {panel.shape[1]} ad types, {len(panel):,} hours, "
              f"{int(panel.isna().sum().sum()):,} missing hourly values")

    if output_dir is not None:
        plots.save_figure(plots.plot_series(panel, title=f"Hourly {value_col}", ylabel=value_col),
                          output_dir / f"hourly_{value_col}.png")

    # ========================================================================
    # STEP 4: Split & fill training gaps
    # ========================================================================
    if verbose:
        print(f"\n[4/7] Holding out data from {cutoff}...")

    train, test = evaluation.train_test_split_by_time(panel, cutoff)
    train_filled = pd.DataFrame(
        {column: models.interpolate_missing(train[column]) for column in train.columns}
    )
    if verbose:
        print(f"   ✓ Train: {len(train):,} hours, test: {len(test):,} hours")
        print(f"   ✓ Filled {int(train.isna().sum().sum()):,} training gaps (test data untouched)")

    # ========================================================================
    # STEP 5: Fit & forecast
    # ========================================================================
    if verbose:
        print(f"\n[5/7] Fitting {', '.join(methods)} and forecasting {horizon} hours...")

    results['forecasts'] = models.forecast_panel(
        train_filled, horizon=horizon, methods=methods, season_length=season_length, verbose=verbose
    )

    # ========================================================================
    # STEP 6: Accuracy
    # ========================================================================
    if verbose:
        print("\n[6/7] Scoring forecasts...")

    results['accuracy'] = evaluation.accuracy_table(
        results['forecasts'], test, train_filled, season_length=season_length
    )
    results['best_models'] = evaluation.best_models(results['accuracy'])

    if verbose:
        print(results['accuracy'].to_string(index=False, float_format=lambda x: f"{x:.3f}"))
        print("\n   Best model per ad type (MASE):")
        for _, row in results['best_models'].iterrows():
            print(f"   ✓ {row['ad_type']}: {row['model']} (MASE={row['MASE']:.3f})")

    if output_dir is not None:
        for column in panel.columns:
            own = results['forecasts'][results['forecasts']['ad_type'] == column]
            per_model = {m: g.set_index('ts')['forecast'] for m, g in own.groupby('model', sort=False)}
            fig = plots.plot_forecast(train_filled[column].iloc[-3 * season_length:], per_model,
                                      actual=test[column], title=f"Forecasts: {column}")
            plots.save_figure(fig, output_dir / f"forecast_{column}.png")

    # ========================================================================
    # STEP 7: Ad selection
    # ========================================================================
    if verbose:
        print("\n[7/7] Choosing ads from the best forecasts...")

    best = results['best_models'][['ad_type', 'model']]
    chosen = results['forecasts'].merge(best, on=['ad_type', 'model'], how='inner')
    wide = chosen.pivot(index='ts', columns='ad_type', values='forecast')

    results['choices'] = allocation.choose_ads(wide)
    results['allocation'] = allocation.allocate_traffic(wide, explore_share=explore_share)

    if verbose:
        counts = results['choices']['ad_type'].value_counts()
        for ad_type, n in counts.items():
            print(f"   ✓ {ad_type}: best in {n} of {len(wide)} hours")
        print(f"   ✓ {explore_share:.0%} of traffic kept for the other ad types so tomorrow's")
        print("     training data still covers every category")

        print("\n" + "=" * 70)
        print("✅ Forecasting analysis complete")
        print("=" * 70 + "\n")

    return results
