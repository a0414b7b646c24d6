"""
Optimizer Rollout A/B Pipeline

Part IV of the case study: the forecast-driven optimizer was rolled out over
three days at 20%, 50% and 80% of traffic. Each day is analysed on its own,
then the three days are combined.

Pipeline Steps:
1. Load each day (a missing or unreadable day is reported and skipped)
2. Check the traffic split against the planned share (SRM)
3. Confidence interval of revenue per session per variation
4. Welch comparison of optimizer vs baseline
5. Combined view: recompute intervals from the raw rows of all days
6. Drill down by variation × date (traffic mix, Simpson check)
"""

from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Union

import pandas as pd

from adtech_ts import config
from adtech_ts.data import loaders
from adtech_ts.core import intervals, comparison, randomization
from adtech_ts.diagnostics import mix_shift
from adtech_ts.viz import plots


def _infer_treatment(observations: pd.DataFrame, baseline: str) -> Optional[str]:
    labels = [v for v in pd.unique(observations["variation"].dropna()) if v != baseline]
    return labels[0] if len(labels) == 1 else None


def _print_table(table: pd.DataFrame) -> None:
    formatted = table.copy()
    if "date" in formatted.columns:
        formatted["date"] = pd.to_datetime(formatted["date"]).dt.strftime("%Y-%m-%d")
    print(formatted.to_string(index=False, float_format=lambda x: f"{x:.4f}"))


def analyze_day(
    observations: pd.DataFrame,
    baseline: str = config.BASELINE_VARIATION,
    treatment: Optional[str] = None,
    expected_treatment_share: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Intervals, split check and comparison for one observation set.

    Returns
    -------
    dict
        - intervals: ``compute_group_statistics`` result (by variation)
        - treatment: Label compared against the baseline, or None
        - split_check: ``traffic_split_check`` result, or None when the plan
          or an arm is missing
        - comparison: ``compare_variations`` result, or None when an arm has
          fewer than 2 usable rows
    """
    result = {
        'intervals': intervals.compute_group_statistics(observations, group_keys=("variation",)),
        'treatment': treatment or _infer_treatment(observations, baseline),
        'split_check': None,
        'comparison': None,
    }
    treatment = result['treatment']
    if treatment is None:
        return result

    counts = randomization.observed_split(observations, baseline, treatment)
    if expected_treatment_share is not None and counts['n_control'] > 0 and counts['n_treatment'] > 0:
        result['split_check'] = randomization.traffic_split_check(
            counts['n_control'], counts['n_treatment'], expected_treatment_share
        )

    try:
        result['comparison'] = comparison.compare_variations(observations, baseline, treatment)
    except ValueError as e:
        result['comparison_error'] = str(e)

    return result


def run_rollout_analysis(
    data_dir: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
    file_names: Optional[Sequence[str]] = None,
    baseline: str = config.BASELINE_VARIATION,
    treatment: Optional[str] = None,
    schedule: Optional[Dict[str, float]] = None,
    verbose: bool = True,
) -> Dict[str, Any]:
    """
    Run the day-by-day and combined rollout analysis.

    Parameters
    ----------
    data_dir : str or Path, optional
        Directory with day1.csv..day3.csv. Defaults to ``config.DATA_DIR``.
    output_dir : str or Path, optional
        Where to write interval charts. No files are written when None.
    file_names : sequence of str, optional
        Day files, in rollout order. Defaults to ``config.ROLLOUT_DAY_FILES``.
    baseline : str, default='baseline'
        Label of the control variation
    treatment : str, optional
        Label of the optimizer variation; inferred when there is exactly one
        other label
    schedule : dict, optional
        Planned treatment share per day name. Defaults to
        ``config.ROLLOUT_TREATMENT_SHARE``.
    verbose : bool, default=True
        Print progress and results

    Returns
    -------
    Dict[str, Any]
        - days: per-day results from :func:`analyze_day` (plus 'n_rows')
        - errors: day name -> error message for days that failed to load
        - combined: intervals by variation and by variation × date, the daily
          breakdown, the naive average of daily means and the Simpson check

    Raises
    ------
    RuntimeError
        If no day could be loaded
    """
    data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
    output_dir = Path(output_dir) if output_dir is not None else None
    if file_names is None:
        file_names = config.ROLLOUT_DAY_FILES
    if schedule is None:
        schedule = config.ROLLOUT_TREATMENT_SHARE

    results = {'days': {}, 'errors': {}, 'combined': None}
    loaded = {}

    if verbose:
        print("=" * 70)
        print("OPTIMIZER ROLLOUT A/B PIPELINE")
        print("=" * 70)

    # ========================================================================
    # STEPS 1-4: Day-by-day analysis
    # ========================================================================
    for i, name in enumerate(file_names, start=1):
        day = Path(name).stem
        share = schedule.get(day)

        if verbose:
            planned = f"{share:.0%} to optimizer" if share is not None else "unknown split"
            print(f"\n[{i}/{len(file_names)}] {day} ({planned})")

        try:
            observations = loaders.load_experiment_day(data_dir / name)
            if observations.empty:
                raise ValueError(f"{data_dir / name} has no rows")
        except (OSError, UnicodeDecodeError, KeyError, ValueError,
                pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            results['errors'][day] = str(e)
            if verbose:
                print(f"   ✗ Could not load {name}: {str(e).splitlines()[0]}")
            continue

        loaded[day] = observations
        day_result = analyze_day(observations, baseline, treatment, share)
        day_result['n_rows'] = len(observations)
        results['days'][day] = day_result

        if verbose:
            stats = day_result['intervals']
            print(f"   ✓ {stats['n_observations']:,} sessions, {stats['n_excluded']:,} excluded")
            split = day_result['split_check']
            if split is not None:
                status = "FAILED" if split['srm_severe'] else ("WARNING" if split['srm_warning'] else "PASSED")
                print(f"   ✓ Traffic split {status}: observed {split['observed_treatment_share']:.1%} "
                      f"vs planned {split['expected_treatment_share']:.0%} (p={split['p_value']:.4f})")
            _print_table(stats['table'])
            comp = day_result['comparison']
            if comp is not None:
                print(f"   Lift {comp['treatment']} vs {comp['control']}: "
                      f"{comp['difference']:+.4f} ({comp['relative_lift']:+.1%}), "
                      f"p={comp['p_value']:.4f}, better: {comp['better'] or 'inconclusive'}")

        if output_dir is not None:
            fig = plots.plot_confidence_intervals(day_result['intervals']['table'], title=f"{day}: RPS by variation")
            plots.save_figure(fig, output_dir / f"{day}_intervals.png")

    if not loaded:
        raise RuntimeError(f"No rollout day could be loaded from {data_dir}")

    # ========================================================================
    # STEP 5: Combined view
    # ========================================================================
    if verbose:
        print(f"\n[combined] All {len(loaded)} loaded days together")

    combined = intervals.combine(list(loaded.values()))
    combined_result = analyze_day(combined, baseline, treatment)
    by_day = intervals.compute_group_statistics(combined, group_keys=("variation", "date"))

    daily_tables = [r['intervals']['table'] for r in results['days'].values()]
    results['combined'] = {
        **combined_result,
        'n_rows': len(combined),
        'by_variation_date': by_day,
        'breakdown': mix_shift.daily_breakdown(combined),
        'average_of_daily_means': mix_shift.average_of_daily_means(daily_tables),
        'simpson': None,
    }

    # ========================================================================
    # STEP 6: Drill down
    # ========================================================================
    treatment_label = combined_result['treatment']
    if treatment_label is not None:
        results['combined']['simpson'] = mix_shift.simpson_check(combined, baseline, treatment_label)

    if verbose:
        _print_table(combined_result['intervals']['table'])
        print("\n   By variation and date:")
        _print_table(by_day['table'])

        simpson = results['combined']['simpson']
        if simpson is not None and simpson['reversal']:
            print(f"\n   ⚠️  {simpson['consistent_daily_winner']} wins on every day, "
                  f"but {simpson['pooled_winner']} wins on the pooled data.")
            print("\n📚 LEARNING: Simpson's paradox in a staged rollout")
            print("   - The treatment share grew from day to day")
            print("   - Revenue per session also moved from day to day")
            print("   - Pooling mixes the day effect into the variation effect")
            print("   - Compare within each day (or weight days equally per arm)")
            print("     instead of reading the pooled interval")
        print("\n   Average of daily means (ignores session counts):")
        print(results['combined']['average_of_daily_means'].to_string())

    if output_dir is not None:
        fig = plots.plot_confidence_intervals(combined_result['intervals']['table'], title="Combined: RPS by variation")
        plots.save_figure(fig, output_dir / "combined_intervals.png")
        fig = plots.plot_daily_rps(results['combined']['breakdown'], title="Mean RPS by date")
        plots.save_figure(fig, output_dir / "combined_daily_rps.png")

    if verbose:
        print("\n" + "=" * 70)
        print("✅ Rollout analysis complete")
        print("=" * 70 + "\n")

    return results
