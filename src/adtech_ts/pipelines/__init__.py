"""
Pipeline demonstrations for each part of the case study.

Available pipelines:
- rollout_pipeline: Day-by-day and combined A/B analysis of the optimizer rollout
- forecasting_pipeline: Exploration, forecasting and ad selection on hourly data
"""

# Lazy imports so `python -m adtech_ts.pipelines.<module>` does not import the
# module twice (RuntimeWarning) and the package import stays cheap.

__all__ = [
    'run_rollout_analysis',
    'run_forecasting_analysis',
]


def __getattr__(name: str):
    """Import pipeline entry points on first access."""
    if name == 'run_rollout_analysis':
        from adtech_ts.pipelines.rollout_pipeline import run_rollout_analysis
        return run_rollout_analysis
    elif name == 'run_forecasting_analysis':
        from adtech_ts.pipelines.forecasting_pipeline import run_forecasting_analysis
        return run_forecasting_analysis
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
