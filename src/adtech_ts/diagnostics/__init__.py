"""Data quality and rollout drill-down diagnostics."""

from adtech_ts.diagnostics import quality, mix_shift

__all__ = ["quality", "mix_shift"]
