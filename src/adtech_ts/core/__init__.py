"""Core statistical methods for the rollout analysis."""

from adtech_ts.core import intervals, comparison, randomization

__all__ = ["intervals", "comparison", "randomization"]
