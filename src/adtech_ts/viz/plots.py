"""
Plots for the Case Study
========================

matplotlib figures for every chart in the analysis. Functions return the
Figure and never call ``show()``; use :func:`save_figure` to write a PNG.

Example Usage:
--------------
>>> from adtech_ts.viz import plots
>>>
>>> fig = plots.plot_confidence_intervals(result['table'], title='Day 1')
>>> plots.save_figure(fig, 'output/day1_intervals.png')
"""

from pathlib import Path
from typing import Dict, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def _group_labels(table: pd.DataFrame) -> list:
    if "date" in table.columns:
        return [
            f"{v} ({pd.Timestamp(d):%Y-%m-%d})" for v, d in zip(table["variation"], table["date"])
        ]
    return [str(v) for v in table["variation"]]


def plot_confidence_intervals(
    table: pd.DataFrame,
    title: Optional[str] = None,
    metric_label: str = "Revenue per session",
) -> plt.Figure:
    """
    Point estimate with error bar per group, groups on the vertical axis.

    Parameters
    ----------
    table : pd.DataFrame
        ``table`` from ``intervals.compute_group_statistics``
    title : str, optional
        Axes title
    metric_label : str
        Horizontal axis label

    Returns
    -------
    matplotlib.figure.Figure
    """
    labels = _group_labels(table)
    positions = np.arange(len(table))
    means = table["mean"].to_numpy(dtype=float)
    xerr = np.vstack([
        means - table["lower"].to_numpy(dtype=float),
        table["upper"].to_numpy(dtype=float) - means,
    ])

    fig, ax = plt.subplots(figsize=(7, 1.2 + 0.6 * max(len(table), 1)))
    ax.errorbar(means, positions, xerr=xerr, fmt="o", capsize=4)

    undefined = ~table["interval_defined"].to_numpy(dtype=bool)
    if undefined.any():
        ax.scatter(means[undefined], positions[undefined], marker="x", color="red",
                   zorder=3, label="single observation")
        ax.legend(loc="best")

    ax.set_yticks(positions)
    ax.set_yticklabels(labels)
    ax.set_xlabel(metric_label)
    if title:
        ax.set_title(title)
    ax.grid(axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_daily_rps(breakdown: pd.DataFrame, title: Optional[str] = None) -> plt.Figure:
    """
    Mean RPS by date, one colour per variation, marker area by sessions.

    Parameters
    ----------
    breakdown : pd.DataFrame
        Output of ``mix_shift.daily_breakdown``
    """
    fig, ax = plt.subplots(figsize=(8, 5))
    max_n = max(breakdown["n"].max(), 1)

    for variation, group in breakdown.groupby("variation", sort=False):
        sizes = 30 + 400 * group["n"].to_numpy() / max_n
        ax.scatter(group["date"], group["mean_rps"], s=sizes, alpha=0.7, label=str(variation))

    ax.set_xlabel("Date")
    ax.set_ylabel("Mean revenue per session")
    ax.legend(title="Variation")
    if title:
        ax.set_title(title)
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_series(panel: pd.DataFrame, title: Optional[str] = None, ylabel: str = "RPC") -> plt.Figure:
    """One line per column of a wide hourly panel."""
    fig, ax = plt.subplots(figsize=(11, 5))
    for column in panel.columns:
        ax.plot(panel.index, panel[column], marker=".", linewidth=0.8, label=str(column))
    ax.set_ylabel(ylabel)
    ax.legend(title=panel.columns.name)
    if title:
        ax.set_title(title)
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_forecast(
    history: pd.Series,
    forecasts: Dict[str, pd.Series],
    actual: Optional[pd.Series] = None,
    title: Optional[str] = None,
) -> plt.Figure:
    """Training history, optional held-out actuals, and one line per model."""
    fig, ax = plt.subplots(figsize=(11, 5))
    ax.plot(history.index, history.to_numpy(), color="black", linewidth=0.8, label="history")
    if actual is not None:
        ax.plot(actual.index, actual.to_numpy(), color="grey", linewidth=1.5, label="actual")
    for name, values in forecasts.items():
        ax.plot(values.index, values.to_numpy(), linewidth=1.5, label=name)
    ax.legend()
    if title:
        ax.set_title(title)
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_stl(components: pd.DataFrame, title: Optional[str] = None) -> plt.Figure:
    """Stacked panels for observed, trend, seasonal and remainder."""
    columns = ["observed", "trend", "seasonal", "resid"]
    fig, axes = plt.subplots(len(columns), 1, figsize=(11, 8), sharex=True)
    for ax, column in zip(axes, columns):
        ax.plot(components.index, components[column].to_numpy(), linewidth=0.8)
        ax.set_ylabel(column)
    if title:
        axes[0].set_title(title)
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def save_figure(fig: plt.Figure, path: Union[str, Path], dpi: int = 150) -> Path:
    """Write ``fig`` as an image (parent directories created) and close it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return path
