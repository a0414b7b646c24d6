"""
Data Loading Utilities for the Ad-Tech Case Study
=================================================

Loads the two data sets used throughout the analysis and coerces their columns
into the types the rest of the package expects.

Datasets:
---------
1. Hourly ad category metrics
   - One row per (hour, ad_type) with impressions, clicks and revenue
   - Use: exploration, STL decomposition, forecasting

2. Optimizer rollout experiment (day1.csv, day2.csv, day3.csv)
   - One row per session: variation, date, revenue per session (rps)
   - Use: confidence intervals per variation, combined-view drill-down

Malformed cells never abort a load. Unparseable dates become NaT and
unparseable numbers become NaN; downstream statistics exclude those rows and
report how many were dropped.

Example Usage:
--------------
>>> from adtech_ts.data import loaders
>>>
>>> ads = loaders.load_hourly_ad_data("./data")
>>> day1 = loaders.load_experiment_day("./data/day1.csv")
>>> days = loaders.load_rollout_days("./data")
>>> print(list(days))
['day1', 'day2', 'day3']
"""

from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from adtech_ts import config


# Dataset metadata registry
DATASETS = {
    "hourly_ad_data": {
        "name": "Hourly Ad Category Metrics",
        "file": config.HOURLY_AD_FILE,
        "description": "Hourly impressions, clicks and revenue per ad category",
        "columns": ["ts", "ad_type", "imps", "clicks", "total_rev", "rpc"],
    },
    "rollout": {
        "name": "Optimizer Rollout Experiment",
        "file": config.ROLLOUT_DAY_FILES,
        "description": "Session-level revenue for baseline vs optimizer, "
                       "treatment share 20% / 50% / 80% over three days",
        "columns": ["variation", "date", "rps"],
    },
}

PathLike = Union[str, Path]


def get_dataset_info(dataset_name: str) -> Dict[str, Any]:
    """
    Get metadata about available datasets.

    Parameters
    ----------
    dataset_name : str
        One of: 'hourly_ad_data', 'rollout'

    Returns
    -------
    dict
        Dataset metadata including file name(s) and expected columns
    """
    if dataset_name not in DATASETS:
        raise ValueError(
            f"Unknown dataset '{dataset_name}'. "
            f"Available: {list(DATASETS.keys())}"
        )
    return DATASETS[dataset_name]


def _require_file(file_path: Path) -> None:
    if not file_path.exists():
        raise FileNotFoundError(
            f"Dataset not found at: {file_path}\n\n"
            "Place the case-study CSV files in the data directory:\n"
            f"  {config.HOURLY_AD_FILE}\n"
            f"  {', '.join(config.ROLLOUT_DAY_FILES)}\n\n"
            "Or point ADTECH_TS_DATA_DIR at the directory that holds them."
        )


def load_hourly_ad_data(
    data_dir: Optional[PathLike] = None,
    file_name: str = config.HOURLY_AD_FILE,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Load the hourly ad category data set.

    Parameters
    ----------
    data_dir : str or Path, optional
        Directory containing the CSV. Defaults to ``config.DATA_DIR``.
    file_name : str
        CSV file name inside ``data_dir``.
    verbose : bool, default=False
        Print a short load summary.

    Returns
    -------
    pd.DataFrame
        Columns: ts (datetime64), ad_type (category), imps, clicks,
        total_rev, rpc (float). ``rpc`` is derived as total_rev / clicks when
        the file does not carry it.

    Raises
    ------
    FileNotFoundError
        If the CSV does not exist
    KeyError
        If a required column is missing
    """
    data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
    file_path = data_dir / file_name
    _require_file(file_path)

    df = pd.read_csv(file_path)
    df.columns = df.columns.str.strip().str.lower().str.replace(" ", "_")

    required = ["ts", "ad_type", "imps", "clicks", "total_rev"]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise KeyError(f"{file_path} is missing required columns: {missing}")

    df["ts"] = pd.to_datetime(df["ts"], errors="coerce")
    df["ad_type"] = df["ad_type"].astype("category")
    for col in ["imps", "clicks", "total_rev"]:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    if "rpc" in df.columns:
        df["rpc"] = pd.to_numeric(df["rpc"], errors="coerce")
    else:
        with np.errstate(divide="ignore", invalid="ignore"):
            df["rpc"] = df["total_rev"] / df["clicks"].replace(0, np.nan)

    df = df.sort_values(["ad_type", "ts"], kind="stable").reset_index(drop=True)

    if verbose:
        print(f"Loaded hourly ad data: {len(df):,} rows, {df['ad_type'].nunique()} ad types")
        print(f"  Range: {df['ts'].min()} -> {df['ts'].max()}")

    return df


def load_experiment_day(
    file_path: PathLike,
    variations: Optional[Sequence[str]] = None,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Load one day of the rollout experiment.

    Parameters
    ----------
    file_path : str or Path
        Path to a dayN.csv file.
    variations : sequence of str, optional
        Allowed variation labels. Labels outside this set are treated as
        missing (and later excluded from statistics). When None every
        non-empty label is kept.
    verbose : bool, default=False
        Print a short load summary.

    Returns
    -------
    pd.DataFrame
        Columns: variation (category), date (datetime64, normalized to the
        day), rps (float). Extra columns in the file are preserved.

    Raises
    ------
    FileNotFoundError
        If the CSV does not exist
    KeyError
        If variation, date or rps is not present
    """
    file_path = Path(file_path)
    _require_file(file_path)

    # labels like "1" or "A" must stay text, whatever the header's case
    header = pd.read_csv(file_path, nrows=0).columns
    text_cols = {c: str for c in header if str(c).strip().lower() == "variation"}
    df = pd.read_csv(file_path, dtype=text_cols)
    df.columns = df.columns.str.strip().str.lower()

    missing = [c for c in ["variation", "date", "rps"] if c not in df.columns]
    if missing:
        raise KeyError(f"{file_path} is missing required columns: {missing}")

    labels = df["variation"].astype("string").str.strip()
    labels = labels.mask((labels == "").fillna(False))
    if variations is not None:
        labels = labels.where(labels.isin(list(variations)))
    df["variation"] = labels.astype(object).where(labels.notna(), np.nan).astype("category")
    df["date"] = pd.to_datetime(df["date"], errors="coerce").dt.normalize()
    df["rps"] = pd.to_numeric(df["rps"], errors="coerce")

    if verbose:
        print(f"Loaded {file_path.name}: {len(df):,} sessions")
        for label, n in df["variation"].value_counts(sort=False).items():
            print(f"  {label}: {n:,}")

    return df


def load_rollout_days(
    data_dir: Optional[PathLike] = None,
    file_names: Optional[Sequence[str]] = None,
    variations: Optional[Sequence[str]] = None,
    verbose: bool = False,
) -> Dict[str, pd.DataFrame]:
    """
    Load every day of the rollout, keyed by file stem ('day1', ...).

    The dict preserves the order of ``file_names``. A missing file raises
    immediately; use :func:`load_experiment_day` per file to tolerate gaps.
    """
    data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
    if file_names is None:
        file_names = config.ROLLOUT_DAY_FILES

    days = {}
    for name in file_names:
        path = data_dir / name
        days[path.stem] = load_experiment_day(path, variations=variations, verbose=verbose)
    return days
