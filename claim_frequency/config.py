"""
Configuration loading utilities.

This module provides helper functions to load YAML configuration files
from the conf/ directory and convert them into Python dictionaries or
dataclass-based configuration objects used across the project.
"""


from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np
import yaml

from claim_frequency.feature_engineering import FeatureConfig
from claim_frequency.split import SplitConfig


@dataclass(frozen=True)
class PreprocessConfig:
    # Columns
    id_column: str = "IDpol"
    claim_col: str = "ClaimNb"
    exposure_col: str = "Exposure"

    numeric_columns: Tuple[str, ...] = (
        "ClaimNb",
        "Exposure",
        "VehPower",
        "VehAge",
        "DrivAge",
        "BonusMalus",
        "Density",
    )

    # Cast to string categories before modelling
    categorical_columns: Tuple[str, ...] = (
        "VehBrand",
        "VehGas",
        "Area",
        "Region",
    )

    # Capping applied at load time
    claim_cap: int = 4
    max_exposure: float = 1.0


def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _tuple(raw: Dict[str, Any], key: str, default: Tuple) -> Tuple:
    v = raw.get(key, list(default))
    return tuple(v) if isinstance(v, (list, tuple)) else default


def preprocess_config_from_yaml(path: str | Path) -> PreprocessConfig:
    raw = load_yaml(path)
    defaults = PreprocessConfig()

    kwargs: Dict[str, Any] = dict(raw)
    kwargs["numeric_columns"] = _tuple(raw, "numeric_columns", defaults.numeric_columns)
    kwargs["categorical_columns"] = _tuple(raw, "categorical_columns", defaults.categorical_columns)

    return PreprocessConfig(**kwargs)


def feature_config_from_yaml(path: str | Path) -> FeatureConfig:
    raw = load_yaml(path)
    defaults = FeatureConfig()

    kwargs = dict(raw)
    kwargs["cat_cols"] = _tuple(raw, "cat_cols", defaults.cat_cols)
    kwargs["num_cols"] = _tuple(raw, "num_cols", defaults.num_cols)
    kwargs["driver_age_labels"] = _tuple(raw, "driver_age_labels", defaults.driver_age_labels)
    # null upper edge = open-ended band
    bins = raw.get("driver_age_bins", defaults.driver_age_bins)
    kwargs["driver_age_bins"] = tuple(np.inf if b is None else float(b) for b in bins)

    return FeatureConfig(**kwargs)


def split_config_from_dict(raw: Dict[str, Any]) -> SplitConfig:
    return SplitConfig(
        train_fraction=float(raw.get("train_fraction", SplitConfig().train_fraction)),
        seed=int(raw.get("seed", SplitConfig().seed)),
    )


def model_config_from_yaml(path: str | Path) -> dict:
    return load_yaml(path)
