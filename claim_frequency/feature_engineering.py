"""
Feature engineering for motor third-party liability claim frequency.

Builds the model-ready design matrix shared by every model kind: a few
derived rating factors plus a scikit-learn ColumnTransformer that one-hot
encodes categorical factors and optionally standardises numeric ones.
"""


from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler


@dataclass(frozen=True)
class FeatureConfig:
    target_col: str = "ClaimNb"
    exposure_col: str = "Exposure"

    cat_cols: Tuple[str, ...] = (
        "VehBrand",
        "VehGas",
        "Area",
        "Region",
        "DrivAge_Bin",
    )

    num_cols: Tuple[str, ...] = (
        "VehPower",
        "VehAge",
        "DrivAge",
        "BonusMalus",
        "LogDensity",
    )

    density_col: str = "Density"

    driver_age_col: str = "DrivAge"
    driver_age_bins: Tuple[float, ...] = (0, 21, 25, 30, 40, 50, 60, 75, np.inf)
    driver_age_labels: Tuple[str, ...] = ("18_21", "22_25", "26_30", "31_40", "41_50", "51_60", "61_75", "75_plus")

    @property
    def predictor_cols(self) -> List[str]:
        return list(self.cat_cols) + list(self.num_cols)


def _bin_driver_age(age: pd.Series, bins: Tuple[float, ...], labels: Tuple[str, ...]) -> pd.Series:
    a = pd.to_numeric(age, errors="coerce")
    return pd.cut(a, bins=bins, labels=labels, include_lowest=True)


def add_engineered_features(df: pd.DataFrame, cfg: FeatureConfig) -> pd.DataFrame:
    """
    Adds:
      - LogDensity: log of population density (heavy right tail)
      - DrivAge_Bin: banded driver age
    """
    out = df.copy()

    if cfg.density_col in out.columns:
        dens = pd.to_numeric(out[cfg.density_col], errors="coerce").clip(lower=1.0)
        out["LogDensity"] = np.log(dens)

    if cfg.driver_age_col in out.columns:
        out["DrivAge_Bin"] = (
            _bin_driver_age(out[cfg.driver_age_col], cfg.driver_age_bins, cfg.driver_age_labels)
            .astype("string")
            .fillna("unknown")
            .astype(str)
        )
    return out


def split_predictors(df: pd.DataFrame, predictor_cols: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split predictors into (categorical, numeric) by dtype."""
    cat, num = [], []
    for c in predictor_cols:
        (num if pd.api.types.is_numeric_dtype(df[c]) else cat).append(c)
    return cat, num


def build_preprocessor(cat_cols: Sequence[str], num_cols: Sequence[str], scale_numeric: bool = True) -> ColumnTransformer:
    numeric = StandardScaler() if scale_numeric else "passthrough"
    return ColumnTransformer(
        transformers=[
            ("cat", OneHotEncoder(handle_unknown="ignore", sparse_output=False), list(cat_cols)),
            ("num", numeric, list(num_cols)),
        ]
    )
