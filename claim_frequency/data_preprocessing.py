# claim_frequency/data_preprocessing.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from claim_frequency.config import PreprocessConfig


# -------------------------
# Utility / helpers
# -------------------------
def _coerce_numeric(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    out = df.copy()
    for c in cols:
        if c in out.columns:
            out[c] = pd.to_numeric(out[c], errors="coerce")
    return out


def load_claims(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    # Some freMTPL2 exports quote string factors, e.g. "'B12'"
    for c in df.select_dtypes(include=["object"]).columns:
        df[c] = df[c].map(lambda v: v.strip("'") if isinstance(v, str) else v)
    return df


# -------------------------
# Profiling / reporting
# -------------------------
def profile_missingness(df: pd.DataFrame) -> pd.DataFrame:
    """Return a missingness profile (count + pct) per column."""
    miss_cnt = df.isna().sum()
    miss_pct = (miss_cnt / len(df)).replace([np.inf, np.nan], 0.0)
    prof = (
        pd.DataFrame({"missing_count": miss_cnt, "missing_pct": miss_pct})
        .sort_values(["missing_count", "missing_pct"], ascending=False)
    )
    return prof


def profile_portfolio(df: pd.DataFrame, cfg: PreprocessConfig) -> pd.Series:
    """Exposure, claim totals and the observed claim frequency."""
    exposure = float(df[cfg.exposure_col].sum())
    claims = float(df[cfg.claim_col].sum())
    return pd.Series(
        {
            "n_policies": float(len(df)),
            "exposure": exposure,
            "claims": claims,
            "frequency": claims / exposure if exposure > 0 else np.nan,
        }
    )


# -------------------------
# Flags (non-destructive: add columns)
# -------------------------
def add_validity_flags(df: pd.DataFrame, cfg: PreprocessConfig) -> pd.DataFrame:
    """
    Adds:
      - invalid_exposure: missing or non-positive exposure
      - invalid_claim_count: missing or negative claim count
      - is_duplicate_id: repeated policy id (first occurrence kept)
      - invalid_any
    """
    out = df.copy()

    if cfg.id_column in out.columns:
        out["is_duplicate_id"] = out[cfg.id_column].duplicated(keep="first")
    else:
        out["is_duplicate_id"] = False

    if cfg.exposure_col in out.columns:
        out["invalid_exposure"] = out[cfg.exposure_col].isna() | (out[cfg.exposure_col] <= 0)
    else:
        out["invalid_exposure"] = True

    if cfg.claim_col in out.columns:
        out["invalid_claim_count"] = out[cfg.claim_col].isna() | (out[cfg.claim_col] < 0)
    else:
        out["invalid_claim_count"] = True

    out["invalid_any"] = out["invalid_exposure"] | out["invalid_claim_count"] | out["is_duplicate_id"]
    return out


# -------------------------
# Load-time transforms
# -------------------------
def cap_claims(df: pd.DataFrame, cfg: PreprocessConfig) -> pd.DataFrame:
    """Clip claim counts to [0, claim_cap] and exposure to at most max_exposure."""
    out = df.copy()
    out[cfg.claim_col] = out[cfg.claim_col].clip(lower=0, upper=cfg.claim_cap).astype(int)
    out[cfg.exposure_col] = out[cfg.exposure_col].clip(upper=cfg.max_exposure)
    return out


def cast_categoricals(df: pd.DataFrame, cfg: PreprocessConfig) -> pd.DataFrame:
    out = df.copy()
    for c in cfg.categorical_columns:
        if c in out.columns:
            out[c] = out[c].astype("string").fillna("unknown").astype(str)
    return out


# -------------------------
# Pipeline runner
# -------------------------
def run_preprocessing(df: pd.DataFrame, cfg: Optional[PreprocessConfig] = None) -> Dict[str, Any]:
    """
    Runs the load-time preprocessing and returns:
      - df_clean: valid rows, capped and with categoricals cast
      - reports: lightweight summaries for quick inspection
    """
    cfg = cfg or PreprocessConfig()

    # Step 1: types + flags
    df1 = _coerce_numeric(df, cfg.numeric_columns)
    df1 = add_validity_flags(df1, cfg)
    n_invalid = int(df1["invalid_any"].sum())

    # Step 2: drop invalid rows
    df1 = df1.loc[~df1["invalid_any"]].copy()
    df1 = df1.drop(columns=["invalid_exposure", "invalid_claim_count", "is_duplicate_id", "invalid_any"])

    # Step 3: capping + categorical cast
    df2 = cap_claims(df1, cfg)
    df2 = cast_categoricals(df2, cfg)
    df2 = df2.reset_index(drop=True)

    reports = {
        "missingness": profile_missingness(df2),
        "portfolio_raw": profile_portfolio(df1, cfg),
        "portfolio_clean": profile_portfolio(df2, cfg),
        "n_invalid": n_invalid,
    }

    return {"df_clean": df2, "reports": reports}
