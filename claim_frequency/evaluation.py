# claim_frequency/evaluation.py
from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from claim_frequency.feature_engineering import FeatureConfig
from claim_frequency.metrics import frequency_metrics
from claim_frequency.models import ModelHandle, ModelingService


def _score_row(service: ModelingService, handle: ModelHandle, train_df, test_df, cfg: FeatureConfig) -> Dict[str, Any]:
    tr = frequency_metrics(train_df[cfg.target_col], service.predict(handle, train_df))
    te = frequency_metrics(test_df[cfg.target_col], service.predict(handle, test_df))

    return {
        "Model": handle.model_id,
        "Kind": handle.model_kind,

        "Train_Deviance": tr["Deviance"],
        "Train_MAE": tr["MAE"],
        "Train_RMSE": tr["RMSE"],

        "Test_Deviance": te["Deviance"],
        "Test_MAE": te["MAE"],
        "Test_RMSE": te["RMSE"],
        "Test_Predicted_Claims": te["Predicted_Total"],
        "Test_Observed_Claims": te["Observed_Total"],
    }


def evaluate_models(
    service: ModelingService,
    model_specs: Dict[str, Dict[str, Any]],
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    cfg: FeatureConfig,
) -> tuple[pd.DataFrame, Dict[str, ModelHandle]]:
    """
    model_specs example:
      {"GLM": {"kind": "glm", "params": {"alpha": 0.0}}, "GBM": {"kind": "gbm"}}

    Returns the comparison table (sorted by Test_Deviance) and the fitted handles by name.
    """
    rows = []
    handles: Dict[str, ModelHandle] = {}

    for name, spec in model_specs.items():
        handle = service.fit(
            train_df,
            target_column=cfg.target_col,
            offset_column=cfg.exposure_col,
            predictor_columns=cfg.predictor_cols,
            model_kind=spec["kind"],
            hyperparameters=spec.get("params"),
        )
        handles[name] = handle

        row = _score_row(service, handle, train_df, test_df, cfg)
        row["Model"] = name
        rows.append(row)

    results = pd.DataFrame(rows).sort_values("Test_Deviance", ascending=True).reset_index(drop=True)
    return results, handles


def rescore_search(
    service: ModelingService,
    handles: Sequence[ModelHandle],
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    cfg: FeatureConfig,
) -> pd.DataFrame:
    """Score ranked search results on the holdout so they compare with evaluate_models()."""
    rows: List[Dict[str, Any]] = []
    for rank, handle in enumerate(handles, start=1):
        row = _score_row(service, handle, train_df, test_df, cfg)
        row["Search_Rank"] = rank
        row["Search_Metric"] = handle.metric
        row["Params"] = handle.hyperparameters
        rows.append(row)
    return pd.DataFrame(rows).sort_values("Test_Deviance", ascending=True).reset_index(drop=True)
