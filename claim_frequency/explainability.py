# claim_frequency/explainability.py
from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from sklearn.inspection import permutation_importance

from claim_frequency.metrics import get_deviance
from claim_frequency.models import ModelHandle


def get_model_based_feature_importance(handle: ModelHandle) -> Optional[pd.DataFrame]:
    """Absolute GLM coefficients or tree importances on the encoded features; None otherwise."""
    model = handle.estimator

    if hasattr(model, "feature_importances_"):
        imp = np.asarray(model.feature_importances_, dtype=float)
    elif hasattr(model, "coef_"):
        imp = np.abs(np.asarray(model.coef_, dtype=float))
    else:
        return None

    return (
        pd.DataFrame({"feature": handle.feature_names, "importance": imp})
        .sort_values("importance", ascending=False)
        .reset_index(drop=True)
    )


def _deviance_scorer(min_prediction: float):
    def score(estimator, X, y, sample_weight=None):
        pred = np.maximum(estimator.predict(X), min_prediction)
        return -get_deviance(pred, y, weights=sample_weight)

    return score


def get_permutation_importance_df(
    handle: ModelHandle,
    df: pd.DataFrame,
    *,
    n_repeats: int = 5,
    random_state: int = 42,
    min_prediction: float = 1e-6,
) -> pd.DataFrame:
    """
    Permutation importance of the raw predictors, scored by Poisson deviance
    of the predicted claim frequency.
    """
    X = df[handle.predictor_columns]
    y = df[handle.target_column].to_numpy(dtype=float)
    weights = None
    if handle.offset_column is not None:
        weights = df[handle.offset_column].to_numpy(dtype=float)
        y = y / weights

    r = permutation_importance(
        handle.pipeline,
        X,
        y,
        n_repeats=n_repeats,
        random_state=random_state,
        scoring=_deviance_scorer(min_prediction),
        sample_weight=weights,
    )
    return (
        pd.DataFrame({"feature": X.columns, "importance": r.importances_mean, "importance_std": r.importances_std})
        .sort_values("importance", ascending=False)
        .reset_index(drop=True)
    )
