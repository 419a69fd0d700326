"""
Modeling service for claim-frequency models.

A narrow fit / predict / search interface over scikit-learn estimators.
Callers hand over a training DataFrame plus column names and receive an
opaque ModelHandle; the estimators themselves (Poisson GLM, gradient boosted
trees with Poisson loss, feed-forward neural network) are the library's.

The offset column holds exposure. Models are fitted on claim frequency
(target / exposure) weighted by exposure, and predictions are scaled back by
exposure so that they are expected claim counts comparable to the target.
"""


from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import HistGradientBoostingRegressor
from sklearn.linear_model import PoissonRegressor
from sklearn.metrics import mean_poisson_deviance
from sklearn.model_selection import KFold, ParameterGrid, ParameterSampler
from sklearn.neural_network import MLPRegressor
from sklearn.pipeline import Pipeline
from sklearn.utils.validation import has_fit_parameter

from claim_frequency.exceptions import InvalidArgumentError, TrainingError
from claim_frequency.feature_engineering import build_preprocessor, split_predictors

logger = logging.getLogger(__name__)

MODEL_KINDS = ("glm", "gbm", "deeplearning")
SEARCH_STRATEGIES = ("cartesian", "random_discrete")

_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "glm": {"alpha": 1e-4, "max_iter": 1000, "solver": "lbfgs"},
    "gbm": {
        "loss": "poisson",
        "max_iter": 200,
        "learning_rate": 0.1,
        "max_leaf_nodes": 31,
        "early_stopping": True,
        "validation_fraction": 0.1,
        "n_iter_no_change": 10,
    },
    "deeplearning": {
        "hidden_layer_sizes": (32, 16),
        "activation": "relu",
        "alpha": 1e-4,
        "learning_rate_init": 1e-3,
        "max_iter": 200,
        "early_stopping": True,
        "validation_fraction": 0.1,
        "n_iter_no_change": 10,
    },
}


@dataclass
class ModelHandle:
    model_id: str
    model_kind: str
    hyperparameters: Dict[str, Any]
    target_column: str
    offset_column: Optional[str]
    predictor_columns: List[str]
    pipeline: Pipeline = field(repr=False)
    # Service-internal ranking metric, set by search()
    metric: Optional[float] = None

    @property
    def estimator(self):
        return self.pipeline.named_steps["regressor"]

    @property
    def feature_names(self) -> List[str]:
        return self.pipeline.named_steps["preprocessor"].get_feature_names_out().tolist()


def build_estimator(model_kind: str, hyperparameters: Optional[Dict[str, Any]] = None, random_state: int = 42):
    """
    hyperparameters override the per-kind defaults, e.g.
      build_estimator("gbm", {"max_depth": 5, "learning_rate": 0.05})
    """
    if model_kind not in MODEL_KINDS:
        raise TrainingError(f"Unknown model kind: {model_kind} (expected one of {MODEL_KINDS})")

    params = {**_DEFAULTS[model_kind], **(hyperparameters or {})}

    try:
        if model_kind == "glm":
            return PoissonRegressor(**params)

        if model_kind == "gbm":
            return HistGradientBoostingRegressor(random_state=random_state, **params)

        if "hidden_layer_sizes" in params:
            params["hidden_layer_sizes"] = tuple(params["hidden_layer_sizes"])
        return MLPRegressor(random_state=random_state, **params)
    except TypeError as e:
        raise TrainingError(f"Invalid hyperparameters for {model_kind}: {e}") from e


class ModelingService:
    """
    fit / predict / search over scikit-learn claim-frequency models.

    min_prediction floors predicted frequencies; the neural network is fitted
    with squared error and can return non-positive values.
    """

    def __init__(self, random_state: int = 42, min_prediction: float = 1e-6):
        self.random_state = random_state
        self.min_prediction = min_prediction
        self._ids = itertools.count(1)
        self._cv_ids = itertools.count(1)

    # -------------------------
    # fit / predict
    # -------------------------
    def fit(
        self,
        train_set: pd.DataFrame,
        target_column: str,
        offset_column: Optional[str],
        predictor_columns: Sequence[str],
        model_kind: str,
        hyperparameters: Optional[Dict[str, Any]] = None,
    ) -> ModelHandle:
        model_id = f"{model_kind}_{next(self._ids)}"
        return self._fit(train_set, target_column, offset_column, predictor_columns, model_kind, hyperparameters, model_id)

    def _fit(self, train_set, target_column, offset_column, predictor_columns, model_kind, hyperparameters, model_id) -> ModelHandle:
        predictor_columns = list(predictor_columns)
        y, weights = self._frequency_target(train_set, target_column, offset_column, predictor_columns)

        cat_cols, num_cols = split_predictors(train_set, predictor_columns)
        estimator = build_estimator(model_kind, hyperparameters, random_state=self.random_state)
        pipeline = Pipeline(
            [
                ("preprocessor", build_preprocessor(cat_cols, num_cols, scale_numeric=model_kind != "gbm")),
                ("regressor", estimator),
            ]
        )

        fit_params = {}
        if weights is not None and has_fit_parameter(estimator, "sample_weight"):
            fit_params["regressor__sample_weight"] = weights

        logger.info("Fitting %s on %d rows (%d predictors)", model_id, len(train_set), len(predictor_columns))
        try:
            pipeline.fit(train_set[predictor_columns], y, **fit_params)
        except (ValueError, TypeError, MemoryError) as e:
            raise TrainingError(f"Fitting {model_id} failed: {e}") from e

        return ModelHandle(
            model_id=model_id,
            model_kind=model_kind,
            hyperparameters=dict(hyperparameters or {}),
            target_column=target_column,
            offset_column=offset_column,
            predictor_columns=predictor_columns,
            pipeline=pipeline,
        )

    def predict(self, handle: ModelHandle, dataset: pd.DataFrame) -> np.ndarray:
        """One non-negative prediction per row of dataset, in row order."""
        missing = [c for c in handle.predictor_columns if c not in dataset.columns]
        if missing:
            raise InvalidArgumentError(f"predict: missing predictor columns: {missing}")

        freq = np.asarray(handle.pipeline.predict(dataset[handle.predictor_columns]), dtype=float)
        freq = np.maximum(freq, self.min_prediction)

        if handle.offset_column is None:
            return freq
        if handle.offset_column not in dataset.columns:
            raise InvalidArgumentError(f"predict: missing offset column: {handle.offset_column}")
        return freq * dataset[handle.offset_column].to_numpy(dtype=float)

    # -------------------------
    # Hyperparameter search
    # -------------------------
    def search(
        self,
        train_set: pd.DataFrame,
        target_column: str,
        offset_column: Optional[str],
        predictor_columns: Sequence[str],
        model_kind: str,
        hyperparameter_grid: Dict[str, List[Any]],
        search_strategy: str = "cartesian",
        budget: Optional[Dict[str, Any]] = None,
        nfolds: int = 3,
    ) -> List[ModelHandle]:
        """
        Fit one model per candidate and rank them by cross-validated mean
        Poisson deviance (ascending).

        budget keys for "random_discrete":
          - max_models: number of sampled candidates
          - max_runtime_secs: stop starting new candidates after this many seconds
          - seed: sampling seed (defaults to the service random_state)

        Every returned handle is refit on the full train_set.
        """
        if not 2 <= nfolds <= len(train_set):
            raise InvalidArgumentError(f"nfolds must be between 2 and the number of training rows ({len(train_set)}), got {nfolds}")

        budget = budget or {}
        candidates = self._candidates(hyperparameter_grid, search_strategy, budget)
        max_runtime = budget.get("max_runtime_secs")
        deadline = time.monotonic() + float(max_runtime) if max_runtime else None

        logger.info("Searching %s: strategy=%s candidates=%d", model_kind, search_strategy, len(candidates))

        handles: List[ModelHandle] = []
        for params in candidates:
            if deadline is not None and handles and time.monotonic() > deadline:
                logger.info("Search budget of %ss exhausted after %d models", max_runtime, len(handles))
                break

            cv_dev = self._cross_validate(
                train_set, target_column, offset_column, predictor_columns, model_kind, params, nfolds
            )
            handle = self.fit(train_set, target_column, offset_column, predictor_columns, model_kind, params)
            handle.metric = cv_dev
            logger.info("%s params=%s cv_deviance=%.6f", handle.model_id, params, cv_dev)
            handles.append(handle)

        return sorted(handles, key=lambda h: h.metric)

    def _candidates(self, grid: Dict[str, List[Any]], strategy: str, budget: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not grid:
            raise InvalidArgumentError("hyperparameter_grid must not be empty")
        full = ParameterGrid(grid)

        if strategy == "cartesian":
            return list(full)

        if strategy == "random_discrete":
            max_models = budget.get("max_models")
            if max_models is None and budget.get("max_runtime_secs") is None:
                raise InvalidArgumentError("random_discrete search needs max_models or max_runtime_secs")
            n_iter = min(int(max_models), len(full)) if max_models is not None else len(full)
            seed = budget.get("seed", self.random_state)
            return list(ParameterSampler(grid, n_iter=n_iter, random_state=seed))

        raise InvalidArgumentError(f"Unknown search strategy: {strategy} (expected one of {SEARCH_STRATEGIES})")

    def _cross_validate(self, train_set, target_column, offset_column, predictor_columns, model_kind, params, nfolds) -> float:
        kf = KFold(n_splits=nfolds, shuffle=True, random_state=self.random_state)
        scores = []
        for tr_idx, va_idx in kf.split(train_set):
            tr = train_set.iloc[tr_idx]
            va = train_set.iloc[va_idx]
            cv_id = f"{model_kind}_cv{next(self._cv_ids)}"
            handle = self._fit(tr, target_column, offset_column, predictor_columns, model_kind, params, cv_id)
            pred = self.predict(handle, va)
            scores.append(mean_poisson_deviance(va[target_column].to_numpy(dtype=float), pred))
        return float(np.mean(scores))

    # -------------------------
    # helpers
    # -------------------------
    @staticmethod
    def _frequency_target(train_set, target_column, offset_column, predictor_columns):
        required = [target_column, *predictor_columns] + ([offset_column] if offset_column else [])
        missing = [c for c in required if c not in train_set.columns]
        if missing:
            raise TrainingError(f"fit: missing columns: {missing}")
        if len(train_set) == 0:
            raise TrainingError("fit: empty training set")

        y = train_set[target_column].to_numpy(dtype=float)
        if offset_column is None:
            return y, None

        exposure = train_set[offset_column].to_numpy(dtype=float)
        if np.any(~np.isfinite(exposure)) or np.any(exposure <= 0):
            raise TrainingError(f"fit: offset column {offset_column} must be strictly positive")
        return y / exposure, exposure
