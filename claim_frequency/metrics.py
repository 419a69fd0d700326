# claim_frequency/metrics.py
from __future__ import annotations

from typing import Optional

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from claim_frequency.exceptions import InvalidArgumentError, ShapeMismatchError


def _check_finite(arr: np.ndarray, name: str) -> np.ndarray:
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f"{name} contains non-finite values")
    return arr.reshape(-1)


def _unit_deviance(y_pred: np.ndarray, y_true: np.ndarray) -> np.ndarray:
    # y * log(y / y_hat) is taken as 0 where y == 0
    pos = y_true > 0
    log_term = np.zeros_like(y_true)
    log_term[pos] = y_true[pos] * np.log(y_true[pos] / y_pred[pos])
    return y_pred - y_true + log_term


def get_deviance(y_pred, y_true, weights=None) -> float:
    """
    Mean Poisson deviance of predicted rates against observed claim counts.

        D = (2 / n) * sum(y_hat - y + y * ln(y / y_hat))

    With ``weights`` the mean is weighted: 2 * sum(w * d) / sum(w).
    """
    y_pred = np.asarray(y_pred, dtype=float)
    y_true = np.asarray(y_true, dtype=float)
    if y_pred.shape != y_true.shape:
        raise ShapeMismatchError(f"got predictions of shape {y_pred.shape} for observations of shape {y_true.shape}")
    shape = y_true.shape

    y_pred = _check_finite(y_pred, "y_pred")
    y_true = _check_finite(y_true, "y_true")

    if y_pred.size == 0:
        raise InvalidArgumentError("cannot compute deviance of empty vectors")
    if np.any(y_pred <= 0):
        raise InvalidArgumentError("predictions must be strictly positive")
    if np.any(y_true < 0):
        raise InvalidArgumentError("observed counts must be non-negative")

    dev = _unit_deviance(y_pred, y_true)

    if weights is None:
        return float(2.0 * dev.mean())

    w = np.asarray(weights, dtype=float)
    if w.shape != shape:
        raise ShapeMismatchError(f"got weights of shape {w.shape} for observations of shape {shape}")
    w = _check_finite(w, "weights")
    if np.any(w < 0) or w.sum() <= 0:
        raise InvalidArgumentError("weights must be non-negative with a positive sum")
    return float(2.0 * np.sum(w * dev) / w.sum())


def frequency_metrics(y_true, y_pred, weights: Optional[np.ndarray] = None) -> dict:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    return {
        "Deviance": get_deviance(y_pred, y_true, weights=weights),
        "MAE": mean_absolute_error(y_true, y_pred, sample_weight=weights),
        "RMSE": float(np.sqrt(mean_squared_error(y_true, y_pred, sample_weight=weights))),
        "Predicted_Total": float(y_pred.sum()),
        "Observed_Total": float(y_true.sum()),
    }
