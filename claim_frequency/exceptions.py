# claim_frequency/exceptions.py
from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Bad split fraction, empty dataset, non-positive predictions, negative counts."""


class ShapeMismatchError(ValueError):
    """Prediction and observation vectors differ in length."""


class TrainingError(RuntimeError):
    """Raised by the modeling service when a model cannot be fitted."""
