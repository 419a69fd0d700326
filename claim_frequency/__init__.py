"""Claim-frequency model benchmark: preprocessing, reproducible split, Poisson deviance."""

from claim_frequency.exceptions import InvalidArgumentError, ShapeMismatchError, TrainingError
from claim_frequency.metrics import get_deviance
from claim_frequency.split import Split, SplitConfig, split_indices, split_train_test

__all__ = [
    "InvalidArgumentError",
    "ShapeMismatchError",
    "TrainingError",
    "get_deviance",
    "Split",
    "SplitConfig",
    "split_indices",
    "split_train_test",
]
