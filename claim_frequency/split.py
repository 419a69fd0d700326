"""
Train / holdout split utilities.

Provides a seeded (90% train and 10% holdout by default) and reproducible
index partition. The same split is computed once per session and reused for
every model fit so that model comparisons are made on identical rows.
"""


from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.utils import check_random_state

from claim_frequency.exceptions import InvalidArgumentError


@dataclass(frozen=True)
class SplitConfig:
    train_fraction: float = 0.9
    seed: int = 1234


@dataclass(frozen=True)
class Split:
    train: np.ndarray
    test: np.ndarray

    @property
    def n_rows(self) -> int:
        return int(len(self.train) + len(self.test))


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def split_indices(n: int, train_fraction: float = 0.9, seed: int = 1234) -> Split:
    """
    Partition row positions [0, n) into disjoint train / test index sets.

    The first round(train_fraction * n) positions of a seeded permutation go
    to train, the remainder to test.
    """
    if not 0.0 < train_fraction < 1.0:
        raise InvalidArgumentError(f"train_fraction must be in (0, 1), got {train_fraction}")
    if n <= 0:
        raise InvalidArgumentError(f"n must be positive, got {n}")

    perm = check_random_state(seed).permutation(n)
    n_train = _round_half_up(train_fraction * n)
    return Split(train=perm[:n_train], test=perm[n_train:])


def split_train_test(df: pd.DataFrame, cfg: SplitConfig) -> Tuple[pd.DataFrame, pd.DataFrame]:
    split = split_indices(len(df), train_fraction=cfg.train_fraction, seed=cfg.seed)
    return df.iloc[split.train].copy(), df.iloc[split.test].copy()
