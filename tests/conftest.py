"""Shared fixtures: a small synthetic portfolio in the freMTPL2freq layout."""

import numpy as np
import pandas as pd
import pytest

from claim_frequency.config import PreprocessConfig
from claim_frequency.data_preprocessing import run_preprocessing
from claim_frequency.feature_engineering import FeatureConfig, add_engineered_features


def make_portfolio(n: int = 600, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)

    driv_age = rng.integers(18, 90, size=n)
    bonus_malus = rng.integers(50, 150, size=n)
    veh_gas = rng.choice(["Diesel", "Regular"], size=n)
    area = rng.choice(list("ABCDEF"), size=n)
    exposure = rng.uniform(0.05, 1.2, size=n)

    log_freq = -2.3 + 0.01 * (bonus_malus - 100) - 0.01 * (driv_age - 45) + 0.2 * (veh_gas == "Diesel")
    claims = rng.poisson(np.exp(log_freq) * np.minimum(exposure, 1.0))
    claims[:3] = [6, 5, 7]

    return pd.DataFrame(
        {
            "IDpol": np.arange(1, n + 1),
            "ClaimNb": claims,
            "Exposure": exposure,
            "Area": area,
            "VehPower": rng.integers(4, 15, size=n),
            "VehAge": rng.integers(0, 25, size=n),
            "DrivAge": driv_age,
            "BonusMalus": bonus_malus,
            "VehBrand": rng.choice(["B1", "B2", "B3", "B12"], size=n),
            "VehGas": veh_gas,
            "Density": rng.integers(1, 27000, size=n),
            "Region": rng.choice(["R11", "R24", "R52", "R82"], size=n),
        }
    )


@pytest.fixture
def raw_claims() -> pd.DataFrame:
    return make_portfolio()


@pytest.fixture
def feature_cfg() -> FeatureConfig:
    return FeatureConfig()


@pytest.fixture
def model_frame(raw_claims: pd.DataFrame, feature_cfg: FeatureConfig) -> pd.DataFrame:
    clean = run_preprocessing(raw_claims, PreprocessConfig())["df_clean"]
    return add_engineered_features(clean, feature_cfg)
