"""Tests for derived rating factors and the shared preprocessor."""

import numpy as np
import pandas as pd

from claim_frequency.feature_engineering import (
    FeatureConfig,
    add_engineered_features,
    build_preprocessor,
    split_predictors,
)


def test_log_density_and_age_bins() -> None:
    """LogDensity is log(Density); driver ages fall in their band."""
    df = pd.DataFrame({"Density": [1, 100, 0], "DrivAge": [18, 23, 80]})

    out = add_engineered_features(df, FeatureConfig())

    np.testing.assert_allclose(out["LogDensity"], [0.0, np.log(100), 0.0])
    assert out["DrivAge_Bin"].tolist() == ["18_21", "22_25", "75_plus"]
    assert "LogDensity" not in df.columns


def test_missing_driver_age_is_unknown() -> None:
    df = pd.DataFrame({"DrivAge": [np.nan, 30]})

    out = add_engineered_features(df, FeatureConfig())

    assert out["DrivAge_Bin"].tolist() == ["unknown", "26_30"]


def test_split_predictors_by_dtype(model_frame: pd.DataFrame, feature_cfg: FeatureConfig) -> None:
    cat, num = split_predictors(model_frame, feature_cfg.predictor_cols)

    assert set(cat) == set(feature_cfg.cat_cols)
    assert set(num) == set(feature_cfg.num_cols)


def test_preprocessor_output_width(model_frame: pd.DataFrame, feature_cfg: FeatureConfig) -> None:
    """One column per category level plus one per numeric predictor."""
    cat, num = split_predictors(model_frame, feature_cfg.predictor_cols)
    pre = build_preprocessor(cat, num, scale_numeric=True)

    X = pre.fit_transform(model_frame[feature_cfg.predictor_cols])

    n_levels = sum(model_frame[c].nunique() for c in cat)
    assert X.shape == (len(model_frame), n_levels + len(num))


def test_preprocessor_ignores_unseen_levels(model_frame: pd.DataFrame, feature_cfg: FeatureConfig) -> None:
    cat, num = split_predictors(model_frame, feature_cfg.predictor_cols)
    pre = build_preprocessor(cat, num, scale_numeric=False)
    pre.fit(model_frame[feature_cfg.predictor_cols])

    unseen = model_frame[feature_cfg.predictor_cols].head(2).copy()
    unseen["VehBrand"] = "B99"

    assert pre.transform(unseen).shape[0] == 2
