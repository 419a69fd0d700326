"""Tests for holdout model comparison."""

import pandas as pd
import pytest

from claim_frequency.evaluation import evaluate_models, rescore_search
from claim_frequency.explainability import get_model_based_feature_importance, get_permutation_importance_df
from claim_frequency.metrics import get_deviance
from claim_frequency.models import ModelingService
from claim_frequency.split import SplitConfig, split_train_test

SPECS = {
    "GLM": {"kind": "glm", "params": {"alpha": 0.0001}},
    "GBM": {"kind": "gbm", "params": {"max_iter": 20, "early_stopping": False}},
}


@pytest.fixture
def train_test(model_frame):
    return split_train_test(model_frame, SplitConfig(train_fraction=0.8, seed=5))


class TestEvaluateModels:
    def test_table_sorted_by_holdout_deviance(self, train_test, feature_cfg) -> None:
        train, test = train_test
        results, handles = evaluate_models(ModelingService(), SPECS, train, test, feature_cfg)

        assert set(results["Model"]) == {"GLM", "GBM"}
        assert set(handles) == {"GLM", "GBM"}
        assert results["Test_Deviance"].is_monotonic_increasing
        assert (results[["Train_Deviance", "Test_Deviance"]] > 0).all().all()

    def test_test_deviance_matches_evaluator(self, train_test, feature_cfg) -> None:
        """The table reports get_deviance on the holdout predictions."""
        train, test = train_test
        service = ModelingService()
        results, handles = evaluate_models(service, {"GLM": SPECS["GLM"]}, train, test, feature_cfg)

        expected = get_deviance(service.predict(handles["GLM"], test), test[feature_cfg.target_col])

        assert results.loc[0, "Test_Deviance"] == pytest.approx(expected)
        assert results.loc[0, "Test_Observed_Claims"] == test[feature_cfg.target_col].sum()


class TestRescoreSearch:
    def test_rescored_on_holdout(self, train_test, feature_cfg) -> None:
        train, test = train_test
        service = ModelingService()
        ranked = service.search(
            train,
            target_column=feature_cfg.target_col,
            offset_column=feature_cfg.exposure_col,
            predictor_columns=feature_cfg.predictor_cols,
            model_kind="glm",
            hyperparameter_grid={"alpha": [0.0, 0.1]},
            nfolds=2,
        )

        table = rescore_search(service, ranked, train, test, feature_cfg)

        assert len(table) == 2
        assert table["Test_Deviance"].is_monotonic_increasing
        assert sorted(table["Search_Rank"]) == [1, 2]
        assert table["Search_Metric"].notna().all()


class TestExplainability:
    def test_glm_coefficients(self, train_test, feature_cfg) -> None:
        train, _ = train_test
        _, handles = evaluate_models(ModelingService(), {"GLM": SPECS["GLM"]}, train, train, feature_cfg)

        imp = get_model_based_feature_importance(handles["GLM"])

        assert imp is not None
        assert imp["importance"].is_monotonic_decreasing
        assert (imp["importance"] >= 0).all()

    def test_gbm_falls_back_to_permutation(self, train_test, feature_cfg) -> None:
        train, test = train_test
        _, handles = evaluate_models(ModelingService(), {"GBM": SPECS["GBM"]}, train, test, feature_cfg)

        assert get_model_based_feature_importance(handles["GBM"]) is None

        imp = get_permutation_importance_df(handles["GBM"], test, n_repeats=2)

        assert set(imp["feature"]) == set(feature_cfg.predictor_cols)
        assert isinstance(imp, pd.DataFrame)
