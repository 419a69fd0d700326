
"""
End-to-end claim-frequency model comparison pipeline.

This pipeline orchestrates feature engineering, the seeded train/holdout
split, model fitting and hyperparameter search through the modeling service,
and holdout scoring with the Poisson deviance, in a reproducible,
config-driven manner.

Every model (including every search candidate) is scored on the same
holdout rows so that the deviances in model_comparison.csv are comparable.
"""


from __future__ import annotations

import argparse
import logging
import logging.config
from pathlib import Path

import pandas as pd
import yaml

from claim_frequency.config import feature_config_from_yaml, model_config_from_yaml, split_config_from_dict
from claim_frequency.evaluation import evaluate_models, rescore_search
from claim_frequency.explainability import (
    get_model_based_feature_importance,
    get_permutation_importance_df,
)
from claim_frequency.feature_engineering import add_engineered_features
from claim_frequency.models import ModelingService
from claim_frequency.split import split_train_test

logger = logging.getLogger(__name__)


def setup_logging(logging_yaml_path: str | Path) -> None:
    cfg = yaml.safe_load(Path(logging_yaml_path).read_text(encoding="utf-8"))
    logging.config.dictConfig(cfg)


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Claim frequency model training + comparison pipeline")
    p.add_argument("--input", required=True, help="Input CSV (output of the preprocessing pipeline)")
    p.add_argument("--feature_config", default="conf/feature_config.yaml")
    p.add_argument("--model_config", default="conf/model_config.yaml")
    p.add_argument("--logging", default="conf/logging.yaml")
    p.add_argument("--outdir", default="analysis/outputs_model")
    p.add_argument("--skip_search", action="store_true", help="Only fit the fixed model specs")
    p.add_argument("--save_feature_importance", action="store_true")
    return p.parse_args(argv)


def main(argv=None) -> pd.DataFrame:
    args = parse_args(argv)
    setup_logging(args.logging)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    df = pd.read_csv(args.input)
    logger.info("Loaded input: %s shape=%s", args.input, df.shape)

    feat_cfg = feature_config_from_yaml(args.feature_config)
    mcfg = model_config_from_yaml(args.model_config)

    df = add_engineered_features(df, feat_cfg)

    # Split once; every model below sees the same rows
    split_cfg = split_config_from_dict(mcfg.get("split", {}))
    df_train, df_test = split_train_test(df, split_cfg)
    logger.info("train=%s test=%s (seed=%d)", df_train.shape, df_test.shape, split_cfg.seed)

    service = ModelingService(random_state=int(mcfg.get("random_state", 42)))

    results, handles = evaluate_models(service, mcfg.get("models", {}), df_train, df_test, feat_cfg)
    tables = [results]

    if not args.skip_search:
        for name, spec in (mcfg.get("searches") or {}).items():
            ranked = service.search(
                df_train,
                target_column=feat_cfg.target_col,
                offset_column=feat_cfg.exposure_col,
                predictor_columns=feat_cfg.predictor_cols,
                model_kind=spec["kind"],
                hyperparameter_grid=spec["grid"],
                search_strategy=spec.get("strategy", "cartesian"),
                budget=spec.get("budget"),
                nfolds=int(mcfg.get("nfolds", 3)),
            )
            rescored = rescore_search(service, ranked, df_train, df_test, feat_cfg)
            rescored.to_csv(outdir / f"search__{name}.csv", index=False)
            logger.info("Search %s: %d models, best holdout deviance %.6f", name, len(rescored), rescored.iloc[0]["Test_Deviance"])

            best = rescored.iloc[0]
            handles[f"{name}__{best['Model']}"] = next(h for h in ranked if h.model_id == best["Model"])
            tables.append(
                rescored.head(1).drop(columns=["Search_Rank", "Search_Metric", "Params"]).assign(Model=f"{name}__{best['Model']}")
            )

    comparison = pd.concat(tables, ignore_index=True).sort_values("Test_Deviance", ascending=True).reset_index(drop=True)
    results_path = outdir / "model_comparison.csv"
    comparison.to_csv(results_path, index=False)
    logger.info("Saved model comparison: %s", results_path)

    best_name = comparison.iloc[0]["Model"]
    best_handle = handles[best_name]
    logger.info("Best model: %s (holdout deviance %.6f)", best_name, comparison.iloc[0]["Test_Deviance"])

    if args.save_feature_importance:
        imp = get_model_based_feature_importance(best_handle)
        if imp is None:
            imp = get_permutation_importance_df(best_handle, df_test, n_repeats=5)
        imp_path = outdir / f"feature_importance__{best_name}.csv"
        imp.to_csv(imp_path, index=False)
        logger.info("Saved feature importance: %s", imp_path)

    return comparison


if __name__ == "__main__":
    main()
