"""End-to-end runs of the two command line pipelines on a synthetic portfolio."""

from pathlib import Path

import pandas as pd
import yaml

from pipelines import data_pre_processing, model_training_pipeline
from tests.conftest import make_portfolio

CONF_DIR = Path(__file__).resolve().parents[1] / "conf"

SMALL_MODEL_CONFIG = {
    "random_state": 0,
    "nfolds": 2,
    "split": {"train_fraction": 0.9, "seed": 1234},
    "models": {
        "GLM": {"kind": "glm", "params": {"alpha": 0.0001}},
        "GBM": {"kind": "gbm", "params": {"max_iter": 20, "early_stopping": False}},
    },
    "searches": {
        "GLM_grid": {"kind": "glm", "strategy": "cartesian", "grid": {"alpha": [0.0, 0.01]}},
    },
}


def _run_preprocessing(tmp_path: Path) -> Path:
    raw_path = tmp_path / "freMTPL2freq.csv"
    make_portfolio(n=400, seed=2).to_csv(raw_path, index=False)
    outdir = tmp_path / "prep"

    data_pre_processing.main(
        [
            "--input", str(raw_path),
            "--config", str(CONF_DIR / "preprocess_config.yaml"),
            "--logging", str(CONF_DIR / "logging.yaml"),
            "--outdir", str(outdir),
        ]
    )
    return outdir / "df_clean.csv"


def test_preprocessing_pipeline_writes_outputs(tmp_path) -> None:
    clean_path = _run_preprocessing(tmp_path)

    df = pd.read_csv(clean_path)
    assert len(df) == 400
    assert df["ClaimNb"].max() <= 4
    assert df["Exposure"].max() <= 1.0
    assert (clean_path.parent / "report_portfolio.csv").exists()
    assert (clean_path.parent / "report_missingness.csv").exists()


def test_training_pipeline_compares_models(tmp_path) -> None:
    clean_path = _run_preprocessing(tmp_path)
    model_cfg = tmp_path / "model_config.yaml"
    model_cfg.write_text(yaml.safe_dump(SMALL_MODEL_CONFIG), encoding="utf-8")
    outdir = tmp_path / "model"

    comparison = model_training_pipeline.main(
        [
            "--input", str(clean_path),
            "--feature_config", str(CONF_DIR / "feature_config.yaml"),
            "--model_config", str(model_cfg),
            "--logging", str(CONF_DIR / "logging.yaml"),
            "--outdir", str(outdir),
            "--save_feature_importance",
        ]
    )

    saved = pd.read_csv(outdir / "model_comparison.csv")
    assert len(saved) == 3
    assert saved["Test_Deviance"].is_monotonic_increasing
    assert saved["Model"].tolist() == comparison["Model"].tolist()
    assert (outdir / "search__GLM_grid.csv").exists()
    assert list(outdir.glob("feature_importance__*.csv"))


def test_training_pipeline_skip_search(tmp_path) -> None:
    clean_path = _run_preprocessing(tmp_path)
    model_cfg = tmp_path / "model_config.yaml"
    model_cfg.write_text(yaml.safe_dump(SMALL_MODEL_CONFIG), encoding="utf-8")

    comparison = model_training_pipeline.main(
        [
            "--input", str(clean_path),
            "--feature_config", str(CONF_DIR / "feature_config.yaml"),
            "--model_config", str(model_cfg),
            "--logging", str(CONF_DIR / "logging.yaml"),
            "--outdir", str(tmp_path / "model"),
            "--skip_search",
        ]
    )

    assert set(comparison["Model"]) == {"GLM", "GBM"}
