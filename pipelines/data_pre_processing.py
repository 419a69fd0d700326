"""
Data preprocessing for the French motor third-party liability frequency data.

Drops rows with unusable exposure or claim counts, caps claim counts and
exposure at load time and casts the rating factors to categories, then
writes the cleaned table that the model training pipeline consumes.
"""


from __future__ import annotations

import argparse
import logging
import logging.config
from pathlib import Path

import yaml

from claim_frequency.config import preprocess_config_from_yaml
from claim_frequency.data_preprocessing import load_claims, run_preprocessing


logger = logging.getLogger(__name__)


def setup_logging(logging_yaml_path: str | Path) -> None:
    cfg = yaml.safe_load(Path(logging_yaml_path).read_text(encoding="utf-8"))
    logging.config.dictConfig(cfg)


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Data Pre-Processing Pipeline (validate + cap + cast)")
    p.add_argument("--input", required=True, help="Path to input CSV (e.g., freMTPL2freq.csv)")
    p.add_argument("--config", default="conf/preprocess_config.yaml", help="Path to preprocessing config YAML")
    p.add_argument("--logging", default="conf/logging.yaml", help="Path to logging config YAML")
    p.add_argument("--outdir", default="analysis/outputs", help="Output directory")
    return p.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.logging)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    logger.info("Reading input: %s", args.input)
    df_raw = load_claims(args.input)

    cfg = preprocess_config_from_yaml(args.config)
    logger.info("Running preprocessing with config: %s", args.config)

    result = run_preprocessing(df_raw, cfg=cfg)
    df_clean = result["df_clean"]
    reports = result["reports"]

    clean_path = outdir / "df_clean.csv"
    df_clean.to_csv(clean_path, index=False)
    logger.info("Saved cleaned dataset: %s (shape=%s)", clean_path, df_clean.shape)

    missing_path = outdir / "report_missingness.csv"
    portfolio_path = outdir / "report_portfolio.csv"
    reports["missingness"].to_csv(missing_path)
    reports["portfolio_clean"].to_csv(portfolio_path, header=["value"])
    logger.info("Saved reports: %s, %s", missing_path, portfolio_path)

    logger.info("Raw shape: %s", df_raw.shape)
    logger.info("Dropped invalid rows: %d", reports["n_invalid"])
    logger.info(
        "Claim frequency raw=%.4f capped=%.4f",
        reports["portfolio_raw"]["frequency"],
        reports["portfolio_clean"]["frequency"],
    )


if __name__ == "__main__":
    main()
