"""
Shooting Pipeline Script
Runs normalization, aggregation and the murder-flag classifier on a local CSV
export of the NYPD shooting incident dataset and writes the summary tables.
"""

import argparse
import json
import logging
from pathlib import Path

import pandas as pd

from shooting_pulse.pipeline import run_pipeline
from shooting_pulse.shared.config import get_config

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the shooting incident pipeline")
    parser.add_argument("input_path", help="Path to the raw shooting incident CSV")
    parser.add_argument("--output-dir", default="data/processed", help="Directory for outputs")
    parser.add_argument("--threshold", type=float, default=None, help="Decision threshold")
    parser.add_argument("--env", choices=["dev", "prod"], default=None, help="Config environment")
    return parser.parse_args(argv)


def write_outputs(result, output_dir: Path) -> None:
    """Write summary tables and the model summary to output_dir."""
    output_dir.mkdir(parents=True, exist_ok=True)

    result.monthly.to_csv(output_dir / "monthly.csv", index=False)
    result.yearly.to_csv(output_dir / "yearly.csv", index=False)
    result.cross_tab.to_csv(output_dir / "cross_tab.csv", index=False)
    result.evaluation.confusion_matrix.to_csv(output_dir / "confusion_matrix.csv")

    with open(output_dir / "summary.json", "w") as f:
        json.dump(result.to_summary(), f, indent=2, default=str)

    logger.info(f"Outputs written to {output_dir}")


def main(argv=None):
    """Run the pipeline end to end."""
    args = parse_args(argv)
    config = get_config(args.env)

    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    df = pd.read_csv(args.input_path, dtype=str, keep_default_na=False)
    logger.info(f"Loaded {len(df)} records from {args.input_path}")

    result = run_pipeline(df, threshold=args.threshold, config=config)
    write_outputs(result, Path(args.output_dir))

    evaluation = result.evaluation
    print("\n" + "=" * 60)
    print("SHOOTING PIPELINE SUMMARY")
    print("=" * 60)
    print(f"  Incidents:            {len(result.incidents)}")
    print(f"  Malformed records:    {len(result.excluded_records)}")
    print(f"  Model rows:           {len(result.encoded)}")
    print(f"  Dropped (missing):    {result.encoded.rows_dropped}")
    print(f"\n{evaluation.confusion_matrix}\n")
    print(f"  Accuracy:             {evaluation.accuracy:.2f}%")
    print("=" * 60 + "\n")

    return result


if __name__ == "__main__":
    main()
