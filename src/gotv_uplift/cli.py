"""
Run the GOTV uplift report from the command line.

Usage:
    gotv-uplift [--data FILE | --synthetic N] [--output-dir DIR] [--verbose]

Example:
    gotv-uplift --data data/gotv.csv --vote-values 0 10 20 40 --repeats 10
    gotv-uplift --synthetic 20000 --output-dir reports/demo
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

from pydantic import ValidationError  # noqa: E402

from gotv_uplift.features.encoding import EncodingConfig  # noqa: E402
from gotv_uplift.modeling.uplift_model import ModelConfig  # noqa: E402
from gotv_uplift.pipeline import (  # noqa: E402
    DEFAULT_VOTE_VALUES,
    PipelineConfig,
    export_results_to_dict,
    format_pipeline_summary,
    run_pipeline,
)
from gotv_uplift.settings import Settings, get_settings  # noqa: E402

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gotv-uplift",
        description="Fit an uplift model to the GOTV mailer experiment and write the report",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--data",
        type=Path,
        help="CSV or parquet voter file (default: GOTV_DATA_PATH, else synthetic data)",
    )
    source.add_argument(
        "--synthetic",
        type=int,
        metavar="N",
        help="Generate N synthetic households instead of reading a file",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        help="Directory for report files (default: GOTV_OUTPUT_DIR or reports/)",
    )
    parser.add_argument(
        "--vote-values",
        type=float,
        nargs="+",
        default=list(DEFAULT_VOTE_VALUES),
        help="Values of one vote, in units of mailer cost, swept by the tradeoff curve",
    )
    parser.add_argument(
        "--test-size",
        type=float,
        default=0.3,
        help="Held-out share used for evaluation (default: 0.3)",
    )
    parser.add_argument(
        "--cv",
        type=int,
        default=3,
        help="Cross-validation folds for the grid search (default: 3)",
    )
    parser.add_argument(
        "--repeats",
        type=int,
        default=5,
        help="Shuffles per variable for permutation importance (default: 5)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed (default: GOTV_RANDOM_SEED or 42)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print stage progress and debug logging",
    )
    return parser


def build_config(args: argparse.Namespace, settings: Settings) -> PipelineConfig:
    """Merge command-line arguments over environment settings."""
    seed = args.seed if args.seed is not None else settings.random_seed
    data_path = None if args.synthetic is not None else (args.data or settings.data_path)

    config = PipelineConfig(
        data_path=data_path,
        data_seed=seed,
        split_seed=seed,
        encoding=EncodingConfig(treatment_costs=settings.cost_table()),
        model=ModelConfig(cv=args.cv, random_state=seed),
        test_size=args.test_size,
        vote_values=list(args.vote_values),
        n_repeats=args.repeats,
        output_dir=args.output_dir or settings.output_dir,
        verbose=args.verbose,
    )
    if args.synthetic is not None:
        config.n_households = args.synthetic
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"CONFIGURATION ERROR: invalid GOTV_ environment settings\n{e}")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = build_config(args, settings)
    if config.data_path is not None:
        logger.info(f"Reading voter file {config.data_path}")
    else:
        logger.info(f"Using {config.n_households:,} synthetic households")

    result = run_pipeline(config)
    print(format_pipeline_summary(result))

    if not result.success:
        print(f"\nPIPELINE FAILED: {result.error_message}")
        return 1

    results_dict = export_results_to_dict(result)
    results_dict["metadata"] = {
        "generated_at": datetime.now().isoformat(),
        "data": str(config.data_path) if config.data_path else "synthetic",
        "seed": config.data_seed,
    }
    summary_path = Path(config.output_dir) / "pipeline_results.json"
    with open(summary_path, "w") as f:
        json.dump(results_dict, f, indent=2, default=str)

    print(f"\nReport written to: {result.output_files['html']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
