#!/usr/bin/env python3
"""
report_feature_coverage.py - Coverage report of a tensor file

Prints known-flag rates, history depth and range warnings of a .npz written
by build_training_tensors.py or build_race_features.py.

Usage:
    python scripts/report_feature_coverage.py --tensors artifacts/training_tensors.npz
    python scripts/report_feature_coverage.py --tensors artifacts/training_tensors.npz --output artifacts/coverage
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features import RaceTensors, compute_coverage, format_report, load_feature_config, save_report


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Feature coverage report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--tensors",
        type=str,
        required=True,
        help="Tensor .npz file",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Directory for feature_stats.csv / coverage_report.txt (default: print only)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Feature constants YAML (sentinel value)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    path = Path(args.tensors)
    if not path.exists():
        logger.error(f"Tensor file not found: {path}")
        sys.exit(1)

    config = load_feature_config(Path(args.config) if args.config else None)
    report = compute_coverage(RaceTensors.from_npz(path), sentinel=config.sentinel)
    print(format_report(report))

    if args.output:
        save_report(report, args.output)


if __name__ == "__main__":
    main()
