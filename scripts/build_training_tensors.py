#!/usr/bin/env python3
"""
build_training_tensors.py - CLI for the training corpus feature build

Reads the scraper's corpus JSON ({"races": [...]}) and writes:

【出力】
- <artifacts>/mappings.json          coach / driver / track IDs
- <artifacts>/imputation_stats.json  breed fallback means
- <artifacts>/feature_manifest.json  column names + config fingerprint
- <output>.npz                       static / history / labels / metadata

Exit codes: 0 ok, 1 input not found, 2 no data, 3 invariant violated

Usage:
    python scripts/build_training_tensors.py --corpus data/training_data.json
    python scripts/build_training_tensors.py --corpus data/training_data.json --artifacts artifacts/features
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features import (
    FeatureArtifacts,
    InvariantViolationError,
    NoDataError,
    build_training_set,
    load_corpus,
    load_feature_config,
)


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Build training tensors and feature artifacts from the race corpus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default locations
  python scripts/build_training_tensors.py --corpus data/training_data.json

  # Custom artifact directory and tensor file
  python scripts/build_training_tensors.py --corpus data/training_data.json \\
      --artifacts artifacts/features --output artifacts/training_tensors.npz

  # Alternative feature constants
  python scripts/build_training_tensors.py --corpus data/training_data.json --config config/my_constants.yaml
"""
    )
    parser.add_argument(
        "--corpus",
        type=str,
        required=True,
        help="Corpus JSON written by the scraper",
    )
    parser.add_argument(
        "--artifacts",
        type=str,
        default="artifacts/features",
        help="Output directory for maps / stats / manifest (default: artifacts/features)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="artifacts/training_tensors.npz",
        help="Output tensor file (default: artifacts/training_tensors.npz)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Feature constants YAML (default: config/feature_constants.yaml)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
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

    corpus_path = Path(args.corpus)
    if not corpus_path.exists():
        logger.error(f"Corpus not found: {corpus_path}")
        sys.exit(1)

    config = load_feature_config(Path(args.config) if args.config else None)

    logger.info("=" * 70)
    logger.info("Harness Feature Builder (training)")
    logger.info("=" * 70)
    logger.info(f"Corpus: {corpus_path}")
    logger.info(f"Artifacts: {args.artifacts}")
    logger.info(f"History cap: {config.history_cap}")
    logger.info(f"Config fingerprint: {config.fingerprint()[:12]}")

    races = load_corpus(corpus_path)
    try:
        training_set = build_training_set(races, config, progress=not args.no_progress)
    except NoDataError as e:
        logger.error(f"No data: {e}")
        sys.exit(2)
    except InvariantViolationError as e:
        logger.error(f"Invariant violated: {e}")
        sys.exit(3)

    FeatureArtifacts.from_training_set(training_set).save(args.artifacts)
    training_set.tensors.to_npz(args.output)

    meta = training_set.data_meta
    logger.info("=" * 70)
    logger.info(
        f"Success! {meta['race_count']:,} races / {meta['runner_count']:,} runners "
        f"({meta['first_date']} - {meta['last_date']})"
    )
    logger.info("=" * 70)


if __name__ == "__main__":
    main()
