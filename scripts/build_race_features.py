#!/usr/bin/env python3
"""
build_race_features.py - CLI for live race feature build (inference)

Builds the model input of one race from the raw API payloads and the
artifacts written by build_training_tensors.py.

【入力】
- race JSON: {"race": <card race entry>, "runners": <runners response>, "meetDate": "2026-01-31"}
- artifacts directory (mappings.json / imputation_stats.json / feature_manifest.json)

【出力】
- <output>.npz   static / history / metadata
- <output>.json  start number / name / driver per row

Exit codes: 0 ok, 1 input not found, 2 no data (no starters), 3 invariant violated

Usage:
    python scripts/build_race_features.py --race race.json --artifacts artifacts/features
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features import (
    FeatureArtifacts,
    InvariantViolationError,
    NoDataError,
    load_feature_config,
)


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Build inference tensors for one race",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/build_race_features.py --race race.json --artifacts artifacts/features
  python scripts/build_race_features.py --race race.json --output out/race_123
"""
    )
    parser.add_argument(
        "--race",
        type=str,
        required=True,
        help="Race JSON with 'race', 'runners' and optional 'meetDate'",
    )
    parser.add_argument(
        "--artifacts",
        type=str,
        default="artifacts/features",
        help="Feature artifact directory (default: artifacts/features)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output path without extension (default: next to the race JSON)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Feature constants YAML (default: config/feature_constants.yaml)",
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

    race_path = Path(args.race)
    if not race_path.exists():
        logger.error(f"Race file not found: {race_path}")
        sys.exit(1)

    with open(race_path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    config = load_feature_config(Path(args.config) if args.config else None)
    output = Path(args.output) if args.output else race_path.with_suffix("")

    try:
        artifacts = FeatureArtifacts.load(args.artifacts, config)
        pipeline = artifacts.pipeline(config)
        tensors = pipeline.build_from_api(
            payload.get("race") or {},
            payload.get("runners") or [],
            payload.get("meetDate"),
        )
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except NoDataError as e:
        logger.error(f"No data available: {e}")
        sys.exit(2)
    except InvariantViolationError as e:
        logger.error(f"Invariant violated (training/inference mismatch): {e}")
        sys.exit(3)

    tensors.to_npz(output.with_suffix(".npz"))
    with open(output.with_suffix(".json"), "w", encoding="utf-8") as f:
        json.dump([asdict(m) for m in tensors.metadata], f, ensure_ascii=False, indent=2)

    logger.info("=" * 70)
    logger.info(f"Success! {len(tensors)} starters -> {output.with_suffix('.npz')}")
    logger.info("=" * 70)


if __name__ == "__main__":
    main()
