#!/usr/bin/env python3
"""Generate the Number-BATTLE tablebase artifact.

Usage:
    # JSON artifact
    python scripts/generate_tablebase.py --output chopsticks-tablebase.json

    # Packed numpy artifact, checked against forward search
    python scripts/generate_tablebase.py --output tablebase.npy --packed --validate
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from _01_simulator.logging_config import setup_logging
from _02_agents.tablebase.retrograde import RetrogradeConfig, RetrogradeTablebase

logger = logging.getLogger("generate_tablebase")


def generate(output: Path, packed: bool = False, validate: bool = False, sample_size: int = 100) -> int:
    """Build, optionally verify, and save the table.

    Returns:
        Process exit code (1 when verification finds problems)
    """
    tablebase = RetrogradeTablebase(RetrogradeConfig(log_interval=1))
    stats = tablebase.generate()
    logger.info(
        "Generation complete: %d/%d positions in %.2fs (max distance %d)",
        stats.solved_positions,
        stats.total_positions,
        stats.elapsed_seconds,
        stats.max_distance,
    )

    exit_code = 0
    if validate:
        violations = tablebase.check_consistency()
        for violation in violations[:20]:
            logger.error("Consistency: %s", violation)
        validation = tablebase.validate_against_forward(sample_size=sample_size)
        logger.info(
            "Validation: %d consistency violations, %d matches, %d mismatches",
            len(violations),
            validation["matches"],
            validation["mismatches"],
        )
        if violations or validation["mismatches"]:
            exit_code = 1

    path = tablebase.save(output, packed=packed)
    logger.info("Saved: %.1f KB", path.stat().st_size / 1024)
    return exit_code


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate the Number-BATTLE tablebase",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("chopsticks-tablebase.json"),
        help="Output file path (default: chopsticks-tablebase.json)",
    )
    parser.add_argument(
        "--packed",
        action="store_true",
        help="Write the packed numpy format instead of JSON",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Check the table against forward move generation and search",
    )
    parser.add_argument(
        "--sample-size",
        type=int,
        default=100,
        help="Positions to compare against forward search (default: 100)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON formatted log lines",
    )

    args = parser.parse_args()
    setup_logging(args.log_level, format_json=args.json_logs)
    sys.exit(generate(args.output, packed=args.packed, validate=args.validate, sample_size=args.sample_size))


if __name__ == "__main__":
    main()
