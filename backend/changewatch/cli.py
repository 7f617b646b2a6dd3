"""Command-line entry points."""

import argparse
import logging
import sys
from typing import Sequence

from changewatch.config import get_settings
from changewatch.log_config import configure_logging
from changewatch.services.pipeline import run_changes_job, run_test_diff

logger = logging.getLogger("changewatch.cli")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the daily change job. Takes no options; configuration is read from the environment."""
    parser = argparse.ArgumentParser(
        prog="changewatch-job",
        description="Summarize and classify changes between the latest snapshots of every active source.",
    )
    parser.parse_args(argv)

    # Defaults until settings are known to load
    configure_logging()

    try:
        settings = get_settings()
        configure_logging(settings.log_level, settings.log_format)
        run_changes_job(settings)
    except Exception as e:
        logger.exception(f"Error in change job: {e}")
        return 1
    return 0


def test_diff_main(argv: Sequence[str] | None = None) -> int:
    """Dry-run the diff stage for two snapshot IDs with verbose logging."""
    parser = argparse.ArgumentParser(
        prog="changewatch-test-diff",
        description="Summarize the change between two snapshots without storing it.",
    )
    parser.add_argument("snapshot_id1", type=int, help="Older snapshot ID")
    parser.add_argument("snapshot_id2", type=int, help="Newer snapshot ID")
    args = parser.parse_args(argv)

    configure_logging(fmt="text")

    try:
        settings = get_settings()
        configure_logging(settings.log_level, "text")
        preview = run_test_diff(settings, args.snapshot_id1, args.snapshot_id2)
    except Exception as e:
        logger.exception(f"Error in test job: {e}")
        return 1

    if preview is None:
        logger.error("Test diff produced no change to store")
        return 1
    logger.info("Test job completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
