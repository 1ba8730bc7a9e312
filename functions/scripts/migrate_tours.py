"""
Copy every tour from one persistence backend to another.

Typical use is moving a local tours.json into Firestore:

    GCP_PROJECT_ID=my-project python scripts/migrate_tours.py --source FILE --target FIRESTORE
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from geoguide.config import PersistenceMode, Settings, get_settings
from geoguide.db import TourStore
from geoguide.providers import build_tour_store

logger = logging.getLogger(__name__)


def migrate(source: TourStore, target: TourStore, *, dry_run: bool) -> int:
    """
    Upsert every source tour into the target, keeping ids and createdAt.

    Returns:
        Number of tours copied (or that would be copied on a dry run).
    """
    copied = 0
    for tour in source.list_all():
        if not dry_run:
            target.upsert(tour)
        action = "Would copy" if dry_run else "Copied"
        logger.info("%s %s (%s)", action, tour.id, tour.title)
        copied += 1
    return copied


def main() -> int:
    parser = argparse.ArgumentParser(description="Migrate tours between backends")
    parser.add_argument(
        "--source",
        type=str,
        default=PersistenceMode.FILE.value,
        choices=[mode.value for mode in PersistenceMode],
        help="Backend to read from",
    )
    parser.add_argument(
        "--target",
        type=str,
        required=True,
        choices=[mode.value for mode in PersistenceMode],
        help="Backend to write to",
    )
    parser.add_argument(
        "--data-file",
        type=str,
        default=None,
        help="Override TOURS_DATA_FILE for FILE backends",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List what would be copied without writing",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    if args.source == args.target:
        parser.error("--source and --target must differ")

    settings: Settings = get_settings()
    if args.data_file:
        settings = settings.model_copy(update={"tours_data_file": args.data_file})

    source = build_tour_store(PersistenceMode(args.source), settings)
    target = build_tour_store(PersistenceMode(args.target), settings)
    copied = migrate(source, target, dry_run=args.dry_run)
    logger.info("Done: %d tours", copied)
    return 0


if __name__ == "__main__":
    sys.exit(main())
