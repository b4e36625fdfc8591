"""
CLI helper to seed an empty portal store with demo records.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alumni_backend.dependencies import get_kv_store
from alumni_backend.kv import KvStore
from alumni_backend.resources import list_records
from alumni_backend.sample_data import SAMPLE_RECORDS, seed_sample_data

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed alumni portal sample data")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what would be written",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    store: KvStore = get_kv_store()
    if args.dry_run:
        for kind, records in SAMPLE_RECORDS:
            existing = len(list_records(store, kind))
            logger.info("%s: %d sample records (%d stored)", kind, len(records), existing)
        return 0

    if not seed_sample_data(store):
        logger.info("Store already has alumni records; nothing to do")
    return 0


if __name__ == "__main__":
    sys.exit(main())
