#!/usr/bin/env python3
"""
Reconcile Segment Ledger

Compares the segment ledger with the storage directory:
- rows whose file no longer exists (removed with --apply)
- .mp4 files the ledger does not know about (reported only)

Usage:
    python scripts/reconcile_ledger.py          # Dry run
    python scripts/reconcile_ledger.py --apply  # Remove rows for missing files
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from storage import StorageController, create_storage
from storage.utils.path_utils import format_size, list_segment_files

logger = logging.getLogger(__name__)


def reconcile_ledger(
    storage: Optional[StorageController] = None,
    dry_run: bool = True,
) -> dict:
    """
    Find ledger rows without files and files without rows.

    Args:
        storage: Storage controller (None = from configuration)
        dry_run: If True, only report

    Returns:
        Statistics dict with counts
    """
    storage = storage or create_storage()
    logger.info(f"Mode: {'DRY RUN (no changes)' if dry_run else 'APPLY (will delete)'}")

    segments = storage.list_segments()
    logger.info(f"Found {len(segments)} segments in ledger")

    missing = [segment for segment in segments if not segment.exists]
    for segment in missing:
        logger.warning(
            f"Missing file: {segment.file_name} "
            f"(status: {segment.upload_status.value}, path: {segment.file_path})"
        )

    known = {segment.file_path.resolve() for segment in segments}
    untracked = [
        path for path in list_segment_files(storage.storage_base)
        if path.resolve() not in known
    ]
    for path in untracked:
        logger.warning(f"Untracked file: {path.name} ({format_size(path.stat().st_size)})")

    removed = 0
    if missing and not dry_run:
        for segment in missing:
            if storage.delete_segment(segment):
                removed += 1
                logger.info(f"Removed ledger row: {segment.file_name}")

    stats = {
        "total_segments": len(segments),
        "missing_files": len(missing),
        "untracked_files": len(untracked),
        "removed_rows": removed,
        "dry_run": dry_run,
    }

    logger.info("=" * 60)
    logger.info(f"Ledger rows:      {stats['total_segments']}")
    logger.info(f"Missing files:    {stats['missing_files']}")
    logger.info(f"Untracked files:  {stats['untracked_files']}")
    if dry_run:
        logger.info(f"Would remove:     {stats['missing_files']} (use --apply)")
    else:
        logger.info(f"Removed rows:     {stats['removed_rows']}")
    logger.info("=" * 60)

    return stats


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Reconcile the segment ledger with files on disk",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Remove ledger rows whose file is missing (default is dry run)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        reconcile_ledger(dry_run=not args.apply)
    except Exception as e:
        logger.error(f"Reconcile failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
