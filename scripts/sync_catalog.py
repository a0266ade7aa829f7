"""
Mirror the Magazord catalog into Supabase from the command line.

Run from backend directory:
    python scripts/sync_catalog.py
    python scripts/sync_catalog.py --max-pages 10
"""

import argparse
import sys
from pathlib import Path

# Add backend to path so we can import modules
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import structlog

from exceptions import AppError
from services.sync_service import SyncService

logger = structlog.get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync Magazord catalog into the local mirror")
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Stop after this many upstream pages (default: SYNC_MAX_PAGES)"
    )
    args = parser.parse_args()

    print("=" * 60)
    print("CATALOG SYNC")
    print("=" * 60)

    try:
        result = SyncService(max_pages=args.max_pages).run()
    except AppError as e:
        logger.error("catalog_sync_failed", code=e.code, error=e.message)
        print(f"[ERROR] {e.code}: {e.message}")
        return 1

    print(f"[OK] Upserted {result.total} SKUs from {result.pages} pages")
    if result.truncated:
        print("[WARN] Page ceiling reached before the end of the catalog")
    return 0


if __name__ == "__main__":
    sys.exit(main())
