"""
Report (and optionally repair) users whose link lists contain repeated ids.

New links get `count + 1` as their id, so deleting a link and adding another
can hand out an id that is still in use.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fanslink.dependencies import get_db_client
from fanslink.links import audit_link_ids

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Audit link ids across users")
    parser.add_argument(
        "--fix",
        action="store_true",
        help="Renumber link ids 1..n for affected users",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    affected = audit_link_ids(get_db_client(), fix=args.fix)
    logger.info("Users with duplicate link ids: %d", len(affected))
    return 1 if affected and not args.fix else 0


if __name__ == "__main__":
    raise SystemExit(main())
