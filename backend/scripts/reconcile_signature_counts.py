"""Script to compare campaign signature counters with the signature rows.

Usage:
    python scripts/reconcile_signature_counts.py            # report only
    python scripts/reconcile_signature_counts.py --apply    # raise lagging counters
"""

import argparse
import asyncio
import sys
import pathlib

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from app.core.db import SessionLocal, engine
from app.core.logging import setup_logging
from app.services.campaign_store import SqlCampaignStore
from app.services.reconciliation import reconcile_signature_counts


async def main(apply: bool, campaign_ids: list[str]) -> int:
    store = SqlCampaignStore(SessionLocal)
    found = await reconcile_signature_counts(store, campaign_ids or None, apply=apply)
    await engine.dispose()

    if not found:
        print("All signature counters match their signature rows.")
        return 0

    print(f"{len(found)} campaign(s) out of step:")
    for item in found:
        state = "repaired" if item.repaired else "unchanged"
        print(
            f"  {item.campaign_id}: counter={item.counter_value} "
            f"rows={item.actual_count} ({state})"
        )
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("campaign_ids", nargs="*", help="limit the pass to these campaigns")
    parser.add_argument("--apply", action="store_true", help="raise counters that lag")
    args = parser.parse_args()
    setup_logging()
    sys.exit(asyncio.run(main(args.apply, args.campaign_ids)))
