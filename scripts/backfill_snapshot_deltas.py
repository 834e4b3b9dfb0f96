"""One-time script: populate delta columns on snapshots that predate them.

Rows written before deltas were precomputed have NULL *_delta columns, which
forces the dashboard onto the slower recompute path. For every such row this
script:
1. Loads the upload's latest snapshot captured before the row's hour bucket
2. Reconciles the row's cumulative counters against it (reset-tolerant)
3. Stores the four deltas

Usage:
    python -m scripts.backfill_snapshot_deltas [--dry-run]
"""

import asyncio
import sys

from simcast.db.session import async_session_factory, engine
from simcast.services import snapshots as snapshot_svc
from simcast.services.buckets import start_of_hour
from simcast.services.deltas import Counters, reconcile


async def backfill(dry_run: bool = False) -> int:
    async with async_session_factory() as db:
        rows = await snapshot_svc.get_snapshots_missing_deltas(db)
        print(f"Snapshots missing deltas: {len(rows)}")

        for snapshot in rows:
            baseline = await snapshot_svc.get_baseline(
                db, snapshot.upload_id, start_of_hour(snapshot.timestamp)
            )
            deltas = reconcile(Counters.from_snapshot(snapshot), Counters.from_snapshot(baseline))
            for name, value in deltas.as_dict().items():
                setattr(snapshot, name, value)

        if dry_run:
            await db.rollback()
            print("Dry run: no changes written.")
        else:
            await db.commit()
            print(f"Backfilled deltas on {len(rows)} snapshots.")

    await engine.dispose()
    return len(rows)


def main() -> None:
    args = sys.argv[1:]
    dry_run = "--dry-run" in args
    args = [a for a in args if a != "--dry-run"]

    if args:
        print("Usage: python -m scripts.backfill_snapshot_deltas [--dry-run]")
        sys.exit(1)

    print("=== Backfilling metric snapshot deltas ===")
    asyncio.run(backfill(dry_run=dry_run))


if __name__ == "__main__":
    main()
