"""
Replay open reconciliation issues: gateway charges that were confirmed but not recorded.

Safe to run repeatedly; recording is idempotent on the transaction reference.
Usage: python -m bursar.scripts.retry_reconciliation
"""

import asyncio
import sys

from bursar.api.v1.reconciliation.service import retry_open_issues
from bursar.db.session import AsyncSessionLocal
from bursar.main import configure_logging


async def retry_reconciliation() -> int:
    async with AsyncSessionLocal() as session:
        summary = await retry_open_issues(session)

    if not summary.resolved and not summary.still_open:
        print("No open reconciliation issues found. Exiting.")
        return 0
    print(f"Done. Resolved {summary.resolved}, still open {summary.still_open}.")
    for error in summary.errors:
        print(f"  STILL OPEN: {error}", file=sys.stderr)
    return 1 if summary.still_open else 0


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(retry_reconciliation()))


if __name__ == "__main__":
    main()
