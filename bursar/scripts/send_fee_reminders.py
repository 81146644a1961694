"""
Send outstanding-balance reminders for every pending or partial fee obligation.

Meant to be run by a scheduler (cron, Cloud Scheduler); one email per obligation per run.
Usage: python -m bursar.scripts.send_fee_reminders
"""

import asyncio
import sys

from bursar.api.v1.reminders.service import run_fee_reminders
from bursar.core.exceptions import ConfigurationError
from bursar.db.session import AsyncSessionLocal
from bursar.integrations.resend import get_mailer
from bursar.main import configure_logging


async def send_fee_reminders() -> int:
    async with AsyncSessionLocal() as session:
        try:
            summary = await run_fee_reminders(session, get_mailer())
        except ConfigurationError as e:
            print(f"Cannot send reminders: {e.message}", file=sys.stderr)
            return 1

    print(f"Done. Sent {summary.sent}, failed {summary.failed}, skipped {summary.skipped}.")
    for error in summary.errors:
        print(f"  {error}", file=sys.stderr)
    return 0


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(send_fee_reminders()))


if __name__ == "__main__":
    main()
