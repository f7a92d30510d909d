"""Reconciliation command."""
import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from huskytrack.registration.config import load_config
from huskytrack.registration.database import DBConfig
from huskytrack.registration.errors import RegistrationError
from huskytrack.registration.log import setup_logging
from huskytrack.registration.models.config import Config
from huskytrack.registration.models.registration import ReconcileResult
from huskytrack.registration.notifications.models import NotificationConfig
from huskytrack.registration.notifications.service import NotificationDispatcher
from huskytrack.registration.services.allocator import RegistrationAllocator
from loguru import logger


async def reconcile_events(
    allocator: RegistrationAllocator, event_ids: Sequence[str]
) -> list[ReconcileResult]:
    """Reconcile each event in turn.

    Events that cannot be reconciled are logged and skipped.
    """
    results = []
    for event_id in event_ids:
        try:
            result = await allocator.reconcile(event_id)
        except RegistrationError as e:
            logger.error(f"Could not reconcile {event_id}: {e.message}")
        else:
            logger.info(
                f"{event_id}: {result.current_count} registered, "
                f"{result.renumbered} waitlist positions rewritten"
            )
            results.append(result)
    return results


async def _run(config: Config, event_ids: Sequence[str]) -> int:
    db_config = DBConfig.create(config.database.url)
    try:
        # reconciliation never notifies anyone
        allocator = RegistrationAllocator(
            db_config.session_factory,
            NotificationDispatcher(NotificationConfig()),
            config.allocator,
        )
        results = await reconcile_events(allocator, event_ids)
    finally:
        await db_config.close()

    return 0 if len(results) == len(event_ids) else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the console script."""
    parser = argparse.ArgumentParser(
        description="Recount registrations and renumber waitlists",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="path to the config file",
        default=Path("config.yml"),
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="enable debug logging",
        default=False,
    )
    parser.add_argument("event_ids", nargs="+", help="the events to reconcile")

    args = parser.parse_args(argv)
    setup_logging(debug=args.debug)
    config = load_config(args.config)
    return asyncio.run(_run(config, args.event_ids))


if __name__ == "__main__":
    sys.exit(main())
