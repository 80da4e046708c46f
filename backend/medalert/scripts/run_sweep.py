"""Module: run_sweep."""

import json

from medalert.core.config import settings
from medalert.core.logging import configure_logging
from medalert.db.session import SessionLocal
from medalert.services.notifications import NotificationDispatcher
from medalert.services.sweep import ReminderSweep


if __name__ == "__main__":
    # One sweep pass, meant for cron: python -m medalert.scripts.run_sweep
    configure_logging(settings.log_level)
    dispatcher = NotificationDispatcher(
        SessionLocal,
        gateway_url=settings.notify_gateway_url,
        timeout=settings.dispatch_timeout_seconds,
        workers=settings.dispatch_workers,
    )
    session = SessionLocal()
    try:
        report = ReminderSweep(session, dispatcher).run()
        print(json.dumps(report.as_dict(), default=str, indent=2))
    finally:
        session.close()
        # Let queued notices finish before the process exits.
        dispatcher.shutdown(wait=True)
