# backend/app/services/event_dispatch_service.py
"""
Delivers pending reservation events from the outbox to their handlers.

Each event is attempted at most MAX_DELIVERY_ATTEMPTS times with growing
backoff; after that it is marked FAILED and left for an operator.
"""

import logging
from typing import Dict

from ..events.handlers import process_event
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

MAX_DELIVERY_ATTEMPTS = 5
BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]


def next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


class EventDispatchService(BaseService):
    """Runs outbox events through the handler registry."""

    @BaseService.measure_operation("dispatch_outbox_events")
    def dispatch_pending(self, limit: int = 200) -> Dict[str, int]:
        outbox = RepositoryFactory.create_event_outbox_repository(self.db)
        summary = {"sent": 0, "retrying": 0, "failed": 0}

        with self.transaction():
            for event in outbox.fetch_pending(limit=limit, now=self.now()):
                attempt_number = event.attempt_count + 1
                try:
                    handled = process_event(event.event_type, event.payload or {}, self.db)
                except Exception as exc:
                    terminal = attempt_number >= MAX_DELIVERY_ATTEMPTS
                    outbox.mark_failed(
                        event.id,
                        attempt_count=attempt_number,
                        backoff_seconds=next_backoff(attempt_number),
                        error=str(exc),
                        terminal=terminal,
                    )
                    if terminal:
                        summary["failed"] += 1
                        prometheus_metrics.record_outbox_outcome(event.event_type, "failed")
                        self.logger.exception(
                            f"Outbox event {event.id} failed permanently after "
                            f"{attempt_number} attempts"
                        )
                    else:
                        summary["retrying"] += 1
                        self.logger.warning(
                            f"Outbox event {event.id} failed (attempt {attempt_number}); "
                            f"retrying in {next_backoff(attempt_number)}s: {exc}"
                        )
                    continue

                if not handled:
                    outbox.mark_failed(
                        event.id,
                        attempt_count=attempt_number,
                        backoff_seconds=0,
                        error=f"No handler registered for {event.event_type}",
                        terminal=True,
                    )
                    summary["failed"] += 1
                    prometheus_metrics.record_outbox_outcome(event.event_type, "unhandled")
                    continue

                outbox.mark_sent(event.id, attempt_number)
                summary["sent"] += 1
                prometheus_metrics.record_outbox_outcome(event.event_type, "sent")

        if any(summary.values()):
            self.logger.info(f"Outbox dispatch: {summary}")
        return summary
