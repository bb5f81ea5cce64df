"""Celery tasks for reservation housekeeping: reaper, reconciliation, outbox."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, ParamSpec, Protocol, TypeVar, cast

from celery.result import AsyncResult

from app.core.config import settings
from app.database import session_scope
from app.services.event_dispatch_service import EventDispatchService
from app.services.hold_reaper import HoldReaper
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R", covariant=True)


class TaskWrapper(Protocol[P, R]):
    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R:
        ...

    delay: "Callable[..., AsyncResult[Any]]"
    apply_async: "Callable[..., AsyncResult[Any]]"


def typed_task(
    *task_args: Any, **task_kwargs: Any
) -> Callable[[Callable[P, R]], TaskWrapper[P, R]]:
    """Return a typed Celery task decorator for mypy."""

    return cast(
        Callable[[Callable[P, R]], TaskWrapper[P, R]],
        celery_app.task(*task_args, **task_kwargs),
    )


# The beat schedule re-runs these; a failed tick is not retried on its own.
@typed_task(name="app.tasks.reservation_tasks.reap_expired_holds", autoretry_for=())
def reap_expired_holds() -> Dict[str, int]:
    """Release expired holds, expire overdue confirmations, purge old cancellations."""
    with session_scope() as db:
        report = HoldReaper(db, settings=settings).reap()
    return report.to_dict()


@typed_task(name="app.tasks.reservation_tasks.reconcile_session_capacity", autoretry_for=())
def reconcile_session_capacity() -> Dict[str, Any]:
    """Recompute every group session counter from its reservations."""
    with session_scope() as db:
        corrections = HoldReaper(db, settings=settings).reconcile_capacity()
    if corrections:
        logger.warning("Reconciled %d session counter(s)", len(corrections))
    return {
        "corrected": len(corrections),
        "corrections": [correction.to_dict() for correction in corrections],
    }


@typed_task(
    bind=True,
    name="app.tasks.reservation_tasks.dispatch_reservation_events",
    max_retries=3,
)
def dispatch_reservation_events(self: Any, limit: int = 200) -> Dict[str, int]:
    """Deliver pending outbox events to their handlers."""
    with session_scope() as db:
        summary = EventDispatchService(db, settings=settings).dispatch_pending(limit=limit)
    return summary
