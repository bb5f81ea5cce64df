"""
Repository Pattern Implementation for the DriveBook reservation engine.

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- ScheduleRepository: Weekly templates, blocked intervals and extra slots
- ReservationRepository: Reservations, expiry queries and the per-day admission lock
- GroupSessionRepository: Group sessions with row-locked capacity access
- EventOutboxRepository: Transactional outbox for reservation events

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_reservation_repository(db)
    taken = repository.active_one_to_one_for("default", target_date, now)
"""

from .base_repository import BaseRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .group_session_repository import GroupSessionRepository
from .reservation_repository import ReservationRepository
from .schedule_repository import ScheduleRepository

__all__ = [
    "BaseRepository",
    "EventOutboxRepository",
    "GroupSessionRepository",
    "RepositoryFactory",
    "ReservationRepository",
    "ScheduleRepository",
]
