# backend/app/repositories/factory.py
"""
Repository Factory for the DriveBook reservation engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .event_outbox_repository import EventOutboxRepository
    from .group_session_repository import GroupSessionRepository
    from .reservation_repository import ReservationRepository
    from .schedule_repository import ScheduleRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services and tests can swap
    implementations in one place.
    """

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_schedule_repository(db: Session) -> "ScheduleRepository":
        """Create repository for templates, blocked intervals and extra slots."""
        from .schedule_repository import ScheduleRepository

        return ScheduleRepository(db)

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        """Create repository for reservations and admission locks."""
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_group_session_repository(db: Session) -> "GroupSessionRepository":
        """Create repository for capacity-tracked group sessions."""
        from .group_session_repository import GroupSessionRepository

        return GroupSessionRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        """Create repository for the transactional event outbox."""
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
