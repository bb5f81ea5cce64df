# backend/app/services/group_session_service.py
"""
Group session administration.

Sessions are created and edited here; seats are only ever taken by the
admission controller and handed back by cancellation or the reaper.
"""

from datetime import date, time
import logging
from typing import Any, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.exceptions import ConflictException, NotFoundException, ValidationException
from ..domain.intervals import TimeInterval
from ..models.group_session import GroupSession
from ..models.reservation import Reservation
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

TimeLike = Union[str, time]


class GroupSessionService(BaseService):
    """Validated CRUD for capacity-tracked sessions."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings=settings, clock=clock)
        self.group_session_repository = RepositoryFactory.create_group_session_repository(db)
        self.reservation_lookup = RepositoryFactory.create_base_repository(db, Reservation)

    def get_session(self, session_id: str) -> GroupSession:
        session = self.group_session_repository.get_by_id(session_id)
        if session is None:
            raise NotFoundException(
                "Group session not found",
                code="SESSION_NOT_FOUND",
                details={"session_id": session_id},
            )
        return session

    def list_sessions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_inactive: bool = True,
    ) -> List[GroupSession]:
        if start_date and end_date:
            return self.group_session_repository.sessions_between(
                start_date, end_date, include_inactive=include_inactive
            )
        sessions = self.group_session_repository.all_sessions()
        if include_inactive:
            return sessions
        return [session for session in sessions if session.is_active]

    @BaseService.measure_operation("create_group_session")
    def create_session(
        self,
        title: str,
        session_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        max_participants: int,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> GroupSession:
        interval = TimeInterval.of(start_time, end_time)
        self._validate_capacity(max_participants)
        if not title or not title.strip():
            raise ValidationException("title is required", code="MISSING_TITLE")

        with self.transaction():
            session = self.group_session_repository.create(
                title=title.strip(),
                description=description,
                session_date=session_date,
                start_time=interval.start,
                end_time=interval.end,
                max_participants=max_participants,
                current_participants=0,
                is_active=is_active,
                created_at=self.now(),
            )
        self.logger.info(
            f"Created group session {session.id} {session_date} {interval} cap={max_participants}"
        )
        return session

    @BaseService.measure_operation("update_group_session")
    def update_session(self, session_id: str, **changes: Any) -> GroupSession:
        """
        Update a session under its row lock.

        Capacity can never drop below the seats already taken.
        """
        with self.transaction():
            session = self.group_session_repository.get_for_update(session_id)
            if session is None:
                raise NotFoundException(
                    "Group session not found",
                    code="SESSION_NOT_FOUND",
                    details={"session_id": session_id},
                )
            if changes.get("max_participants") is not None:
                new_max = changes["max_participants"]
                self._validate_capacity(new_max)
                if new_max < (session.current_participants or 0):
                    raise ConflictException(
                        "Capacity cannot be lower than the seats already taken",
                        code="CAPACITY_BELOW_PARTICIPANTS",
                        details={
                            "session_id": session.id,
                            "current_participants": session.current_participants,
                            "max_participants": new_max,
                        },
                    )
                session.max_participants = new_max
            if changes.get("start_time") is not None or changes.get("end_time") is not None:
                interval = TimeInterval.of(
                    changes.get("start_time") or session.start_time,
                    changes.get("end_time") or session.end_time,
                )
                session.start_time = interval.start
                session.end_time = interval.end
            for field_name in ("title", "description", "session_date", "is_active"):
                if changes.get(field_name) is not None:
                    setattr(session, field_name, changes[field_name])
            session.updated_at = self.now()
            self.db.flush()
        return session

    @BaseService.measure_operation("delete_group_session")
    def delete_session(self, session_id: str) -> None:
        """Delete a session that has never had a reservation."""
        with self.transaction():
            session = self.group_session_repository.get_for_update(session_id)
            if session is None:
                raise NotFoundException(
                    "Group session not found",
                    code="SESSION_NOT_FOUND",
                    details={"session_id": session_id},
                )
            if self.reservation_lookup.count(session_id=session_id):
                raise ConflictException(
                    "Session has reservations; deactivate it instead",
                    code="SESSION_HAS_RESERVATIONS",
                    details={"session_id": session_id},
                )
            self.group_session_repository.delete(session_id)
        self.logger.info(f"Deleted group session {session_id}")

    @staticmethod
    def _validate_capacity(max_participants: int) -> None:
        if not isinstance(max_participants, int) or max_participants <= 0:
            raise ValidationException(
                "max_participants must be a positive integer",
                code="INVALID_CAPACITY",
                details={"max_participants": max_participants},
            )
