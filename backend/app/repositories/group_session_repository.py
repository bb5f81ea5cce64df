# backend/app/repositories/group_session_repository.py
"""
Group Session Repository for the DriveBook reservation engine.

Seats are claimed with a single conditional UPDATE on the counter, so the
capacity check and the increment are one statement on every backend.
"""

from datetime import date, datetime
import logging
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.group_session import GroupSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class GroupSessionRepository(BaseRepository[GroupSession]):
    """Data access for group sessions."""

    def __init__(self, db: Session):
        super().__init__(db, GroupSession)
        self.logger = logging.getLogger(__name__)

    def get_for_update(self, session_id: str) -> Optional[GroupSession]:
        """Fetch a session holding its row lock until the transaction ends."""
        locked = self._lock_rows([session_id])
        return locked[0] if locked else None

    def claim_seat(self, session: GroupSession, now: datetime) -> bool:
        """
        Take one seat if the session still has room.

        Returns False when the counter is already at ``max_participants``.
        """
        try:
            result = self.db.execute(
                update(GroupSession)
                .where(
                    GroupSession.id == session.id,
                    GroupSession.current_participants < GroupSession.max_participants,
                )
                .values(
                    current_participants=GroupSession.current_participants + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.refresh(session, ["current_participants", "updated_at"])
        except SQLAlchemyError as e:
            self.logger.error(f"Error claiming a seat on session {session.id}: {str(e)}")
            raise RepositoryException(f"Failed to claim seat: {str(e)}")
        return result.rowcount == 1

    def lock_many(self, session_ids: Iterable[str]) -> List[GroupSession]:
        """Lock several sessions in id order so concurrent callers cannot deadlock."""
        return self._lock_rows(session_ids)

    def sessions_between(
        self, start_date: date, end_date: date, include_inactive: bool = False
    ) -> List[GroupSession]:
        query = self._build_query().filter(
            GroupSession.session_date >= start_date,
            GroupSession.session_date <= end_date,
        )
        if not include_inactive:
            query = query.filter(GroupSession.is_active.is_(True))
        return self._execute_query(
            query.order_by(GroupSession.session_date, GroupSession.start_time)
        )

    def all_sessions(self) -> List[GroupSession]:
        return self._execute_query(
            self._build_query().order_by(GroupSession.session_date, GroupSession.start_time)
        )
