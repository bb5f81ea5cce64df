from sqlalchemy import text
from sqlalchemy.orm import Session

from app.models.group_session import GroupSession
from app.repositories.base_repository import dialect_of
from app.repositories.event_outbox_repository import EventOutboxRepository
from app.repositories.factory import RepositoryFactory


def test_dialect_of_bound_session(db):
    assert dialect_of(db) == "sqlite"
    assert RepositoryFactory.create_reservation_repository(db).is_postgres is False


def test_dialect_of_unbound_session_falls_back():
    unbound = Session()
    try:
        assert dialect_of(unbound) == "sqlite"
        assert dialect_of(unbound, default="postgresql") == "postgresql"
        assert EventOutboxRepository(unbound)._dialect == "postgresql"
    finally:
        unbound.close()


def test_lock_rows_rereads_current_values(db, make_session):
    session = make_session(max_participants=4)
    db.execute(
        text("UPDATE group_sessions SET current_participants = 3 WHERE id = :id"),
        {"id": session.id},
    )
    db.commit()
    assert session.current_participants == 0

    repository = RepositoryFactory.create_group_session_repository(db)
    locked = repository.lock_many([session.id, "missing"])
    db.rollback()

    assert [row.id for row in locked] == [session.id]
    assert isinstance(locked[0], GroupSession)
    assert locked[0].current_participants == 3
