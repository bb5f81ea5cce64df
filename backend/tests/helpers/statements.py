"""Record the SQL an engine sends, to check statement order."""

from contextlib import contextmanager
from typing import Any, Iterator, List

from sqlalchemy import event
from sqlalchemy.engine import Engine


@contextmanager
def captured_statements(engine: Engine) -> Iterator[List[str]]:
    statements: List[str] = []

    def _record(conn: Any, cursor: Any, statement: str, *args: Any) -> None:
        statements.append(" ".join(statement.split()))

    event.listen(engine, "before_cursor_execute", _record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", _record)


def first_write_to(statements: List[str], table: str) -> int:
    """Index of the first UPDATE or DELETE against ``table``."""
    for index, statement in enumerate(statements):
        if statement.startswith((f"UPDATE {table} ", f"DELETE FROM {table} ")):
            return index
    raise AssertionError(f"no write to {table} in {statements}")
