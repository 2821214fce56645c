"""
Atomic "insert if absent" / "insert or update" keyed on a unique constraint.

PostgreSQL and SQLite get a single INSERT ... ON CONFLICT statement, so two
overlapping sweeps can never both create the row. Other dialects fall back to
a SAVEPOINT where the unique-constraint violation itself is the
"already exists" signal (never a separate read-then-write).
"""
from typing import Any

from sqlalchemy import func, insert, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

_ON_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _dialect_insert(db: Session):
    return _ON_CONFLICT_INSERTS.get(db.get_bind().dialect.name)


def insert_if_absent(db: Session, model, values: dict[str, Any], keys: list[str]) -> bool:
    """
    Insert one row unless a row with the same `keys` already exists.

    Returns True if this call created the row. Does not commit.
    """
    dialect_insert = _dialect_insert(db)
    if dialect_insert is not None:
        stmt = dialect_insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=keys)
        result = db.execute(stmt)
        return result.rowcount == 1

    try:
        with db.begin_nested():
            db.execute(insert(model.__table__).values(**values))
        return True
    except IntegrityError:
        return False


def upsert(
    db: Session,
    model,
    values: dict[str, Any],
    keys: list[str],
    update_columns: list[str],
) -> None:
    """
    Insert one row, or overwrite `update_columns` of the row that already
    holds the same `keys`. Does not commit.
    """
    touch = {"updated_at": func.now()} if "updated_at" in model.__table__.c else {}

    dialect_insert = _dialect_insert(db)
    if dialect_insert is not None:
        stmt = dialect_insert(model.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=keys,
            set_={**{col: stmt.excluded[col] for col in update_columns}, **touch},
        )
        db.execute(stmt)
        return

    try:
        with db.begin_nested():
            db.execute(insert(model.__table__).values(**values))
    except IntegrityError:
        key_filter = [model.__table__.c[k] == values[k] for k in keys]
        db.execute(
            update(model.__table__)
            .where(*key_filter)
            .values(**{col: values[col] for col in update_columns}, **touch)
        )
