"""
Conflict-aware inserts.

``insert_or_ignore`` inserts a row unless it would violate the given unique
(optionally partial) index, and reports which happened without using the
duplicate-key exception for control flow on SQLite and PostgreSQL.
"""
import logging
from typing import Any, Dict, Optional, Sequence

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


def insert_or_ignore(
    db: Session,
    model,
    values: Dict[str, Any],
    index_elements: Sequence,
    index_where=None,
) -> Optional[int]:
    """
    Insert ``values`` into ``model``'s table.

    Returns the new primary key, or None when a row already occupies the unique
    index described by ``index_elements`` / ``index_where``.
    """
    dialect = db.get_bind().dialect.name
    insert_fn = _DIALECT_INSERTS.get(dialect)
    if insert_fn is not None:
        stmt = (
            insert_fn(model)
            .values(**values)
            .on_conflict_do_nothing(index_elements=list(index_elements), index_where=index_where)
            .returning(model.id)
        )
        return db.execute(stmt).scalar_one_or_none()

    # Other backends: savepoint around a plain insert
    row = model(**values)
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        logger.debug("insert_or_ignore conflict on %s", model.__tablename__)
        return None
    return row.id
