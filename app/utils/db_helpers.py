"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row locking helper (no-op on SQLite)
- Chunking for batched inserts
"""

import logging
from typing import Iterator, List, Optional, Sequence, Type, TypeVar

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        return db.bind.dialect.name == 'postgresql'
    except AttributeError:
        return False


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Serializes writers that lock the same row until the surrounding
    transaction commits or rolls back. SQLite has no row locks; the query
    runs unlocked there.

    Example:
        room = acquire_row_lock(db, Room, Room.id == room_id)
    """
    query = db.query(model).filter(filter_condition)

    if is_postgres(db):
        query = query.with_for_update(nowait=nowait)

    return query.first()


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
