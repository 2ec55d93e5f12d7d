# =======================================================================================
# sedp/store.py - Data Store with change feed
# =======================================================================================
"""
Thin data-access layer over the SQLAlchemy engine.

Every table is reached through ``select``/``insert``/``update``/``delete``
and a change feed keyed by table name. Writes publish a ``ChangeEvent`` per
affected row once the transaction has committed.
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy import Table, and_, delete, insert, literal, or_, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Select

from .database import (
    DatabaseManager,
    announcements,
    categories,
    panchayaths,
    photo_gallery,
    push_notifications,
    registrations,
    user_roles,
)
from .models.enums import ChangeType
from .utils.exceptions import StoreFailure

logger = logging.getLogger(__name__)

TABLES = {
    "registrations": registrations,
    "categories": categories,
    "panchayaths": panchayaths,
    "announcements": announcements,
    "photo_gallery": photo_gallery,
    "push_notifications": push_notifications,
    "user_roles": user_roles,
}

# Column stamped with the insert time, per table
CREATED_COLUMNS = {
    "registrations": "submitted_at",
    "categories": "created_at",
    "panchayaths": "created_at",
    "announcements": "created_at",
    "photo_gallery": "uploaded_at",
    "push_notifications": "created_at",
    "user_roles": "created_at",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: ChangeType
    record: Dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], None]


class ChangeFeed:
    """In-process change subscription keyed by table name."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe():
            with self._lock:
                listeners = self._subscribers.get(table, [])
                if callback in listeners:
                    listeners.remove(callback)
                if not listeners:
                    self._subscribers.pop(table, None)

        return unsubscribe

    def listener_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscribers.get(table, []))
            return sum(len(v) for v in self._subscribers.values())

    def publish(self, event: ChangeEvent):
        with self._lock:
            listeners = list(self._subscribers.get(event.table, []))

        for callback in listeners:
            try:
                callback(event)
            except Exception:
                # a broken listener must not break the writer or its siblings
                logger.exception("Change listener failed for %s %s", event.table, event.event_type.value)


def _table(name: str) -> Table:
    try:
        return TABLES[name]
    except KeyError:
        raise StoreFailure(f"Unknown table: {name}") from None


def _where(table: Table, filters: Optional[Mapping[str, Any]]):
    clauses = [table.c[col] == value for col, value in (filters or {}).items()]
    return and_(*clauses) if clauses else None


def _new_row(table: str, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of ``values`` with a generated ``id`` and creation timestamp."""
    row = dict(values)
    row.setdefault("id", str(uuid.uuid4()))
    created = CREATED_COLUMNS.get(table)
    if created and row.get(created) is None:
        row[created] = utcnow()
    return row


class StoreTransaction:
    """Reads and writes sharing one connection; change events wait for the commit."""

    def __init__(self, conn: Connection):
        self.conn = conn
        self.events: List[ChangeEvent] = []

    def _record(self, table: str, event_type: ChangeType, rows: Sequence[Mapping[str, Any]]):
        self.events.extend(ChangeEvent(table=table, event_type=event_type, record=dict(r)) for r in rows)

    def _fetch(self, t: Table, ids: Sequence[str]) -> List[Dict[str, Any]]:
        return [dict(r) for r in self.conn.execute(select(t).where(t.c.id.in_(ids))).mappings().all()]

    # ----------------- reads -----------------

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        any_of: Optional[Sequence[Mapping[str, Any]]] = None,
        limit: Optional[int] = None,
        for_update: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Rows of ``table`` as dicts.

        ``filters`` are ANDed equality matches; ``any_of`` is a list of
        equality matches of which at least one must hold. ``for_update``
        locks the rows until the transaction ends where the backend supports it.
        """
        t = _table(table)
        query: Select = select(t)

        where = _where(t, filters)
        if where is not None:
            query = query.where(where)

        if any_of:
            query = query.where(or_(*[_where(t, alt) for alt in any_of]))

        if order_by:
            column = t.c[order_by]
            query = query.order_by(column.desc() if descending else column.asc())

        if limit is not None:
            query = query.limit(limit)

        if for_update:
            query = query.with_for_update()

        return [dict(row) for row in self.conn.execute(query).mappings().all()]

    # ----------------- writes -----------------

    def insert(self, table: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        t = _table(table)
        row = _new_row(table, values)
        self.conn.execute(insert(t).values(**row))
        stored = self._fetch(t, [row["id"]])
        self._record(table, ChangeType.INSERT, stored)
        return stored[0]

    def insert_unless(
        self, table: str, values: Mapping[str, Any], blocking: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Insert one row only while no row matches ``blocking``.

        The check and the insert are a single INSERT ... SELECT ... WHERE NOT
        EXISTS statement. Returns ``None`` when a blocking row was present.
        """
        t = _table(table)
        condition = _where(t, blocking)
        if condition is None:
            raise StoreFailure(f"conditional insert into {table} needs a blocking filter")

        row = _new_row(table, values)
        blocker = select(t.c.id).where(condition).correlate(None).exists()
        source = select(*[literal(v, type_=t.c[k].type) for k, v in row.items()]).where(~blocker)
        self.conn.execute(insert(t).from_select(list(row), source))

        stored = self._fetch(t, [row["id"]])
        if not stored:
            return None
        self._record(table, ChangeType.INSERT, stored)
        return stored[0]

    def update(self, table: str, values: Mapping[str, Any], filters: Mapping[str, Any]) -> int:
        t = _table(table)
        where = _where(t, filters)
        if where is None:
            raise StoreFailure(f"refusing unfiltered update on {table}")

        ids = [r[0] for r in self.conn.execute(select(t.c.id).where(where)).all()]
        if not ids:
            return 0
        count = self.conn.execute(update(t).where(and_(t.c.id.in_(ids), where)).values(**dict(values))).rowcount
        self._record(table, ChangeType.UPDATE, self._fetch(t, ids))
        return count

    def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        t = _table(table)
        where = _where(t, filters)
        if where is None:
            raise StoreFailure(f"refusing unfiltered delete on {table}")

        removed = [dict(r) for r in self.conn.execute(select(t).where(where)).mappings().all()]
        if not removed:
            return 0
        self.conn.execute(delete(t).where(t.c.id.in_([r["id"] for r in removed])))
        self._record(table, ChangeType.DELETE, removed)
        return len(removed)


class DataStore:
    """Per-table select/insert/update/delete plus change subscription."""

    def __init__(self, db: DatabaseManager, feed: Optional[ChangeFeed] = None):
        self.db = db
        self.feed = feed or ChangeFeed()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """
        Run several reads and writes atomically.

        Everything inside the block commits together or not at all; the
        collected change events are published only after the commit.
        """
        try:
            with self.db.get_connection() as conn:
                tx = StoreTransaction(conn)
                yield tx
        except SQLAlchemyError as e:
            raise StoreFailure("store transaction failed", cause=e) from e

        for event in tx.events:
            logger.debug("change %s on %s id=%s", event.event_type.value, event.table, event.record.get("id"))
            self.feed.publish(event)

    # Single statements, each in its own transaction

    def select(self, table: str, **kwargs) -> List[Dict[str, Any]]:
        _table(table)
        with self.transaction() as tx:
            return tx.select(table, **kwargs)

    def insert(self, table: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one row; the store generates ``id`` and the creation timestamp."""
        _table(table)
        with self.transaction() as tx:
            return tx.insert(table, values)

    def insert_unless(
        self, table: str, values: Mapping[str, Any], blocking: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        _table(table)
        with self.transaction() as tx:
            return tx.insert_unless(table, values, blocking)

    def update(self, table: str, values: Mapping[str, Any], filters: Mapping[str, Any]) -> int:
        """Update rows matching every filter; returns the number of rows changed."""
        _table(table)
        with self.transaction() as tx:
            return tx.update(table, values, filters)

    def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        """Delete rows matching every filter; returns the number removed."""
        _table(table)
        with self.transaction() as tx:
            return tx.delete(table, filters)

    # ----------------- change feed -----------------

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        _table(table)
        return self.feed.subscribe(table, callback)
