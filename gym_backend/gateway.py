"""Generic data access over named collections.

Every call takes an optional session; without one it opens (and commits) its
own short transaction, with one it joins the caller's `Database.atomic()`
block. Rows come back as plain dicts.

Filters are dicts of ``field`` -> value (equality) or ``field__op`` -> value,
the same lookup spelling Django querysets use.
"""
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gym_backend.db import Database
from gym_backend.errors import ConflictError, InvalidIdentifierError, PersistenceError
from gym_backend.models import COLLECTIONS, new_id, utcnow

log = logging.getLogger(__name__)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


OPERATORS = {
    "eq": lambda col, v: col.is_(None) if v is None else col == v,
    "ne": lambda col, v: col.is_not(None) if v is None else col != v,
    "in": lambda col, v: col.in_(list(v)),
    "nin": lambda col, v: col.not_in(list(v)),
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "icontains": lambda col, v: col.ilike(f"%{_escape_like(str(v))}%", escape="\\"),
}


def parse_id(value: Any, label: str = "id") -> str:
    """Normalize a storage identifier to its 32-hex form."""
    if isinstance(value, uuid.UUID):
        return value.hex
    try:
        return uuid.UUID(str(value).strip()).hex
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdentifierError(f"invalid {label}: {value!r}")


def is_valid_id(value: Any) -> bool:
    try:
        parse_id(value)
        return True
    except InvalidIdentifierError:
        return False


@contextmanager
def storage_errors(collection: str):
    """Translate driver errors into the service error taxonomy."""
    try:
        yield
    except IntegrityError as exc:
        log.warning(f"Constraint violation on {collection}: {exc.orig}")
        raise ConflictError(f"duplicate value violates a unique constraint on {collection}") from exc
    except SQLAlchemyError as exc:
        log.error(f"Storage failure on {collection}: {exc}")
        raise PersistenceError(f"storage failure on {collection}") from exc


class Gateway:
    def __init__(self, db: Database, collections: Optional[Dict[str, Any]] = None):
        self.db = db
        self.collections = collections or COLLECTIONS

    def table(self, collection: str):
        try:
            return self.collections[collection].__table__
        except KeyError:
            raise ValueError(f"unknown collection {collection!r}")

    # ---------------- query helpers ----------------
    def _conditions(self, table, flt: Optional[Dict[str, Any]]) -> List[Any]:
        conds = []
        for key, value in (flt or {}).items():
            field, _, op = key.partition("__")
            if field not in table.c:
                raise ValueError(f"unknown field {field!r} on {table.name}")
            if (op or "eq") not in OPERATORS:
                raise ValueError(f"unknown lookup {op!r}")
            conds.append(OPERATORS[op or "eq"](table.c[field], value))
        return conds

    def _ordering(self, table, order_by: Optional[Iterable[str]]):
        clauses = []
        for key in order_by or ():
            desc = key.startswith("-")
            col = table.c[key.lstrip("-")]
            clauses.append(col.desc() if desc else col.asc())
        return clauses

    # ---------------- reads ----------------
    def find_by_id(self, collection: str, id: Any, session: Optional[Session] = None) -> Optional[dict]:
        table = self.table(collection)
        key = parse_id(id)
        with self.db.scoped(session) as s:
            row = s.execute(select(table).where(table.c.id == key)).mappings().first()
        return dict(row) if row else None

    def find_by_filter(
        self,
        collection: str,
        flt: Optional[Dict[str, Any]] = None,
        session: Optional[Session] = None,
        *,
        order_by: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[dict]:
        table = self.table(collection)
        stmt = select(table).where(*self._conditions(table, flt)).order_by(*self._ordering(table, order_by))
        if skip:
            stmt = stmt.offset(skip)
        if limit:
            stmt = stmt.limit(limit)
        with self.db.scoped(session) as s:
            rows = s.execute(stmt).mappings().all()
        return [dict(r) for r in rows]

    def search(
        self,
        collection: str,
        term: str,
        fields: Iterable[str],
        flt: Optional[Dict[str, Any]] = None,
        session: Optional[Session] = None,
        *,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Case-insensitive substring match on any of `fields`, ANDed with `flt`."""
        table = self.table(collection)
        any_field = or_(*[OPERATORS["icontains"](table.c[f], term) for f in fields])
        stmt = select(table).where(and_(any_field, *self._conditions(table, flt)))
        if limit:
            stmt = stmt.limit(limit)
        with self.db.scoped(session) as s:
            rows = s.execute(stmt).mappings().all()
        return [dict(r) for r in rows]

    def count(self, collection: str, flt: Optional[Dict[str, Any]] = None, session: Optional[Session] = None) -> int:
        table = self.table(collection)
        stmt = select(func.count()).select_from(table).where(*self._conditions(table, flt))
        with self.db.scoped(session) as s:
            return int(s.execute(stmt).scalar() or 0)

    # ---------------- writes ----------------
    def create(self, collection: str, document: Dict[str, Any], session: Optional[Session] = None) -> str:
        table = self.table(collection)
        values = dict(document)
        values["id"] = parse_id(values["id"]) if values.get("id") else new_id()
        now = utcnow()
        values.setdefault("created_at", now)
        values.setdefault("updated_at", now)
        with storage_errors(collection), self.db.scoped(session) as s:
            s.execute(insert(table).values(**values))
        return values["id"]

    def update(
        self,
        collection: str,
        id: Any,
        partial: Dict[str, Any],
        session: Optional[Session] = None,
        where: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Apply `partial` to one row. `where` adds guards checked in the same statement.

        Returns True iff a row changed.
        """
        table = self.table(collection)
        values = dict(partial)
        values["updated_at"] = utcnow()
        stmt = update(table).where(table.c.id == parse_id(id), *self._conditions(table, where)).values(**values)
        with storage_errors(collection), self.db.scoped(session) as s:
            return s.execute(stmt).rowcount > 0

    def update_many(
        self, collection: str, flt: Dict[str, Any], partial: Dict[str, Any], session: Optional[Session] = None
    ) -> int:
        table = self.table(collection)
        values = dict(partial)
        values["updated_at"] = utcnow()
        stmt = update(table).where(*self._conditions(table, flt)).values(**values)
        with storage_errors(collection), self.db.scoped(session) as s:
            return s.execute(stmt).rowcount

    def delete(self, collection: str, id: Any, session: Optional[Session] = None) -> bool:
        table = self.table(collection)
        with storage_errors(collection), self.db.scoped(session) as s:
            return s.execute(delete(table).where(table.c.id == parse_id(id))).rowcount > 0

