"""
sql_store.py - RecordStore on a SQLAlchemy session
Used for local SQLite development, direct Postgres connections, and tests.
Every call commits on its own unless it runs inside atomic(), in which case
the whole block commits or rolls back together.
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Numeric
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConflictError, NotFoundError, StoreError, ValidationError
from models import MODELS_BY_TABLE
from record_store import RecordStore

logger = logging.getLogger(__name__)


def _out(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class SqlRecordStore(RecordStore):
    supports_atomic = True

    def __init__(self, session: Session):
        self.db = session
        self._depth = 0

    # ------------------------------------------------------------------
    @staticmethod
    def _model(table: str):
        model = MODELS_BY_TABLE.get(table)
        if model is None:
            raise StoreError(f"Unknown table: {table}")
        return model

    @staticmethod
    def _to_dict(obj) -> dict:
        return {c.name: _out(getattr(obj, c.name)) for c in obj.__table__.columns}

    @staticmethod
    def _coerce_value(column, value):
        if value is None:
            return None
        if isinstance(column.type, DateTime) and isinstance(value, str):
            return datetime.fromisoformat(value)
        if isinstance(column.type, Date) and isinstance(value, str):
            return date.fromisoformat(value[:10])
        if isinstance(column.type, Numeric) and not isinstance(value, Decimal):
            return Decimal(str(value))
        return value

    def _coerce(self, model, data: dict) -> dict:
        columns = model.__table__.columns
        coerced = {}
        for key, value in data.items():
            if key not in columns:
                raise ValidationError(f"Unknown column {model.__tablename__}.{key}")
            coerced[key] = self._coerce_value(columns[key], value)
        return coerced

    def _query(self, model, filters=None, in_=None, gte=None, lte=None):
        columns = model.__table__.columns
        query = self.db.query(model)
        for key, value in (filters or {}).items():
            col = getattr(model, key)
            if value is None:
                query = query.filter(col.is_(None))
            else:
                query = query.filter(col == self._coerce_value(columns[key], value))
        for key, values in (in_ or {}).items():
            query = query.filter(getattr(model, key).in_([self._coerce_value(columns[key], v) for v in values]))
        for key, value in (gte or {}).items():
            query = query.filter(getattr(model, key) >= self._coerce_value(columns[key], value))
        for key, value in (lte or {}).items():
            query = query.filter(getattr(model, key) <= self._coerce_value(columns[key], value))
        return query

    def _commit(self):
        if self._depth:
            self.db.flush()
        else:
            self.db.commit()

    @contextmanager
    def _guard(self, action: str, table: str):
        try:
            yield
        except IntegrityError as e:
            if not self._depth:
                self.db.rollback()
            raise ConflictError(f"{action} on {table} violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            if not self._depth:
                self.db.rollback()
            logger.error(f"SQL {action} on {table} failed: {e}")
            raise StoreError(f"{action} on {table} failed") from e

    # ------------------------------------------------------------------
    async def select(self, table, filters=None, *, in_=None, gte=None, lte=None,
                     order_by=None, descending=False):
        model = self._model(table)
        with self._guard("select", table):
            query = self._query(model, filters, in_, gte, lte)
            if order_by:
                col = getattr(model, order_by)
                query = query.order_by(col.desc() if descending else col.asc())
            return [self._to_dict(row) for row in query.all()]

    async def get(self, table, record_id):
        model = self._model(table)
        with self._guard("get", table):
            row = self.db.get(model, record_id)
        if row is None:
            raise NotFoundError(table, record_id)
        return self._to_dict(row)

    async def insert(self, table, data):
        rows = await self.insert_many(table, [data])
        return rows[0]

    async def insert_many(self, table, rows):
        model = self._model(table)
        with self._guard("insert", table):
            objects = [model(**self._coerce(model, row)) for row in rows]
            self.db.add_all(objects)
            self._commit()
            if not self._depth:
                for obj in objects:
                    self.db.refresh(obj)
            return [self._to_dict(obj) for obj in objects]

    async def update(self, table, record_id, data):
        model = self._model(table)
        with self._guard("update", table):
            row = self.db.get(model, record_id)
            if row is None:
                raise NotFoundError(table, record_id)
            for key, value in self._coerce(model, data).items():
                setattr(row, key, value)
            self._commit()
            if not self._depth:
                self.db.refresh(row)
            return self._to_dict(row)

    async def update_where(self, table, filters, data):
        model = self._model(table)
        with self._guard("update", table):
            count = self._query(model, filters).update(self._coerce(model, data), synchronize_session="fetch")
            self._commit()
            return count

    async def delete(self, table, record_id):
        model = self._model(table)
        with self._guard("delete", table):
            row = self.db.get(model, record_id)
            if row is None:
                raise NotFoundError(table, record_id)
            self.db.delete(row)
            self._commit()

    async def delete_where(self, table, filters):
        model = self._model(table)
        with self._guard("delete", table):
            count = self._query(model, filters).delete(synchronize_session="fetch")
            self._commit()
            return count

    async def upsert(self, table, data, on_conflict):
        model = self._model(table)
        key = {col: data[col] for col in on_conflict}
        with self._guard("upsert", table):
            row = self._query(model, key).first()
            if row is None:
                row = model(**self._coerce(model, data))
                self.db.add(row)
            else:
                for k, v in self._coerce(model, data).items():
                    if k != "id":
                        setattr(row, k, v)
            self._commit()
            if not self._depth:
                self.db.refresh(row)
            return self._to_dict(row)

    async def increment(self, table, record_id, column, delta):
        model = self._model(table)
        col = getattr(model, column)
        with self._guard("increment", table):
            count = self.db.query(model).filter(model.id == record_id).update(
                {col: col + Decimal(str(delta))}, synchronize_session=False
            )
            if not count:
                raise NotFoundError(table, record_id)
            self._commit()
            # Identity-map copies are stale after a bulk UPDATE
            self.db.expire_all()
            return self.db.query(col).filter(model.id == record_id).scalar()

    # ------------------------------------------------------------------
    @asynccontextmanager
    async def atomic(self):
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if not self._depth:
                self.db.rollback()
            raise
        self._depth -= 1
        if not self._depth:
            with self._guard("commit", "session"):
                self.db.commit()

    async def close(self):
        self.db.close()
