# FILE: herbal_ledger/db/ledger_store.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Type

from sqlalchemy import DateTime, Numeric, delete, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from herbal_ledger.core.errors import NotFoundError, StorageError
from herbal_ledger.db.base import Base
from herbal_ledger.db.session import make_engine, make_session_factory
from herbal_ledger.models import (
    DiagnosisLog,
    Drug,
    Prescription,
    Source,
    StockIn,
    StockOut,
)
from herbal_ledger.utils.money import D
from herbal_ledger.utils.timezone import now_local

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

READONLY = "readonly"
READWRITE = "readwrite"

COLLECTIONS: Dict[str, Type[Base]] = {
    "sources": Source,
    "drugs": Drug,
    "stock_ins": StockIn,
    "stock_outs": StockOut,
    "prescriptions": Prescription,
    "diagnosis_logs": DiagnosisLog,
}


@dataclass
class _Task:
    collection: str
    mode: str
    action: str
    operation: Callable[[Session, Type[Base]], Any]
    future: asyncio.Future


def _to_record(obj) -> Record:
    return {
        attr.key: getattr(obj, attr.key)
        for attr in inspect(obj).mapper.column_attrs
    }


def _coerce(model: Type[Base], record: Record) -> Record:
    """
    Keep only mapped columns and bring loose values (ISO strings, floats)
    to the column's Python type. Unknown keys are dropped.
    """
    columns = {c.key: c for c in inspect(model).columns}
    out: Record = {}
    for key, value in record.items():
        col = columns.get(key)
        if col is None:
            logger.debug("Dropping unknown field %s.%s", model.__tablename__, key)
            continue
        if value is not None:
            if isinstance(col.type, DateTime) and isinstance(value, str):
                value = datetime.fromisoformat(value)
            elif isinstance(col.type, Numeric) and not isinstance(value, Decimal):
                value = D(value)
        out[key] = value
    return out


class LedgerStore:
    """
    Async key-value facade over the ledger tables.

    Every call is queued on one FIFO queue and executed by a single worker,
    one session per operation, so no two storage operations ever overlap.
    A sequence of calls is NOT atomic; each one commits on its own.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @classmethod
    def from_url(cls, db_uri: str, *, echo: bool = False) -> "LedgerStore":
        return cls(make_engine(db_uri, echo=echo))

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    async def aclose(self) -> None:
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        self._loop = None
        self.engine.dispose()

    # -------------------------
    # Queue
    # -------------------------
    def _ensure_worker(self) -> None:
        loop = asyncio.get_running_loop()
        if self._worker is None or self._worker.done() or self._loop is not loop:
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            task: _Task = await self._queue.get()
            try:
                result = await asyncio.to_thread(self._execute, task)
            except Exception as exc:
                # the caller owns the failure; the queue keeps going
                if not task.future.done():
                    task.future.set_exception(exc)
            else:
                if not task.future.done():
                    task.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _submit(self, collection: str, mode: str, action: str,
                      operation: Callable[[Session, Type[Base]], Any]) -> Any:
        if collection not in COLLECTIONS:
            raise StorageError(f"Unknown collection: {collection}",
                               collection=collection, action=action)
        self._ensure_worker()
        future = self._loop.create_future()
        self._queue.put_nowait(
            _Task(collection=collection, mode=mode, action=action,
                  operation=operation, future=future))
        return await future

    def _execute(self, task: _Task) -> Any:
        model = COLLECTIONS[task.collection]
        with self._session_factory() as db:
            try:
                result = task.operation(db, model)
                if task.mode == READWRITE:
                    db.commit()
                return result
            except SQLAlchemyError as e:
                db.rollback()
                reason = getattr(e, "orig", None) or e
                logger.exception("Store %s on %s failed", task.action, task.collection)
                raise StorageError(
                    f"{task.action} on {task.collection} failed: {reason}",
                    collection=task.collection,
                    action=task.action,
                ) from e
            except (ValueError, TypeError) as e:
                db.rollback()
                raise StorageError(
                    f"{task.action} on {task.collection} rejected a value: {e}",
                    collection=task.collection,
                    action=task.action,
                ) from e
            except Exception:
                db.rollback()
                raise

    # -------------------------
    # Writes
    # -------------------------
    async def create(self, collection: str, record: Record) -> Record:
        data = dict(record)
        data.pop("id", None)
        data["create_time"] = now_local()

        def op(db: Session, model):
            obj = model(**_coerce(model, data))
            db.add(obj)
            db.flush()
            return _to_record(obj)

        return await self._submit(collection, READWRITE, "create", op)

    async def put(self, collection: str, record: Record) -> Record:
        """Insert a record verbatim, keeping its id and timestamps."""
        data = dict(record)

        def op(db: Session, model):
            obj = model(**_coerce(model, data))
            db.add(obj)
            db.flush()
            return _to_record(obj)

        return await self._submit(collection, READWRITE, "put", op)

    async def update(self, collection: str, record: Record) -> Record:
        data = dict(record)
        record_id = data.pop("id", None)
        if record_id is None:
            raise StorageError(f"update on {collection} needs an id",
                               collection=collection, action="update")
        data["update_time"] = now_local()

        def op(db: Session, model):
            obj = db.get(model, record_id)
            if obj is None:
                raise NotFoundError(f"{collection} record {record_id} not found")
            for key, value in _coerce(model, data).items():
                setattr(obj, key, value)
            db.flush()
            return _to_record(obj)

        return await self._submit(collection, READWRITE, "update", op)

    async def delete(self, collection: str, record_id: int) -> bool:
        def op(db: Session, model):
            db.execute(delete(model).where(model.id == record_id))
            return True

        return await self._submit(collection, READWRITE, "delete", op)

    async def clear(self, collection: str) -> bool:
        def op(db: Session, model):
            db.execute(delete(model))
            return True

        return await self._submit(collection, READWRITE, "clear", op)

    # -------------------------
    # Reads
    # -------------------------
    async def get_by_id(self, collection: str, record_id: int) -> Optional[Record]:
        def op(db: Session, model):
            obj = db.get(model, record_id)
            return _to_record(obj) if obj is not None else None

        return await self._submit(collection, READONLY, "get", op)

    async def get_all(self, collection: str) -> List[Record]:
        def op(db: Session, model):
            rows = db.execute(select(model).order_by(model.id.asc())).scalars().all()
            return [_to_record(r) for r in rows]

        return await self._submit(collection, READONLY, "get_all", op)

    async def get_by_index_value(self, collection: str, field: str,
                                 value: Any) -> Optional[Record]:
        model = COLLECTIONS.get(collection)
        if model is not None and field not in inspect(model).columns:
            raise StorageError(f"{collection} has no field {field}",
                               collection=collection, action="index")

        def op(db: Session, model):
            row = db.execute(
                select(model)
                .where(getattr(model, field) == value)
                .order_by(model.id.asc())
                .limit(1)
            ).scalar_one_or_none()
            return _to_record(row) if row is not None else None

        return await self._submit(collection, READONLY, "index", op)

    async def scan(self, collection: str,
                   predicate: Callable[[Record], bool]) -> List[Record]:
        def op(db: Session, model):
            rows = db.execute(select(model).order_by(model.id.asc())).scalars()
            return [rec for rec in (_to_record(r) for r in rows) if predicate(rec)]

        return await self._submit(collection, READONLY, "scan", op)
