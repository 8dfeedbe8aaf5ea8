# backend/db/store.py
"""
Collection-scoped document store on top of SQLAlchemy.

Records go in and come out as plain dicts keyed by wire names. Every write
publishes the full, current snapshot of the touched collection to the
subscribers of that collection.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.errors import NotFoundError, StoreError
from db.models import COLLECTIONS, utcnow
from db.session import Base

log = logging.getLogger(__name__)

Record = Dict[str, Any]
SnapshotCallback = Callable[[List[Record]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle returned by DocumentStore.subscribe()."""

    def __init__(self, store: "DocumentStore", collection: str, callback: SnapshotCallback,
                 on_error: Optional[ErrorCallback] = None):
        self._store = store
        self.collection = collection
        self.callback = callback
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._store._remove(self)


class DocumentStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._subs: Dict[str, List[Subscription]] = {}
        self._subs_lock = threading.Lock()

    # ---------------------------
    # lifecycle
    # ---------------------------
    def create_schema(self) -> None:
        with self._session_factory() as db:
            Base.metadata.create_all(bind=db.get_bind())

    def close(self) -> None:
        with self._subs_lock:
            subs = [s for group in self._subs.values() for s in group]
            self._subs.clear()
        for s in subs:
            s.active = False

    # ---------------------------
    # CRUD
    # ---------------------------
    def create(self, collection: str, data: Record) -> str:
        model = self._model(collection)
        with self._session_factory() as db:
            try:
                row = model()
                row.apply(data)
                db.add(row)
                db.commit()
                new_id = row.id
            except SQLAlchemyError as e:
                db.rollback()
                log.exception("create in %s failed", collection)
                raise StoreError(f"create in {collection} failed: {e}")
        self._publish(collection)
        return new_id

    def get(self, collection: str, doc_id: str) -> Optional[Record]:
        model = self._model(collection)
        with self._session_factory() as db:
            try:
                row = db.get(model, doc_id)
            except SQLAlchemyError as e:
                raise StoreError(f"get {collection}/{doc_id} failed: {e}")
            return row.to_record() if row is not None else None

    def query(self, collection: str, **filters: Any) -> List[Record]:
        """Equality filters keyed by wire name, e.g. query("userAnswers", mockIdRef=iid)."""
        model = self._model(collection)
        stmt = select(model)
        for wire, value in filters.items():
            attr = model.wire_fields.get(wire)
            if attr is None:
                raise KeyError(f"unknown field {wire!r} for {collection}")
            stmt = stmt.where(getattr(model, attr) == value)
        stmt = stmt.order_by(model.created_at.asc(), model.id.asc())
        with self._session_factory() as db:
            try:
                return [row.to_record() for row in db.scalars(stmt).all()]
            except SQLAlchemyError as e:
                raise StoreError(f"query on {collection} failed: {e}")

    def update(self, collection: str, doc_id: str, data: Record) -> None:
        model = self._model(collection)
        with self._session_factory() as db:
            row = db.get(model, doc_id)
            if row is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            try:
                row.apply(data)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                log.exception("update %s/%s failed", collection, doc_id)
                raise StoreError(f"update {collection}/{doc_id} failed: {e}")
        self._publish(collection)

    def delete(self, collection: str, doc_id: str) -> bool:
        model = self._model(collection)
        with self._session_factory() as db:
            row = db.get(model, doc_id)
            if row is None:
                return False
            try:
                db.delete(row)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError(f"delete {collection}/{doc_id} failed: {e}")
        self._publish(collection)
        return True

    def snapshot(self, collection: str) -> List[Record]:
        return self.query(collection)

    @staticmethod
    def server_timestamp():
        return utcnow()

    # ---------------------------
    # change subscription
    # ---------------------------
    def subscribe(self, collection: str, callback: SnapshotCallback,
                  on_error: Optional[ErrorCallback] = None) -> Subscription:
        """
        Register for full snapshots of `collection`. The current snapshot is
        delivered immediately, then again after every write.
        """
        self._model(collection)
        sub = Subscription(self, collection, callback, on_error)
        with self._subs_lock:
            self._subs.setdefault(collection, []).append(sub)
        self._deliver(sub)
        return sub

    def subscriber_count(self, collection: str) -> int:
        with self._subs_lock:
            return len(self._subs.get(collection, []))

    def _remove(self, sub: Subscription) -> None:
        with self._subs_lock:
            group = self._subs.get(sub.collection, [])
            if sub in group:
                group.remove(sub)

    def _publish(self, collection: str) -> None:
        with self._subs_lock:
            subs = list(self._subs.get(collection, []))
        for sub in subs:
            self._deliver(sub)

    def _deliver(self, sub: Subscription) -> None:
        if not sub.active:
            return
        try:
            snap = self.snapshot(sub.collection)
        except StoreError as e:
            log.warning("snapshot for %s failed: %s", sub.collection, e)
            if sub.on_error is not None:
                sub.on_error(e)
            return
        try:
            sub.callback(snap)
        except Exception:
            log.exception("subscriber callback for %s raised", sub.collection)

    @staticmethod
    def _model(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise KeyError(f"unknown collection {collection!r}")


def open_store(session_factory: sessionmaker) -> DocumentStore:
    store = DocumentStore(session_factory)
    store.create_schema()
    return store
