"""
Local durable store for offline mode
Mirrors the server tables in a local SQLite database and keeps the pending request log
"""

import logging
import re
from contextlib import contextmanager
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import LOCAL_SCHEMA_VERSION, OFFLINE_DATABASE_URL
from ..database import build_engine
from .errors import (
    LocalSchemaOutdatedError,
    LocalStoreError,
    RecordNotFoundError,
    UnknownTableError,
    UnsyncedDataError,
)
from .models import (
    ENTITY_MODELS,
    ENTITY_TABLES,
    FOREIGN_KEYS,
    RECORD_KEYS,
    STATUS_FAILED,
    STATUS_IN_FLIGHT,
    STATUS_PENDING,
    LocalBase,
    PendingRequest,
    StoreMeta,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION_KEY = "schema_version"
TEMP_ID_KEY = "temp_id_seq"


def clean_payload(data: Optional[dict]) -> dict:
    """Strip record-level keys so only entity fields are stored in the payload"""
    return {k: v for k, v in (data or {}).items() if k not in RECORD_KEYS}


class LocalStore:
    """
    Local SQLite database with one table per mirrored entity.

    Opening the store creates missing tables, checks the schema version and
    returns operations interrupted mid-send to the pending state. Pass
    verify_schema=False to open an outdated database just to rebuild it.
    """

    def __init__(self, url: str = OFFLINE_DATABASE_URL, engine=None, verify_schema: bool = True):
        self.url = url
        self.engine = engine if engine is not None else build_engine(url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)
        self._open(verify_schema)

    def _open(self, verify_schema: bool):
        try:
            LocalBase.metadata.create_all(bind=self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to open local database {self.url}: {e}")
            raise LocalStoreError(f"Failed to open local database: {e}") from e

        with self.transaction() as db:
            found = self._get_meta(db, SCHEMA_VERSION_KEY)
            if found is None:
                self._set_meta(db, SCHEMA_VERSION_KEY, LOCAL_SCHEMA_VERSION)
            elif int(found) != LOCAL_SCHEMA_VERSION and verify_schema:
                raise LocalSchemaOutdatedError(int(found), LOCAL_SCHEMA_VERSION)

            interrupted = (
                db.query(PendingRequest)
                .filter(PendingRequest.status == STATUS_IN_FLIGHT)
                .update({PendingRequest.status: STATUS_PENDING}, synchronize_session=False)
            )
            if interrupted:
                logger.warning(f"⚠️ Reset {interrupted} interrupted operation(s) to pending")

    @contextmanager
    def transaction(self, session: Optional[Session] = None):
        """
        Yield a session that commits on success and rolls back on error.
        When an outer session is given it is reused and left uncommitted.
        """
        if session is not None:
            yield session
            return

        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Local store transaction failed: {e}")
            raise LocalStoreError(str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def get_table_by_name(self, name: str) -> "TableHandle":
        """Return a handle for a table name ("services") or entity type ("service")"""
        table = ENTITY_TABLES.get(name, name)
        if table not in ENTITY_MODELS:
            raise UnknownTableError(f"Unknown local table: {name}")
        return TableHandle(self, table)

    @property
    def table_names(self) -> list[str]:
        return list(ENTITY_MODELS)

    def next_temp_id(self, session: Session) -> int:
        """Next temporary negative id; the counter is persisted so ids are never reused"""
        current = int(self._get_meta(session, TEMP_ID_KEY) or 0)
        temp_id = current - 1
        self._set_meta(session, TEMP_ID_KEY, temp_id)
        return temp_id

    def put_confirmed(self, table: str, rows: Iterable[dict], prune: bool = False) -> int:
        """
        Upsert server rows as confirmed records.

        Records that still have queued operations keep their local state. With
        prune=True, confirmed records missing from rows are removed (full list pulls).
        """
        handle = self.get_table_by_name(table)
        model = ENTITY_MODELS[handle.name]
        written = 0
        with self.transaction() as db:
            seen = set()
            for row in rows:
                record_id = row.get("id")
                if not isinstance(record_id, int):
                    continue
                seen.add(record_id)
                record = db.get(model, record_id)
                if record is not None and record.pending_sync:
                    continue
                sync_id = row.get("sync_id")
                if sync_id:
                    twin = db.query(model).filter(model.sync_id == sync_id, model.id != record_id).first()
                    if twin is not None:
                        # Local create whose confirmation has not been reconciled yet
                        continue
                if record is None:
                    record = model(id=record_id)
                    db.add(record)
                record.sync_id = sync_id
                record.payload = clean_payload(row)
                record.is_offline = False
                record.pending_sync = False
                written += 1

            if prune:
                stale = (
                    db.query(model)
                    .filter(model.id > 0, model.pending_sync.is_(False), model.id.notin_(list(seen)))
                    .all()
                )
                for record in stale:
                    db.delete(record)
                if stale:
                    logger.info(f"🧹 Pruned {len(stale)} stale record(s) from {handle.name}")

        logger.debug(f"📥 Stored {written} confirmed record(s) in {handle.name}")
        return written

    def apply_server_payload(self, table: str, record_id: int, data: dict, operation_id: Optional[int] = None):
        """
        Refresh a local record with the server's representation after an update.

        Skipped while other queued writes still target the record, so the
        latest local edit stays visible until it is confirmed too.
        """
        table = self.get_table_by_name(table).name
        model = ENTITY_MODELS[table]
        with self.transaction() as db:
            record = db.get(model, record_id)
            if record is None:
                return
            if not self._has_queued_writes(db, table, record_id, operation_id):
                record.payload = {**(record.payload or {}), **clean_payload(data)}
            self.refresh_pending_flag(db, table, record_id)

    def reconcile_id(
        self,
        table: str,
        old_id: int,
        new_id: int,
        server_payload: Optional[dict] = None,
        operation_id: Optional[int] = None,
    ):
        """
        Replace a temporary id with the server-assigned one.

        Rewrites the record, every queued or failed operation that references
        the old id (as its resource or through a foreign key in its body) and
        local records pointing at it, all in one transaction. The server payload
        is merged only when no other write for the record is queued or failed.
        operation_id is the create being confirmed.
        """
        table = self.get_table_by_name(table).name
        model = ENTITY_MODELS[table]
        with self.transaction() as db:
            record = db.get(model, old_id)
            if old_id != new_id:
                existing = db.get(model, new_id)
                if existing is not None and record is not None:
                    # Server copy cached by a pull; the confirmed local record replaces it
                    db.delete(existing)
                    db.flush()
                if record is not None:
                    record.id = new_id
                    db.flush()
            else:
                record = record or db.get(model, new_id)

            rewritten = self._rewrite_operations(db, table, old_id, new_id)
            db.flush()

            if record is not None:
                if not self._has_queued_writes(db, table, new_id, operation_id):
                    record.payload = {**(record.payload or {}), **clean_payload(server_payload)}
                if server_payload and server_payload.get("sync_id"):
                    record.sync_id = server_payload["sync_id"]
                record.is_offline = False
            else:
                logger.warning(f"⚠️ Reconciling {table} {old_id} -> {new_id} without a local record")

            self._rewrite_local_references(db, table, old_id, new_id)
            self.refresh_pending_flag(db, table, new_id)

        logger.info(f"🔁 Reconciled {table} id {old_id} -> {new_id} ({rewritten} queued operation(s) rewritten)")

    def _rewrite_operations(self, db: Session, table: str, old_id: int, new_id: int) -> int:
        url_pattern = re.compile(rf"/{re.escape(table)}/{re.escape(str(old_id))}(?=/|$|\?)")
        rewritten = 0
        # Failed operations are rewritten too so a later retry targets the server id
        for op in db.query(PendingRequest).all():
            changed = False
            if op.table_name == table and op.resource_id == old_id:
                op.resource_id = new_id
                op.url = url_pattern.sub(f"/{table}/{new_id}", op.url)
                changed = True

            if op.body:
                body = dict(op.body)
                if op.table_name == table and body.get("id") == old_id:
                    body["id"] = new_id
                for field, target in FOREIGN_KEYS.get(op.table_name, {}).items():
                    if target == table and body.get(field) == old_id:
                        body[field] = new_id
                if body != op.body:
                    op.body = body
                    changed = True

            if changed:
                rewritten += 1
        return rewritten

    def _rewrite_local_references(self, db: Session, table: str, old_id: int, new_id: int):
        for source, fields in FOREIGN_KEYS.items():
            model = ENTITY_MODELS[source]
            for field, target in fields.items():
                if target != table:
                    continue
                for record in db.query(model).all():
                    if (record.payload or {}).get(field) == old_id:
                        record.payload = {**record.payload, field: new_id}

    @staticmethod
    def _has_queued_writes(db: Session, table: str, record_id: int, operation_id: Optional[int]) -> bool:
        query = db.query(PendingRequest).filter(
            PendingRequest.table_name == table,
            PendingRequest.resource_id == record_id,
            PendingRequest.operation_type != "create",
        )
        if operation_id is not None:
            query = query.filter(PendingRequest.id != operation_id)
        return query.count() > 0

    def refresh_pending_flag(self, db: Session, table: str, record_id: int):
        """Clear pending_sync once no queued operation references the record"""
        model = ENTITY_MODELS.get(table)
        record = db.get(model, record_id) if model is not None else None
        if record is None:
            return
        db.flush()
        outstanding = (
            db.query(PendingRequest)
            .filter(
                PendingRequest.table_name == table,
                PendingRequest.resource_id == record_id,
                or_(
                    PendingRequest.status == STATUS_PENDING,
                    PendingRequest.status == STATUS_IN_FLIGHT,
                    PendingRequest.status == STATUS_FAILED,
                ),
            )
            .count()
        )
        record.pending_sync = outstanding > 0

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def unsynced_count(self) -> int:
        with self.transaction() as db:
            return db.query(PendingRequest).count()

    def rebuild(self, confirm_data_loss: bool = False):
        """Drop and recreate every local table at the current schema version"""
        self._guard_data_loss(confirm_data_loss)
        try:
            with self.transaction() as db:
                temp_seq = self._get_meta(db, TEMP_ID_KEY)
        except LocalStoreError:
            temp_seq = None
        try:
            LocalBase.metadata.drop_all(bind=self.engine)
            LocalBase.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to rebuild local database: {e}")
            raise LocalStoreError(f"Failed to rebuild local database: {e}") from e
        with self.transaction() as db:
            self._set_meta(db, SCHEMA_VERSION_KEY, LOCAL_SCHEMA_VERSION)
            if temp_seq is not None:
                self._set_meta(db, TEMP_ID_KEY, temp_seq)
        logger.info(f"🔧 Local database rebuilt at schema version {LOCAL_SCHEMA_VERSION}")

    def clear(self, confirm_data_loss: bool = False):
        """Empty every entity table and the pending request log (logout, account switch)"""
        self._guard_data_loss(confirm_data_loss)
        with self.transaction() as db:
            for model in ENTITY_MODELS.values():
                db.query(model).delete(synchronize_session=False)
            db.query(PendingRequest).delete(synchronize_session=False)
        logger.info("🧹 Local database cleared")

    def _guard_data_loss(self, confirm_data_loss: bool):
        pending = self.unsynced_count()
        if pending and not confirm_data_loss:
            raise UnsyncedDataError(pending)
        if pending:
            logger.warning(f"⚠️ Discarding {pending} unsynced operation(s)")

    def close(self):
        self.engine.dispose()

    @staticmethod
    def _get_meta(db: Session, key: str) -> Optional[str]:
        meta = db.get(StoreMeta, key)
        return meta.value if meta else None

    @staticmethod
    def _set_meta(db: Session, key: str, value):
        meta = db.get(StoreMeta, key)
        if meta is None:
            db.add(StoreMeta(key=key, value=str(value)))
        else:
            meta.value = str(value)


class TableHandle:
    """Record operations on one local table; every method accepts an outer session"""

    def __init__(self, store: LocalStore, name: str):
        self.store = store
        self.name = name
        self.model = ENTITY_MODELS[name]

    def add(
        self,
        payload: dict,
        record_id: Optional[int] = None,
        sync_id: Optional[str] = None,
        pending: bool = True,
        session: Optional[Session] = None,
    ) -> int:
        """Insert a record and return its id (a new temporary id when none is given)"""
        with self.store.transaction(session) as db:
            temporary = record_id is None
            if temporary:
                record_id = self.store.next_temp_id(db)
            record = self.model(
                id=record_id,
                sync_id=sync_id or (payload or {}).get("sync_id"),
                payload=clean_payload(payload),
                is_offline=record_id < 0,
                pending_sync=pending,
            )
            db.add(record)
            db.flush()
            return record_id

    def update(self, record_id: int, patch: dict, pending: bool = True, session: Optional[Session] = None) -> dict:
        with self.store.transaction(session) as db:
            record = self._get_record(db, record_id)
            record.payload = {**(record.payload or {}), **clean_payload(patch)}
            if pending:
                record.pending_sync = True
            db.flush()
            return record.to_dict()

    def delete(self, record_id: int, session: Optional[Session] = None) -> dict:
        with self.store.transaction(session) as db:
            record = self._get_record(db, record_id)
            snapshot = record.to_dict()
            db.delete(record)
            db.flush()
            return snapshot

    def get(self, record_id: int, session: Optional[Session] = None) -> Optional[dict]:
        with self.store.transaction(session) as db:
            record = db.get(self.model, record_id)
            return record.to_dict() if record else None

    def all(self, session: Optional[Session] = None) -> list[dict]:
        with self.store.transaction(session) as db:
            return [record.to_dict() for record in db.query(self.model).order_by(self.model.id).all()]

    def find_by_sync_id(self, sync_id: str, session: Optional[Session] = None) -> Optional[dict]:
        with self.store.transaction(session) as db:
            record = db.query(self.model).filter(self.model.sync_id == sync_id).first()
            return record.to_dict() if record else None

    def _get_record(self, db: Session, record_id: int):
        record = db.get(self.model, record_id)
        if record is None:
            raise RecordNotFoundError(self.name, record_id)
        return record
