"""
Pending operation queue
Ordered log of mutations made while offline, replayed against the API in creation order
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.orm import Session

from .errors import PermanentSyncError
from .models import (
    FOREIGN_KEYS,
    HTTP_METHODS,
    OPERATION_TYPES,
    STATUS_FAILED,
    STATUS_IN_FLIGHT,
    STATUS_PENDING,
    PendingRequest,
)
from .store import LocalStore

logger = logging.getLogger(__name__)


@dataclass
class PendingOperation:
    """Detached snapshot of a pending_requests row"""

    id: int
    url: str
    method: str
    body: Optional[dict]
    operation_type: str
    table_name: str
    resource_id: int
    resource_sync_id: Optional[str] = None
    status: str = STATUS_PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: PendingRequest) -> "PendingOperation":
        return cls(
            id=row.id,
            url=row.url,
            method=row.method,
            body=dict(row.body) if row.body is not None else None,
            operation_type=row.operation_type,
            table_name=row.table_name,
            resource_id=row.resource_id,
            resource_sync_id=row.resource_sync_id,
            status=row.status,
            attempts=row.attempts,
            last_error=row.last_error,
            created_at=row.created_at,
        )


@dataclass
class DrainResult:
    sent: int = 0
    failed: int = 0
    remaining: int = 0
    aborted: bool = False
    error: Optional[str] = None


OperationHandler = Callable[[PendingOperation], Awaitable[Any]]


class PendingOperationQueue:
    def __init__(self, store: LocalStore):
        self.store = store
        self._listeners: list[Callable[[int], None]] = []

    def enqueue(
        self,
        url: str,
        method: str,
        operation_type: str,
        table_name: str,
        resource_id: int,
        body: Optional[dict] = None,
        resource_sync_id: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> PendingOperation:
        """
        Append an operation at the tail of the queue.

        With an outer session the row is written in the caller's transaction and
        listeners are not notified; call notify_changed() after committing.
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported method: {method}")
        if operation_type not in OPERATION_TYPES:
            raise ValueError(f"Unsupported operation type: {operation_type}")

        with self.store.transaction(session) as db:
            row = PendingRequest(
                url=url,
                method=method,
                body=body,
                operation_type=operation_type,
                table_name=table_name,
                resource_id=resource_id,
                resource_sync_id=resource_sync_id,
                status=STATUS_PENDING,
            )
            db.add(row)
            db.flush()
            op = PendingOperation.from_row(row)

        logger.info(f"📝 Queued {method} {url} (operation {op.id})")
        if session is None:
            self.notify_changed()
        return op

    async def drain(self, handler: OperationHandler) -> DrainResult:
        """
        Send pending operations oldest first through handler.

        Success deletes the operation. PermanentSyncError dead-letters it (and
        anything depending on the same unconfirmed record) and moves on. Any
        other exception leaves it queued and stops the drain.
        """
        result = DrainResult()
        while True:
            op = self._claim_next()
            if op is None:
                break

            try:
                await handler(op)
            except PermanentSyncError as e:
                result.failed += self._dead_letter(op, str(e))
                logger.error(f"❌ Operation {op.id} {op.method} {op.url} rejected: {e}")
                self.notify_changed()
                continue
            except asyncio.CancelledError:
                self._release(op, "cancelled")
                raise
            except Exception as e:
                self._release(op, str(e))
                logger.warning(f"⚠️ Operation {op.id} {op.method} {op.url} failed, will retry: {e}")
                self.notify_changed()
                result.aborted = True
                result.error = str(e)
                break

            self._complete(op)
            result.sent += 1
            self.notify_changed()

        result.remaining = self.count()
        return result

    def _claim_next(self) -> Optional[PendingOperation]:
        # Re-read the head every time so rewrites from reconciliation are seen
        with self.store.transaction() as db:
            row = (
                db.query(PendingRequest)
                .filter(PendingRequest.status == STATUS_PENDING)
                .order_by(PendingRequest.id)
                .first()
            )
            if row is None:
                return None
            row.status = STATUS_IN_FLIGHT
            db.flush()
            return PendingOperation.from_row(row)

    def _complete(self, op: PendingOperation):
        with self.store.transaction() as db:
            row = db.get(PendingRequest, op.id)
            if row is None:
                return
            table, resource_id = row.table_name, row.resource_id
            db.delete(row)
            db.flush()
            self.store.refresh_pending_flag(db, table, resource_id)

    def _release(self, op: PendingOperation, error: str):
        with self.store.transaction() as db:
            row = db.get(PendingRequest, op.id)
            if row is None:
                return
            row.status = STATUS_PENDING
            row.attempts = (row.attempts or 0) + 1
            row.last_error = error

    def _dead_letter(self, op: PendingOperation, reason: str) -> int:
        """Mark op failed, plus queued operations that can never succeed without it"""
        failed = 0
        with self.store.transaction() as db:
            row = db.get(PendingRequest, op.id)
            if row is None:
                return 0
            row.status = STATUS_FAILED
            row.attempts = (row.attempts or 0) + 1
            row.last_error = reason
            failed += 1

            # Temporary records whose create will never be confirmed
            orphans = []
            if row.resource_id < 0:
                orphans.append((row.table_name, row.resource_id))

            while orphans:
                table, temp_id = orphans.pop()
                for dependent in (
                    db.query(PendingRequest)
                    .filter(PendingRequest.status == STATUS_PENDING)
                    .order_by(PendingRequest.id)
                    .all()
                ):
                    if dependent.status != STATUS_PENDING or not self._depends_on(dependent, table, temp_id):
                        continue
                    dependent.status = STATUS_FAILED
                    dependent.last_error = f"Depends on failed operation {op.id}: {reason}"
                    failed += 1
                    if dependent.operation_type == "create" and dependent.resource_id < 0:
                        orphans.append((dependent.table_name, dependent.resource_id))

        if failed > 1:
            logger.warning(f"⚠️ {failed - 1} dependent operation(s) failed with operation {op.id}")
        return failed

    @staticmethod
    def _depends_on(row: PendingRequest, table: str, temp_id: int) -> bool:
        if row.table_name == table and row.resource_id == temp_id:
            return True
        body = row.body or {}
        return any(
            target == table and body.get(field) == temp_id
            for field, target in FOREIGN_KEYS.get(row.table_name, {}).items()
        )

    # ------------------------------------------------------------------
    # Inspection and dead-letter handling
    # ------------------------------------------------------------------

    def count(self) -> int:
        """Operations still waiting to be sent (pending or in flight)"""
        with self.store.transaction() as db:
            return (
                db.query(PendingRequest)
                .filter(PendingRequest.status.in_((STATUS_PENDING, STATUS_IN_FLIGHT)))
                .count()
            )

    def all(self) -> list[PendingOperation]:
        with self.store.transaction() as db:
            return [PendingOperation.from_row(row) for row in db.query(PendingRequest).order_by(PendingRequest.id)]

    def failed(self) -> list[PendingOperation]:
        with self.store.transaction() as db:
            rows = db.query(PendingRequest).filter(PendingRequest.status == STATUS_FAILED).order_by(PendingRequest.id)
            return [PendingOperation.from_row(row) for row in rows]

    def retry(self, op_id: int) -> PendingOperation:
        """Return a failed operation to the queue in its original position"""
        with self.store.transaction() as db:
            row = db.get(PendingRequest, op_id)
            if row is None or row.status != STATUS_FAILED:
                raise ValueError(f"Operation {op_id} is not in the failed list")
            row.status = STATUS_PENDING
            db.flush()
            op = PendingOperation.from_row(row)
        logger.info(f"🔄 Operation {op_id} returned to the queue")
        self.notify_changed()
        return op

    def discard(self, op_id: int):
        with self.store.transaction() as db:
            row = db.get(PendingRequest, op_id)
            if row is None:
                raise ValueError(f"Operation {op_id} not found")
            table, resource_id = row.table_name, row.resource_id
            db.delete(row)
            db.flush()
            self.store.refresh_pending_flag(db, table, resource_id)
        logger.info(f"🗑️ Operation {op_id} discarded")
        self.notify_changed()

    def subscribe(self, listener: Callable[[int], None]) -> Callable[[], None]:
        """Register a listener called with the pending count after every change"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify_changed(self):
        count = self.count()
        for listener in list(self._listeners):
            try:
                listener(count)
            except Exception as e:
                logger.error(f"❌ Queue listener failed: {e}")
