"""Audit service: append-only audit trail with a bounded local fallback."""

import asyncio
import csv
import io
import logging
import threading
from collections import deque
from typing import Callable, Iterable, List, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_backend.core.config import settings
from admin_backend.core.exceptions import AuditSinkUnavailable, AuditWriteFailed
from admin_backend.models.audit_log import AuditLog
from admin_backend.schemas.schemas import (
    AuditEntry, AuditEntryIn, AuditFilters, AuditPage,
)

logger = logging.getLogger("admin_console.audit")

CSV_COLUMNS = [
    "id", "timestamp", "action", "target_type", "target_id",
    "admin_id", "admin_role", "ip_address", "details",
]


class LocalAuditBuffer:
    """Ring buffer of the most recent entries, oldest evicted first."""

    def __init__(self, capacity: int = 200):
        self.capacity = capacity
        self._entries: deque = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def snapshot(self) -> List[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        """Drop everything; called when the session ends."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Filter semantics live here once, for both the SQL and the in-memory path.

def _matches(entry: AuditEntry, filters: AuditFilters) -> bool:
    if filters.action and entry.action != filters.action:
        return False
    if filters.admin_id and entry.admin_id != filters.admin_id:
        return False
    if filters.target_type and entry.target_type != filters.target_type:
        return False
    if filters.start and entry.timestamp < filters.start:
        return False
    if filters.end and entry.timestamp > filters.end:
        return False
    return True


def _filter_query(query, filters: AuditFilters):
    if filters.action:
        query = query.filter(AuditLog.action == filters.action)
    if filters.admin_id:
        query = query.filter(AuditLog.admin_id == filters.admin_id)
    if filters.target_type:
        query = query.filter(AuditLog.target_type == filters.target_type)
    if filters.start:
        query = query.filter(AuditLog.timestamp >= _naive(filters.start))
    if filters.end:
        query = query.filter(AuditLog.timestamp <= _naive(filters.end))
    return query


def _naive(value):
    return value.replace(tzinfo=None)


def _newest_first(entries: Iterable[AuditEntry]) -> List[AuditEntry]:
    return sorted(entries, key=lambda e: (e.timestamp, e.id), reverse=True)


def _merge(durable: List[AuditEntry], pending: List[AuditEntry]) -> List[AuditEntry]:
    seen = {e.id for e in durable}
    return _newest_first(durable + [e for e in pending if e.id not in seen])


class AuditTrail:
    """Records immutable audit entries for privileged actions.

    ``append`` never fails from the caller's point of view: every entry
    lands in the local buffer, and the durable write is best-effort.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        fallback: Optional[LocalAuditBuffer] = None,
    ):
        self._session_factory = session_factory
        self.fallback = fallback or LocalAuditBuffer(settings.AUDIT_FALLBACK_CAPACITY)
        # Ids whose durable write failed; reads fold these back in from the buffer.
        self._unsynced: set = set()
        self._unsynced_lock = threading.Lock()

    async def append(self, entry: Union[AuditEntryIn, dict]) -> AuditEntry:
        if isinstance(entry, dict):
            entry = AuditEntryIn(**entry)
        record = AuditEntry.create(entry)

        self.fallback.append(record)
        try:
            await asyncio.to_thread(self._write_durable, record)
        except AuditWriteFailed as e:
            logger.warning("Audit entry %s kept in local fallback only: %s", record.id, e.message)
            with self._unsynced_lock:
                self._unsynced.add(record.id)
                if len(self._unsynced) > self.fallback.capacity:
                    self._unsynced &= {e.id for e in self.fallback.snapshot()}
        return record

    async def query(
        self,
        filters: Optional[AuditFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> AuditPage:
        """Filtered, newest-first page of entries."""
        filters = filters or AuditFilters()
        page = max(page, 1)
        page_size = max(page_size or settings.AUDIT_DEFAULT_PAGE_SIZE, 1)

        start = (page - 1) * page_size
        try:
            pending = self._query_unsynced(filters)
            if pending:
                # Unsynced entries can land on any page; read every durable row up to this one.
                durable, durable_total = await asyncio.to_thread(
                    self._query_durable, filters, 0, start + page_size,
                )
                entries = _merge(durable, pending)[start:start + page_size]
                total = durable_total + len(pending)
            else:
                entries, total = await asyncio.to_thread(
                    self._query_durable, filters, start, page_size,
                )
            source = "durable"
        except AuditSinkUnavailable as e:
            logger.warning("Audit query served from local fallback: %s", e.message)
            matched = self._query_local(filters)
            entries, total = matched[start:start + page_size], len(matched)
            source = "local"

        return AuditPage(
            entries=entries, total=total, page=page, page_size=page_size, source=source,
        )

    async def export_all(self, filters: Optional[AuditFilters] = None) -> List[AuditEntry]:
        """Every entry matching ``filters``, newest first, unpaginated."""
        filters = filters or AuditFilters()
        try:
            entries, _ = await asyncio.to_thread(self._query_durable, filters, 0, None)
            return _merge(entries, self._query_unsynced(filters))
        except AuditSinkUnavailable as e:
            logger.warning("Audit export served from local fallback: %s", e.message)
            return self._query_local(filters)

    # -- durable sink --

    def _write_durable(self, record: AuditEntry) -> None:
        if self._session_factory is None:
            raise AuditWriteFailed("No durable audit sink configured")
        db = None
        try:
            db = self._session_factory()
            db.add(AuditLog(
                id=record.id,
                action=record.action,
                target_id=record.target_id,
                target_type=record.target_type,
                details=record.details,
                admin_id=record.admin_id,
                admin_role=record.admin_role,
                ip_address=record.ip_address,
                timestamp=_naive(record.timestamp),
            ))
            db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise AuditWriteFailed(str(e)) from e
        finally:
            if db is not None:
                db.close()

    def _query_durable(
        self, filters: AuditFilters, offset: int, limit: Optional[int],
    ) -> Tuple[List[AuditEntry], int]:
        if self._session_factory is None:
            raise AuditSinkUnavailable("No durable audit sink configured")
        db = None
        try:
            db = self._session_factory()
            query = _filter_query(db.query(AuditLog), filters)
            total = query.count()
            query = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return [AuditEntry.model_validate(row) for row in query.all()], total
        except (SQLAlchemyError, OSError) as e:
            raise AuditSinkUnavailable(str(e)) from e
        finally:
            if db is not None:
                db.close()

    # -- local fallback --

    def _query_local(self, filters: AuditFilters) -> List[AuditEntry]:
        return _newest_first(e for e in self.fallback.snapshot() if _matches(e, filters))

    def _query_unsynced(self, filters: AuditFilters) -> List[AuditEntry]:
        """Buffered entries missing from the durable store that match ``filters``."""
        snapshot = self.fallback.snapshot()
        with self._unsynced_lock:
            if not self._unsynced:
                return []
            # Entries evicted from the buffer are gone for good.
            self._unsynced &= {e.id for e in snapshot}
            unsynced = set(self._unsynced)
        return [e for e in snapshot if e.id in unsynced and _matches(e, filters)]


def to_csv(entries: Iterable[AuditEntry]) -> str:
    """Render entries for bulk download."""
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for entry in entries:
        row = entry.model_dump(include=set(CSV_COLUMNS))
        row["timestamp"] = entry.timestamp.isoformat()
        writer.writerow(row)
    return out.getvalue()


def _default_trail() -> AuditTrail:
    from admin_backend.db.session import SessionLocal

    return AuditTrail(session_factory=SessionLocal)


audit_trail = _default_trail()
