"""
Session Service.

Keeps exactly one active DiningSession per table.

The table row carries a weak pointer (current_session_id) to its active
session. The pointer is only ever moved with a compare-and-swap UPDATE, and a
partial unique index on dining_session(table_id) WHERE status = 'active'
backs the invariant when two creators race.
"""

from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.config.constants import PaymentStatus, SessionStatus
from shared.config.logging import sessions_logger as logger
from shared.infrastructure.telemetry import trace_event, traced
from shared.utils.exceptions import (
    ConflictError,
    InvalidStatusError,
    SessionNotFoundError,
    StaleSessionError,
    TenantMismatchError,
)
from rest_api.models import DiningSession, Table, utcnow
from rest_api.services.domain.table_binding_service import normalize_label

# One retry after losing a creation race
MAX_BIND_ATTEMPTS = 2


class _PointerMoved(Exception):
    """The table pointer changed between read and compare-and-swap."""


@dataclass(frozen=True)
class SessionHandle:
    session: DiningSession
    created: bool


@dataclass(frozen=True)
class CloseResult:
    session: DiningSession
    already_closed: bool
    pointer_cleared: bool


class SessionService:
    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Ensure
    # =========================================================================

    def ensure_active_session(self, table: Table) -> SessionHandle:
        """
        Return the table's active session, creating one when there is none.
        Idempotent: repeated calls without a close return the same session.

        Raises:
            ConflictError: the creation race was lost twice in a row
        """
        with traced("session.ensure", table_id=table.id, tenant_id=table.tenant_id):
            for attempt in range(MAX_BIND_ATTEMPTS):
                locked = self._lock_table(table.id)

                existing = self._live_session(locked)
                if existing is not None:
                    trace_event("session.reused", session_id=existing.id, table_id=locked.id)
                    return SessionHandle(existing, created=False)

                created = self._try_create(locked)
                if created is not None:
                    logger.info(
                        "Dining session created",
                        session_id=created.id,
                        table_id=locked.id,
                        tenant_id=locked.tenant_id,
                    )
                    trace_event("session.created", session_id=created.id, table_id=locked.id)
                    return SessionHandle(created, created=True)

                trace_event("session.create_raced", table_id=locked.id, attempt=attempt)

        raise ConflictError(
            f"Could not bind a session to table {table.label}",
            table_id=table.id,
            tenant_id=table.tenant_id,
        )

    def _lock_table(self, table_id: int) -> Table:
        # FOR UPDATE serialises concurrent scans of one table (no-op on SQLite)
        return self._db.scalars(
            select(Table)
            .where(Table.id == table_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).one()

    def _live_session(self, table: Table) -> DiningSession | None:
        """Active session the pointer references, relinking a lost pointer."""
        if table.current_session_id is not None:
            pointed = self._db.get(
                DiningSession, table.current_session_id, populate_existing=True
            )
            if pointed is not None and pointed.status == SessionStatus.ACTIVE:
                return pointed
            trace_event(
                "session.stale_pointer",
                table_id=table.id,
                pointer=table.current_session_id,
            )

        orphan = self.find_active_for_table(table.id)
        if orphan is None:
            return None

        # An active session exists but the pointer lost track of it
        if self._swap_pointer(table, expected=table.current_session_id, new=orphan.id):
            logger.warning(
                "Relinked table to its active session",
                table_id=table.id,
                session_id=orphan.id,
            )
            trace_event("session.relinked", table_id=table.id, session_id=orphan.id)
        return orphan

    def _try_create(self, table: Table) -> DiningSession | None:
        """
        Insert a new active session and move the pointer to it.
        Returns None when a concurrent creator won.
        """
        expected = table.current_session_id
        session = DiningSession(
            tenant_id=table.tenant_id,
            table_id=table.id,
            status=SessionStatus.ACTIVE,
            payment_status=PaymentStatus.UNPAID,
            started_at=utcnow(),
        )
        try:
            with self._db.begin_nested():
                self._db.add(session)
                self._db.flush()
                if not self._swap_pointer(table, expected=expected, new=session.id):
                    raise _PointerMoved()
        except (IntegrityError, _PointerMoved):
            return None

        # The pointer must reference an active session before callers write to it
        self._db.refresh(session)
        if session.status != SessionStatus.ACTIVE:
            return None
        return session

    def _swap_pointer(self, table: Table, expected: int | None, new: int | None) -> bool:
        """Compare-and-swap on restaurant_table.current_session_id."""
        result = self._db.execute(
            update(Table)
            .where(
                Table.id == table.id,
                Table.current_session_id.is_not_distinct_from(expected),
            )
            .values(current_session_id=new, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self._db.expire(table, ["current_session_id", "updated_at"])
        return result.rowcount == 1

    # =========================================================================
    # Lookups
    # =========================================================================

    def find_active_for_table(self, table_id: int) -> DiningSession | None:
        return self._db.scalar(
            select(DiningSession)
            .where(
                DiningSession.table_id == table_id,
                DiningSession.status == SessionStatus.ACTIVE,
            )
            .order_by(DiningSession.id)
            .limit(1)
        )

    def current_session(self, table: Table) -> DiningSession | None:
        """Session the table pointer references, only if it is still active."""
        if table.current_session_id is None:
            return None
        session = self._db.get(DiningSession, table.current_session_id)
        if session is None or session.status != SessionStatus.ACTIVE:
            return None
        return session

    def get_session(self, tenant_id: int, session_id: int) -> DiningSession:
        session = self._db.get(DiningSession, session_id)
        if session is None:
            raise SessionNotFoundError(session_id, tenant_id=tenant_id)
        if session.tenant_id != tenant_id:
            raise TenantMismatchError("session", session_id, tenant_id=tenant_id)
        return session

    def validate_provided_session(
        self,
        tenant_id: int,
        table: Table | None,
        session_id: int,
    ) -> DiningSession:
        """
        Check a caller-supplied session id before writing to it.

        Raises:
            SessionNotFoundError: unknown id
            TenantMismatchError: session of another tenant
            StaleSessionError: session of another table, or already closed
        """
        session = self.get_session(tenant_id, session_id)
        if table is not None and session.table_id != table.id:
            trace_event("session.provided_rejected", session_id=session_id, reason="table")
            raise StaleSessionError(
                session_id, "belongs to another table", table_id=table.id
            )
        if session.status != SessionStatus.ACTIVE:
            trace_event("session.provided_rejected", session_id=session_id, reason="closed")
            raise StaleSessionError(session_id, f"session is {session.status}")
        trace_event("session.provided_accepted", session_id=session_id)
        return session

    # =========================================================================
    # Close
    # =========================================================================

    def close(
        self,
        tenant_id: int,
        session_id: int,
        *,
        table_label: str | None = None,
        final_status: str = SessionStatus.COMPLETED,
    ) -> CloseResult:
        """
        Close a session and clear the table pointer if it still references it.
        Closing an already closed session succeeds with already_closed=True.
        """
        if final_status not in SessionStatus.CLOSED:
            raise InvalidStatusError("session", final_status, SessionStatus.CLOSED)

        with traced("session.close", session_id=session_id, tenant_id=tenant_id):
            session = self._db.scalars(
                select(DiningSession)
                .where(DiningSession.id == session_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).one_or_none()
            if session is None:
                raise SessionNotFoundError(session_id, tenant_id=tenant_id)
            if session.tenant_id != tenant_id:
                raise TenantMismatchError("session", session_id, tenant_id=tenant_id)

            already_closed = session.status != SessionStatus.ACTIVE
            if not already_closed:
                session.status = final_status
                session.ended_at = utcnow()
                self._db.flush()

            pointer_cleared = self._clear_pointer(tenant_id, session_id, table_label)

        logger.info(
            "Dining session closed",
            session_id=session_id,
            status=session.status,
            already_closed=already_closed,
            pointer_cleared=pointer_cleared,
        )
        return CloseResult(session, already_closed, pointer_cleared)

    def _clear_pointer(self, tenant_id: int, session_id: int, table_label: str | None) -> bool:
        conditions = [
            Table.tenant_id == tenant_id,
            Table.current_session_id == session_id,
        ]
        if table_label is not None:
            conditions.append(Table.label == normalize_label(table_label))

        result = self._db.execute(
            update(Table)
            .where(*conditions)
            .values(current_session_id=None, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        for obj in list(self._db.identity_map.values()):
            if isinstance(obj, Table):
                self._db.expire(obj, ["current_session_id", "updated_at"])
        return result.rowcount > 0
