"""Lot Store: durable lot rows and the per-lot locking primitive.

Every mutation of a lot goes through :meth:`LotStore.lock_one_for_update`
followed by exactly one :meth:`LotStore.commit` or :meth:`LotStore.abort`.
On PostgreSQL the lock is a ``SELECT ... FOR UPDATE`` row lock. SQLite has
no row locks, so there the store also holds an in-process mutex keyed by
database and lot id until the transaction ends.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auction_service.models import Lot

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Storage-layer fault: unreachable database, failed statement or lock timeout."""


def as_utc(value: datetime | str) -> datetime:
    # SQLite hands its clock and stored timestamps back as text.
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class LotState:
    """Committed snapshot of one lot row."""

    id: int
    name: str
    description: str | None
    start_price: Decimal
    current_price: Decimal | None
    owner_id: str | None
    created_at: datetime | None
    auction_end_date: datetime

    @property
    def baseline_price(self) -> Decimal:
        """The amount a new bid has to exceed."""
        if self.current_price is not None:
            return self.current_price
        return self.start_price

    @classmethod
    def from_row(cls, lot: Lot) -> "LotState":
        return cls(
            id=lot.id,
            name=lot.name,
            description=lot.description,
            start_price=Decimal(lot.start_price),
            current_price=Decimal(lot.current_price) if lot.current_price is not None else None,
            owner_id=lot.owner_id,
            created_at=as_utc(lot.created_at) if lot.created_at is not None else None,
            auction_end_date=as_utc(lot.auction_end_date),
        )


class _LotLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # Entries vanish once no store holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def get(self, database: str, lot_id: int) -> threading.Lock:
        key = (database, lot_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


_local_lot_locks = _LotLocks()


class LotStore:
    def __init__(self, db: Session, lock_timeout_seconds: float = 5.0) -> None:
        self.db = db
        self.lock_timeout_seconds = lock_timeout_seconds
        self._held_lock: threading.Lock | None = None

    @property
    def _has_row_locks(self) -> bool:
        return self.db.get_bind().dialect.name != "sqlite"

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Lot store failed to %s: %s", action, exc, exc_info=True)
            self.abort()
            raise StoreError(f"Failed to {action}") from exc

    def fetch_all(self) -> list[LotState]:
        with self._guard("list lots"):
            lots = self.db.query(Lot).order_by(Lot.id.asc()).all()
            states = [LotState.from_row(lot) for lot in lots]
            self.db.commit()
        return states

    def fetch_one(self, lot_id: int) -> LotState | None:
        with self._guard("read lot"):
            lot = self.db.query(Lot).filter(Lot.id == lot_id).populate_existing().first()
            state = LotState.from_row(lot) if lot is not None else None
            self.db.commit()
        return state

    def transaction_now(self) -> datetime:
        """Database clock for the open transaction (``now()`` on PostgreSQL)."""
        if self._has_row_locks:
            clock = func.now()
        else:
            # CURRENT_TIMESTAMP on SQLite is truncated to whole seconds.
            clock = func.strftime("%Y-%m-%d %H:%M:%f", "now")
        with self._guard("read database time"):
            value = self.db.execute(select(clock)).scalar_one()
        return as_utc(value)

    def insert(self, **values) -> LotState:
        with self._guard("create lot"):
            lot = Lot(**values)
            self.db.add(lot)
            self.db.flush()
            state = LotState.from_row(lot)
            self.db.commit()
        return state

    def lock_one_for_update(self, lot_id: int) -> Lot | None:
        """Start a transaction holding the exclusive lock on one lot.

        Returns the live row, or None when the lot does not exist. The caller
        must finish with :meth:`commit` or :meth:`abort` in both cases.
        """
        if not self._has_row_locks:
            self._acquire_local_lock(lot_id)
        with self._guard("lock lot"):
            return (
                self.db.query(Lot)
                .filter(Lot.id == lot_id)
                .populate_existing()
                .with_for_update()
                .first()
            )

    def snapshot(self, lot: Lot) -> LotState:
        """Flush pending changes to ``lot`` and capture them before commit."""
        with self._guard("write lot"):
            self.db.flush()
        return LotState.from_row(lot)

    def remove(self, lot: Lot) -> None:
        with self._guard("delete lot"):
            self.db.delete(lot)
            self.db.flush()

    def commit(self) -> None:
        try:
            with self._guard("commit transaction"):
                self.db.commit()
        finally:
            self._release_local_lock()

    def abort(self) -> None:
        """Roll back the open transaction, if any. Safe to call after commit."""
        try:
            if self.db.in_transaction():
                self.db.rollback()
        except SQLAlchemyError as exc:
            logger.warning("Rollback failed: %s", exc)
        finally:
            self._release_local_lock()

    def _acquire_local_lock(self, lot_id: int) -> None:
        lock = _local_lot_locks.get(str(self.db.get_bind().url), lot_id)
        if not lock.acquire(timeout=self.lock_timeout_seconds):
            raise StoreError(f"Timed out waiting for the lock on lot {lot_id}")
        self._held_lock = lock

    def _release_local_lock(self) -> None:
        if self._held_lock is not None:
            lock, self._held_lock = self._held_lock, None
            lock.release()
