import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from auction_service.services.lot_store import LotState, LotStore, as_utc

logger = logging.getLogger(__name__)

DEFAULT_AUCTION_DURATION = timedelta(days=7)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


@dataclass(frozen=True)
class LotUpdate:
    """Partial update of the editable lot fields.

    Each field is ``UNSET`` (leave unchanged), ``None`` (clear) or a value.
    """

    name: str | None | _Unset = UNSET
    description: str | None | _Unset = UNSET
    owner_id: str | None | _Unset = UNSET

    def changes(self) -> dict[str, str | None]:
        fields = {"name": self.name, "description": self.description, "owner_id": self.owner_id}
        return {field: value for field, value in fields.items() if value is not UNSET}


def create_lot(
    store: LotStore,
    name: str,
    start_price: Decimal,
    description: str | None = None,
    owner_id: str | None = None,
    auction_end_date: datetime | None = None,
) -> LotState:
    now = store.transaction_now()
    if auction_end_date is None:
        auction_end_date = now + DEFAULT_AUCTION_DURATION
    lot = store.insert(
        name=name,
        description=description,
        start_price=start_price,
        current_price=None,
        owner_id=owner_id,
        created_at=now,
        auction_end_date=as_utc(auction_end_date),
    )
    logger.info("Created lot %s ending at %s", lot.id, lot.auction_end_date)
    return lot


def update_lot(store: LotStore, lot_id: int, update: LotUpdate) -> LotState | None:
    changes = update.changes()
    if not changes:
        return store.fetch_one(lot_id)

    lot = store.lock_one_for_update(lot_id)
    try:
        if lot is None:
            return None
        for field, value in changes.items():
            setattr(lot, field, value)
        updated = store.snapshot(lot)
        store.commit()
        logger.info("Updated lot %s fields: %s", lot_id, ", ".join(sorted(changes)))
        return updated
    finally:
        store.abort()


def delete_lot(store: LotStore, lot_id: int) -> bool:
    lot = store.lock_one_for_update(lot_id)
    try:
        if lot is None:
            return False
        store.remove(lot)
        store.commit()
        logger.info("Deleted lot %s", lot_id)
        return True
    finally:
        store.abort()
