import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from auction_service.services.lot_store import LotState, LotStore

logger = logging.getLogger(__name__)


class BidOutcome(str, Enum):
    ACCEPTED = "accepted"
    LOT_NOT_FOUND = "lot_not_found"
    BID_TOO_LOW = "bid_too_low"
    AUCTION_CLOSED = "auction_closed"


@dataclass(frozen=True)
class BidResult:
    outcome: BidOutcome
    lot: LotState | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome is BidOutcome.ACCEPTED


def place_bid(store: LotStore, lot_id: int, amount: Decimal) -> BidResult:
    """
    Accept ``amount`` as the new current price of a lot, or say why not.

    Runs as one locked transaction: the baseline read, both checks and the
    price write cannot interleave with another bid on the same lot, so a
    losing bid is always compared against the winner's price. The auction
    end is compared with the database clock, never the caller's.
    Storage faults propagate as StoreError after the transaction is rolled back.
    """
    lot = store.lock_one_for_update(lot_id)
    try:
        if lot is None:
            logger.info("Bid on missing lot %s rejected", lot_id)
            return BidResult(BidOutcome.LOT_NOT_FOUND)

        current = LotState.from_row(lot)
        if amount <= current.baseline_price:
            logger.info(
                "Bid %s on lot %s rejected: baseline is %s",
                amount,
                lot_id,
                current.baseline_price,
            )
            return BidResult(BidOutcome.BID_TOO_LOW, current)

        if current.auction_end_date <= store.transaction_now():
            logger.info("Bid %s on lot %s rejected: auction ended at %s", amount, lot_id, current.auction_end_date)
            return BidResult(BidOutcome.AUCTION_CLOSED, current)

        lot.current_price = amount
        updated = store.snapshot(lot)
        store.commit()
        logger.info("Bid %s accepted on lot %s", amount, lot_id)
        return BidResult(BidOutcome.ACCEPTED, updated)
    finally:
        store.abort()
