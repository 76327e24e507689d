from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from auction_service.dependencies import get_lot_store, require_paid_access
from auction_service.schemas.lots import BidRequest, LotCreateRequest, LotResponse, LotUpdateRequest
from auction_service.services import lot_lifecycle
from auction_service.services.bidding import BidOutcome, place_bid
from auction_service.services.lot_store import LotState, LotStore

router = APIRouter()

BID_REJECTIONS = {
    BidOutcome.LOT_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Lot not found"),
    BidOutcome.BID_TOO_LOW: (status.HTTP_400_BAD_REQUEST, "Bid must be greater than current price"),
    BidOutcome.AUCTION_CLOSED: (status.HTTP_409_CONFLICT, "Auction has ended"),
}


def lot_to_response(lot: LotState) -> LotResponse:
    return LotResponse.model_validate(lot)


def _lot_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lot not found")


@router.get(
    "",
    response_model=list[LotResponse],
    summary="List all lots",
)
def list_lots(
    store: Annotated[LotStore, Depends(get_lot_store)],
):
    """Returns every lot ordered by id."""
    return [lot_to_response(lot) for lot in store.fetch_all()]


@router.get(
    "/{lot_id}",
    response_model=LotResponse,
    summary="Get lot by ID",
)
def get_lot(
    lot_id: int,
    store: Annotated[LotStore, Depends(get_lot_store)],
):
    lot = store.fetch_one(lot_id)
    if lot is None:
        raise _lot_not_found()
    return lot_to_response(lot)


@router.post(
    "",
    response_model=LotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a lot",
    dependencies=[Depends(require_paid_access("CreateLot"))],
)
def create_lot(
    body: LotCreateRequest,
    store: Annotated[LotStore, Depends(get_lot_store)],
):
    """
    Create a lot. When auction_end_date is omitted the auction runs for
    seven days from the creation time.
    """
    lot = lot_lifecycle.create_lot(
        store,
        name=body.name,
        start_price=body.start_price,
        description=body.description,
        owner_id=body.owner_id,
        auction_end_date=body.auction_end_date,
    )
    return lot_to_response(lot)


@router.put(
    "/{lot_id}",
    response_model=LotResponse,
    summary="Update lot fields",
    dependencies=[Depends(require_paid_access("UpdateLot"))],
)
def update_lot(
    lot_id: int,
    body: LotUpdateRequest,
    store: Annotated[LotStore, Depends(get_lot_store)],
):
    """
    Partially update name, description and owner_id. Omitted fields are left
    unchanged, explicit nulls clear description and owner_id. Prices and
    dates cannot be changed here.
    """
    lot = lot_lifecycle.update_lot(store, lot_id, body.to_update())
    if lot is None:
        raise _lot_not_found()
    return lot_to_response(lot)


@router.delete(
    "/{lot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a lot",
    dependencies=[Depends(require_paid_access("DeleteLot"))],
)
def delete_lot(
    lot_id: int,
    store: Annotated[LotStore, Depends(get_lot_store)],
):
    if not lot_lifecycle.delete_lot(store, lot_id):
        raise _lot_not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{lot_id}/bid",
    response_model=LotResponse,
    summary="Place a bid",
    dependencies=[Depends(require_paid_access("PlaceBid"))],
)
def bid_on_lot(
    lot_id: int,
    body: BidRequest,
    store: Annotated[LotStore, Depends(get_lot_store)],
):
    """
    Bid on a lot. The bid must exceed the current price (or the start price
    before the first bid) and the auction must not have ended.
    """
    result = place_bid(store, lot_id, body.bid_amount)
    if not result.accepted:
        status_code, detail = BID_REJECTIONS[result.outcome]
        raise HTTPException(status_code=status_code, detail=detail)
    return lot_to_response(result.lot)
