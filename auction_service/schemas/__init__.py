from auction_service.schemas.lots import BidRequest, LotCreateRequest, LotResponse, LotUpdateRequest

__all__ = [
    "BidRequest",
    "LotCreateRequest",
    "LotResponse",
    "LotUpdateRequest",
]
