from auction_service.models.database import Base, get_db
from auction_service.models.lot import Lot

__all__ = ["Base", "get_db", "Lot"]
