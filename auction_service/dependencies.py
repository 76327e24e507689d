from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from auction_service.config import settings
from auction_service.models import get_db
from auction_service.services.access_gate import AccessGate
from auction_service.services.lot_store import LotStore

security = HTTPBearer(auto_error=False)


def get_lot_store(
    db: Annotated[Session, Depends(get_db)],
) -> LotStore:
    return LotStore(db, lock_timeout_seconds=settings.DB_LOCK_TIMEOUT_MS / 1000)


def get_access_gate(request: Request) -> AccessGate:
    return request.app.state.access_gate


def require_paid_access(method_name: str):
    """Dependency factory: the bearer token must be allowed to call ``method_name``."""

    def check_access(
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
        gate: Annotated[AccessGate, Depends(get_access_gate)],
    ) -> str:
        if credentials is None or not credentials.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Bearer token is required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        decision = gate.check(credentials.credentials, method_name)
        if not decision.allowed:
            raise HTTPException(status_code=decision.status_code, detail=decision.message)
        return credentials.credentials

    return check_access
