import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auction_service.api import lots
from auction_service.config import settings
from auction_service.db_init import ensure_schema
from auction_service.models.database import engine
from auction_service.services.access_gate import PRICED_METHODS, AccessGate
from auction_service.services.lot_store import StoreError
from auction_service.services.registry import RegistrationError, ServiceRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("auction_service.startup")


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


def _get_cors_origins(cors_raw: str) -> list[str]:
    return [origin.strip() for origin in cors_raw.split(",") if origin.strip()]


def _validate_database_url_for_runtime(database_url: str) -> None:
    parsed = urlparse(database_url)
    scheme = parsed.scheme
    host = parsed.hostname
    db_name = parsed.path.lstrip("/")
    postgres_schemes = {"postgres", "postgresql", "postgresql+psycopg"}

    if not scheme:
        raise RuntimeError("DATABASE_URL is missing URL scheme (expected postgresql:// or postgresql+psycopg://).")
    if scheme == "sqlite":
        return
    if scheme not in postgres_schemes:
        raise RuntimeError(
            f"DATABASE_URL has unsupported scheme '{scheme}' "
            "(expected postgresql:// or postgresql+psycopg://)."
        )
    if not host:
        raise RuntimeError("DATABASE_URL is missing host.")
    if not db_name:
        raise RuntimeError("DATABASE_URL is missing database name in path.")


def _db_url_diagnostics(database_url: str) -> str:
    parsed = urlparse(database_url)
    host = parsed.hostname or "<missing>"
    port = parsed.port or "<missing>"
    db_name = parsed.path.lstrip("/") or "<missing>"
    scheme = parsed.scheme or "<missing>"
    return f"scheme={scheme}, host={host}, port={port}, database={db_name}"


def _validate_required_env_for_runtime() -> None:
    errors = []

    for name in ("PAYMENT_SERVICE_URL", "REGISTRY_SERVICE_URL"):
        try:
            value = getattr(settings, name)
        except ValueError as exc:
            errors.append(str(exc))
            continue
        if not _is_http_url(value):
            errors.append(f"{name} must be an absolute http(s) URL, e.g. http://payment-service:8080")

    try:
        settings.SERVICE_PORT
    except ValueError as exc:
        errors.append(str(exc))

    invalid_origins = [origin for origin in _get_cors_origins(settings.CORS_ORIGINS) if not _is_http_url(origin)]
    if invalid_origins:
        errors.append(f"CORS_ORIGINS contains invalid URL(s): {', '.join(invalid_origins)}")

    if errors:
        raise RuntimeError("Startup environment validation failed: " + " | ".join(errors))


def _register_with_directory() -> None:
    registry = ServiceRegistry(
        registry_url=settings.REGISTRY_SERVICE_URL,
        service_name=settings.SERVICE_NAME,
        service_address=settings.SERVICE_ADDRESS,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    try:
        service_id = registry.register(PRICED_METHODS)
        logger.info("Registered %s with the service directory (id=%s)", settings.SERVICE_NAME, service_id)
    except RegistrationError as exc:
        logger.warning("Service registration failed, continuing without it: %s", exc)
    finally:
        registry.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    database_url = "<unavailable>"
    logger.info("Application startup initiated.")
    try:
        database_url = settings.DATABASE_URL
        logger.info("DATABASE_URL diagnostics at startup: %s", _db_url_diagnostics(database_url))
        _validate_database_url_for_runtime(database_url)
        _validate_required_env_for_runtime()
        ensure_schema(
            engine,
            retries=settings.DB_CONNECT_RETRIES,
            retry_delay_seconds=settings.DB_CONNECT_RETRY_DELAY_SECONDS,
        )
    except Exception as exc:
        diagnostics = (
            _db_url_diagnostics(database_url)
            if database_url != "<unavailable>"
            else "DATABASE_URL unavailable (missing or unreadable)."
        )
        logger.exception(
            "Startup failed: %s. DATABASE_URL diagnostics: %s",
            str(exc),
            diagnostics,
        )
        raise

    app.state.access_gate = AccessGate(
        payment_service_url=settings.PAYMENT_SERVICE_URL,
        service_name=settings.SERVICE_NAME,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    _register_with_directory()
    logger.info("Application startup completed successfully.")
    yield
    app.state.access_gate.close()


app = FastAPI(
    title="Auction Service API",
    description=(
        "Auction lots with a serialized bid protocol. Create, update, delete and bid "
        "require a bearer token accepted by the payment service."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Lots", "description": "Lot lifecycle and bidding."},
    ],
)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON payload"
    location = [str(part) for part in first.get("loc", ())]
    if location and location[0] in {"body", "path", "query", "header"}:
        location = location[1:]
    message = first.get("msg", "Invalid value")
    return f"{'.'.join(location)}: {message}" if location else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _validation_message(exc)},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(settings.CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(lots.router, prefix="/lots", tags=["Lots"])


@app.get("/")
def root():
    return {"status": "ok", "service": settings.SERVICE_NAME}


@app.get("/health")
def health():
    return {"status": "ok"}


def run() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT)
