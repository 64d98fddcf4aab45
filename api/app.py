"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import requests
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.db.database import Database
from shared.config import AppSettings, load_settings
from shared.errors import ExchangeError, NotFoundError, StatsConflictError, ValidationError
from shared.utils.crypto import SecretCipher, generate_key_hex

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await app.state.database.create_tables()
    yield
    app.state.http_session.close()
    await app.state.database.close()


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    # ctx may carry the raised exception object, which is not JSON serializable
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def _build_cipher(settings: AppSettings) -> SecretCipher:
    encryption_key = settings.security.encryption_key
    if not encryption_key:
        logger.warning(
            "No encryption key configured. Generating a temporary one; "
            "stored API credentials will be unreadable after restart."
        )
        encryption_key = generate_key_hex()
    return SecretCipher(encryption_key)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = _validation_errors(exc)
        if any(err["loc"] and err["loc"][0] == "path" for err in errors):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"message": "Invalid bot ID"},
            )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Validation error", "errors": errors},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": exc.message, "errors": exc.errors},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": str(exc)},
        )

    @app.exception_handler(StatsConflictError)
    async def stats_conflict_handler(request: Request, exc: StatsConflictError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"message": str(exc)},
        )

    @app.exception_handler(ExchangeError)
    async def exchange_error_handler(request: Request, exc: ExchangeError):
        logger.error("venue request failed path=%s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Exchange request failed", "error": str(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or load_settings()

    app = FastAPI(
        title="GridHub API",
        description="Grid trading bot management API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = Database(
        database_url=settings.database.url,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        echo=settings.database.echo,
    )
    app.state.cipher = _build_cipher(settings)
    # venue clients are built per request and share this connection pool
    app.state.http_session = requests.Session()

    register_exception_handlers(app)

    from .routes import api_config, bot, market, stats, transaction

    app.include_router(bot.router, prefix="/api/bots", tags=["bots"])
    app.include_router(transaction.router, prefix="/api/transactions", tags=["transactions"])
    app.include_router(api_config.router, prefix="/api/api-config", tags=["api-config"])
    app.include_router(stats.router, prefix="/api/stats", tags=["stats"])
    app.include_router(market.router, prefix="/api/market", tags=["market"])

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app
