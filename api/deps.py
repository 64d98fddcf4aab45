"""FastAPI dependencies for caller identity, database sessions and services."""
import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.db.database import Database
from api.services.bot_service import BotService
from shared.config import AppSettings
from shared.exchanges import BitgetClient

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


async def get_current_user(
    request: Request,
    x_user_id: Optional[str] = Header(None),
) -> int:
    """Resolve the caller's user id.

    Authentication lives outside this service; the gateway forwards the user
    id in ``X-User-Id``. Without it the configured default (demo) user is used.
    """
    if x_user_id is None or not x_user_id.strip():
        return request.app.state.settings.auth.default_user_id
    try:
        return int(x_user_id.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )


async def get_bot_service(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> BotService:
    settings: AppSettings = request.app.state.settings
    return BotService(
        session,
        cipher=request.app.state.cipher,
        profit_rate=settings.trading.sell_profit_rate,
    )


async def get_exchange_client(
    request: Request,
    paper: bool = Query(False),
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
) -> BitgetClient:
    """Build a venue client from the caller's stored credentials.

    Falls back to the credentials from configuration when the caller has none.
    """
    exchange_settings = request.app.state.settings.exchange
    try:
        credentials = await service.get_api_credentials(user_id)
    except Exception as err:
        logger.exception("decrypt api config failed user_id=%s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API configuration credentials are invalid",
        ) from err

    if credentials is not None:
        api_key = credentials.api_key
        api_secret = credentials.api_secret
        passphrase = credentials.passphrase
    else:
        api_key = exchange_settings.api_key
        api_secret = exchange_settings.api_secret
        passphrase = exchange_settings.passphrase

    return BitgetClient(
        api_key=api_key,
        api_secret=api_secret,
        passphrase=passphrase,
        is_paper_trading=paper,
        base_url=exchange_settings.base_url,
        timeout=exchange_settings.timeout,
        session=request.app.state.http_session,
    )


def get_market_client(
    request: Request,
    paper: bool = Query(False),
) -> BitgetClient:
    """Venue client for the public market proxies, built from configuration."""
    exchange_settings = request.app.state.settings.exchange
    return BitgetClient(
        api_key=exchange_settings.api_key,
        api_secret=exchange_settings.api_secret,
        passphrase=exchange_settings.passphrase,
        is_paper_trading=paper,
        base_url=exchange_settings.base_url,
        timeout=exchange_settings.timeout,
        session=request.app.state.http_session,
    )
