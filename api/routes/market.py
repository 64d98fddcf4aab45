"""Read-only market data proxied from the venue."""
import asyncio
import logging
from functools import partial
from typing import Any, Callable

import requests
from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_market_client, get_settings
from shared.config import AppSettings
from shared.exchanges import BitgetClient
from shared.utils.retry import RetryConfig, with_retry

router = APIRouter()
logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (requests.ConnectionError, requests.Timeout)


def _retry_config(settings: AppSettings) -> RetryConfig:
    return RetryConfig(
        max_attempts=settings.exchange.read_retry_attempts,
        base_delay=settings.exchange.read_retry_base_delay,
        exceptions=RETRYABLE_ERRORS,
    )


async def _call_venue(func: Callable[..., Any], *args: Any, config: RetryConfig) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(with_retry(config)(func), *args))


@router.get("/pairs")
async def get_trading_pairs(
    client: BitgetClient = Depends(get_market_client),
    settings: AppSettings = Depends(get_settings),
):
    try:
        return await _call_venue(client.get_trading_pairs, config=_retry_config(settings))
    except Exception as err:
        logger.exception("fetch trading pairs failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to fetch trading pairs", "error": str(err)},
        ) from err


@router.get("/price")
async def get_price_without_symbol():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")


@router.get("/price/{symbol}")
async def get_price(
    symbol: str,
    client: BitgetClient = Depends(get_market_client),
    settings: AppSettings = Depends(get_settings),
):
    symbol = symbol.strip()
    if not symbol:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")

    try:
        return await _call_venue(client.get_ticker_price, symbol, config=_retry_config(settings))
    except Exception as err:
        logger.exception("fetch price failed symbol=%s", symbol)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to fetch price", "error": str(err)},
        ) from err
