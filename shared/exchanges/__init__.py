"""Trading venue clients."""

from .bitget import (
    BITGET_BASE_URL,
    AckStatus,
    BitgetClient,
    GridOrderAck,
    GridParams,
    sign_request,
)


def to_venue_symbol(trading_pair: str) -> str:
    """BTC/USDT -> BTC_USDT"""
    return trading_pair.strip().upper().replace("/", "_")


__all__ = [
    "BITGET_BASE_URL",
    "AckStatus",
    "BitgetClient",
    "GridOrderAck",
    "GridParams",
    "sign_request",
    "to_venue_symbol",
]
