"""Bitget REST client with ACCESS-* request signing."""
import base64
import hashlib
import hmac
import json
import logging
import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import requests

from shared.errors import ExchangeError

logger = logging.getLogger(__name__)

BITGET_BASE_URL = "https://api.bitget.com"
DEFAULT_TIMEOUT = 10.0

ACCOUNTS_PATH = "/api/mix/v1/account/accounts"
TICKER_PATH = "/api/mix/v1/market/ticker"
PLACE_ORDER_PATH = "/api/mix/v1/order/placeOrder"
CONTRACTS_PATH = "/api/mix/v1/market/contracts"
FILLS_PATH = "/api/mix/v1/market/fills"

SIMULATED_TRADING_HEADER = "X-SIMULATED-TRADING"


def sign_request(secret: str, timestamp: str, method: str, path: str, body: str = "") -> str:
    """base64(HMAC-SHA256(secret, timestamp + method + path + body))"""
    message = f"{timestamp}{method}{path}{body}"
    digest = hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("utf-8")


class AckStatus(Enum):
    SIMULATED = "simulated"
    CONFIRMED = "confirmed"


@dataclass
class GridParams:
    symbol: str
    upper_price: float
    lower_price: float
    grid_num: int
    size: float


@dataclass
class GridOrderAck:
    """Acknowledgment of a grid submission.

    ``SIMULATED`` acks are synthesized locally and do not prove that a grid
    order exists on the venue.
    """

    status: AckStatus
    order_id: str
    client_oid: str
    state: str
    request_time: int
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_confirmed(self) -> bool:
        return self.status is AckStatus.CONFIRMED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "orderId": self.order_id,
            "clientOid": self.client_oid,
            "state": self.state,
            "requestTime": self.request_time,
            "params": self.params,
        }


class BitgetClient:
    """Signs and issues requests against the Bitget mix API.

    Holds credentials only; every call is a single blocking HTTP request bounded
    by ``timeout``. Nothing is retried here: a retry policy belongs to the caller,
    and order placement must not be repeated without an idempotency key.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        passphrase: str,
        is_paper_trading: bool = False,
        base_url: str = BITGET_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.passphrase = passphrase
        self.is_paper_trading = is_paper_trading
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

        self._log_prefix = f"[bitget] [{(api_key or '')[:8]}]"

    def generate_signature(self, timestamp: str, method: str, path: str, body: str = "") -> str:
        return sign_request(self.api_secret, timestamp, method, path, body)

    def get_headers(
        self,
        method: str,
        path: str,
        body: str = "",
        timestamp: Optional[str] = None,
    ) -> Dict[str, str]:
        if timestamp is None:
            timestamp = str(int(time.time() * 1000))
        signature = self.generate_signature(timestamp, method, path, body)
        return {
            "ACCESS-KEY": self.api_key,
            "ACCESS-SIGN": signature,
            "ACCESS-TIMESTAMP": timestamp,
            "ACCESS-PASSPHRASE": self.passphrase,
            "Content-Type": "application/json",
            SIMULATED_TRADING_HEADER: "1" if self.is_paper_trading else "0",
        }

    def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Send a signed request and return the decoded JSON payload.

        Raises ExchangeError on non-2xx responses. requests transport errors
        (ConnectionError, Timeout, ...) propagate unchanged.
        """
        method = method.upper()
        body = json.dumps(data, separators=(",", ":")) if data is not None else ""
        headers = self.get_headers(method, path, body)
        url = f"{self.base_url}{path}"

        logger.debug("%s %s %s paper=%s", self._log_prefix, method, path, self.is_paper_trading)
        response = self._session.request(
            method,
            url,
            headers=headers,
            data=body.encode("utf-8") if body else None,
            timeout=self.timeout,
        )

        if not 200 <= response.status_code < 300:
            logger.warning(
                "%s %s %s failed status=%s body=%s",
                self._log_prefix,
                method,
                path,
                response.status_code,
                response.text,
            )
            raise ExchangeError(response.status_code, response.text)

        if not response.content:
            return None
        return response.json()

    def get_account_balance(self) -> Any:
        return self.request("GET", ACCOUNTS_PATH)

    def get_ticker_price(self, symbol: str) -> Any:
        return self.request("GET", f"{TICKER_PATH}?symbol={symbol}")

    def place_market_order(
        self,
        symbol: str,
        side: str,
        size: float,
        margin_coin: Optional[str] = None,
    ) -> Any:
        """Place a market order. ``size`` is sent as-is; venue minimums are not checked."""
        side = side.lower()
        if side not in ("buy", "sell"):
            raise ValueError(f"Invalid order side: {side}")

        if margin_coin is None:
            parts = symbol.split("_")
            if len(parts) < 2 or not parts[1]:
                raise ValueError(f"Cannot derive margin coin from symbol: {symbol}")
            margin_coin = parts[1]

        data = {
            "symbol": symbol,
            "marginCoin": margin_coin,
            "side": side,
            "orderType": "market",
            "size": str(size),
        }
        logger.info("%s place market order symbol=%s side=%s size=%s", self._log_prefix, symbol, side, size)
        return self.request("POST", PLACE_ORDER_PATH, data)

    def get_trading_pairs(self) -> Any:
        return self.request("GET", CONTRACTS_PATH)

    def get_historical_trades(self, symbol: str, limit: int = 20) -> Any:
        return self.request("GET", f"{FILLS_PATH}?symbol={symbol}&limit={limit}")

    def get_symbol_rules(self, symbol: str) -> Optional[Dict[str, Any]]:
        """Trading rules for one symbol, filtered out of the full contract list."""
        pairs = self.get_trading_pairs() or {}
        for item in pairs.get("data") or []:
            if item.get("symbol") == symbol:
                return item
        return None

    def create_grid_bot(self, params: GridParams) -> GridOrderAck:
        """Accept grid parameters and return a locally synthesized acknowledgment.

        No venue endpoint is called. Replace with the venue's grid API once one
        is available; until then the ack is always ``AckStatus.SIMULATED``.
        """
        now_ms = int(time.time() * 1000)
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
        payload = {
            "symbol": params.symbol,
            "upperPrice": str(params.upper_price),
            "lowerPrice": str(params.lower_price),
            "gridNum": params.grid_num,
            "size": str(params.size),
        }
        ack = GridOrderAck(
            status=AckStatus.SIMULATED,
            order_id=f"mock_grid_{suffix}",
            client_oid=f"grid_{now_ms}",
            state="active",
            request_time=now_ms,
            params=payload,
        )
        logger.warning(
            "%s grid order for %s simulated locally order_id=%s",
            self._log_prefix,
            params.symbol,
            ack.order_id,
        )
        return ack
