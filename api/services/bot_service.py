"""Bot lifecycle and accounting orchestration."""
import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from api.db.crud import ApiConfigCRUD, BotCRUD, BotStatsCRUD, TransactionCRUD
from api.db.models import ApiConfig, Bot, BotStats, Transaction
from shared.config import DEFAULT_SELL_PROFIT_RATE
from shared.domain.grid import GridSummary, grid_summary
from shared.errors import NotFoundError
from shared.exchanges import BitgetClient, GridOrderAck, GridParams, to_venue_symbol
from shared.utils.crypto import SecretCipher

logger = logging.getLogger(__name__)


@dataclass
class ApiCredentials:
    """Decrypted venue credentials. Never serialize this directly."""

    api_key: str
    api_secret: str
    passphrase: str


def split_trading_pair(trading_pair: str) -> tuple:
    """BTC/USDT -> (BTC, USDT)"""
    for sep in ("/", "_", "-"):
        if sep in trading_pair:
            base, _, quote = trading_pair.partition(sep)
            return base.strip().upper(), quote.strip().upper()
    return trading_pair.strip().upper(), ""


class BotService:
    """Composition root over the bot store, ledger and stats.

    Every method runs inside the caller's session; the session is committed
    or rolled back as a whole, so a bot and its stats row, or a trade and the
    stats update it causes, are never persisted separately.
    """

    def __init__(
        self,
        session: AsyncSession,
        cipher: Optional[SecretCipher] = None,
        profit_rate: float = DEFAULT_SELL_PROFIT_RATE,
    ):
        if profit_rate < 0:
            raise ValueError("profit_rate must be >= 0")
        self.session = session
        self.cipher = cipher
        self.profit_rate = profit_rate

    # Bots

    async def create_bot(self, user_id: int, **fields: Any) -> Bot:
        if fields.get("trading_pair"):
            base, quote = split_trading_pair(fields["trading_pair"])
            fields["base_asset"] = fields.get("base_asset") or base
            fields["quote_asset"] = fields.get("quote_asset") or quote

        bot = await BotCRUD.create(self.session, user_id=user_id, **fields)
        await BotStatsCRUD.initialize(self.session, bot.id)
        logger.info(
            "bot created id=%s user_id=%s pair=%s range=[%s, %s] grids=%s",
            bot.id,
            user_id,
            bot.trading_pair,
            bot.lower_limit,
            bot.upper_limit,
            bot.grid_count,
        )
        return bot

    async def get_bot(self, bot_id: int) -> Bot:
        bot = await BotCRUD.get_by_id(self.session, bot_id)
        if bot is None:
            raise NotFoundError("Bot", bot_id)
        return bot

    async def list_bots(self, user_id: int) -> Sequence[Bot]:
        return await BotCRUD.get_all(self.session, user_id)

    async def update_bot(self, bot_id: int, **fields: Any) -> Bot:
        bot = await self.get_bot(bot_id)
        if fields.get("trading_pair"):
            base, quote = split_trading_pair(fields["trading_pair"])
            fields["base_asset"] = fields.get("base_asset") or base
            fields["quote_asset"] = fields.get("quote_asset") or quote
        previous_status = bot.status
        bot = await BotCRUD.update(self.session, bot, **fields)
        if bot.status != previous_status:
            logger.info("bot status changed id=%s %s -> %s", bot.id, previous_status, bot.status)
        return bot

    async def get_grid_summary(self, bot_id: int, levels: int = 5) -> GridSummary:
        bot = await self.get_bot(bot_id)
        return grid_summary(
            upper=bot.upper_limit,
            lower=bot.lower_limit,
            grid_count=bot.grid_count,
            investment=bot.investment,
            profit_per_grid=bot.profit_per_grid,
            levels=levels,
        )

    async def submit_grid_order(self, bot_id: int, client: BitgetClient) -> GridOrderAck:
        bot = await self.get_bot(bot_id)
        params = GridParams(
            symbol=to_venue_symbol(bot.trading_pair),
            upper_price=bot.upper_limit,
            lower_price=bot.lower_limit,
            grid_num=bot.grid_count,
            size=bot.investment,
        )
        loop = asyncio.get_running_loop()
        ack = await loop.run_in_executor(None, partial(client.create_grid_bot, params))
        logger.info("grid order submitted bot_id=%s order_id=%s status=%s", bot.id, ack.order_id, ack.status.value)
        return ack

    # Ledger

    async def record_transaction(
        self,
        bot_id: int,
        side: str,
        price: float,
        amount: float,
        value: float,
        fee: float = 0.0,
    ) -> Transaction:
        transaction = await TransactionCRUD.append(
            self.session,
            bot_id=bot_id,
            side=side,
            price=price,
            amount=amount,
            value=value,
            fee=fee,
        )
        stats = await BotStatsCRUD.on_transaction_appended(
            self.session, transaction, self.profit_rate
        )
        logger.info(
            "transaction recorded id=%s bot_id=%s side=%s value=%s trades=%s profit=%.8f",
            transaction.id,
            bot_id,
            transaction.side,
            transaction.value,
            stats.completed_trades,
            stats.total_profit,
        )
        return transaction

    async def list_transactions(self, bot_id: int, limit: Optional[int] = None) -> Sequence[Transaction]:
        if limit is None:
            return await TransactionCRUD.get_by_bot(self.session, bot_id)
        return await TransactionCRUD.get_recent_by_bot(self.session, bot_id, limit)

    # Stats

    async def get_bot_stats(self, bot_id: int) -> BotStats:
        stats = await BotStatsCRUD.get_by_bot(self.session, bot_id)
        if stats is None:
            raise NotFoundError("Bot stats", bot_id)
        return stats

    async def get_totals(self, user_id: int) -> Dict[str, Any]:
        return await BotStatsCRUD.totals_for_user(self.session, user_id)

    # API credentials

    def _require_cipher(self) -> SecretCipher:
        if self.cipher is None:
            raise RuntimeError("Credential cipher is not configured")
        return self.cipher

    async def get_api_config(self, user_id: int) -> ApiConfig:
        config = await ApiConfigCRUD.get_by_user(self.session, user_id)
        if config is None:
            raise NotFoundError("API configuration", user_id)
        return config

    async def save_api_config(
        self,
        user_id: int,
        api_key: str,
        api_secret: str,
        passphrase: str,
    ) -> ApiConfig:
        """Store the user's credentials, replacing an existing record in place."""
        cipher = self._require_cipher()
        encrypted = {
            "api_key": cipher.encrypt(api_key.strip()),
            "api_secret": cipher.encrypt(api_secret.strip()),
            "passphrase": cipher.encrypt(passphrase.strip()),
        }
        existing = await ApiConfigCRUD.get_by_user(self.session, user_id)
        if existing is not None:
            logger.info("api config replaced user_id=%s id=%s", user_id, existing.id)
            return await ApiConfigCRUD.update(self.session, existing, **encrypted)
        config = await ApiConfigCRUD.create(self.session, user_id=user_id, **encrypted)
        logger.info("api config created user_id=%s id=%s", user_id, config.id)
        return config

    async def update_api_config(self, user_id: int, **fields: Optional[str]) -> ApiConfig:
        cipher = self._require_cipher()
        config = await self.get_api_config(user_id)
        encrypted = {
            key: cipher.encrypt(value.strip())
            for key, value in fields.items()
            if key in ("api_key", "api_secret", "passphrase") and value
        }
        return await ApiConfigCRUD.update(self.session, config, **encrypted)

    def decrypt_api_config(self, config: ApiConfig) -> ApiCredentials:
        cipher = self._require_cipher()
        return ApiCredentials(
            api_key=cipher.decrypt(config.api_key),
            api_secret=cipher.decrypt(config.api_secret),
            passphrase=cipher.decrypt(config.passphrase),
        )

    async def get_api_credentials(self, user_id: int) -> Optional[ApiCredentials]:
        config = await ApiConfigCRUD.get_by_user(self.session, user_id)
        if config is None:
            return None
        return self.decrypt_api_config(config)
