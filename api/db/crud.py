"""CRUD operations for database models."""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import NotFoundError, StatsConflictError, ValidationError

from .models import ApiConfig, Bot, BotStats, BotStatus, TradeSide, Transaction

# Fields a partial update may never touch
BOT_PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at", "last_active_at"})
# Only these bot columns may be cleared to null
BOT_NULLABLE_FIELDS = frozenset({"stop_loss"})


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def validate_bot_fields(fields: Dict[str, Any]) -> None:
    """Check the bot invariants on a full set of bot fields.

    Raises ValidationError listing every violated field.
    """
    errors: List[Dict[str, Any]] = []

    def fail(field: str, msg: str) -> None:
        errors.append({"loc": ["body", field], "msg": msg, "type": "value_error"})

    upper = fields.get("upper_limit")
    lower = fields.get("lower_limit")
    if upper is None or lower is None or upper <= lower:
        fail("upperLimit", "upperLimit must be greater than lowerLimit")

    grid_count = fields.get("grid_count")
    if grid_count is None or int(grid_count) != grid_count or grid_count < 1:
        fail("gridCount", "gridCount must be an integer >= 1")

    investment = fields.get("investment")
    if investment is None or investment <= 0:
        fail("investment", "investment must be greater than 0")

    profit_per_grid = fields.get("profit_per_grid")
    if profit_per_grid is None or not 0 < profit_per_grid < 1:
        fail("profitPerGrid", "profitPerGrid must be between 0 and 1")

    status = _enum_value(fields.get("status"))
    if status not in {s.value for s in BotStatus}:
        fail("status", "status must be one of active, paused, stopped")

    if errors:
        raise ValidationError("Validation error", errors)


class BotCRUD:
    """CRUD operations for bots."""

    @staticmethod
    async def create(session: AsyncSession, user_id: int, **fields: Any) -> Bot:
        """Create a new bot. Stats are initialized by the caller in the same session."""
        fields = {k: v for k, v in fields.items() if k not in BOT_PROTECTED_FIELDS}
        validate_bot_fields(fields)

        fields["status"] = _enum_value(fields["status"])
        now = datetime.now()
        bot = Bot(user_id=user_id, created_at=now, last_active_at=now, **fields)
        session.add(bot)
        await session.flush()
        await session.refresh(bot)
        return bot

    @staticmethod
    async def get_by_id(session: AsyncSession, bot_id: int) -> Optional[Bot]:
        """Get bot by ID."""
        result = await session.execute(select(Bot).where(Bot.id == bot_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_all(session: AsyncSession, user_id: int) -> Sequence[Bot]:
        """Get all bots for a user in creation order."""
        result = await session.execute(
            select(Bot).where(Bot.user_id == user_id).order_by(Bot.id)
        )
        return result.scalars().all()

    @staticmethod
    async def update(session: AsyncSession, bot: Bot, **kwargs: Any) -> Bot:
        """Merge fields into a bot.

        Identity and ownership are never changed. A status change refreshes
        ``last_active_at``.
        """
        updates = {
            key: _enum_value(value)
            for key, value in kwargs.items()
            if key not in BOT_PROTECTED_FIELDS and hasattr(bot, key)
        }
        for key, value in updates.items():
            if value is None and key not in BOT_NULLABLE_FIELDS:
                raise ValidationError.for_field(to_camel(key), f"{to_camel(key)} must not be null")

        merged = {
            "upper_limit": bot.upper_limit,
            "lower_limit": bot.lower_limit,
            "grid_count": bot.grid_count,
            "investment": bot.investment,
            "profit_per_grid": bot.profit_per_grid,
            "status": bot.status,
        }
        merged.update({k: v for k, v in updates.items() if k in merged})
        validate_bot_fields(merged)

        for key, value in updates.items():
            setattr(bot, key, value)
        if "status" in updates:
            bot.last_active_at = datetime.now()

        await session.flush()
        await session.refresh(bot)
        return bot


class TransactionCRUD:
    """Append-only ledger of executed trades."""

    @staticmethod
    async def append(
        session: AsyncSession,
        bot_id: int,
        side: str,
        price: float,
        amount: float,
        value: float,
        fee: float = 0.0,
    ) -> Transaction:
        """Append a trade for an existing bot."""
        bot = await session.get(Bot, bot_id)
        if bot is None:
            raise NotFoundError("Bot", bot_id)

        side = _enum_value(side)
        if side not in {s.value for s in TradeSide}:
            raise ValidationError.for_field("type", "type must be BUY or SELL")
        for field, number in (("price", price), ("amount", amount), ("value", value), ("fee", fee)):
            if number is None or number < 0:
                raise ValidationError.for_field(field, f"{field} must be >= 0")

        transaction = Transaction(
            bot_id=bot_id,
            side=side,
            price=price,
            amount=amount,
            value=value,
            fee=fee,
            timestamp=datetime.now(),
        )
        session.add(transaction)
        await session.flush()
        await session.refresh(transaction)
        return transaction

    @staticmethod
    async def get_by_bot(session: AsyncSession, bot_id: int) -> Sequence[Transaction]:
        """Get all trades for a bot, most recent first."""
        result = await session.execute(
            select(Transaction)
            .where(Transaction.bot_id == bot_id)
            .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_recent_by_bot(
        session: AsyncSession, bot_id: int, limit: int
    ) -> Sequence[Transaction]:
        """Get the ``limit`` most recent trades for a bot."""
        if limit <= 0:
            return []
        result = await session.execute(
            select(Transaction)
            .where(Transaction.bot_id == bot_id)
            .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return result.scalars().all()


class BotStatsCRUD:
    """Keeps per-bot statistics in step with the ledger."""

    @staticmethod
    async def get_by_bot(session: AsyncSession, bot_id: int) -> Optional[BotStats]:
        result = await session.execute(select(BotStats).where(BotStats.bot_id == bot_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def initialize(session: AsyncSession, bot_id: int) -> BotStats:
        """Create the zeroed stats row for a new bot."""
        if await BotStatsCRUD.get_by_bot(session, bot_id) is not None:
            raise StatsConflictError(bot_id)

        stats = BotStats(
            bot_id=bot_id,
            total_profit=0.0,
            completed_trades=0,
            return_percentage=0.0,
            last_updated=datetime.now(),
        )
        session.add(stats)
        await session.flush()
        await session.refresh(stats)
        return stats

    @staticmethod
    async def on_transaction_appended(
        session: AsyncSession,
        transaction: Transaction,
        profit_rate: float,
    ) -> BotStats:
        """Apply one ledger event to the bot's stats.

        SELL trades add ``value * profit_rate`` to the profit. The return is
        computed against the bot's current investment, so changing the
        investment later changes the reported return retroactively.
        """
        result = await session.execute(
            select(BotStats)
            .where(BotStats.bot_id == transaction.bot_id)
            .with_for_update()
        )
        stats = result.scalar_one_or_none()
        if stats is None:
            raise NotFoundError("Bot stats", transaction.bot_id)

        bot = await session.get(Bot, transaction.bot_id)
        if bot is None:
            raise NotFoundError("Bot", transaction.bot_id)

        stats.completed_trades += 1
        if transaction.side == TradeSide.SELL.value:
            stats.total_profit += transaction.value * profit_rate
        stats.return_percentage = (
            stats.total_profit / bot.investment * 100 if bot.investment else 0.0
        )
        stats.last_updated = datetime.now()

        await session.flush()
        await session.refresh(stats)
        return stats

    @staticmethod
    async def totals_for_user(session: AsyncSession, user_id: int) -> dict:
        """Aggregate stats over all bots of a user.

        Bots without a stats row count as zero profit and zero trades.
        """
        bots = await BotCRUD.get_all(session, user_id)
        bot_ids = [bot.id for bot in bots]

        stats_by_bot: Dict[int, BotStats] = {}
        if bot_ids:
            result = await session.execute(
                select(BotStats).where(BotStats.bot_id.in_(bot_ids))
            )
            stats_by_bot = {s.bot_id: s for s in result.scalars().all()}

        total_profit = 0.0
        completed_trades = 0
        for bot_id in bot_ids:
            stats = stats_by_bot.get(bot_id)
            if stats is None:
                continue
            total_profit += stats.total_profit
            completed_trades += stats.completed_trades

        return {
            "total_bots": len(bots),
            "active_bots": sum(1 for bot in bots if bot.status == BotStatus.ACTIVE.value),
            "total_investment": sum(bot.investment for bot in bots),
            "total_profit": total_profit,
            "completed_trades": completed_trades,
        }


class ApiConfigCRUD:
    """CRUD operations for venue credentials."""

    @staticmethod
    async def get_by_user(session: AsyncSession, user_id: int) -> Optional[ApiConfig]:
        result = await session.execute(
            select(ApiConfig).where(ApiConfig.user_id == user_id).order_by(ApiConfig.id).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        user_id: int,
        api_key: str,
        api_secret: str,
        passphrase: str,
    ) -> ApiConfig:
        config = ApiConfig(
            user_id=user_id,
            api_key=api_key,
            api_secret=api_secret,
            passphrase=passphrase,
        )
        session.add(config)
        await session.flush()
        await session.refresh(config)
        return config

    @staticmethod
    async def update(session: AsyncSession, config: ApiConfig, **kwargs: Any) -> ApiConfig:
        for key, value in kwargs.items():
            if key in ("id", "user_id", "created_at"):
                continue
            if hasattr(config, key) and value is not None:
                setattr(config, key, value)
        await session.flush()
        await session.refresh(config)
        return config
