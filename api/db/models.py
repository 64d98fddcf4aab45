"""Database models using SQLModel."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


class BotStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Bot(SQLModel, table=True):
    """Grid bot configuration."""

    __tablename__ = "bot"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    name: str = Field(max_length=100)
    trading_pair: str = Field(max_length=32)
    base_asset: str = Field(max_length=16)
    quote_asset: str = Field(max_length=16)
    investment: float
    status: str = Field(max_length=16, default=BotStatus.ACTIVE.value)

    # Grid settings
    upper_limit: float
    lower_limit: float
    grid_count: int
    profit_per_grid: float

    # Risk settings
    stop_loss: Optional[float] = Field(default=None)
    is_paper_trading: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.now)
    last_active_at: datetime = Field(default_factory=datetime.now)

    transactions: List["Transaction"] = Relationship(back_populates="bot")


class Transaction(SQLModel, table=True):
    """Executed trade record. Append-only."""

    __tablename__ = "bot_transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    bot_id: int = Field(foreign_key="bot.id", index=True)
    side: str = Field(max_length=4)
    price: float
    amount: float
    value: float
    fee: float = Field(default=0)
    timestamp: datetime = Field(default_factory=datetime.now, index=True)

    bot: Optional[Bot] = Relationship(back_populates="transactions")


class BotStats(SQLModel, table=True):
    """Running performance statistics, one row per bot."""

    __tablename__ = "bot_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    bot_id: int = Field(foreign_key="bot.id", unique=True, index=True)
    total_profit: float = Field(default=0)
    completed_trades: int = Field(default=0)
    return_percentage: float = Field(default=0)
    last_updated: datetime = Field(default_factory=datetime.now)


class ApiConfig(SQLModel, table=True):
    """Venue credentials. Values are stored encrypted."""

    __tablename__ = "api_config"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    api_key: str = Field(max_length=512)
    api_secret: str = Field(max_length=512)
    passphrase: str = Field(max_length=512)
    created_at: datetime = Field(default_factory=datetime.now)
