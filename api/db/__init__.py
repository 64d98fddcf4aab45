from .database import Database
from .models import ApiConfig, Bot, BotStats, BotStatus, TradeSide, Transaction
from .crud import (
    ApiConfigCRUD,
    BotCRUD,
    BotStatsCRUD,
    TransactionCRUD,
)

__all__ = [
    "Database",
    "ApiConfig",
    "Bot",
    "BotStats",
    "BotStatus",
    "TradeSide",
    "Transaction",
    "ApiConfigCRUD",
    "BotCRUD",
    "BotStatsCRUD",
    "TransactionCRUD",
]
