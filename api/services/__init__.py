from .bot_service import ApiCredentials, BotService, split_trading_pair

__all__ = [
    "ApiCredentials",
    "BotService",
    "split_trading_pair",
]
