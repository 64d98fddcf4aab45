"""Domain error taxonomy shared by the API and the exchange client."""
from typing import Any, Dict, List, Optional


class GridHubError(Exception):
    """Base class for recoverable domain errors."""


class ValidationError(GridHubError):
    """Malformed or out-of-range input.

    ``errors`` carries field-level detail in the same shape the HTTP layer
    reports request validation failures: ``{"loc": [...], "msg": str, "type": str}``.
    """

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, msg: str) -> "ValidationError":
        return cls(msg, [{"loc": ["body", field], "msg": msg, "type": "value_error"}])


class NotFoundError(GridHubError):
    """Referenced entity is absent."""

    def __init__(self, entity: str, entity_id: Any = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class StatsConflictError(GridHubError):
    """A stats row already exists for the bot."""

    def __init__(self, bot_id: int):
        self.bot_id = bot_id
        super().__init__(f"Stats already initialized for bot {bot_id}")


class ExchangeError(GridHubError):
    """Non-2xx response from the trading venue."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Bitget API error: {status_code} - {body}")
