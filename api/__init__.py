from .app import create_app
from .deps import get_current_user, get_db_session

__all__ = [
    "create_app",
    "get_current_user",
    "get_db_session",
]
