import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

import yaml

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./gridhub.db"
DEFAULT_BITGET_BASE_URL = "https://api.bitget.com"
# 卖出成交的名义利润率（源数据不关联买卖对，无法按成本核算）
DEFAULT_SELL_PROFIT_RATE = 0.005


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class DatabaseSettings:
    url: str = DEFAULT_DATABASE_URL
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


@dataclass
class ExchangeSettings:
    api_key: str = "demo_api_key"
    api_secret: str = "demo_api_secret"
    passphrase: str = "demo_passphrase"
    base_url: str = DEFAULT_BITGET_BASE_URL
    timeout: float = 10.0
    read_retry_attempts: int = 3
    read_retry_base_delay: float = 0.5


@dataclass
class TradingSettings:
    sell_profit_rate: float = DEFAULT_SELL_PROFIT_RATE


@dataclass
class AuthSettings:
    default_user_id: int = 1


@dataclass
class SecuritySettings:
    encryption_key: str = ""


@dataclass
class LoggingSettings:
    level: str = "INFO"
    dir: Optional[str] = None


@dataclass
class AppSettings:
    server: ServerSettings = field(default_factory=ServerSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    exchange: ExchangeSettings = field(default_factory=ExchangeSettings)
    trading: TradingSettings = field(default_factory=TradingSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def load_config(config_path: str = "config.yaml") -> dict:
    """Load configuration from YAML file."""
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


def build_database_url(db_config: Dict[str, Any]) -> str:
    """Build database URL from config, handling special characters in password."""
    # 优先使用完整 URL
    database_url = os.environ.get("DATABASE_URL") or db_config.get("url", "")
    if database_url:
        return database_url

    host = os.environ.get("DB_HOST") or db_config.get("host")
    if not host:
        return DEFAULT_DATABASE_URL

    port = os.environ.get("DB_PORT") or db_config.get("port", 3306)
    user = os.environ.get("DB_USER") or db_config.get("user", "gridhub")
    password = os.environ.get("DB_PASSWORD") or db_config.get("password", "")
    database = os.environ.get("DB_NAME") or db_config.get("name", "gridhub")

    # URL 编码密码
    encoded_password = quote_plus(str(password)) if password else ""

    return f"mysql+aiomysql://{user}:{encoded_password}@{host}:{port}/{database}"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def settings_from_dict(config: Dict[str, Any]) -> AppSettings:
    """Build settings from a config dict; environment variables take precedence."""
    server_cfg = config.get("server") or {}
    db_cfg = config.get("database") or {}
    exchange_cfg = config.get("exchange") or {}
    trading_cfg = config.get("trading") or {}
    auth_cfg = config.get("auth") or {}
    security_cfg = config.get("security") or {}
    logging_cfg = config.get("logging") or {}

    exchange_defaults = ExchangeSettings()
    exchange = ExchangeSettings(
        api_key=os.environ.get("BITGET_API_KEY") or exchange_cfg.get("api_key") or exchange_defaults.api_key,
        api_secret=os.environ.get("BITGET_API_SECRET") or exchange_cfg.get("api_secret") or exchange_defaults.api_secret,
        passphrase=os.environ.get("BITGET_PASSPHRASE") or exchange_cfg.get("passphrase") or exchange_defaults.passphrase,
        base_url=exchange_cfg.get("base_url") or exchange_defaults.base_url,
        timeout=float(exchange_cfg.get("timeout", exchange_defaults.timeout)),
        read_retry_attempts=int(exchange_cfg.get("read_retry_attempts", exchange_defaults.read_retry_attempts)),
        read_retry_base_delay=float(exchange_cfg.get("read_retry_base_delay", exchange_defaults.read_retry_base_delay)),
    )

    return AppSettings(
        server=ServerSettings(
            host=server_cfg.get("host", "0.0.0.0"),
            port=int(server_cfg.get("port", 8000)),
        ),
        database=DatabaseSettings(
            url=build_database_url(db_cfg),
            pool_size=int(db_cfg.get("pool_size", 5)),
            max_overflow=int(db_cfg.get("max_overflow", 10)),
            echo=bool(db_cfg.get("echo", False)),
        ),
        exchange=exchange,
        trading=TradingSettings(
            sell_profit_rate=_env_float(
                "SELL_PROFIT_RATE",
                float(trading_cfg.get("sell_profit_rate", DEFAULT_SELL_PROFIT_RATE)),
            ),
        ),
        auth=AuthSettings(
            default_user_id=_env_int("DEFAULT_USER_ID", int(auth_cfg.get("default_user_id", 1))),
        ),
        security=SecuritySettings(
            encryption_key=os.environ.get("ENCRYPTION_KEY") or security_cfg.get("encryption_key", ""),
        ),
        logging=LoggingSettings(
            level=os.environ.get("LOG_LEVEL") or logging_cfg.get("level", "INFO"),
            dir=logging_cfg.get("dir"),
        ),
    )


def load_settings(config_path: str = "config.yaml") -> AppSettings:
    return settings_from_dict(load_config(config_path))
