from .retry import with_retry, retry_call, RetryConfig
from .logger import setup_logger, setup_file_logging
from .crypto import SecretCipher, generate_key_hex

__all__ = [
    "with_retry",
    "retry_call",
    "RetryConfig",
    "setup_logger",
    "setup_file_logging",
    "SecretCipher",
    "generate_key_hex",
]
