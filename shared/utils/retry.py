import logging
import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    jitter: bool = True
    exceptions: Tuple[Type[Exception], ...] = (Exception,)


def retry_call(
    func: Callable[..., Any],
    *args: Any,
    config: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> Any:
    """按指数退避重试调用 func

    只重试 config.exceptions 中的异常，其余异常直接抛出。
    下单等非幂等调用不要经过这里。
    """
    config = config or RetryConfig()
    delay = config.base_delay
    attempts = max(config.max_attempts, 1)

    for attempt in range(attempts):
        try:
            return func(*args, **kwargs)
        except config.exceptions as e:
            if attempt == attempts - 1:
                logger.error("%s failed after %d attempts: %s", func.__name__, attempts, e)
                raise

            actual_delay = delay
            if config.jitter:
                actual_delay = delay * (0.5 + random.random())

            logger.warning(
                "%s attempt %d failed, retrying in %.1fs: %s",
                func.__name__,
                attempt + 1,
                actual_delay,
                e,
            )
            sleep(actual_delay)
            delay = min(delay * config.backoff_factor, config.max_delay)


def with_retry(
    config: Optional[RetryConfig] = None,
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable:
    """指数退避重试装饰器

    用法:
        @with_retry(max_attempts=3, exceptions=(requests.ConnectionError,))
        def fetch_pairs():
            ...
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts,
            backoff_factor=backoff_factor,
            exceptions=exceptions,
        )

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return retry_call(func, *args, config=config, **kwargs)

        return wrapper

    return decorator
