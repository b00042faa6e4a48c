"""
Thread-safe rate-limited logging utilities.

Repeated transient warnings (a flaky RPC node failing every poll, for
example) are logged once per interval instead of once per occurrence.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# At most 100 distinct messages, each remembered for up to an hour
_log_cache: TTLCache = TTLCache(maxsize=100, ttl=3600)
_log_cache_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    interval: int = 60,
    logger_instance: Optional[logging.Logger] = None,
    key: Optional[str] = None
) -> bool:
    """
    Log a message unless the same key was logged within ``interval`` seconds.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between logs in seconds
        logger_instance: Logger to use (defaults to module logger)
        key: Deduplication key; defaults to level and message

    Returns:
        True if the message was logged
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    cache_key = f"{level}:{key or message}"

    with _log_cache_lock:
        now = _log_cache.timer()
        last = _log_cache.get(cache_key)
        if last is not None and now - last < interval:
            return False
        log_method(message)
        _log_cache[cache_key] = now
        return True


def reset_rate_limits() -> None:
    with _log_cache_lock:
        _log_cache.clear()
