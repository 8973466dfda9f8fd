"""Retry logic with exponential backoff."""

import functools
import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _expand_delays(
    retries: int, delays: Optional[Tuple[float, ...]]
) -> Tuple[float, ...]:
    if delays is None:
        # Default exponential backoff: 1s, 2s, 4s
        return tuple(float(2**i) for i in range(retries))
    if not delays:
        return (0.0,) * retries
    if len(delays) < retries:
        # Pad delays with the last value if not enough provided
        return delays + (delays[-1],) * (retries - len(delays))
    return delays


def call_with_retry(
    func: Callable[[], T],
    retries: int = 3,
    delays: Optional[Tuple[float, ...]] = None,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or ``retries`` extra attempts are spent.

    The last exception is re-raised once retries are exhausted.
    """
    delays = _expand_delays(retries, delays)
    for attempt in range(retries + 1):  # +1 for initial attempt
        try:
            return func()
        except exceptions as e:
            if attempt == retries:
                raise
            logger.debug(
                f"Attempt {attempt + 1} failed ({e}); retrying in {delays[attempt]}s"
            )
            sleep(delays[attempt])
    raise AssertionError("unreachable")


def retry_with_backoff(
    retries: int = 3,
    delays: Optional[Tuple[float, ...]] = None,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator form of call_with_retry().

    Example:
        @retry_with_backoff(retries=2, delays=(0.5, 1.5))
        def embed_batch(texts):
            return embedder.embed(texts)
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return call_with_retry(
                lambda: func(*args, **kwargs),
                retries=retries,
                delays=delays,
                exceptions=exceptions,
            )

        return wrapper

    return decorator
