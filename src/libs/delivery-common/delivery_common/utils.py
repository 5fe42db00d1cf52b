# src/libs/delivery-common/delivery_common/utils.py
import functools
import time
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from .monitoring import DB_OPERATION_LATENCY_SECONDS


def async_timed(repository: str, method: str) -> Callable:
    """
    Records the duration of an async repository call in
    DB_OPERATION_LATENCY_SECONDS, labelled with whether the database raised.
    Domain exceptions count as "ok"; only SQLAlchemy errors are "error".
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            outcome = "ok"
            started = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError:
                outcome = "error"
                raise
            finally:
                DB_OPERATION_LATENCY_SECONDS.labels(
                    repository=repository, method=method, outcome=outcome
                ).observe(time.perf_counter() - started)
        return wrapper
    return decorator
