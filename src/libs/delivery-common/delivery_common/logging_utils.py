# src/libs/delivery-common/delivery_common/logging_utils.py
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from pythonjsonlogger import jsonlogger

from .config import ENVIRONMENT, LOG_LEVEL, SERVICE_NAME

UNSET = "<not-set>"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default=UNSET)
request_id_var: ContextVar[str] = ContextVar("request_id", default=UNSET)
trace_id_var: ContextVar[str] = ContextVar("trace_id", default=UNSET)

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "%(service)s %(environment)s %(correlation_id)s %(request_id)s %(trace_id)s"
)


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the service identity and the current request's ids."""
    def filter(self, record: logging.LogRecord) -> bool:
        record.service = SERVICE_NAME
        record.environment = ENVIRONMENT
        record.correlation_id = correlation_id_var.get()
        record.request_id = request_id_var.get()
        record.trace_id = trace_id_var.get()
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Routes all logging through one JSON handler on stdout. Safe to call more
    than once; earlier root handlers are replaced.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            LOG_FORMAT,
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        )
    )
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level or LOG_LEVEL)


def generate_correlation_id(prefix: str) -> str:
    """Returns "<prefix>:<uuid4>"; the prefix names the emitting service."""
    return f"{prefix}:{uuid.uuid4()}"


@contextmanager
def request_context(correlation_id: str, request_id: str, trace_id: str) -> Iterator[None]:
    """Binds the request's ids for log records emitted inside the block."""
    tokens = [
        (correlation_id_var, correlation_id_var.set(correlation_id)),
        (request_id_var, request_id_var.set(request_id)),
        (trace_id_var, trace_id_var.set(trace_id)),
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
