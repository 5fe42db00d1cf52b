# tests/unit/libs/delivery-common/test_logging_utils.py
import logging

from delivery_common.config import SERVICE_NAME
from delivery_common.logging_utils import (
    UNSET,
    CorrelationIdFilter,
    correlation_id_var,
    generate_correlation_id,
    request_context,
    request_id_var,
    trace_id_var,
)


def test_filter_injects_context_ids():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
    token = correlation_id_var.set("RBK:abc")
    try:
        assert CorrelationIdFilter().filter(record) is True
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "RBK:abc"
    assert record.request_id == UNSET
    assert record.service == SERVICE_NAME


def test_generate_correlation_id_uses_prefix():
    first = generate_correlation_id("RBK")

    assert first.startswith("RBK:")
    assert first != generate_correlation_id("RBK")


def test_request_context_binds_and_restores_ids():
    with request_context("RBK:1", "REQ:1", "trace-1"):
        assert correlation_id_var.get() == "RBK:1"
        assert request_id_var.get() == "REQ:1"
        assert trace_id_var.get() == "trace-1"

    assert correlation_id_var.get() == UNSET
    assert trace_id_var.get() == UNSET
