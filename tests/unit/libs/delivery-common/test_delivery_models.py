# tests/unit/libs/delivery-common/test_delivery_models.py
import pytest

from delivery_common.exceptions import InvalidFailureReasonError
from delivery_common.models import EntityKey, FailureReason


@pytest.mark.parametrize("raw", ["email_delivery", "pdf_generation", "invalid_recipient", "network_error", "unknown"])
def test_failure_reason_coerce_accepts_known_values(raw):
    assert FailureReason.coerce(raw).value == raw


def test_failure_reason_coerce_passes_enum_through():
    assert FailureReason.coerce(FailureReason.NETWORK_ERROR) is FailureReason.NETWORK_ERROR


def test_failure_reason_coerce_rejects_unknown_value():
    """
    GIVEN a reason outside the closed set
    WHEN it is coerced
    THEN an InvalidFailureReasonError (a ValueError) is raised.
    """
    with pytest.raises(InvalidFailureReasonError) as exc_info:
        FailureReason.coerce("smtp_timeout")

    assert isinstance(exc_info.value, ValueError)
    assert "smtp_timeout" in str(exc_info.value)


def test_entity_key_is_hashable_and_readable():
    key = EntityKey(owner_id=42, entity_id="default")

    assert key == EntityKey(42, "default")
    assert len({key, EntityKey(42, "default"), EntityKey(42, "weekly")}) == 2
    assert str(key) == "42:default"
