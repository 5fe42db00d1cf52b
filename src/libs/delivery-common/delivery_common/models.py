# src/libs/delivery-common/delivery_common/models.py
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .exceptions import InvalidFailureReasonError


class FailureReason(str, Enum):
    """Closed set of delivery failure classifications supplied by callers."""
    EMAIL_DELIVERY = "email_delivery"
    PDF_GENERATION = "pdf_generation"
    INVALID_RECIPIENT = "invalid_recipient"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Union[str, "FailureReason"]) -> "FailureReason":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidFailureReasonError(
                f"Unknown failure reason {value!r}; expected one of {[r.value for r in cls]}"
            ) from None


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    APPLIED = "applied"


class SuggestionOrigin(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class EntityKey:
    """(owner, preference identity) pair under which a version history is kept."""
    owner_id: int
    entity_id: str

    def __str__(self) -> str:
        return f"{self.owner_id}:{self.entity_id}"
