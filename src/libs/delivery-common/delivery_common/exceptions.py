# src/libs/delivery-common/delivery_common/exceptions.py

class DeliveryRollbackError(Exception):
    """Base class for errors raised by the failure/rollback core."""
    pass


class NotFoundError(DeliveryRollbackError):
    """
    Raised when an id is unknown or is not owned by the requesting principal.

    Ownership mismatches are deliberately indistinguishable from missing rows.
    """
    pass


class InvalidStateError(DeliveryRollbackError):
    """Raised when a suggestion state transition is not allowed from its current status."""
    pass


class VersionNotFoundError(DeliveryRollbackError):
    """Raised when a preference version does not exist for an entity key."""
    pass


class StorageError(DeliveryRollbackError):
    """
    Raised for transient persistence failures (connection loss, lock timeouts,
    exhausted retries on contended writes). Callers may retry the request.
    """
    pass


class InvalidFailureReasonError(ValueError):
    """Raised when a failure reason is not one of the known FailureReason values."""
    pass
