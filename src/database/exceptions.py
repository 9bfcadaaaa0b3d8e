"""Error taxonomy shared by the store layer and the API."""


class TrackerError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(TrackerError):
    """Bad input the caller can correct."""

    status_code = 400


class NotFoundError(TrackerError):
    """An identity-sensitive operation referenced an absent id.

    Only reorder raises this; plain updates and deletes on an absent id are
    a zero-row success. The HTTP contract for reorder reports it as a 500.
    """

    status_code = 500


class StoreError(TrackerError):
    """Backend failure. Fatal to the triggering request, never retried."""

    status_code = 500


class PoolExhausted(TrackerError):
    """No pooled connection became available within the acquire timeout.

    Transient: the caller may retry.
    """

    status_code = 503
