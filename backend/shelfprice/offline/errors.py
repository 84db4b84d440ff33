"""Classification of sync failures into retry and drop"""
from shelfprice.offline.api_client import ApiHttpError

# Client errors that still deserve another attempt
RETRIABLE_CLIENT_STATUSES = frozenset({408, 429})


class InvalidSubmissionError(ValueError):
    """A capture rejected locally before it reaches the queue."""


class SyncError(Exception):
    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class TransientError(SyncError):
    """Network failure, timeout or server error. The entry stays queued."""


class SubmissionRejectedError(SyncError):
    """The server refused the submission for good (poison pill)."""


def classify_sync_error(exc: Exception) -> SyncError:
    """
    Map a failed submission attempt onto retry or drop.

    Only a 4xx answer from the server is final; anything else, including
    errors this function does not recognize, is retried so a capture is
    never lost silently.
    """
    if isinstance(exc, SyncError):
        return exc

    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, ApiHttpError):
        if 400 <= exc.status < 500 and exc.status not in RETRIABLE_CLIENT_STATUSES:
            return SubmissionRejectedError(message, exc)
    return TransientError(message, exc)
