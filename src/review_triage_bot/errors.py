"""Exception hierarchy for the review-triage pipeline."""


class ReviewTriageError(Exception):
    """Base class for every error raised by this package."""


class AuthenticationError(ReviewTriageError):
    """Bad, missing or stale request signature, or handshake token mismatch."""


class PayloadError(ReviewTriageError):
    """A webhook payload or queue message body has an unexpected shape."""


class ClassificationError(ReviewTriageError):
    """The sentiment classifier call failed or returned an unusable verdict."""


class QueueSendError(ReviewTriageError):
    pass


class QueueReceiveError(ReviewTriageError):
    pass


class QueueDeleteError(ReviewTriageError):
    def __init__(self, receipt_handle: str, message: str) -> None:
        super().__init__(message)
        self.receipt_handle = receipt_handle


class TaskCreationError(ReviewTriageError):
    """The task tracker rejected or failed to answer a create-task request."""
