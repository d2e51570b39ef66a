"""Exceptions raised by the notification core."""


class NotificationError(Exception):
    """Base class for notification errors."""


class JobStoreUnavailableError(NotificationError):
    """The email job store cannot be reached."""

    def __init__(self, message: str = "Email job tracking service unavailable"):
        super().__init__(message)


class JobNotFoundError(NotificationError):
    def __init__(self, job_id: str):
        super().__init__(f"Email job {job_id} not found")
        self.job_id = job_id


class JobNotCancellableError(NotificationError):
    def __init__(self, job_id: str, status: str):
        super().__init__(f"Email job {job_id} cannot be cancelled (status: {status})")
        self.job_id = job_id
        self.status = status


class DispatchUnavailableError(NotificationError):
    """The email dispatcher has not been started."""


class MessageNotFoundError(NotificationError):
    """The provider no longer holds the message (already sent or cancelled)."""

    def __init__(self, provider_id: str):
        super().__init__(f"Message {provider_id} not found (already sent or cancelled)")
        self.provider_id = provider_id


class EmailDeliveryError(NotificationError):
    """The email provider rejected a send."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class JobOwnershipError(NotificationError):
    """A job was addressed through a session it does not belong to."""

    def __init__(self, job_id: str, session_id: str):
        super().__init__(f"Email job {job_id} does not belong to session {session_id}")
        self.job_id = job_id
        self.session_id = session_id


class JobNotRetryableError(NotificationError):
    def __init__(self, job_id: str, reason: str):
        super().__init__(f"Email job {job_id} cannot be retried: {reason}")
        self.job_id = job_id
        self.reason = reason


class JobNotResendableError(NotificationError):
    def __init__(self, job_id: str, reason: str):
        super().__init__(f"Email job {job_id} cannot be resent: {reason}")
        self.job_id = job_id
        self.reason = reason
