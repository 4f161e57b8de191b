"""
Custom exceptions for the application
"""


class ATSBridgeException(Exception):
    """Base exception for ATS Bridge"""

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# -----------------------------------------------------------------------------
# Delegate (generative model) failures
# -----------------------------------------------------------------------------

class MissingCredentialError(ATSBridgeException):
    """Raised when no access credential is configured for the delegate model"""

    def __init__(self, credential_name: str):
        message = f"{credential_name} not configured"
        super().__init__(message, status_code=503, details={"credential": credential_name})


class EmptyResponseError(ATSBridgeException):
    """Raised when the delegate model returns no textual payload"""

    def __init__(self, message: str = "Model returned an empty response"):
        super().__init__(message, status_code=502)


class MalformedResponseError(ATSBridgeException):
    """Raised when the delegate payload does not parse as the declared schema"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=502, details=details)


class TransportFailureError(ATSBridgeException):
    """Raised when the delegate call itself is rejected (network, quota, server error)"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=502, details=details)


# -----------------------------------------------------------------------------
# Resume intake
# -----------------------------------------------------------------------------

class InvalidSourceError(ATSBridgeException):
    """Raised when a resume source is empty or unreadable"""

    def __init__(self, message: str = "Resume source is empty or unreadable"):
        super().__init__(message, status_code=400)


class FileSizeExceededError(ATSBridgeException):
    """Raised when uploaded file exceeds size limit"""

    def __init__(self, max_size: int):
        message = f"File size exceeds maximum allowed size of {max_size / (1024*1024):.1f}MB"
        super().__init__(message, status_code=413, details={"max_size": max_size})


class UnsupportedFileTypeError(ATSBridgeException):
    """Raised when file type is not supported"""

    def __init__(self, extension: str, allowed: list, message: str = None):
        if message is None:
            message = f"File type '{extension}' not supported. Allowed: {', '.join(allowed)}"
        super().__init__(message, status_code=415, details={"allowed": allowed})


# -----------------------------------------------------------------------------
# Workflow
# -----------------------------------------------------------------------------

class SessionNotFoundError(ATSBridgeException):
    """Raised when a workflow session id is unknown"""

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found", status_code=404)


class InvalidTransitionError(ATSBridgeException):
    """Raised when an event does not apply to the current workflow phase"""

    def __init__(self, event: str, phase: str):
        message = f"Cannot apply {event} while the workflow is {phase}"
        super().__init__(message, status_code=409, details={"event": event, "phase": phase})


class OperationInProgressError(ATSBridgeException):
    """Raised when an event arrives while a delegate call is in flight"""

    def __init__(self, phase: str):
        message = f"An operation is already in progress ({phase})"
        super().__init__(message, status_code=409, details={"phase": phase})


class DraftNotReadyError(ATSBridgeException):
    """Raised when a draft is requested before any successful analysis"""

    def __init__(self, message: str = "No resume draft available yet. Run an analysis first"):
        super().__init__(message, status_code=409)


class RateLimitExceededError(ATSBridgeException):
    """Raised when rate limit is exceeded"""

    def __init__(self, retry_after: int = None):
        message = "Rate limit exceeded"
        if retry_after:
            message += f". Retry after {retry_after} seconds"
        super().__init__(message, status_code=429, details={"retry_after": retry_after})
