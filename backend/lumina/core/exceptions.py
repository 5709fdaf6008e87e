"""
Lumina Exceptions

Domain error hierarchy. Every error carries a human-readable message and a
stable error_code that the API layer returns to clients.
"""

from typing import Optional


class LuminaError(Exception):
    """Base class for all Lumina errors."""

    def __init__(self, message: str, error_code: str = "lumina_error"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class InvalidImageError(LuminaError):
    """Uploaded image is missing, oversized or unreadable."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_image")


class InvalidPromptError(LuminaError):
    """Prompt or chat message failed validation."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_prompt")


class InvalidTransitionError(LuminaError):
    """Action is not allowed from the session's current state."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_transition")


class SessionBusyError(LuminaError):
    """Another analysis/edit/generation call is still outstanding."""

    def __init__(self, message: str = "Another request is still in progress for this session."):
        super().__init__(message, error_code="session_busy")


class SessionNotFoundError(LuminaError):
    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found", error_code="session_not_found")
        self.session_id = session_id


class AlreadyInitializedError(LuminaError):
    """The room analysis baseline was already recorded for this session."""

    def __init__(self, message: str = "Room analysis already recorded. Reset the session first."):
        super().__init__(message, error_code="already_initialized")


class UnderSpecifiedInstructionError(LuminaError):
    """An edit instruction cannot be dispatched safely."""

    def __init__(self, message: str):
        super().__init__(message, error_code="underspecified_instruction")


class CollaboratorError(LuminaError):
    """An external model call failed or returned no usable payload."""

    def __init__(self, message: str, error_code: str = "collaborator_failure"):
        super().__init__(message, error_code=error_code)


class QuotaExceededError(CollaboratorError):
    """The generative backend reported quota or rate exhaustion."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, error_code="quota_exceeded")
        self.retry_after = retry_after
