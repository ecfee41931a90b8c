"""Error taxonomy shared by the domain managers.

Every manager raises subclasses of these so the API layer can render a
uniform response without knowing about individual domains.
"""
from typing import Any, Dict, List, Optional


class SkillSwapError(Exception):
    """Base exception for all marketplace errors."""
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class InvalidRequestError(SkillSwapError):
    """Raised when input is malformed or out of range."""
    status_code = 400


class AuthenticationError(SkillSwapError):
    """Raised when credentials or tokens are missing or invalid."""
    status_code = 401


class AuthorizationError(SkillSwapError):
    """Raised when the actor may not perform the requested action."""
    status_code = 403


class NotFoundError(SkillSwapError):
    """Raised when a referenced entity does not exist."""
    status_code = 404


class ConflictError(SkillSwapError):
    """Raised when the entity's current state forbids the action."""
    status_code = 409


class DuplicateFeedbackError(ConflictError):
    """Raised when a participant already rated a swap."""
    pass


class DependencyError(SkillSwapError):
    """Raised when storage or another collaborator is unavailable."""
    status_code = 500
