"""Shared building blocks used by every domain package.

This package provides:
- The error taxonomy that the API maps onto HTTP status codes
- Page/limit handling and pagination metadata
"""

from .errors import (
    SkillSwapError,
    InvalidRequestError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    DuplicateFeedbackError,
    DependencyError,
)
from .pagination import Page, page_window, pagination_meta

__all__ = [
    'SkillSwapError',
    'InvalidRequestError',
    'AuthenticationError',
    'AuthorizationError',
    'NotFoundError',
    'ConflictError',
    'DuplicateFeedbackError',
    'DependencyError',
    'Page',
    'page_window',
    'pagination_meta',
]
