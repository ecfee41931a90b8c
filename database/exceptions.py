"""Database exceptions."""

from common.errors import DependencyError


class DatabaseError(DependencyError):
    """Raised when the database cannot be reached or initialized."""
    pass


class DatabaseSchemaError(DatabaseError):
    """Raised when schema files are invalid or migrations fail."""
    pass
