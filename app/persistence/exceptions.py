"""Persistence layer exceptions.

All store failures surface as PersistenceError subclasses so callers can catch
them with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the store cannot be reached or initialized.

    Examples:
    - Empty or malformed database URL
    - Database file not accessible
    - Session requested before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a record that does not exist.

    Optional lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (duplicate id or endpoint, broken foreign key)."""

    pass
