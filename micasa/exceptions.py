"""Custom exceptions for micasa.

Every failure raised by the store carries a human-readable message plus a
``details`` dict with the identifiers and bounds needed to act on it without
re-querying (entity id, table name, actual vs. allowed sizes).
"""


class MicasaError(Exception):
    """Base exception for all micasa errors."""

    def __init__(self, message: str, details: dict | None = None):
        """Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SchemaMismatchError(MicasaError):
    """Raised when an existing database lacks required tables or columns.

    Attributes:
        missing_tables: Tables absent from the database
        missing_columns: Mapping of table name to its absent columns
    """

    missing_tables: list[str]
    missing_columns: dict[str, list[str]]

    def __init__(
        self,
        message: str,
        missing_tables: list[str] | None = None,
        missing_columns: dict[str, list[str]] | None = None,
    ):
        self.missing_tables = list(missing_tables or [])
        self.missing_columns = dict(missing_columns or {})
        super().__init__(
            message,
            details={
                "missing_tables": self.missing_tables,
                "missing_columns": self.missing_columns,
            },
        )


class ValidationError(MicasaError):
    """Exception raised when input validation fails."""

    pass


class ResourceNotFound(MicasaError):
    """Raised when an id is absent or not in the lifecycle state an operation targets."""

    pass


class ReferentialIntegrityError(MicasaError):
    """Raised when a lifecycle transition is blocked by related rows.

    Attributes:
        blocking_count: Number of rows blocking the transition
    """

    blocking_count: int

    def __init__(self, message: str, blocking_count: int = 0, details: dict | None = None):
        details = dict(details or {})
        details["blocking_count"] = blocking_count
        super().__init__(message, details)
        self.blocking_count = blocking_count


class CapacityExceededError(MicasaError):
    """Raised when a document payload exceeds the configured maximum size.

    Attributes:
        actual: Payload size in bytes
        allowed: Configured maximum in bytes
    """

    actual: int
    allowed: int

    def __init__(self, message: str, actual: int, allowed: int):
        super().__init__(message, details={"actual": actual, "allowed": allowed})
        self.actual = actual
        self.allowed = allowed


class CorruptionError(MicasaError):
    """Raised when a stored value cannot be mapped back to its in-memory type.

    This indicates the database was modified by an incompatible writer.
    """

    pass
