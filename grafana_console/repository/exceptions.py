"""
Repository exceptions.

Errors raised by the local mirror repository implementations.
"""


class RepositoryError(Exception):
    """Base exception for mirror repository errors."""
    pass


class RecordNotFoundError(RepositoryError):
    """Raised when an update or delete targets a row that does not exist."""

    def __init__(self, entity: str, record_id: int | str) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} {record_id} not found")


class DuplicateRecordError(RepositoryError):
    """Raised when an insert would violate a natural-key uniqueness rule."""
    pass


class MembershipConflictError(DuplicateRecordError):
    """
    Raised when a user is added to an organization or team twice.

    Examples:
        - (user 5, org 2) already exists
        - (user 1, team 3) already exists
    """

    def __init__(self, message: str, user_id: int | None = None, target_id: int | None = None) -> None:
        self.user_id = user_id
        self.target_id = target_id
        super().__init__(message)


class MissingValueError(RepositoryError):
    """Raised when a NOT NULL column would be written as None."""

    def __init__(self, entity: str, field: str) -> None:
        self.entity = entity
        self.field = field
        super().__init__(f"{entity}.{field} must not be null")
