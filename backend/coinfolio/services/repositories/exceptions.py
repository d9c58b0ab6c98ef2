"""Repository-specific exceptions.

These exceptions provide semantic meaning for data access errors,
separating them from general database errors.
"""


class RepositoryError(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryError):
    """Entity not found in database (or not visible to the requesting user)."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, identifier: str | int):
        self.entity_type = entity_type
        self.identifier = identifier
        self.message = f"{entity_type} not found: {identifier}"
        super().__init__(self.message)
