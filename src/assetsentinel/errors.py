"""Domain exceptions raised by the service layer.

Routes translate these into HTTP responses; background workers log them.
"""


class NotFoundError(Exception):
    """Raised when a tenant-scoped row does not exist (or is soft-deleted)."""


class InsufficientStockError(Exception):
    """Raised when a deduction asks for more units than are on hand."""


class InvalidStatusError(Exception):
    """Raised when a status value is not part of the entity's lifecycle."""


class ConflictError(Exception):
    """Raised when a write would violate a uniqueness or ownership rule."""
