"""Domain error taxonomy raised by the service layer.

Each error carries the HTTP status and a short label; ``app.main`` turns
them into JSON responses so handlers never need to catch them.
"""

from fastapi import status


class DomainError(Exception):
    """Base service error."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "Bad request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    error = "Validation failed"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class InsufficientStockError(DomainError):
    error = "Insufficient stock"

    def __init__(self, available: int):
        super().__init__(f"Only {available} units available")
        self.available = available


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class AlreadyUsedError(DomainError):
    error = "Token already used"


class InvalidStateError(DomainError):
    error = "Invalid status"


class ExpiredError(DomainError):
    error = "Token expired"


class EmailMismatchError(DomainError):
    error = "Email mismatch"


class EmailDeliveryFailedError(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "Email failed"
