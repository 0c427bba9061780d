"""Settlement error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for errors surfaced with a category and message."""

    category = "settlement_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"category": self.category, "detail": self.message}


class ValidationError(SettlementError):
    """Malformed or missing input; no state was changed."""

    category = "validation"
    status_code = 400


class AuthorizationError(SettlementError):
    """Caller lacks the required role or ownership."""

    category = "authorization"
    status_code = 403


class NotFoundError(SettlementError):
    """A referenced entity does not exist."""

    category = "not_found"
    status_code = 404


class InsufficientFundsError(SettlementError):
    """A wallet bucket cannot cover the requested move."""

    category = "insufficient_funds"
    status_code = 409


class ExternalServiceError(SettlementError):
    """The payment gateway or the store is unavailable."""

    category = "external_service"
    status_code = 502


class TransactionConflictError(ExternalServiceError):
    """A transaction lost every retry against concurrent writers."""

    category = "transaction_conflict"
    status_code = 503


class ConsistencyViolationError(SettlementError):
    """An invariant check failed; never repaired silently."""

    category = "consistency_violation"
    status_code = 500


__all__ = [
    "AuthorizationError",
    "ConsistencyViolationError",
    "ExternalServiceError",
    "InsufficientFundsError",
    "NotFoundError",
    "SettlementError",
    "TransactionConflictError",
    "ValidationError",
]
