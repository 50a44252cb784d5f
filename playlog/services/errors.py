from __future__ import annotations


class ServiceError(Exception):
    """Base class for service-layer errors."""


class NotFoundError(ServiceError):
    """Unknown game/addition/session, or a row that belongs to another user."""


class ConflictError(ServiceError):
    """Second active session, or deleting a session that is still running."""


class ServiceValidationError(ServiceError):
    """Well-formed request that breaks a domain rule (wrong addition type, bad range)."""


class OperationError(ServiceError):
    """Persistence failure; the transaction has been rolled back."""
