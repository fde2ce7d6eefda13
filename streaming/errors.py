from __future__ import annotations


class ServiceError(Exception):
    """Base error for catalog/account operations; carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {"error": self.message}


class InvalidInput(ServiceError):
    status_code = 400


class InvalidCredentials(ServiceError):
    status_code = 401


class AccountLocked(ServiceError):
    status_code = 403

    def __init__(self, message: str = "Account is locked. Please contact support.") -> None:
        super().__init__(message)

    def payload(self) -> dict:
        return {"error": self.message, "status": "LOCKED"}


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class TransactionFailed(ServiceError):
    status_code = 500


class InconsistentCredential(ServiceError):
    status_code = 500
