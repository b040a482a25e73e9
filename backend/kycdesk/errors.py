from __future__ import annotations


class KycError(Exception):
    """Base error for KYC/AML operations; carries the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(KycError):
    status_code = 400


class TenantAccessError(KycError):
    status_code = 403


class NotFoundError(KycError):
    status_code = 404


class ConflictError(KycError):
    status_code = 409


class StorageError(KycError):
    status_code = 500
