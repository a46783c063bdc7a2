from __future__ import annotations


class AppError(Exception):
    """Base exception for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "Unexpected error"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        self.message = message or self.__class__.message
        if code is not None:
            self.code = code
        super().__init__(self.message)


# --- Account / credential errors ---


class DuplicateIdentityError(AppError):
    status_code = 409
    code = "login_id_taken"
    message = "Login ID is already registered"


class ForbiddenError(AppError):
    status_code = 403
    code = "invalid_staff_key"
    message = "Invalid staff registration key"


class InvalidCredentialsError(AppError):
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid login ID or password"


class AccountValidationError(AppError):
    status_code = 422
    code = "validation_error"
    message = "Invalid request payload"


# --- Two-factor errors ---


class InvalidStateError(AppError):
    status_code = 400
    code = "invalid_state"
    message = "Operation is not allowed in the current state"


class InvalidTotpCodeError(AppError):
    status_code = 401
    code = "invalid_2fa_code"
    message = "Invalid or expired 2FA code"


# --- Password reset errors ---


class InvalidResetTokenError(AppError):
    status_code = 400
    code = "invalid_token"
    message = "Invalid or expired reset token"


class ExpiredResetTokenError(AppError):
    status_code = 400
    code = "expired_token"
    message = "Invalid or expired reset token"


# --- Transport errors ---


class AuthenticationRequiredError(AppError):
    status_code = 401
    code = "authentication_required"
    message = "Authentication is required"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class RateLimitError(AppError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, message: str, *, retry_after: int, code: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message, code=code)
