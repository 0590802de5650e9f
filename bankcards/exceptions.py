"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientFundsError)
without importing HTTP concepts. Every error carries a stable ``error_type``
and belongs to exactly one category; the category decides the HTTP status.

Exception hierarchy:
    BankCardsError (base)
    ├── NotFoundError            404
    │   ├── CardNotFoundError
    │   ├── RefreshTokenNotFoundError
    │   └── UserNotFoundError
    ├── ConflictError            409
    │   ├── CardNotAvailableError
    │   ├── InsufficientFundsError
    │   ├── TokenNotActiveError
    │   ├── UserNotActiveError
    │   └── DuplicateUserError
    ├── UnauthorizedError        401
    │   ├── TokenExpiredError
    │   ├── InvalidTokenError
    │   └── InvalidCredentialsError
    ├── ForbiddenError           403
    │   ├── RoleRequiredError
    │   └── CardAccessDeniedError
    ├── BadRequestError          400
    │   ├── AmountTooSmallError
    │   ├── InvalidAmountError
    │   └── RolesEmptyError
    └── FatalError               500
        ├── CipherKeyError
        ├── EncryptionError
        └── DecryptionError

Messages never contain full card numbers or raw tokens. Where a card has to be
named, callers pass the masked form.
"""

import uuid
from decimal import Decimal

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Base exception and categories
# ---------------------------------------------------------------------------

class BankCardsError(Exception):
    """Base exception for all Bank Cards domain errors."""

    status_code: int = 500
    error_type: str = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def extra(self) -> dict:
        """Additional JSON fields for the error response."""
        return {}


class NotFoundError(BankCardsError):
    status_code = 404
    error_type = "not_found"


class ConflictError(BankCardsError):
    status_code = 409
    error_type = "conflict"


class UnauthorizedError(BankCardsError):
    status_code = 401
    error_type = "unauthorized"


class ForbiddenError(BankCardsError):
    status_code = 403
    error_type = "forbidden"


class BadRequestError(BankCardsError):
    status_code = 400
    error_type = "bad_request"


class FatalError(BankCardsError):
    """Misconfiguration or data-integrity failure. Never caller-correctable."""

    status_code = 500
    error_type = "fatal"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class CardNotFoundError(NotFoundError):
    error_type = "card_not_found"

    def __init__(self, masked_number: str = "****"):
        self.masked_number = masked_number
        super().__init__(f"Bank card {masked_number} not found")


class RefreshTokenNotFoundError(NotFoundError):
    error_type = "refresh_token_not_found"

    def __init__(self):
        super().__init__("Refresh token not found")


class UserNotFoundError(NotFoundError):
    error_type = "user_not_found"

    def __init__(self, identifier: uuid.UUID | str):
        self.identifier = identifier
        super().__init__(f"User {identifier} not found")


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------

class CardNotAvailableError(ConflictError):
    error_type = "card_not_available"

    def __init__(self, detail: str = "One or both cards are not available"):
        super().__init__(detail)


class InsufficientFundsError(ConflictError):
    """
    Raised when a transfer would drive the sender's balance below zero.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to move.
        available: The balance at the time of the check.
    """

    error_type = "insufficient_funds"

    def __init__(self, account_id: uuid.UUID, requested: Decimal, available: Decimal):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}"
        )

    def extra(self) -> dict:
        return {"requested": str(self.requested), "available": str(self.available)}


class TokenNotActiveError(ConflictError):
    error_type = "token_not_active"

    def __init__(self):
        super().__init__("Refresh token is not active")


class UserNotActiveError(ConflictError):
    error_type = "user_not_active"

    def __init__(self, login: str):
        self.login = login
        super().__init__(f"User {login} is not active")


class DuplicateUserError(ConflictError):
    error_type = "duplicate_user"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"A user with {field} {value} is already registered")


# ---------------------------------------------------------------------------
# Unauthorized / forbidden
# ---------------------------------------------------------------------------

class TokenExpiredError(UnauthorizedError):
    error_type = "token_expired"

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    error_type = "invalid_token"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail)


class InvalidCredentialsError(UnauthorizedError):
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid login or password")


class RoleRequiredError(ForbiddenError):
    error_type = "role_required"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Role {role} required")


class CardAccessDeniedError(ForbiddenError):
    error_type = "card_access_denied"

    def __init__(self, masked_number: str):
        super().__init__(f"You do not have access to card {masked_number}")


# ---------------------------------------------------------------------------
# Bad request
# ---------------------------------------------------------------------------

class AmountTooSmallError(BadRequestError):
    error_type = "amount_too_small"

    def __init__(self, amount: Decimal, floor: Decimal):
        self.amount = amount
        self.floor = floor
        super().__init__(f"Amount {amount} is below the minimum of {floor}")


class InvalidAmountError(BadRequestError):
    error_type = "invalid_amount"

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Amount {amount} is not a valid monetary value")


class RolesEmptyError(BadRequestError):
    error_type = "roles_empty"

    def __init__(self, login: str):
        super().__init__(f"User {login} has no roles")


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------

class CipherKeyError(FatalError):
    error_type = "cipher_key_invalid"


class EncryptionError(FatalError):
    error_type = "encryption_failed"

    def __init__(self, detail: str = "Failed to encrypt card number"):
        super().__init__(detail)


class DecryptionError(FatalError):
    error_type = "decryption_failed"

    def __init__(self, detail: str = "Failed to decrypt card number"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the exception handlers with the FastAPI application.

    Every BankCardsError maps to its category's status code and the
    consistent JSON body {"detail": ..., "error_type": ...}.

    Request validation errors keep FastAPI's 422 shape, minus the rejected
    "input" values: a malformed card number must not be echoed back.

    This is called once during app creation in main.py.
    """

    @app.exception_handler(BankCardsError)
    async def bank_cards_error_handler(
        request: Request, exc: BankCardsError
    ) -> JSONResponse:
        log = logger.error if isinstance(exc, FatalError) else logger.warning
        log(
            "request_failed",
            path=request.url.path,
            error_type=exc.error_type,
            status_code=exc.status_code,
            detail=exc.detail,
        )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type, **exc.extra()},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {key: value for key, value in error.items() if key != "input"}
            for error in exc.errors()
        ]
        logger.warning(
            "request_invalid",
            path=request.url.path,
            fields=[".".join(str(part) for part in error["loc"]) for error in errors],
        )
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(errors)},
        )
