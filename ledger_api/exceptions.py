"""
Custom exception classes and FastAPI exception handlers.

Why custom exceptions?
  The service layer raises domain-specific errors (like AccountNotFoundError)
  without importing HTTP concepts. Each error class carries its own HTTP
  status and machine-readable code, and one handler renders them all.

  Business-rule outcomes of a money movement (bad amount, insufficient
  funds, missing account reference) are NOT exceptions — they are stored
  as failed transactions. Everything here is either a request problem or
  an infrastructure problem.

Exception hierarchy:
    LedgerAPIError (base)
    ├── InvalidRequestError          — 400, malformed input
    ├── AuthenticationRequiredError  — 401, no X-Secret-Key header
    ├── AuthenticationFailedError    — 401, secret doesn't resolve to a user
    ├── UnauthorizedAccessError      — 403, caller doesn't own the account
    ├── AccountNotFoundError         — 404, referenced account doesn't exist
    ├── TransactionNotFoundError     — 404, unknown transaction id
    ├── DuplicateUsernameError       — 409, provisioning conflict
    └── DuplicateAccountNumberError  — 409, provisioning conflict

    InsufficientBalanceError — raised by the account store's conditional
    debit; the money-movement engine turns it into a failed transaction.

Every error response has the same JSON shape:
    {"error": <code>, "message": <text>, "timestamp": <ISO-8601>, "path": <url path>}
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerAPIError(Exception):
    """Base exception for all Ledger API domain errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InvalidRequestError(LedgerAPIError):
    """Raised when request input fails validation."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationRequiredError(LedgerAPIError):
    """Raised when the X-Secret-Key header is missing."""

    status_code = 401
    error_code = "AUTHENTICATION_REQUIRED"

    def __init__(self):
        super().__init__("Authentication required")


class AuthenticationFailedError(LedgerAPIError):
    """Raised when the presented secret key doesn't match any user."""

    status_code = 401
    error_code = "AUTHENTICATION_FAILED"

    def __init__(self):
        super().__init__("Authentication failed")


class UnauthorizedAccessError(LedgerAPIError):
    """Raised when a user attempts to use an account they don't own."""

    status_code = 403
    error_code = "UNAUTHORIZED_ACCESS"

    def __init__(self, detail: str = "Unauthorized access to account"):
        super().__init__(detail)


class AccountNotFoundError(LedgerAPIError):
    """
    Raised when a referenced account does not exist.

    Attributes:
        account_id: The id that was looked up.
        label: "Account", "Source account" or "Destination account" —
               selects both the message and the error code.
    """

    status_code = 404

    def __init__(self, account_id: int, label: str = "Account"):
        self.account_id = account_id
        self.label = label
        self.error_code = label.upper().replace(" ", "_") + "_NOT_FOUND"
        super().__init__(f"{label} not found")


class TransactionNotFoundError(LedgerAPIError):
    """Raised when a transaction id is unknown (or not visible to the caller)."""

    status_code = 404
    error_code = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__("Transaction not found")


class DuplicateUsernameError(LedgerAPIError):
    """Raised when provisioning a user whose username is taken."""

    status_code = 409
    error_code = "USERNAME_EXISTS"

    def __init__(self, username: str):
        self.username = username
        super().__init__("Username already exists")


class DuplicateAccountNumberError(LedgerAPIError):
    """Raised when provisioning an account with a number already in use."""

    status_code = 409
    error_code = "ACCOUNT_EXISTS"

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__("Account number already exists")


class InsufficientBalanceError(LedgerAPIError):
    """
    Raised by the account store when a debit would make a balance negative.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to debit.
    """

    status_code = 500
    error_code = "BALANCE_CONSTRAINT_VIOLATION"

    def __init__(self, account_id: int, requested: Decimal):
        self.account_id = account_id
        self.requested = requested
        super().__init__("Insufficient funds")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _format_validation_errors(exc: RequestValidationError) -> str:
    """Join pydantic error entries as "field: message, field: message"."""
    messages = []
    for error in exc.errors():
        # Drop the "body"/"path" prefix and the union tag pydantic inserts
        location = [
            str(part) for part in error.get("loc", ())[1:]
            if part not in ("deposit", "withdrawal", "transfer")
        ]
        message = error.get("msg", "Invalid value")
        messages.append(f"{'.'.join(location)}: {message}" if location else message)
    return ", ".join(messages)


def error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    """Build the uniform error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the global exception handlers with the FastAPI application.

    This is called once in the application factory (main.py).
    """

    @app.exception_handler(LedgerAPIError)
    async def ledger_error_handler(request: Request, exc: LedgerAPIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Unhandled domain error on %s %s: %s",
                request.method, request.url.path, exc.error_code,
            )
            return error_response(request, exc.status_code, exc.error_code, "Internal server error")

        logger.info(
            "Request rejected on %s %s: %s",
            request.method, request.url.path, exc.error_code,
        )
        return error_response(request, exc.status_code, exc.error_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            request,
            400,
            InvalidRequestError.error_code,
            f"Validation error: {_format_validation_errors(exc)}",
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        else:
            message = str(exc.detail)
        return error_response(request, exc.status_code, code, message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        # Store errors and bugs: log the traceback, expose nothing.
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(request, 500, "INTERNAL_ERROR", "Internal server error")
