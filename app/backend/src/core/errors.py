"""Domain error taxonomy and FastAPI exception handlers.

Services raise the classes below; the HTTP layer renders them as

    {"statusCode": 404, "code": "INVOICE_NOT_FOUND", "message": "...",
     "timestamp": "2025-01-02T10:00:00Z", "path": "/api/invoices/<id>"}

so that callers can branch on ``code`` rather than parsing messages.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import get_settings

LOGGER = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for expected, caller-facing failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "APP_ERROR"
    message: str = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Resource already exists"


class PreconditionFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "PRECONDITION_FAILED"
    message = "Operation is not allowed in the current state"


class InternalError(AppError):
    """Persistence or other server-side failure; the message stays generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_SERVER_ERROR"
    message = "Internal server error"


# --------------------------------------------------------------------------
# Invoices
# --------------------------------------------------------------------------
class InvoiceNotFoundError(NotFoundError):
    code = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: object | None = None) -> None:
        self.invoice_id = invoice_id
        if invoice_id is None:
            super().__init__("Invoice not found")
        else:
            super().__init__(f"Invoice with ID {invoice_id} not found")


class InvoiceNumberExistsError(ConflictError):
    code = "INVOICE_NUMBER_EXISTS"

    def __init__(self, invoice_number: str) -> None:
        self.invoice_number = invoice_number
        super().__init__(f"Invoice with number {invoice_number} already exists")


class InvalidDatesError(ValidationError):
    code = "INVALID_DATES"
    message = "Due date must be greater than or equal to issue date"


class ItemsRequiredError(ValidationError):
    code = "ITEMS_REQUIRED"
    message = "At least one invoice item is required"


class InvalidVatRateError(ValidationError):
    code = "INVALID_VAT_RATE"

    def __init__(self, vat_rate: object) -> None:
        self.vat_rate = vat_rate
        super().__init__(
            f"Invalid VAT rate: {vat_rate}. Allowed values: 23, 8, 5, 0, zw"
        )


class AmountOutOfRangeError(ValidationError):
    code = "AMOUNT_OUT_OF_RANGE"

    def __init__(self, amount: object) -> None:
        self.amount = amount
        super().__init__(
            f"Amount {amount} exceeds the supported maximum of 999999999999.99"
        )


class IncompleteProfileError(PreconditionFailedError):
    code = "INCOMPLETE_PROFILE"
    message = (
        "Complete your company profile (company name, address, NIP) "
        "before issuing invoices"
    )


class InvalidStatusTransitionError(PreconditionFailedError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current_status: str, requested_status: str) -> None:
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot change invoice status from '{current_status}' "
            f"to '{requested_status}'"
        )


# --------------------------------------------------------------------------
# Contractors and profiles
# --------------------------------------------------------------------------
class ContractorNotFoundError(NotFoundError):
    code = "CONTRACTOR_NOT_FOUND"

    def __init__(self, contractor_id: object | None = None) -> None:
        self.contractor_id = contractor_id
        if contractor_id is None:
            super().__init__("Contractor not found")
        else:
            super().__init__(f"Contractor with ID {contractor_id} not found")


class ContractorNipExistsError(ConflictError):
    code = "NIP_EXISTS"

    def __init__(self, nip: str) -> None:
        self.nip = nip
        super().__init__(f"Contractor with NIP {nip} already exists")


class ProfileNotFoundError(NotFoundError):
    code = "PROFILE_NOT_FOUND"
    message = "User profile not found"


# --------------------------------------------------------------------------
# HTTP rendering
# --------------------------------------------------------------------------
def _error_body(request: Request, status_code: int, code: str, message: Any) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "path": request.url.path,
    }


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            code=exc.code,
            error=str(exc.__cause__ or exc),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.code, exc.message),
    )


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            request, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", messages
        ),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    message = str(exc) if get_settings().is_development else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_SERVER_ERROR",
            message,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error handlers to ``app``."""

    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)


__all__ = [
    "AmountOutOfRangeError",
    "AppError",
    "ConflictError",
    "ContractorNipExistsError",
    "ContractorNotFoundError",
    "IncompleteProfileError",
    "InternalError",
    "InvalidDatesError",
    "InvalidStatusTransitionError",
    "InvalidVatRateError",
    "InvoiceNotFoundError",
    "InvoiceNumberExistsError",
    "ItemsRequiredError",
    "NotFoundError",
    "PreconditionFailedError",
    "ProfileNotFoundError",
    "ValidationError",
    "register_exception_handlers",
]
