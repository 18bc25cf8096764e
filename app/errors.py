from fastapi import Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Base for failures surfaced to API callers as ``{"detail", "code"}``."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidState(DomainError):
    code = "INVALID_STATE"
    status_code = status.HTTP_409_CONFLICT


class PaymentFailed(DomainError):
    code = "PAYMENT_FAILED"
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class InternalError(DomainError):
    pass


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )
