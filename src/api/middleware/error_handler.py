"""Global error handling for consistent error responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class BadRequestError(APIError):
    """Missing or malformed client input."""

    def __init__(self, message: str = "Bad request", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="bad_request",
            details=details,
        )


class AuthenticationError(APIError):
    """Authentication failure error."""

    def __init__(self, message: str = "Authentication required", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="authentication_error",
            details=details,
        )


class ConfigurationError(APIError):
    """Server is missing required configuration."""

    def __init__(self, message: str = "Server misconfiguration") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="configuration_error",
        )


class OrderCreationError(APIError):
    """The order row could not be created."""

    def __init__(self, message: str = "Failed to create order") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="order_creation_failed",
        )


class PaymentGatewayError(APIError):
    """The payment provider rejected a request or could not be reached."""

    def __init__(
        self,
        message: str = "Payment provider error",
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        details = None
        if provider_response is not None:
            details = [
                {
                    "msg": str(provider_response.get("message", message)),
                    "type": "provider_response",
                    "payload": provider_response,
                }
            ]
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="payment_gateway_error",
            details=details,
        )
        self.provider_response = provider_response


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError raised by a route."""
    request_id = request.headers.get("X-Request-ID")
    logger.warning(
        "API error: %s - %s",
        exc.error_type,
        exc.message,
        extra={"request_id": request_id, "status_code": exc.status_code},
    )
    return create_error_response(
        error_type=exc.error_type,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 with field-level details.

    Input values are left out of the details so request bodies are never
    echoed back.
    """
    request_id = request.headers.get("X-Request-ID")
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "Invalid value"), "type": error.get("type", "error")}
        for error in exc.errors()
    ]
    missing = [".".join(str(p) for p in d["loc"][1:]) for d in details if d["type"] == "missing"]
    missing = [name for name in missing if name]
    message = f"Missing required fields: {', '.join(missing)}" if missing else "Invalid request"
    logger.warning("Validation error on %s: %s", request.url.path, message, extra={"request_id": request_id})
    return create_error_response(
        error_type="validation_error",
        message=message,
        status_code=status.HTTP_400_BAD_REQUEST,
        details=details,
        request_id=request_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the API error handlers to the application."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Ensures consistent error response format across the application.
    Logs full stack traces for debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    # Extract request ID if present (can be set by upstream middleware/load balancer)
    request_id = request.headers.get("X-Request-ID")

    try:
        response = await call_next(request)
        return response

    except APIError as e:
        logger.warning(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        # Unexpected exceptions - log full stack trace
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
