"""Exception handlers for the API."""

import typing as t
from copy import deepcopy

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.errors import ValidationError as NinjaValidationError
from ninja.responses import Response

from wallet.exceptions import InvalidPushTokenError, PassGenerationError, PassNotFoundError
from wallet.service import device_log

logger = structlog.get_logger(__name__)


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    logger.exception(
        "INTERNAL_SERVER_ERROR",
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
        query=obfuscate(request.GET.dict()),
    )
    _record_web_service_error(request, exc)
    data = {"detail": "Internal Server Error."}
    if settings.DEBUG:  # pragma: no cover
        data["error"] = repr(exc)
    return Response(status=500, data=data)


def _record_web_service_error(request: HttpRequest, exc: Exception | t.Type[Exception]) -> None:
    """Keep a device log entry for server errors on the wallet web service.

    Covers every device route and fetching a pass. Failing to write the entry
    is logged and never replaces the original error response.
    """
    match = getattr(request, "resolver_match", None)
    kwargs = match.kwargs if match is not None else {}
    device_library_identifier = kwargs.get("device_library_id")
    if device_library_identifier is None and not (request.method == "GET" and "serial_number" in kwargs):
        return
    try:
        device_log.log_error(
            device_library_identifier or device_log.UNKNOWN_DEVICE,
            f"Server error: {exc!r}",
            pass_type_identifier=kwargs.get("pass_type_id"),
            serial_number=kwargs.get("serial_number"),
            context={"method": request.method, "path": request.path},
        )
    except Exception:
        logger.exception("web_service_error_not_recorded", path=request.path)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a model validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.warning("VALIDATION_ERROR", path=request.path)
    if hasattr(exc, "error_dict"):
        return Response(status=400, data={"errors": exc.message_dict})
    return Response(status=400, data={"errors": {"__all__": list(exc.messages)}})


def handle_request_validation_error(
    request: HttpRequest, exc: NinjaValidationError | t.Type[NinjaValidationError]
) -> Response:
    """Handle an invalid request body, path or query."""
    return Response(status=400, data={"errors": exc.errors})


def handle_pass_not_found_error(request: HttpRequest, exc: PassNotFoundError | t.Type[PassNotFoundError]) -> Response:
    """Handle a missing pass."""
    return Response(status=404, data={"detail": "Pass not found."})


def handle_invalid_push_token_error(
    request: HttpRequest, exc: InvalidPushTokenError | t.Type[InvalidPushTokenError]
) -> Response:
    """Handle a malformed push token."""
    return Response(status=400, data={"detail": "Invalid push token."})


def handle_pass_generation_error(
    request: HttpRequest, exc: PassGenerationError | t.Type[PassGenerationError]
) -> Response:
    """Handle a pass file that could not be produced."""
    logger.error("pass_generation_error", path=request.path, error=str(exc))
    return Response(status=500, data={"detail": "Failed to generate pass."})


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "cookie"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
