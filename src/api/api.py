from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.errors import ValidationError as NinjaValidationError
from ninja_extra import NinjaExtraAPI

from common.schema import ResponseOk, VersionResponse
from wallet.controllers import router as wallet_router
from wallet.exceptions import InvalidPushTokenError, PassGenerationError, PassNotFoundError

from .exception_handlers import (
    handle_django_validation_error,
    handle_general_exception,
    handle_invalid_push_token_error,
    handle_pass_generation_error,
    handle_pass_not_found_error,
    handle_request_validation_error,
)

api = NinjaExtraAPI(
    title="Passbook Backend API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Apple Wallet web service {settings.VERSION}",
    app_name=f"passbook-api-{settings.VERSION}",
    urls_namespace="api",
)


@api.get("/version", tags=["Version"], response={200: VersionResponse}, url_name="version")
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk}, url_name="healthcheck")
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API."""
    return 200, ResponseOk()


api.add_router("/wallet", wallet_router)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    NinjaValidationError: handle_request_validation_error,
    PassNotFoundError: handle_pass_not_found_error,
    InvalidPushTokenError: handle_invalid_push_token_error,
    PassGenerationError: handle_pass_generation_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
