"""Django Ninja router for the Apple Wallet web service.

This module provides two sets of endpoints, both mounted at ``/api/wallet``:

1. Apple Wallet Web Service API (``/v1/devices/...``, ``/v1/passes/{type}/{serial}``, ``/v1/log``)
   These are called by Apple Wallet on the device.

2. Pass management (``POST /v1/passes``, ``PUT /v1/passes/{type}/{serial}``)
   These are called by backend systems to publish pass changes. Every
   successful write schedules push notifications to registered devices.
"""

import orjson
import structlog
from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.utils.http import http_date, parse_http_date_safe
from ninja import Router
from ninja.errors import AuthenticationError

from common.schema import ResponseMessage, ValidationErrorResponse
from wallet.authentication import ApplePassAuth
from wallet.generator import get_pass_generator
from wallet.models import WalletPass
from wallet.schemas import (
    DeviceRegistrationPayload,
    PassCreatePayload,
    PassResponse,
    PassUpdatePayload,
    SerialNumbersResponse,
)
from wallet.service import device_log, pass_store, registration_store
from wallet.service.dispatcher import enqueue_pass_update

logger = structlog.get_logger(__name__)

router = Router(tags=["Apple Wallet Web Service"], auth=ApplePassAuth())


def _ensure_pass_type_served(pass_type_identifier: str) -> None:
    """Reject pass types this instance does not serve.

    Raises:
        AuthenticationError: If pass types are restricted and this one is not listed.
    """
    allowed = settings.WALLET_PASS_TYPE_IDENTIFIERS
    if allowed and pass_type_identifier not in allowed:
        logger.warning("invalid_pass_type", received=pass_type_identifier)
        raise AuthenticationError()


def _parse_timestamp(value: str | None) -> int | None:
    """Parse a UNIX timestamp query parameter; invalid values mean 'no filter'."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug("invalid_updated_since", value=value[:32])
        return None


# -----------------------------------------------------------------------------
# Apple Wallet Web Service Endpoints
# https://developer.apple.com/documentation/walletpasses/adding-a-web-service-to-update-passes
# -----------------------------------------------------------------------------


@router.post(
    "/v1/devices/{device_library_id}/registrations/{pass_type_id}/{serial_number}",
    response={201: None, 400: ValidationErrorResponse | ResponseMessage, 401: ResponseMessage},
    url_name="wallet_register_device",
)
def register_device(
    request: HttpRequest,
    device_library_id: str,
    pass_type_id: str,
    serial_number: str,
    payload: DeviceRegistrationPayload,
) -> HttpResponse:
    """Register a device to receive push notifications for a pass.

    Called by Apple Wallet when a pass is added to the wallet. Repeating the
    call updates the stored push token.

    Returns:
        201: Registration stored
        400: Invalid push token
        401: Invalid authorization
    """
    _ensure_pass_type_served(pass_type_id)

    registration_store.upsert_registration(
        device_library_identifier=device_library_id,
        pass_type_identifier=pass_type_id,
        serial_number=serial_number,
        push_token=payload.pushToken,
    )
    device_log.log_info(device_library_id, "Device registered for notifications", pass_type_id, serial_number)

    return HttpResponse(status=201)


@router.delete(
    "/v1/devices/{device_library_id}/registrations/{pass_type_id}/{serial_number}",
    response={200: None, 401: ResponseMessage},
    url_name="wallet_unregister_device",
)
def unregister_device(
    request: HttpRequest,
    device_library_id: str,
    pass_type_id: str,
    serial_number: str,
) -> HttpResponse:
    """Unregister a device from receiving updates for a pass.

    Called by Apple Wallet when a pass is removed from the wallet.

    Returns:
        200: Unregistration successful (or already unregistered)
        401: Invalid authorization
    """
    _ensure_pass_type_served(pass_type_id)

    removed = registration_store.remove_registration(device_library_id, pass_type_id, serial_number)
    if removed:
        device_log.log_info(device_library_id, "Device unregistered", pass_type_id, serial_number)

    return HttpResponse(status=200)


@router.get(
    "/v1/devices/{device_library_id}/registrations/{pass_type_id}",
    response={200: SerialNumbersResponse, 401: ResponseMessage},
    url_name="wallet_get_serial_numbers",
)
def get_serial_numbers(
    request: HttpRequest,
    device_library_id: str,
    pass_type_id: str,
    lastUpdated: str | None = None,
    passesUpdatedSince: str | None = None,
) -> SerialNumbersResponse:
    """Get serial numbers of passes that need updating.

    Called by device after receiving a push notification.

    Args:
        request: The HTTP request.
        device_library_id: Unique identifier for the device.
        pass_type_id: Pass type identifier.
        lastUpdated: Unix timestamp of the device's last update.
        passesUpdatedSince: Apple's name for ``lastUpdated``.

    Returns:
        200: JSON with serialNumbers array and lastUpdated timestamp
    """
    _ensure_pass_type_served(pass_type_id)

    since = _parse_timestamp(lastUpdated if lastUpdated is not None else passesUpdatedSince)
    last_updated, serial_numbers = registration_store.list_changed_serials(device_library_id, pass_type_id, since)

    return SerialNumbersResponse(serialNumbers=serial_numbers, lastUpdated=str(last_updated))


@router.get(
    "/v1/passes/{pass_type_id}/{serial_number}",
    response={200: None, 304: None, 401: ResponseMessage, 404: ResponseMessage},
    url_name="wallet_get_pass",
)
def get_latest_pass(request: HttpRequest, pass_type_id: str, serial_number: str) -> HttpResponse:
    """Get the latest version of a pass.

    Called by device to download an updated pass.

    Returns:
        200: The .pkpass file
        304: Pass not modified since If-Modified-Since
        401: Invalid authorization
        404: Pass not found
    """
    _ensure_pass_type_served(pass_type_id)

    wallet_pass = pass_store.get_pass(pass_type_id, serial_number)
    last_modified = http_date(wallet_pass.last_modified_timestamp)

    if_modified_since = parse_http_date_safe(request.headers.get("If-Modified-Since", ""))
    if if_modified_since is not None and if_modified_since >= wallet_pass.last_modified_timestamp:
        response = HttpResponse(status=304)
        response["Last-Modified"] = last_modified
        return response

    generator = get_pass_generator()
    pkpass = generator.generate(wallet_pass)

    response = HttpResponse(pkpass, content_type=generator.content_type, status=200)
    response["Last-Modified"] = last_modified
    response["Content-Disposition"] = f'attachment; filename="pass.{generator.file_extension}"'
    return response


@router.post("/v1/log", auth=None, response={200: None}, url_name="wallet_log")
def log_errors(request: HttpRequest) -> HttpResponse:
    """Receive logs from devices.

    Apple Wallet sends logs here when it encounters errors with passes.
    The body is parsed leniently so that diagnostics are never rejected.

    Returns:
        200: Always
    """
    try:
        body = orjson.loads(request.body) if request.body else {}
    except orjson.JSONDecodeError:
        logger.warning("unparseable_device_log_payload", size=len(request.body))
        body = {}

    if not isinstance(body, dict):
        body = {"logs": body if isinstance(body, list) else []}

    logs = body.get("logs")
    device_log.record_device_logs(
        body.get("deviceLibraryIdentifier"),
        logs if isinstance(logs, list) else [],
    )

    return HttpResponse(status=200)


# -----------------------------------------------------------------------------
# Pass management endpoints
# -----------------------------------------------------------------------------


@router.post(
    "/v1/passes",
    response={201: PassResponse, 400: ValidationErrorResponse | ResponseMessage, 401: ResponseMessage},
    url_name="wallet_create_pass",
    tags=["Wallet Passes"],
)
def create_pass(request: HttpRequest, payload: PassCreatePayload) -> tuple[int, WalletPass]:
    """Create a pass, or replace the pass with the same identifiers.

    Registered devices are notified once the write has committed.
    """
    _ensure_pass_type_served(payload.pass_type_identifier)

    wallet_pass = pass_store.create_or_replace(
        pass_type_identifier=payload.pass_type_identifier,
        serial_number=payload.serial_number,
        data=payload.data,
        template_type=payload.template_type,
    )
    enqueue_pass_update(wallet_pass.pass_type_identifier, wallet_pass.serial_number)
    return 201, wallet_pass


@router.put(
    "/v1/passes/{pass_type_id}/{serial_number}",
    response={
        200: PassResponse,
        400: ValidationErrorResponse | ResponseMessage,
        401: ResponseMessage,
        404: ResponseMessage,
    },
    url_name="wallet_update_pass",
    tags=["Wallet Passes"],
)
def update_pass(
    request: HttpRequest,
    pass_type_id: str,
    serial_number: str,
    payload: PassUpdatePayload,
) -> tuple[int, WalletPass]:
    """Merge new data into an existing pass.

    Keys present in the payload overwrite stored keys at any depth; other
    stored keys are kept. Registered devices are notified once the write has
    committed.
    """
    _ensure_pass_type_served(pass_type_id)

    wallet_pass = pass_store.merge_update(pass_type_id, serial_number, payload.data)
    enqueue_pass_update(wallet_pass.pass_type_identifier, wallet_pass.serial_number)
    return 200, wallet_pass
