"""Pydantic schemas for wallet pass API endpoints."""

from uuid import UUID

from ninja import Schema
from pydantic import Field, JsonValue

from wallet.models import WalletPass


class DeviceRegistrationPayload(Schema):
    """Payload sent by device when registering for pass updates."""

    pushToken: str = Field(..., description="Push token for sending notifications")


class SerialNumbersResponse(Schema):
    """Response containing list of updated pass serial numbers."""

    serialNumbers: list[str] = Field(default_factory=list)
    lastUpdated: str = Field(..., description="Unix timestamp of most recent update")


class PassCreatePayload(Schema):
    """Payload for creating or replacing a pass."""

    pass_type_identifier: str = Field(..., min_length=1, max_length=255)
    serial_number: str = Field(..., min_length=1, max_length=255)
    template_type: WalletPass.TemplateType = WalletPass.TemplateType.GENERIC
    data: dict[str, JsonValue]


class PassUpdatePayload(Schema):
    """Payload for merging new data into an existing pass."""

    data: dict[str, JsonValue]


class PassResponse(Schema):
    """A stored pass."""

    id: UUID
    pass_type_identifier: str
    serial_number: str
    template_type: str
