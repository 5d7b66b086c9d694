"""Common schemas for the API."""

import typing as t

from ninja import Schema


class VersionResponse(Schema):
    version: str


class ResponseOk(Schema):
    status: t.Literal["ok"] = "ok"


class ResponseMessage(Schema):
    detail: str


class ValidationErrorResponse(Schema):
    errors: list[dict[str, t.Any]] | dict[str, list[str]]
