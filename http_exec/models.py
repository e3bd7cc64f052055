"""Data models for http-exec.

All models use Pydantic v2 and are immutable once validated.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from http_exec.casing import to_kebab_case


class RequestMethod(str, Enum):
    """HTTP methods the executor can send."""

    GET = "GET"
    POST = "POST"


class Request(BaseModel):
    """One HTTP call, fully described and never mutated.

    Header keys are kebab-cased during validation; values pass through
    untouched. Query params only apply to GET, body only to POST. headers
    and params are stored as read-only mappings and dump back to dicts.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, validate_default=True)

    body: str | None = Field(default=None, description="Raw text payload (POST only)")
    headers: Mapping[str, str] = Field(
        default_factory=dict, description="Header name (kebab-case) -> value"
    )
    method: RequestMethod = Field(description="HTTP method")
    url: str = Field(description="Absolute URL, checked at send time")
    params: Mapping[str, str] = Field(
        default_factory=dict, description="Query parameters (GET only)"
    )

    @field_validator("method", mode="before")
    @classmethod
    def uppercase_method(cls, method: Any) -> Any:
        # Request files commonly spell methods in lowercase
        if isinstance(method, str):
            return method.upper()
        return method

    @field_validator("headers")
    @classmethod
    def normalize_header_keys(cls, headers: Mapping[str, str]) -> Mapping[str, str]:
        # Later keys win when two names collapse to the same kebab form
        return MappingProxyType({to_kebab_case(key): value for key, value in headers.items()})

    @field_validator("params")
    @classmethod
    def freeze_params(cls, params: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(params))

    @field_serializer("headers", "params")
    def dump_mapping(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @classmethod
    def new(
        cls,
        body: str | None,
        headers: Mapping[str, str],
        method: RequestMethod | str,
        url: str,
        params: Mapping[str, str],
    ) -> Request:
        """Positional constructor mirroring the field order."""
        return cls(body=body, headers=headers, method=method, url=url, params=params)


class Response(BaseModel):
    """A response whose body parsed as JSON.

    Header names are kept exactly as the server sent them.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: int = Field(ge=0, le=65535, description="HTTP status code")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Response headers as received"
    )
    body: Any = Field(description="Parsed JSON body")


class ErrorKind(str, Enum):
    """Why a call did not produce a Response."""

    TRANSPORT = "transport"  # Connect, DNS, timeout, TLS, protocol
    INVALID_URL = "invalid_url"
    INVALID_HEADER = "invalid_header"  # Caller-supplied header
    INVALID_RESPONSE_HEADER = "invalid_response_header"  # Header value not UTF-8
    MALFORMED_RESPONSE_BODY = "malformed_response_body"  # Empty or not JSON


class Error(BaseModel):
    """A failed call.

    status and url are independently optional: each is set only when the
    failure can be attributed to it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ErrorKind = Field(description="Failure classification")
    status: int | None = Field(default=None, ge=0, le=65535, description="HTTP status if one was received")
    url: str | None = Field(default=None, description="URL the failure is attributed to")
    message: str = Field(default="", description="Human-readable description")
