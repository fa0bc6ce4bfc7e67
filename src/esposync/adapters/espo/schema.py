"""Pydantic models for the EspoCRM payloads this adapter interprets.

Entity bodies themselves stay plain JSON mappings; only the envelopes whose
fields we read are modelled here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class EspoBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AppUserPayload(EspoBaseModel):
    id: str | None = None
    user_name: str | None = Field(default=None, alias="userName")


class AppUserResponse(EspoBaseModel):
    """Body of ``GET /api/v1/App/user``."""

    token: str | None = None
    user: AppUserPayload | None = None

    _normalize_token = field_validator("token", mode="before")(_blank_to_none)
