from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BackendName(StrEnum):
    cloud_browser = "cloud_browser"
    local_browser = "local_browser"
    serverless_browser = "serverless_browser"
    remote_render = "remote_render"


class SearchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str
    checkin: date | None = None
    checkout: date | None = None
    adults: int = Field(default=2, ge=1)
    children: int = Field(default=0, ge=0)
    rooms: int = Field(default=1, ge=1)
    currency: str = "USD"
    preferred_backend: BackendName | None = None
    no_retry: bool = False

    @field_validator("location")
    @classmethod
    def _strip_location(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("location cannot be empty")
        return value

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper() or "USD"

    @model_validator(mode="after")
    def _checkout_after_checkin(self) -> SearchRequest:
        if self.checkin and self.checkout and self.checkout <= self.checkin:
            raise ValueError("checkout must be after checkin")
        return self
