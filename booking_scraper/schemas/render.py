from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from booking_scraper.schemas.search import BackendName


class RenderMode(StrEnum):
    search = "search"
    detail = "detail"


class RenderResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    html: str
    final_url: str
    title: str | None = None
    content_length: int
    backend_used: BackendName
    blocked: bool = False
    diagnostics: dict[str, Any] = {}
