from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from booking_scraper.schemas.hotel import HotelDetail, HotelSummary
from booking_scraper.schemas.search import BackendName


class AttemptInfo(BaseModel):
    backend: BackendName
    outcome: str  # "ok" | "render_failed" | "extraction_empty" | "blocked"
    final_url: str | None = None
    content_length: int | None = None
    title: str | None = None
    blocked: bool = False
    block_reason: str | None = None
    error: str | None = None
    duration_seconds: float = 0.0


class DebugInfo(BaseModel):
    url: str
    backend_used: BackendName | None = None
    backends_tried: list[BackendName] = []
    failover: bool = False
    final_url: str | None = None
    content_length: int | None = None
    title: str | None = None
    blocked: bool = False
    error: str | None = None
    count: int | None = None
    attempts: list[AttemptInfo] = []


class SearchOutcome(BaseModel):
    hotels: list[HotelSummary]
    debug_info: DebugInfo


class DetailOutcome(BaseModel):
    detail: HotelDetail
    debug_info: DebugInfo


class HotelSearchBody(BaseModel):
    location: str
    checkin: date | None = None
    checkout: date | None = None
    adults: int = 2
    children: int = 0
    rooms: int = 1
    currency: str = "USD"
    backend: BackendName | None = None
    no_retry: bool = False


class HotelDetailsBody(BaseModel):
    url: str
    backend: BackendName | None = None
    no_retry: bool = False


class HotelSearchResponse(BaseModel):
    success: bool
    location: str
    count: int
    duration_seconds: float
    hotels: list[HotelSummary]
    debug: DebugInfo


class HotelDetailsResponse(BaseModel):
    success: bool
    duration_seconds: float
    hotel: HotelDetail
    debug: DebugInfo


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: datetime
    backends: list[BackendName]
    zyte_configured: bool
