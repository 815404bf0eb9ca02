import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import ValidationError

from booking_scraper.dependencies import BackendConfigDep, OrchestratorDep
from booking_scraper.exceptions.custom import InvalidInputError
from booking_scraper.schemas.responses import (
    HealthResponse,
    HotelDetailsBody,
    HotelDetailsResponse,
    HotelSearchBody,
    HotelSearchResponse,
)
from booking_scraper.schemas.search import SearchRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

HOTEL_URL_MARKER = "booking.com/hotel/"


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(error["msg"] for error in exc.errors())


@router.get("/health", response_model=HealthResponse)
async def health(orchestrator: OrchestratorDep, config: BackendConfigDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        service="booking-scraper",
        timestamp=datetime.now(timezone.utc),
        backends=orchestrator.backend_names,
        zyte_configured=bool(config.remote_render_api_key),
    )


@router.post("/hotels", response_model=HotelSearchResponse)
async def search_hotels(body: HotelSearchBody, orchestrator: OrchestratorDep) -> HotelSearchResponse:
    try:
        request = SearchRequest(
            location=body.location,
            checkin=body.checkin,
            checkout=body.checkout,
            adults=body.adults,
            children=body.children,
            rooms=body.rooms,
            currency=body.currency,
            preferred_backend=body.backend,
            no_retry=body.no_retry,
        )
    except ValidationError as exc:
        raise InvalidInputError(_validation_message(exc)) from exc

    started = time.monotonic()
    outcome = await orchestrator.search_hotels(request)
    return HotelSearchResponse(
        success=True,
        location=request.location,
        count=len(outcome.hotels),
        duration_seconds=round(time.monotonic() - started, 2),
        hotels=outcome.hotels,
        debug=outcome.debug_info,
    )


@router.post("/hotel-details", response_model=HotelDetailsResponse)
async def hotel_details(body: HotelDetailsBody, orchestrator: OrchestratorDep) -> HotelDetailsResponse:
    url = body.url.strip()
    if HOTEL_URL_MARKER not in url:
        raise InvalidInputError("A Booking.com hotel URL is required (booking.com/hotel/...)")

    started = time.monotonic()
    outcome = await orchestrator.get_hotel_detail(
        url, preferred_backend=body.backend, no_retry=body.no_retry,
    )
    logger.info("Hotel details for %s: name=%r", url, outcome.detail.name)
    return HotelDetailsResponse(
        success=outcome.debug_info.error is None,
        duration_seconds=round(time.monotonic() - started, 2),
        hotel=outcome.detail,
        debug=outcome.debug_info,
    )
