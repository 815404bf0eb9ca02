import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from booking_scraper.config import Settings
from booking_scraper.exceptions.custom import (
    BackendUnavailableError,
    InvalidInputError,
    ScrapeFailedError,
)
from booking_scraper.exceptions.handlers import (
    backend_unavailable_error_handler,
    invalid_input_error_handler,
    scrape_failed_error_handler,
)
from booking_scraper.routers.hotels import router as hotels_router
from booking_scraper.services.orchestrator import ScraperOrchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    backend_config = settings.backend_config()

    async with httpx.AsyncClient(timeout=30.0) as client:
        app.state.settings = settings
        app.state.backend_config = backend_config
        app.state.orchestrator = ScraperOrchestrator.from_config(backend_config, client)
        yield


app = FastAPI(title="Booking Scraper", lifespan=lifespan)

app.add_exception_handler(InvalidInputError, invalid_input_error_handler)
app.add_exception_handler(BackendUnavailableError, backend_unavailable_error_handler)
app.add_exception_handler(ScrapeFailedError, scrape_failed_error_handler)

app.include_router(hotels_router)
