import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import BackendUnavailableError, InvalidInputError, ScrapeFailedError

logger = logging.getLogger(__name__)


async def invalid_input_error_handler(_request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.info("Rejected request: %s", exc.message)
    return JSONResponse(
        status_code=400,
        content={"success": False, "detail": exc.message},
    )


async def backend_unavailable_error_handler(
    _request: Request, exc: BackendUnavailableError,
) -> JSONResponse:
    logger.error("No rendering backend available: %s", exc.message)
    return JSONResponse(
        status_code=503,
        content={"success": False, "detail": exc.message},
    )


async def scrape_failed_error_handler(_request: Request, exc: ScrapeFailedError) -> JSONResponse:
    logger.error(
        "Scrape failed: %s (backends=%s)",
        exc.message,
        ",".join(exc.debug_info.backends_tried),
    )
    return JSONResponse(
        status_code=502,
        content={
            "success": False,
            "detail": exc.message,
            "debug": exc.debug_info.model_dump(mode="json"),
        },
    )
