from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from booking_scraper.schemas.responses import DebugInfo
    from booking_scraper.schemas.search import BackendName


class ScraperError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(ScraperError):
    pass


class BackendUnavailableError(ScraperError):
    pass


class RenderError(ScraperError):
    def __init__(
        self,
        message: str,
        backend: BackendName | None = None,
        transient: bool = True,
    ):
        self.backend = backend
        self.transient = transient
        super().__init__(message)


class ExtractionEmptyError(ScraperError):
    def __init__(self, message: str, partial: Any = None):
        self.partial = partial
        super().__init__(message)


class BlockedError(ScraperError):
    def __init__(self, message: str, reason: str | None = None):
        self.reason = reason
        super().__init__(message)


class ScrapeFailedError(ScraperError):
    def __init__(self, message: str, debug_info: DebugInfo):
        self.debug_info = debug_info
        super().__init__(message)
