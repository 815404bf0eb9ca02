"""Backend selection, validation and the single fail-over retry.

Each scrape walks an explicit state machine:

    SELECT_BACKEND -> RENDER -> VALIDATE -> DONE
                         ^          |
                         |          v
                      RETRY_ALTERNATE -> FAILED

At most one alternate backend is tried, and only when fail-over is enabled,
the request did not opt out, and a second backend is configured.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

import httpx

from booking_scraper.config import BackendConfig
from booking_scraper.exceptions.custom import (
    BackendUnavailableError,
    BlockedError,
    ExtractionEmptyError,
    RenderError,
    ScrapeFailedError,
)
from booking_scraper.extractors.detail import extract_detail
from booking_scraper.extractors.listing import extract_listings
from booking_scraper.schemas.render import RenderMode, RenderResult
from booking_scraper.schemas.responses import AttemptInfo, DebugInfo, DetailOutcome, SearchOutcome
from booking_scraper.schemas.search import BackendName, SearchRequest
from booking_scraper.services.backends.base import RenderBackend, mentions_robot_check
from booking_scraper.services.backends.browser import (
    CloudBrowserBackend,
    LocalBrowserBackend,
    ServerlessBrowserBackend,
)
from booking_scraper.services.backends.remote_render import RemoteRenderBackend
from booking_scraper.services.stealth import StealthController
from booking_scraper.services.url_builder import search_url_for

logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    select_backend = "select_backend"
    render = "render"
    validate = "validate"
    retry_alternate = "retry_alternate"
    done = "done"
    failed = "failed"


@dataclass(frozen=True)
class ScrapeJob:
    """What to render and how to decide whether the page was usable."""

    url: str
    mode: RenderMode
    extract: Callable[[str], Any]
    is_empty: Callable[[Any], bool]
    empty_message: str
    # Return an empty extraction from an unblocked page instead of failing
    accept_empty: bool = False


@dataclass
class _Run:
    url: str
    attempts: list[AttemptInfo] = field(default_factory=list)
    failover: bool = False
    result: RenderResult | None = None
    partial: Any = None
    error: str | None = None

    def record(
        self,
        backend: RenderBackend,
        outcome: str,
        started: float,
        *,
        result: RenderResult | None = None,
        error: str | None = None,
        block_reason: str | None = None,
    ) -> None:
        if result is not None:
            self.result = result
        self.error = error
        self.attempts.append(AttemptInfo(
            backend=backend.name,
            outcome=outcome,
            final_url=result.final_url if result else None,
            content_length=result.content_length if result else None,
            title=result.title if result else None,
            blocked=outcome == "blocked",
            block_reason=block_reason,
            error=error,
            duration_seconds=round(time.monotonic() - started, 2),
        ))

    def debug_info(self, count: int | None = None) -> DebugInfo:
        tried: list[BackendName] = []
        for attempt in self.attempts:
            if attempt.backend not in tried:
                tried.append(attempt.backend)
        last = self.attempts[-1] if self.attempts else None
        return DebugInfo(
            url=self.url,
            backend_used=last.backend if last else None,
            backends_tried=tried,
            failover=self.failover,
            final_url=last.final_url if last else None,
            content_length=last.content_length if last else None,
            title=last.title if last else None,
            blocked=last.blocked if last else False,
            error=self.error,
            count=count,
            attempts=list(self.attempts),
        )


def validate_render(job: ScrapeJob, result: RenderResult) -> Any:
    """Extract from a render, raising when the attempt should not be accepted."""
    if result.blocked:
        reason = result.diagnostics.get("block_reason")
        raise BlockedError(f"{result.backend_used} render looks blocked ({reason})", reason=reason)
    value = job.extract(result.html)
    if job.is_empty(value):
        if mentions_robot_check(result.html):
            raise BlockedError(f"{result.backend_used} hit a robot check page", reason="robot_check")
        raise ExtractionEmptyError(job.empty_message, partial=value)
    return value


class ScraperOrchestrator:
    def __init__(
        self,
        backends: list[RenderBackend],
        *,
        failover_enabled: bool = True,
        missing_configuration: str = "No scraping backend configured.",
    ):
        self._backends = list(backends)
        self._failover_enabled = failover_enabled
        self._missing_configuration = missing_configuration

    @classmethod
    def from_config(cls, config: BackendConfig, client: httpx.AsyncClient) -> ScraperOrchestrator:
        stealth = StealthController(config.stealth)
        browser_options = {
            "navigation_timeout_ms": config.navigation_timeout_ms,
            "min_content_length": config.min_content_length,
        }
        factories: dict[BackendName, Callable[[], RenderBackend]] = {
            BackendName.cloud_browser: lambda: CloudBrowserBackend(
                config.cloud_browser_token, config.cloud_browser_endpoint, stealth, **browser_options,
            ),
            BackendName.local_browser: lambda: LocalBrowserBackend(
                stealth, headless=config.headless, disable_sandbox=config.disable_sandbox, **browser_options,
            ),
            BackendName.serverless_browser: lambda: ServerlessBrowserBackend(
                config.serverless_executable_path, stealth, **browser_options,
            ),
            BackendName.remote_render: lambda: RemoteRenderBackend(
                client,
                config.remote_render_api_key,
                geolocation=config.remote_render_geolocation,
                timeout=config.remote_render_timeout,
                min_content_length=config.min_content_length,
            ),
        }
        backends = [factories[name]() for name in config.available_backends()]
        logger.info("Configured backends: %s", ", ".join(b.name for b in backends) or "none")
        return cls(
            backends,
            failover_enabled=config.failover_enabled,
            missing_configuration=config.missing_configuration(),
        )

    @property
    def backend_names(self) -> list[BackendName]:
        return [backend.name for backend in self._backends]

    def select_backends(self, preferred: BackendName | None = None) -> list[RenderBackend]:
        """Configured backends in try order, with ``preferred`` moved first."""
        if not self._backends:
            raise BackendUnavailableError(self._missing_configuration)
        if preferred is None:
            return list(self._backends)
        chosen = [b for b in self._backends if b.name == preferred]
        if not chosen:
            raise BackendUnavailableError(f"Backend '{preferred}' is not configured")
        return chosen + [b for b in self._backends if b.name != preferred]

    async def search_hotels(self, request: SearchRequest, today: date | None = None) -> SearchOutcome:
        url = search_url_for(request, today=today)
        job = ScrapeJob(
            url=url,
            mode=RenderMode.search,
            extract=extract_listings,
            is_empty=lambda hotels: not hotels,
            empty_message="No hotels found on the search results page",
        )
        hotels, run = await self._execute(job, request.preferred_backend, request.no_retry)
        logger.info("Search '%s': %d hotels via %s", request.location, len(hotels), run.attempts[-1].backend)
        return SearchOutcome(hotels=hotels, debug_info=run.debug_info(count=len(hotels)))

    async def get_hotel_detail(
        self,
        url: str,
        *,
        preferred_backend: BackendName | None = None,
        no_retry: bool = False,
    ) -> DetailOutcome:
        job = ScrapeJob(
            url=url,
            mode=RenderMode.detail,
            extract=lambda html: extract_detail(html, url),
            is_empty=lambda detail: not detail.name,
            empty_message="Hotel name not found on the page",
            accept_empty=True,
        )
        detail, run = await self._execute(job, preferred_backend, no_retry)
        return DetailOutcome(detail=detail, debug_info=run.debug_info())

    async def _execute(
        self,
        job: ScrapeJob,
        preferred: BackendName | None,
        no_retry: bool,
    ) -> tuple[Any, _Run]:
        run = _Run(url=job.url)
        state = PipelineState.select_backend
        queue: list[RenderBackend] = []
        backend: RenderBackend | None = None
        result: RenderResult | None = None
        value: Any = None
        may_retry = False
        started = 0.0

        while True:
            logger.debug("Pipeline %s: %s", job.mode, state)

            if state == PipelineState.select_backend:
                queue = self.select_backends(preferred)
                may_retry = self._failover_enabled and not no_retry and len(queue) > 1
                backend = queue[0]
                state = PipelineState.render

            elif state == PipelineState.render:
                started = time.monotonic()
                try:
                    result = await backend.render(job.url, job.mode)
                except RenderError as exc:
                    logger.warning("%s failed to render %s: %s", backend.name, job.url, exc.message)
                    run.record(backend, "render_failed", started, error=exc.message)
                    state = PipelineState.retry_alternate if exc.transient else PipelineState.failed
                else:
                    state = PipelineState.validate

            elif state == PipelineState.validate:
                try:
                    value = validate_render(job, result)
                except BlockedError as exc:
                    logger.warning("%s: %s", backend.name, exc.message)
                    run.record(backend, "blocked", started, result=result, error=exc.message, block_reason=exc.reason)
                    state = PipelineState.retry_alternate
                except ExtractionEmptyError as exc:
                    logger.warning("%s: %s (%d bytes)", backend.name, exc.message, result.content_length)
                    run.record(backend, "extraction_empty", started, result=result, error=exc.message)
                    run.partial = exc.partial
                    state = PipelineState.retry_alternate
                else:
                    run.record(backend, "ok", started, result=result)
                    state = PipelineState.done

            elif state == PipelineState.retry_alternate:
                if may_retry and not run.failover:
                    run.failover = True
                    backend = queue[1]
                    logger.info("Failing over to %s", backend.name)
                    state = PipelineState.render
                else:
                    state = PipelineState.failed

            elif state == PipelineState.done:
                return value, run

            elif state == PipelineState.failed:
                last = run.attempts[-1]
                if job.accept_empty and last.outcome == "extraction_empty" and run.partial is not None:
                    logger.warning("Returning incomplete result for %s: %s", job.url, last.error)
                    return run.partial, run
                logger.error("Scrape failed for %s after %d attempt(s): %s", job.url, len(run.attempts), last.error)
                raise ScrapeFailedError(last.error or "Scrape failed", run.debug_info())
