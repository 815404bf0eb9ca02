"""Anti-detection helpers for the Playwright-driven backends.

Every behavior is a plain, parameterized step and can be switched off
through ``StealthOptions``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

from playwright.async_api import BrowserContext, Page, Route
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.3.1 Safari/605.1.15",
)

# Returning-visitor cookies
SEED_COOKIES = (
    {"name": "pcm_personalization_disabled", "value": "0", "domain": ".booking.com", "path": "/"},
    {"name": "bkng_sso_session", "value": "e30", "domain": ".booking.com", "path": "/"},
    {"name": "cors_js", "value": "1", "domain": ".booking.com", "path": "/"},
)

SEED_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
}

BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "media"})
TRACKER_DOMAINS = ("google-analytics", "doubleclick", "facebook", "googletagmanager")

# Checked in order; the first visible match is clicked
OVERLAY_SELECTORS = (
    "#onetrust-accept-btn-handler",
    '[data-testid="accept-btn"]',
    '[id*="cookie"] button',
    '[class*="cookie"] button',
    '[aria-label*="cookie" i] button',
    'button[id*="accept"]',
    'button[class*="accept"]',
    '[id*="consent"] button',
    'button[aria-label="Dismiss"]',
    '[data-testid="selection-item-close"]',
)

VIEWPORT = {"width": 1920, "height": 1080}

SURROUNDINGS_HEADING_RE = r"Area info|Property surroundings|Hotel surroundings|What's nearby"

_HYDRATION_JS = """
(minItems) => {
  const heading = Array.from(document.querySelectorAll('h2')).find(
    h => /%s/i.test(h.textContent)
  );
  if (!heading) return false;
  const container = heading.closest('section') || heading.parentElement.parentElement;
  const items = Array.from(container.querySelectorAll('[role="listitem"], li')).filter(
    i => i.textContent.trim().length > 2 && !i.querySelector('[class*="skeleton"]')
  );
  return items.length > minItems;
}
""" % SURROUNDINGS_HEADING_RE


class StealthOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    rotate_user_agent: bool = True
    seed_identity: bool = True
    block_resources: bool = True
    human_delays: bool = True
    dismiss_overlays: bool = True
    trigger_lazy_content: bool = True
    scroll_iterations: int = 12
    scroll_pause_ms: int = 1200
    hydration_min_items: int = 5
    hydration_timeout_ms: int = 25_000


class StealthController:
    def __init__(
        self,
        options: StealthOptions | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.options = options or StealthOptions()
        self._rng = rng or random.Random()
        self._sleep = sleep

    def pick_user_agent(self) -> str | None:
        if not self.options.rotate_user_agent:
            return None
        return self._rng.choice(USER_AGENTS)

    def context_options(self) -> dict[str, Any]:
        """Keyword arguments for ``browser.new_context``."""
        options: dict[str, Any] = {"viewport": dict(VIEWPORT), "locale": "en-US"}
        user_agent = self.pick_user_agent()
        if user_agent:
            options["user_agent"] = user_agent
        if self.options.seed_identity:
            options["extra_http_headers"] = dict(SEED_HEADERS)
        return options

    async def seed_identity(self, context: BrowserContext) -> None:
        if not self.options.seed_identity:
            return
        await context.add_cookies([dict(cookie) for cookie in SEED_COOKIES])

    async def block_resources(self, page: Page) -> None:
        if not self.options.block_resources:
            return
        await page.route("**/*", self._handle_route)

    async def _handle_route(self, route: Route) -> None:
        request = route.request
        if request.resource_type in BLOCKED_RESOURCE_TYPES or any(
            domain in request.url for domain in TRACKER_DOMAINS
        ):
            await route.abort()
        else:
            await route.continue_()

    async def pause(self, min_ms: int, max_ms: int) -> None:
        if not self.options.human_delays:
            return
        await self._sleep(self._rng.randint(min_ms, max_ms) / 1000)

    async def dismiss_overlays(self, page: Page) -> str | None:
        """Click the first consent/overlay button present. Returns its selector."""
        if not self.options.dismiss_overlays:
            return None
        for selector in OVERLAY_SELECTORS:
            try:
                button = await page.query_selector(selector)
                if button is None:
                    continue
                await button.click(timeout=2000)
            except PlaywrightError:
                logger.debug("Overlay selector %s not clickable", selector)
                continue
            logger.debug("Dismissed overlay via %s", selector)
            await self.pause(300, 600)
            return selector
        return None

    async def scroll(self, page: Page, iterations: int | None = None, pause_ms: int | None = None) -> None:
        if not self.options.trigger_lazy_content:
            return
        iterations = self.options.scroll_iterations if iterations is None else iterations
        pause_ms = self.options.scroll_pause_ms if pause_ms is None else pause_ms
        for _ in range(iterations):
            await page.evaluate("window.scrollBy(0, window.innerHeight)")
            await self._sleep(pause_ms / 1000)

    async def wait_for_hydration(self, page: Page) -> bool:
        """Wait until the surroundings section holds real list items."""
        if not self.options.trigger_lazy_content:
            return False
        try:
            await page.wait_for_function(
                _HYDRATION_JS,
                arg=self.options.hydration_min_items,
                timeout=self.options.hydration_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.warning("Surroundings hydration wait timed out, continuing with best effort")
            return False
        return True
