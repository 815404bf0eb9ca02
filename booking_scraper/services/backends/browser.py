"""Playwright backends: cloud (CDP), local Chromium and serverless Chromium.

Each ``render`` call owns exactly one browser, which is closed on every
exit path.
"""

from __future__ import annotations

import logging
from abc import abstractmethod

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from booking_scraper.exceptions.custom import RenderError
from booking_scraper.schemas.render import RenderMode, RenderResult
from booking_scraper.schemas.search import BackendName
from booking_scraper.services.backends.base import RenderBackend
from booking_scraper.services.stealth import SURROUNDINGS_HEADING_RE, StealthController

logger = logging.getLogger(__name__)

CARD_SELECTORS = (
    '[data-testid="property-card"]',
    ".sr_property_block",
    "[data-hotelid]",
    ".hotel_name_link",
    ".c-sr-hotel-card",
)
PRICE_SELECTOR = '[data-testid="price-and-discounted-price"], [data-testid="price"]'
HOTEL_NAME_SELECTOR = (
    '[data-testid="header-hotel-name"], h2.pp-header__title, #hp_hotel_name, .hp__hotel-name'
)

LOCAL_ARGS = (
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1920,1080",
    "--disable-blink-features=AutomationControlled",
    "--lang=en-US",
)

SERVERLESS_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--single-process",
    "--no-zygote",
)

_SCROLL_TO_SURROUNDINGS_JS = """
() => {
  const heading = Array.from(document.querySelectorAll('h2')).find(
    h => /%s/i.test(h.textContent)
  );
  if (heading) {
    heading.scrollIntoView({block: 'center'});
  } else {
    window.scrollTo(0, document.body.scrollHeight / 2);
  }
}
""" % SURROUNDINGS_HEADING_RE

_EXPAND_SURROUNDINGS_JS = """
() => {
  const heading = Array.from(document.querySelectorAll('h2')).find(
    h => /%s/i.test(h.textContent)
  );
  if (!heading) return false;
  const container = heading.closest('section') || heading.parentElement.parentElement;
  const button = container.querySelector('button[aria-expanded="false"]');
  if (!button) return false;
  button.click();
  return true;
}
""" % SURROUNDINGS_HEADING_RE


class BrowserBackend(RenderBackend):
    def __init__(
        self,
        stealth: StealthController | None = None,
        *,
        navigation_timeout_ms: int = 60_000,
        selector_timeout_ms: int = 5000,
        min_content_length: int = 5000,
    ):
        self._stealth = stealth or StealthController()
        self._navigation_timeout_ms = navigation_timeout_ms
        self._selector_timeout_ms = selector_timeout_ms
        self._min_content_length = min_content_length

    @abstractmethod
    async def _open_browser(self, playwright: Playwright) -> Browser:
        ...

    async def render(self, url: str, mode: RenderMode) -> RenderResult:
        try:
            async with async_playwright() as playwright:
                return await self._launch_and_render(playwright, url, mode)
        except PlaywrightError as exc:
            raise RenderError(f"Playwright driver failed: {exc}", backend=self.name) from exc

    async def _launch_and_render(self, playwright: Playwright, url: str, mode: RenderMode) -> RenderResult:
        try:
            browser = await self._open_browser(playwright)
        except PlaywrightError as exc:
            raise RenderError(f"Browser launch failed: {exc}", backend=self.name) from exc
        try:
            return await self._render_with(browser, url, mode)
        except PlaywrightTimeoutError as exc:
            raise RenderError(f"Navigation timed out: {exc}", backend=self.name) from exc
        except PlaywrightError as exc:
            raise RenderError(f"Browser error: {exc}", backend=self.name) from exc
        finally:
            await self._close(browser)

    async def _close(self, browser: Browser) -> None:
        try:
            await browser.close()
        except PlaywrightError:
            logger.warning("%s: browser did not close cleanly", self.name, exc_info=True)

    async def _render_with(self, browser: Browser, url: str, mode: RenderMode) -> RenderResult:
        stealth = self._stealth
        context = await browser.new_context(**stealth.context_options())
        await stealth.seed_identity(context)
        page = await context.new_page()
        await stealth.block_resources(page)

        await stealth.pause(500, 1500)
        logger.info("%s navigating (%s): %s", self.name, mode, url)
        wait_until = "domcontentloaded" if mode == RenderMode.detail else "networkidle"
        await page.goto(url, wait_until=wait_until, timeout=self._navigation_timeout_ms)

        if mode == RenderMode.search:
            found = await self._prepare_search_page(page)
        else:
            found = await self._prepare_detail_page(page)

        html = await page.content()
        title = await page.title()
        logger.info("%s rendered %d bytes, title=%r", self.name, len(html), title)
        return self._result(
            html=html,
            final_url=page.url,
            title=title,
            min_content_length=self._min_content_length,
            ready_selector=found,
        )

    async def _wait_for(self, page: Page, selector: str, timeout_ms: int | None = None) -> bool:
        try:
            await page.wait_for_selector(selector, timeout=timeout_ms or self._selector_timeout_ms)
        except PlaywrightTimeoutError:
            return False
        return True

    async def _prepare_search_page(self, page: Page) -> str | None:
        stealth = self._stealth
        await stealth.pause(2500, 4500)
        await stealth.dismiss_overlays(page)
        await stealth.pause(2000, 4000)

        found = None
        for selector in CARD_SELECTORS:
            if await self._wait_for(page, selector):
                found = selector
                break
        if found is None:
            logger.warning("%s: no hotel cards found with any selector", self.name)
            return None

        await stealth.scroll(page)
        await stealth.pause(1500, 2500)
        await stealth.dismiss_overlays(page)
        if not await self._wait_for(page, PRICE_SELECTOR):
            logger.info("%s: no price elements, prices may be hidden behind 'Show prices'", self.name)
        return found

    async def _prepare_detail_page(self, page: Page) -> str | None:
        stealth = self._stealth
        found = HOTEL_NAME_SELECTOR if await self._wait_for(page, HOTEL_NAME_SELECTOR, 20_000) else None
        if found is None:
            logger.warning("%s: hotel name selector timed out, page may be slow or blocked", self.name)

        await stealth.pause(2000, 3000)
        await stealth.dismiss_overlays(page)
        await page.evaluate(_SCROLL_TO_SURROUNDINGS_JS)
        await stealth.pause(1000, 2000)
        await stealth.scroll(page, iterations=8, pause_ms=800)
        await stealth.wait_for_hydration(page)

        if await page.evaluate(_EXPAND_SURROUNDINGS_JS):
            logger.debug("%s: expanded surroundings section", self.name)
            await stealth.pause(1000, 2000)
        await stealth.dismiss_overlays(page)
        return found


class LocalBrowserBackend(BrowserBackend):
    name = BackendName.local_browser

    def __init__(self, stealth: StealthController | None = None, *, headless: bool = True,
                 disable_sandbox: bool = False, **kwargs):
        super().__init__(stealth, **kwargs)
        self._headless = headless
        self._disable_sandbox = disable_sandbox

    async def _open_browser(self, playwright: Playwright) -> Browser:
        return await playwright.chromium.launch(
            headless=self._headless,
            args=list(LOCAL_ARGS),
            chromium_sandbox=not self._disable_sandbox,
        )


class ServerlessBrowserBackend(BrowserBackend):
    name = BackendName.serverless_browser

    def __init__(self, executable_path: str, stealth: StealthController | None = None, **kwargs):
        super().__init__(stealth, **kwargs)
        self._executable_path = executable_path

    async def _open_browser(self, playwright: Playwright) -> Browser:
        return await playwright.chromium.launch(
            executable_path=self._executable_path,
            headless=True,
            args=list(SERVERLESS_ARGS),
        )


class CloudBrowserBackend(BrowserBackend):
    name = BackendName.cloud_browser

    def __init__(self, token: str, endpoint: str = "wss://chrome.browserless.io",
                 stealth: StealthController | None = None, **kwargs):
        super().__init__(stealth, **kwargs)
        self._token = token
        self._endpoint = endpoint

    @property
    def ws_endpoint(self) -> str:
        separator = "&" if "?" in self._endpoint else "?"
        return f"{self._endpoint}{separator}token={self._token}"

    async def _open_browser(self, playwright: Playwright) -> Browser:
        return await playwright.chromium.connect_over_cdp(
            self.ws_endpoint, timeout=self._navigation_timeout_ms,
        )
