from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from booking_scraper.exceptions.custom import RenderError
from booking_scraper.schemas.render import RenderMode
from booking_scraper.schemas.search import BackendName
from booking_scraper.services.backends.browser import (
    CARD_SELECTORS,
    CloudBrowserBackend,
    LocalBrowserBackend,
    ServerlessBrowserBackend,
)
from booking_scraper.services.stealth import StealthController, StealthOptions

SEARCH_URL = "https://www.booking.com/searchresults.html?ss=Dubai"
PAGE_HTML = "<html><head><title>Hotels in Dubai</title></head><body>" + "<p>card</p>" * 100 + "</body></html>"


def _stealth() -> StealthController:
    return StealthController(StealthOptions(human_delays=False), sleep=AsyncMock())


def _browser(page: AsyncMock) -> AsyncMock:
    context = AsyncMock()
    context.new_page.return_value = page
    browser = AsyncMock()
    browser.new_context.return_value = context
    return browser


def _page(html: str = PAGE_HTML, url: str = SEARCH_URL) -> AsyncMock:
    page = AsyncMock()
    page.url = url
    page.content.return_value = html
    page.title.return_value = "Hotels in Dubai"
    page.query_selector.return_value = None
    return page


def _playwright(browser: AsyncMock) -> tuple[MagicMock, MagicMock]:
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.chromium.connect_over_cdp = AsyncMock(return_value=browser)
    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)
    return playwright, manager


@pytest.mark.asyncio
async def test_local_render_search_page():
    page = _page()
    browser = _browser(page)
    playwright, manager = _playwright(browser)

    backend = LocalBrowserBackend(_stealth(), min_content_length=100)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        result = await backend.render(SEARCH_URL, RenderMode.search)

    assert result.backend_used == BackendName.local_browser
    assert result.html == PAGE_HTML
    assert result.final_url == SEARCH_URL
    assert result.title == "Hotels in Dubai"
    assert result.blocked is False
    assert result.diagnostics["ready_selector"] == CARD_SELECTORS[0]

    launch_kwargs = playwright.chromium.launch.await_args.kwargs
    assert launch_kwargs["headless"] is True
    assert launch_kwargs["chromium_sandbox"] is True
    assert page.goto.await_args.kwargs["wait_until"] == "networkidle"
    browser.new_context.return_value.add_cookies.assert_awaited_once()
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_detail_mode_waits_for_dom_content():
    page = _page(url="https://www.booking.com/hotel/ae/marina-view.html")
    browser = _browser(page)
    _, manager = _playwright(browser)

    backend = LocalBrowserBackend(_stealth(), min_content_length=100)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        result = await backend.render("https://www.booking.com/hotel/ae/marina-view.html", RenderMode.detail)

    assert page.goto.await_args.kwargs["wait_until"] == "domcontentloaded"
    assert page.wait_for_function.await_count == 1
    assert result.final_url.endswith("marina-view.html")
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_missing_cards_still_returns_page():
    page = _page()
    page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")
    browser = _browser(page)
    _, manager = _playwright(browser)

    backend = LocalBrowserBackend(_stealth(), min_content_length=100)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        result = await backend.render(SEARCH_URL, RenderMode.search)

    assert result.diagnostics["ready_selector"] is None
    assert page.wait_for_selector.await_count == len(CARD_SELECTORS)


@pytest.mark.asyncio
async def test_navigation_timeout_raises_and_closes_browser():
    page = _page()
    page.goto.side_effect = PlaywrightTimeoutError("Timeout 60000ms exceeded")
    browser = _browser(page)
    _, manager = _playwright(browser)

    backend = LocalBrowserBackend(_stealth())
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        with pytest.raises(RenderError, match="timed out") as exc_info:
            await backend.render(SEARCH_URL, RenderMode.search)

    assert exc_info.value.transient is True
    assert exc_info.value.backend == BackendName.local_browser
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_launch_failure_raises_render_error():
    browser = _browser(_page())
    playwright, manager = _playwright(browser)
    playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

    backend = LocalBrowserBackend(_stealth(), disable_sandbox=True)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        with pytest.raises(RenderError, match="launch failed"):
            await backend.render(SEARCH_URL, RenderMode.search)

    browser.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_driver_start_failure_raises_transient_render_error():
    _, manager = _playwright(_browser(_page()))
    manager.__aenter__ = AsyncMock(side_effect=PlaywrightError("Driver process exited"))

    backend = LocalBrowserBackend(_stealth())
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        with pytest.raises(RenderError, match="driver failed") as exc_info:
            await backend.render(SEARCH_URL, RenderMode.search)

    assert exc_info.value.transient is True
    assert exc_info.value.backend == BackendName.local_browser


@pytest.mark.asyncio
async def test_close_error_does_not_mask_result():
    page = _page()
    browser = _browser(page)
    browser.close.side_effect = PlaywrightError("Target closed")
    _, manager = _playwright(browser)

    backend = LocalBrowserBackend(_stealth(), min_content_length=100)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        result = await backend.render(SEARCH_URL, RenderMode.search)

    assert result.html == PAGE_HTML


def test_cloud_ws_endpoint_carries_token():
    backend = CloudBrowserBackend("secret", "wss://chrome.browserless.io")

    assert backend.ws_endpoint == "wss://chrome.browserless.io?token=secret"
    assert CloudBrowserBackend("secret", "wss://host/chrome?stealth=true").ws_endpoint == (
        "wss://host/chrome?stealth=true&token=secret"
    )


@pytest.mark.asyncio
async def test_cloud_backend_connects_over_cdp():
    browser = _browser(_page())
    playwright, manager = _playwright(browser)

    backend = CloudBrowserBackend("secret", stealth=_stealth(), min_content_length=100)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        result = await backend.render(SEARCH_URL, RenderMode.search)

    assert result.backend_used == BackendName.cloud_browser
    assert playwright.chromium.connect_over_cdp.await_args.args[0].endswith("token=secret")
    playwright.chromium.launch.assert_not_awaited()


@pytest.mark.asyncio
async def test_serverless_backend_uses_bundled_chromium():
    browser = _browser(_page())
    playwright, manager = _playwright(browser)

    backend = ServerlessBrowserBackend("/opt/chromium", _stealth(), min_content_length=100)
    with patch("booking_scraper.services.backends.browser.async_playwright", return_value=manager):
        result = await backend.render(SEARCH_URL, RenderMode.search)

    launch_kwargs = playwright.chromium.launch.await_args.kwargs
    assert launch_kwargs["executable_path"] == "/opt/chromium"
    assert "--no-sandbox" in launch_kwargs["args"]
    assert result.backend_used == BackendName.serverless_browser
