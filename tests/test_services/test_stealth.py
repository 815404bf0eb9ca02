import random
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from booking_scraper.services.stealth import (
    OVERLAY_SELECTORS,
    SEED_COOKIES,
    USER_AGENTS,
    StealthController,
    StealthOptions,
)


def _controller(**options) -> tuple[StealthController, AsyncMock]:
    sleep = AsyncMock()
    return StealthController(StealthOptions(**options), rng=random.Random(7), sleep=sleep), sleep


def test_context_options_rotate_user_agent():
    controller, _ = _controller()
    options = controller.context_options()

    assert options["user_agent"] in USER_AGENTS
    assert options["viewport"] == {"width": 1920, "height": 1080}
    assert options["extra_http_headers"]["Accept-Language"].startswith("en-US")


def test_context_options_without_rotation_or_seeding():
    controller, _ = _controller(rotate_user_agent=False, seed_identity=False)
    options = controller.context_options()

    assert "user_agent" not in options
    assert "extra_http_headers" not in options


@pytest.mark.asyncio
async def test_seed_identity_adds_cookies():
    controller, _ = _controller()
    context = AsyncMock()

    await controller.seed_identity(context)

    cookies = context.add_cookies.await_args.args[0]
    assert len(cookies) == len(SEED_COOKIES)
    assert all(cookie["domain"] == ".booking.com" for cookie in cookies)


@pytest.mark.asyncio
async def test_seed_identity_disabled():
    controller, _ = _controller(seed_identity=False)
    context = AsyncMock()

    await controller.seed_identity(context)

    context.add_cookies.assert_not_awaited()


@pytest.mark.asyncio
async def test_route_handler_aborts_images_and_trackers():
    controller, _ = _controller()

    image = AsyncMock()
    image.request = MagicMock(resource_type="image", url="https://cf.bstatic.com/a.jpg")
    tracker = AsyncMock()
    tracker.request = MagicMock(resource_type="script", url="https://www.googletagmanager.com/gtm.js")
    document = AsyncMock()
    document.request = MagicMock(resource_type="document", url="https://www.booking.com/")

    for route in (image, tracker, document):
        await controller._handle_route(route)

    image.abort.assert_awaited_once()
    tracker.abort.assert_awaited_once()
    document.continue_.assert_awaited_once()
    document.abort.assert_not_awaited()


@pytest.mark.asyncio
async def test_pause_uses_injected_sleep():
    controller, sleep = _controller()

    await controller.pause(500, 1500)

    delay = sleep.await_args.args[0]
    assert 0.5 <= delay <= 1.5


@pytest.mark.asyncio
async def test_pause_disabled():
    controller, sleep = _controller(human_delays=False)

    await controller.pause(500, 1500)

    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_dismiss_overlays_clicks_first_match_only():
    controller, _ = _controller()
    button = AsyncMock()
    page = AsyncMock()

    async def query_selector(selector):
        return button if selector in (OVERLAY_SELECTORS[2], OVERLAY_SELECTORS[4]) else None

    page.query_selector.side_effect = query_selector

    clicked = await controller.dismiss_overlays(page)

    assert clicked == OVERLAY_SELECTORS[2]
    button.click.assert_awaited_once()


@pytest.mark.asyncio
async def test_dismiss_overlays_tolerates_absence_and_click_errors():
    controller, _ = _controller()
    broken = AsyncMock()
    broken.click.side_effect = PlaywrightError("element detached")
    page = AsyncMock()

    async def query_selector(selector):
        return broken if selector == OVERLAY_SELECTORS[0] else None

    page.query_selector.side_effect = query_selector

    assert await controller.dismiss_overlays(page) is None
    broken.click.assert_awaited_once()


@pytest.mark.asyncio
async def test_scroll_steps_by_viewport():
    controller, sleep = _controller()
    page = AsyncMock()

    await controller.scroll(page, iterations=3, pause_ms=100)

    assert page.evaluate.await_count == 3
    assert sleep.await_count == 3
    sleep.assert_awaited_with(0.1)


@pytest.mark.asyncio
async def test_scroll_disabled():
    controller, _ = _controller(trigger_lazy_content=False)
    page = AsyncMock()

    await controller.scroll(page)

    page.evaluate.assert_not_awaited()


@pytest.mark.asyncio
async def test_wait_for_hydration_timeout_is_not_fatal():
    controller, _ = _controller()
    page = AsyncMock()
    page.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout 25000ms exceeded")

    assert await controller.wait_for_hydration(page) is False


@pytest.mark.asyncio
async def test_wait_for_hydration_passes_threshold():
    controller, _ = _controller(hydration_min_items=3)
    page = AsyncMock()

    assert await controller.wait_for_hydration(page) is True
    assert page.wait_for_function.await_args.kwargs["arg"] == 3
