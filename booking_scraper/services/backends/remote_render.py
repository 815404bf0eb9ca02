import logging

import httpx

from booking_scraper.exceptions.custom import RenderError
from booking_scraper.schemas.render import RenderMode, RenderResult
from booking_scraper.schemas.search import BackendName
from booking_scraper.services.backends.base import RenderBackend, html_title

logger = logging.getLogger(__name__)

EXTRACT_URL = "https://api.zyte.com/v1/extract"

# Wait for hydration, scroll to load lazy sections, wait again (seconds)
DEFAULT_ACTIONS = (
    {"action": "waitForTimeout", "timeout": 5},
    {"action": "scrollBottom"},
    {"action": "waitForTimeout", "timeout": 3},
)

# The API rejected the request itself; no other backend will fix the URL
_FATAL_STATUSES = frozenset({400, 422})


class RemoteRenderBackend(RenderBackend):
    """Zyte API ``browserHtml``: rendered HTML without running a browser."""

    name = BackendName.remote_render

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        *,
        geolocation: str | None = None,
        actions: tuple[dict, ...] = DEFAULT_ACTIONS,
        timeout: float = 120.0,
        min_content_length: int = 5000,
    ):
        self._client = client
        self._api_key = api_key
        self._geolocation = geolocation
        self._actions = actions
        self._timeout = timeout
        self._min_content_length = min_content_length

    def build_payload(self, url: str) -> dict:
        payload: dict = {
            "url": url,
            "browserHtml": True,
            "javascript": True,
        }
        if self._actions:
            payload["actions"] = [dict(action) for action in self._actions]
        if self._geolocation:
            payload["geolocation"] = self._geolocation
        return payload

    async def render(self, url: str, mode: RenderMode) -> RenderResult:
        logger.info("Zyte %s render: %s", mode, url)
        try:
            resp = await self._client.post(
                EXTRACT_URL,
                json=self.build_payload(url),
                auth=(self._api_key, ""),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise RenderError(f"Zyte API request failed: {exc}", backend=self.name) from exc

        if resp.status_code >= 400:
            raise RenderError(
                f"Zyte API error: {resp.status_code} - {resp.text[:300]}",
                backend=self.name,
                transient=resp.status_code not in _FATAL_STATUSES,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise RenderError("Zyte API returned invalid JSON", backend=self.name) from exc

        html = data.get("browserHtml") or ""
        final_url = data.get("url") or url
        logger.info("Zyte returned %d bytes (final URL %s)", len(html), final_url)
        return self._result(
            html=html,
            final_url=final_url,
            title=html_title(html),
            min_content_length=self._min_content_length,
            status_code=resp.status_code,
        )
