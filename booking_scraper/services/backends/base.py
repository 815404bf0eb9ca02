from __future__ import annotations

import html as html_lib
import re
from abc import ABC, abstractmethod

from booking_scraper.schemas.render import RenderMode, RenderResult
from booking_scraper.schemas.search import BackendName

# Booking.com redirects failed searches to the home page with this marker
_ERROR_URL_MARKERS = ("index.html", "errorc_searchstring")

_BLOCKED_TITLE_MARKERS = ("access denied", "attention required", "just a moment")

_ROBOT_CHECK_RE = re.compile(
    r"are you a robot|captcha|verify you are human|unusual traffic|robot check",
    re.IGNORECASE,
)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


def html_title(html: str) -> str | None:
    match = _TITLE_RE.search(html or "")
    if not match:
        return None
    title = " ".join(html_lib.unescape(match.group(1)).split())
    return title or None


def is_error_redirect(final_url: str | None) -> bool:
    return bool(final_url) and all(marker in final_url for marker in _ERROR_URL_MARKERS)


def detect_block(
    html: str,
    title: str | None,
    final_url: str | None,
    min_content_length: int,
) -> str | None:
    """Cheap heuristics that a render hit a block or error page.

    Returns the reason, or None when the page looks usable. The threshold
    is approximate and a sparse but legitimate page can trip it.
    """
    if is_error_redirect(final_url):
        return "redirected_to_error_page"
    if title and any(marker in title.lower() for marker in _BLOCKED_TITLE_MARKERS):
        return "access_denied_title"
    if len(html) < min_content_length:
        return "content_too_short"
    return None


def mentions_robot_check(html: str) -> bool:
    """True when the page text asks for a robot/CAPTCHA check.

    Only meaningful on pages that yielded no data: regular pages often embed
    captcha scripts.
    """
    return bool(_ROBOT_CHECK_RE.search(html or ""))


class RenderBackend(ABC):
    name: BackendName

    @abstractmethod
    async def render(self, url: str, mode: RenderMode) -> RenderResult:
        """Render ``url`` and return the final HTML.

        Raises RenderError when the page could not be obtained.
        """
        ...

    def _result(
        self,
        *,
        html: str,
        final_url: str,
        title: str | None,
        min_content_length: int,
        **diagnostics,
    ) -> RenderResult:
        reason = detect_block(html, title, final_url, min_content_length)
        return RenderResult(
            html=html,
            final_url=final_url,
            title=title,
            content_length=len(html),
            backend_used=self.name,
            blocked=reason is not None,
            diagnostics={"block_reason": reason, **diagnostics},
        )
