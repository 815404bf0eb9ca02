import html
from datetime import date, timedelta
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit

from booking_scraper.exceptions.custom import InvalidInputError
from booking_scraper.schemas.search import SearchRequest

BOOKING_BASE_URL = "https://www.booking.com"
SEARCH_URL = f"{BOOKING_BASE_URL}/searchresults.html"

# Query parameters that survive canonicalization, in output order
ESSENTIAL_PARAMS = ("checkin", "checkout", "group_adults", "no_rooms", "group_children")

_DEFAULT_NIGHTS = 2


def resolve_dates(
    checkin: date | None,
    checkout: date | None,
    today: date | None = None,
) -> tuple[date, date]:
    """Default checkin to tomorrow and checkout to checkin + 2 nights."""
    if checkin is None:
        checkin = (today or date.today()) + timedelta(days=1)
    if checkout is None:
        checkout = checkin + timedelta(days=_DEFAULT_NIGHTS)
    return checkin, checkout


def build_search_url(
    location: str,
    *,
    checkin: date | None = None,
    checkout: date | None = None,
    adults: int = 2,
    children: int = 0,
    rooms: int = 1,
    currency: str = "USD",
    today: date | None = None,
) -> str:
    location = (location or "").strip()
    if not location:
        raise InvalidInputError("Location cannot be empty")

    checkin, checkout = resolve_dates(checkin, checkout, today)
    params = [
        ("ss", location),
        ("checkin", checkin.isoformat()),
        ("checkout", checkout.isoformat()),
        ("group_adults", str(adults)),
        ("no_rooms", str(rooms)),
        ("group_children", str(children)),
        ("lang", "en-us"),
        ("selected_currency", currency.upper()),
    ]
    return f"{SEARCH_URL}?{urlencode(params)}"


def search_url_for(request: SearchRequest, today: date | None = None) -> str:
    return build_search_url(
        request.location,
        checkin=request.checkin,
        checkout=request.checkout,
        adults=request.adults,
        children=request.children,
        rooms=request.rooms,
        currency=request.currency,
        today=today,
    )


def canonicalize_hotel_url(url: str | None) -> str | None:
    """Strip tracking parameters, keeping only the booking essentials."""
    if not url:
        return url
    url = html.unescape(url.strip())
    try:
        parts = urlsplit(urljoin(BOOKING_BASE_URL + "/", url))
        query: dict[str, str] = {}
        for name, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(name, value)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    kept = [(name, query[name]) for name in ESSENTIAL_PARAMS if name in query]
    base = f"{parts.scheme}://{parts.netloc}{parts.path}"
    return f"{base}?{urlencode(kept)}" if kept else base
