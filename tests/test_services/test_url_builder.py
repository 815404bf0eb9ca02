from datetime import date
from urllib.parse import parse_qs, urlsplit

import pytest

from booking_scraper.exceptions.custom import InvalidInputError
from booking_scraper.schemas.search import SearchRequest
from booking_scraper.services.url_builder import (
    build_search_url,
    canonicalize_hotel_url,
    resolve_dates,
    search_url_for,
)

TODAY = date(2025, 3, 10)


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


def test_build_search_url_defaults_dates_from_today():
    url = build_search_url("Dubai Marina", today=TODAY)
    query = _query(url)

    assert url.startswith("https://www.booking.com/searchresults.html?")
    assert query["ss"] == ["Dubai Marina"]
    assert query["checkin"] == ["2025-03-11"]
    assert query["checkout"] == ["2025-03-13"]
    assert query["group_adults"] == ["2"]
    assert query["no_rooms"] == ["1"]
    assert query["group_children"] == ["0"]
    assert query["lang"] == ["en-us"]
    assert query["selected_currency"] == ["USD"]


def test_build_search_url_is_deterministic():
    first = build_search_url("Paris", checkin=date(2025, 5, 1), checkout=date(2025, 5, 4), currency="eur")
    second = build_search_url("Paris", checkin=date(2025, 5, 1), checkout=date(2025, 5, 4), currency="eur")

    assert first == second
    assert _query(first)["selected_currency"] == ["EUR"]


def test_build_search_url_encodes_location():
    url = build_search_url("São Paulo & Co", today=TODAY)

    assert "ss=S%C3%A3o+Paulo+%26+Co" in url
    assert _query(url)["ss"] == ["São Paulo & Co"]


def test_build_search_url_rejects_blank_location():
    with pytest.raises(InvalidInputError):
        build_search_url("   ", today=TODAY)


def test_resolve_dates_checkout_follows_explicit_checkin():
    checkin, checkout = resolve_dates(date(2025, 6, 1), None, today=TODAY)

    assert checkin == date(2025, 6, 1)
    assert checkout == date(2025, 6, 3)


def test_search_url_for_request():
    request = SearchRequest(location=" Rome ", adults=3, children=1, rooms=2)
    query = _query(search_url_for(request, today=TODAY))

    assert query["ss"] == ["Rome"]
    assert query["group_adults"] == ["3"]
    assert query["group_children"] == ["1"]
    assert query["no_rooms"] == ["2"]


def test_canonicalize_keeps_only_essentials_in_order():
    url = (
        "/hotel/ae/marina-view.html?aid=304142&label=gen173&group_children=0"
        "&checkin=2025-03-11&checkout=2025-03-13&group_adults=2&no_rooms=1&srpvid=abc#hotelTmpl"
    )

    assert canonicalize_hotel_url(url) == (
        "https://www.booking.com/hotel/ae/marina-view.html"
        "?checkin=2025-03-11&checkout=2025-03-13&group_adults=2&no_rooms=1&group_children=0"
    )


def test_canonicalize_decodes_entities_and_is_idempotent():
    url = "https://www.booking.com/hotel/fr/lutece.html?aid=1&amp;checkin=2025-05-01&amp;label=x"
    once = canonicalize_hotel_url(url)

    assert once == "https://www.booking.com/hotel/fr/lutece.html?checkin=2025-05-01"
    assert canonicalize_hotel_url(once) == once


def test_canonicalize_keeps_first_of_repeated_params():
    url = "/hotel/ae/marina-view.html?checkin=2025-03-11&group_adults=2&checkin=2025-04-01&group_adults=4"

    assert canonicalize_hotel_url(url) == (
        "https://www.booking.com/hotel/ae/marina-view.html?checkin=2025-03-11&group_adults=2"
    )


def test_canonicalize_without_query():
    assert canonicalize_hotel_url("https://www.booking.com/hotel/it/roma.html") == (
        "https://www.booking.com/hotel/it/roma.html"
    )


def test_canonicalize_none():
    assert canonicalize_hotel_url(None) is None
