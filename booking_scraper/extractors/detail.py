"""Hotel page -> HotelDetail.

Scalar fields are filled by ranked rule tuples over a shared ``DetailPage``:
JSON-LD first, then DOM hooks, then text patterns. ``first_match`` stops at
the first rule that yields a value, so a later rule never overrides an
earlier one.
"""

from __future__ import annotations

import logging
import re

from booking_scraper.extractors import detail_sections as sections
from booking_scraper.extractors.detail_page import DetailPage
from booking_scraper.extractors.nearby_places import discover_area_info
from booking_scraper.extractors.parsing import (
    clean_text,
    dedupe,
    first_match,
    normalize_time,
    parse_float,
    parse_int,
    parse_rating,
    tag_text,
)
from booking_scraper.schemas.hotel import Coordinates, HotelDetail

logger = logging.getLogger(__name__)

MAX_PHOTOS = 15

_PHOTO_RE = re.compile(r"(https://cf\.bstatic\.com/xdata/images/hotel/[^\"'\s<>\\]+)")
_ALPHA_RE = re.compile(r"[A-Za-z][A-Za-z ]+")
_TITLE_SPLIT_RE = re.compile(r"\s+[|–-]\s+|,")


# --- name ---

def _name_from_title(page: DetailPage) -> str | None:
    title = tag_text(page.soup.title)
    if not title or "booking.com" in title.lower() or "the largest selection" in title.lower():
        return None
    return clean_text(_TITLE_SPLIT_RE.split(title)[0])


NAME_RULES = (
    lambda page: page.ld_text("name"),
    lambda page: page.search(r'"@type"\s*:\s*"Hotel"[^}]*?"name"\s*:\s*"([^"]+)"'),
    lambda page: page.select_text('[data-testid="header-hotel-name"]'),
    lambda page: page.select_text("h2.pp-header__title, #hp_hotel_name, .hp__hotel-name"),
    _name_from_title,
)


# --- address / city ---

ADDRESS_RULES = (
    lambda page: page.ld_text("address", "streetAddress"),
    lambda page: page.ld_text("address") if isinstance(page.ld("address"), str) else None,
    lambda page: page.search(r'"address"\s*:\s*\{[^}]*"streetAddress"\s*:\s*"([^"]+)"'),
    lambda page: page.select_text('[data-node_tt_id="location_score_tooltip"]'),
    lambda page: page.select_text(".hp_address_subtitle"),
)

CITY_RULES = (
    lambda page: page.ld_text("address", "addressLocality"),
    lambda page: page.search(r'"location"\s*:\s*\{[^}]*"city"\s*:\s*"([^"]+)"'),
    lambda page: page.search(r'"addressLocality"\s*:\s*"([^"]+)"'),
)


# --- rating / reviews ---

def _scored_tag(page: DetailPage):
    return page.soup.find(attrs={"aria-label": re.compile(r"^\s*Scored\s+\d", re.IGNORECASE)})


def _rating_from_aria(page: DetailPage) -> float | None:
    tag = _scored_tag(page)
    return parse_rating(tag["aria-label"].split("Scored", 1)[-1]) if tag is not None else None


def _rating_text_near_score(page: DetailPage) -> str | None:
    tag = _scored_tag(page)
    if tag is None:
        return None
    for candidate in tag.find_all_next("div", limit=8):
        text = tag_text(candidate)
        if text and _ALPHA_RE.fullmatch(text) and len(text) <= 30:
            return text
    return None


RATING_RULES = (
    lambda page: parse_rating(page.ld_text("aggregateRating", "ratingValue")),
    lambda page: parse_rating(page.search(r'"ratingValue"\s*:\s*"?(\d+\.?\d*)"?')),
    _rating_from_aria,
    lambda page: parse_rating(page.select_text('[data-testid="review-score-right-component"]')),
    lambda page: parse_rating(page.select_text('[data-testid="review-score-badge"], .review-score-badge')),
)

REVIEWS_RULES = (
    lambda page: parse_int(page.ld("aggregateRating", "reviewCount")),
    lambda page: parse_int(page.search(r'"reviewCount"\s*:\s*"?(\d+)"?')),
    lambda page: parse_int(page.search_text(r"(\d[\d,]*)\s*(?:verified\s+|external\s+)?reviews?\b")),
)

RATING_TEXT_RULES = (
    _rating_text_near_score,
    lambda page: page.search(r'"ratingValue"[^}]*"description"\s*:\s*"([^"]+)"'),
)


# --- stars ---

def _stars_from_widget(page: DetailPage) -> int | None:
    widget = page.select_one('[data-testid="rating-stars"], [data-testid="rating-squares"]')
    if widget is None:
        return None
    label = " ".join(filter(None, [widget.get("aria-label"), tag_text(widget)]))
    match = re.search(r"(\d)\s*(?:-?\s*star|out of)", label, re.IGNORECASE)
    if match:
        return int(match.group(1))
    icons = widget.find_all("svg")
    return len(icons) or None


STARS_RULES = (
    lambda page: parse_int(page.ld("starRating", "ratingValue")),
    _stars_from_widget,
    lambda page: parse_int(page.search(r'"starRating"\s*:\s*\{[^}]*"ratingValue"\s*:\s*"?(\d)')),
)


# --- description / photos ---

def _description_from_json(page: DetailPage) -> str | None:
    match = re.search(r'"description"\s*:\s*"([^"]{50,2000})"', page.html)
    return clean_text(match.group(1).replace("\\n", " ")) if match else None


DESCRIPTION_RULES = (
    lambda page: page.ld_text("description"),
    lambda page: page.select_text('[data-testid="property-description"]'),
    lambda page: page.select_text("#property_description_content"),
    _description_from_json,
)


def _ld_image(page: DetailPage) -> str | None:
    image = page.ld("image")
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("contentUrl") or image.get("url")
    return clean_text(image) if isinstance(image, str) else None


def _img_src(page: DetailPage, selector: str) -> str | None:
    img = page.select_one(selector)
    return clean_text(img.get("src") or img.get("data-src")) if img is not None else None


def photos(page: DetailPage) -> list[str]:
    """Unique hotel gallery images with resize parameters stripped."""
    found = [match.group(1).replace("&amp;", "&").split("?")[0] for match in _PHOTO_RE.finditer(page.html)]
    return dedupe(found, MAX_PHOTOS)


MAIN_PHOTO_RULES = (
    _ld_image,
    lambda page: page.search(r'"image"\s*:\s*"(https://[^"]+bstatic\.com[^"]+)"'),
    lambda page: _img_src(page, '[class*="gallery"] img[src*="bstatic.com"]'),
    lambda page: _img_src(page, '[data-testid="destination-header-image"] img'),
)


# --- check-in / check-out ---

CHECKIN_RULES = (
    lambda page: normalize_time(page.ld_text("checkinTime")),
    lambda page: normalize_time(page.search_text(r"Check-in\s*(?:time)?\s*:?\s*(?:From\s*)?(\d{1,2}:\d{2})")),
    lambda page: normalize_time(page.search(r"check-in[^>]*>(?:(?!check-out)[\s\S]){0,400}?(\d{1,2}:\d{2})\s*[–-]")),
)

CHECKOUT_RULES = (
    lambda page: normalize_time(page.ld_text("checkoutTime")),
    lambda page: normalize_time(page.search_text(
        r"Check-out\s*(?:time)?\s*:?\s*(?:Until\s*|From\s*\d{1,2}:\d{2}\s*(?:to|-|–)\s*)?(\d{1,2}:\d{2})"
    )),
    lambda page: normalize_time(page.search(r"check-out[^>]*>[\s\S]{0,400}?until\s*(\d{1,2}:\d{2})")),
)


# --- coordinates ---

def _degrees(value) -> float | None:
    if isinstance(value, str):
        value = value.strip()
        sign = -1.0 if value.startswith("-") else 1.0
        number = parse_float(value.lstrip("-"))
        return sign * number if number is not None else None
    return parse_float(value)


def _coords(lat, lng) -> tuple[float, float] | None:
    lat, lng = _degrees(lat), _degrees(lng)
    if lat is None or lng is None:
        return None
    return lat, lng


def _coords_from_atlas(page: DetailPage) -> tuple[float, float] | None:
    tag = page.select_one("[data-atlas-latlng]")
    if tag is None:
        return None
    lat, _, lng = tag["data-atlas-latlng"].partition(",")
    return _coords(lat, lng)


def _coords_from_data_attrs(page: DetailPage) -> tuple[float, float] | None:
    lat_tag = page.select_one("[data-lat]")
    lng_tag = page.select_one("[data-lng]")
    if lat_tag is None or lng_tag is None:
        return None
    return _coords(lat_tag["data-lat"], lng_tag["data-lng"])


def _coords_from_json(page: DetailPage) -> tuple[float, float] | None:
    match = re.search(r'"latitude"\s*:\s*"?(-?\d+\.?\d*)"?[^{}]{0,200}?"longitude"\s*:\s*"?(-?\d+\.?\d*)', page.html)
    return _coords(match.group(1), match.group(2)) if match else None


COORDINATE_RULES = (
    lambda page: _coords(page.ld("geo", "latitude"), page.ld("geo", "longitude")),
    _coords_from_atlas,
    _coords_from_data_attrs,
    _coords_from_json,
)


# --- highlights ---

def _highlights_from_hook(page: DetailPage) -> list[str]:
    items = page.soup.select('[data-testid="property-highlights"] li')
    return dedupe(text for text in (tag_text(li) for li in items) if text and len(text) > 3)


def _highlights_from_heading(page: DetailPage) -> list[str]:
    label = page.find_label(r"Property highlights")
    if label is None:
        return []
    listing = label.find_next("ul")
    if listing is None:
        return []
    return dedupe(text for text in (tag_text(li) for li in listing.find_all("li")) if text and len(text) > 3)


HIGHLIGHT_RULES = (
    _highlights_from_hook,
    _highlights_from_heading,
)


def extract_detail(html: str, url: str = "") -> HotelDetail:
    page = DetailPage.parse(html)
    coordinates = first_match(COORDINATE_RULES, page)
    groups = sections.grouped_facilities(page)
    all_photos = photos(page)

    detail = HotelDetail(
        url=url,
        name=first_match(NAME_RULES, page),
        address=first_match(ADDRESS_RULES, page),
        city=first_match(CITY_RULES, page),
        rating=first_match(RATING_RULES, page),
        reviews_count=first_match(REVIEWS_RULES, page),
        rating_text=first_match(RATING_TEXT_RULES, page),
        stars=first_match(STARS_RULES, page),
        description=first_match(DESCRIPTION_RULES, page),
        main_photo=first_match(MAIN_PHOTO_RULES, page) or (all_photos[0] if all_photos else None),
        photos=all_photos,
        facilities=sections.facilities(page, groups),
        grouped_facilities=groups,
        restaurants=sections.restaurants(page),
        rooms=sections.rooms(page),
        checkin_time=first_match(CHECKIN_RULES, page),
        checkout_time=first_match(CHECKOUT_RULES, page),
        coordinates=Coordinates(latitude=coordinates[0], longitude=coordinates[1]) if coordinates else Coordinates(),
        highlights=first_match(HIGHLIGHT_RULES, page) or [],
        area_info=discover_area_info(page.soup, html),
        languages_spoken=sections.languages_spoken(page),
        property_info=sections.property_info(page),
    )
    logger.info(
        "Extracted detail for %r: %d facilities, %d rooms, %d nearby categories",
        detail.name, len(detail.facilities), len(detail.rooms), len(detail.area_info),
    )
    return detail
