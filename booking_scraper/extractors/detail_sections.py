"""List-valued sections of the hotel page: facilities, restaurants, rooms,
languages and the free-form property info block."""

from __future__ import annotations

import re

from bs4 import Tag

from booking_scraper.extractors.detail_page import DetailPage
from booking_scraper.extractors.parsing import (
    category_key,
    clean_text,
    dedupe,
    first_match,
    parse_price,
    tag_text,
)
from booking_scraper.schemas.hotel import Restaurant, Room

MAX_FACILITIES = 30
MAX_ROOMS = 10

KNOWN_FACILITIES = (
    "Free WiFi", "WiFi", "Pool", "Swimming pool", "Gym", "Fitness center",
    "Spa", "Restaurant", "Bar", "Room service", "Parking", "Free parking", "Air conditioning",
    "Airport shuttle", "Beach", "Breakfast", "Pet friendly", "24-hour front desk", "Non-smoking rooms",
    "Family rooms", "Terrace", "Garden", "Hot tub", "Sauna", "Laundry", "Kitchen", "Balcony",
)

KNOWN_LANGUAGES = (
    "Arabic", "English", "Hindi", "French", "German", "Spanish", "Chinese", "Russian",
    "Japanese", "Korean", "Portuguese", "Italian", "Dutch", "Turkish", "Urdu",
)

FACILITY_GROUP_SELECTOR = '.b-facility-group, .hotel-facilities-group, [data-testid="facility-group-container"]'
FACILITY_GROUP_TITLE_SELECTOR = (
    '.b-facility-group__title, .hotel-facilities-group__title, .fac-group-title, '
    '[data-testid="facility-group-title"], h3'
)
FACILITY_ITEM_SELECTOR = ".b-facility-item__label, .hotel-facilities-group__list-item"
POPULAR_FACILITY_SELECTOR = (
    '[data-testid="property-most-popular-facilities-wrapper"] li, '
    '.hp_desc_important_facilities .important_facility'
)

RESTAURANT_FIELDS = {
    "cuisine": "Cuisine",
    "open_for": "Open for",
    "ambience": "Ambience",
    "dietary_options": "Dietary options",
}

_ROOM_PRICE_RE = re.compile(r"(AED|USD|EUR|GBP|INR)\s*([\d,]+)")
_NIGHTS_RE = re.compile(r"\d+\s*nights?", re.IGNORECASE)
_LD_RESTAURANT_RE = re.compile(r'"@type"\s*:\s*"Restaurant"[^}]*?"name"\s*:\s*"([^"]+)"', re.IGNORECASE)
_LANGUAGE_ARRAY_RE = re.compile(r'"availableLanguage"\s*:\s*\[([^\]]+)\]', re.IGNORECASE)
_LANGUAGE_NAME_RE = re.compile(r'"(?:name|value)"\s*:\s*"([^"]+)"')
_QUOTED_RE = re.compile(r'"([^"]+)"')
_LANGUAGES = "|".join(KNOWN_LANGUAGES)
_LANGUAGE_LIST_RE = re.compile(rf"\b({_LANGUAGES})(?:[,\s]+(?:and\s+)?({_LANGUAGES}))+\b")


# --- facilities ---

def _item_texts(container: Tag, selector: str) -> list[str]:
    items = container.select(selector) or container.select("li")
    return dedupe(tag_text(item) for item in items)


def grouped_facilities(page: DetailPage) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for container in page.soup.select(FACILITY_GROUP_SELECTOR):
        title = tag_text(container.select_one(FACILITY_GROUP_TITLE_SELECTOR))
        if not title:
            continue
        items = _item_texts(container, FACILITY_ITEM_SELECTOR)
        key = category_key(title)
        if key and items:
            groups[key] = dedupe([*groups.get(key, []), *items])
    return groups


def popular_facilities(page: DetailPage) -> list[str]:
    return dedupe(tag_text(tag) for tag in page.soup.select(POPULAR_FACILITY_SELECTOR))


def known_facilities(page: DetailPage) -> list[str]:
    return [name for name in KNOWN_FACILITIES if name in page.html]


def facilities(page: DetailPage, groups: dict[str, list[str]]) -> list[str]:
    structured = [item for items in groups.values() for item in items] + popular_facilities(page)
    if structured:
        return dedupe(structured, MAX_FACILITIES)
    return known_facilities(page)[:MAX_FACILITIES]


# --- restaurants ---

def _labelled_value(card: Tag, label: str) -> str | None:
    """Value shown next to a label, either "Cuisine: Italian" or split over two nodes."""
    pattern = re.compile(rf"^\s*{re.escape(label)}\s*(?::\s*(.*))?\s*$", re.IGNORECASE | re.DOTALL)
    node = card.find(string=pattern)
    if node is None:
        return None
    inline = clean_text(pattern.match(node).group(1))
    if inline:
        return inline
    value = node.find_next(string=lambda s: clean_text(s) is not None)
    if value is None or not any(parent is card for parent in value.parents):
        return None
    return clean_text(value)


def _restaurants_from_cards(page: DetailPage) -> list[Restaurant]:
    restaurants: list[Restaurant] = []
    for card in page.soup.select('[data-testid="restaurant-card"]'):
        name = tag_text(card.select_one("h3, h4, .restaurant-name"))
        if not name or any(r.name == name for r in restaurants):
            continue
        fields = {attr: _labelled_value(card, label) for attr, label in RESTAURANT_FIELDS.items()}
        restaurants.append(Restaurant(name=name, **fields))
    return restaurants


def _restaurants_from_metadata(page: DetailPage) -> list[Restaurant]:
    names = [entity.get("name") for entity in page.ld_entities if entity.get("@type") == "Restaurant"]
    names += [match.group(1) for match in _LD_RESTAURANT_RE.finditer(page.html)]
    return [Restaurant(name=name) for name in dedupe(clean_text(n) for n in names if isinstance(n, str))]


def restaurants(page: DetailPage) -> list[Restaurant]:
    return first_match((_restaurants_from_cards, _restaurants_from_metadata), page) or []


# --- rooms ---

def _room_names_from_table(page: DetailPage) -> list[str]:
    names = []
    for link in page.soup.select(".hprt-roomtype-link, .hprt-roomtype-icon-link"):
        name = tag_text(link.find("span") or link)
        if name and len(name) > 3:
            names.append(name)
    return dedupe(names, MAX_ROOMS)


def _room_names_from_blocks(page: DetailPage) -> list[str]:
    names = []
    for block in page.soup.select("[data-block-id]"):
        span = block.select_one("a span")
        name = tag_text(span)
        if name and 5 <= len(name) <= 60 and not _NIGHTS_RE.search(name):
            names.append(name)
    return dedupe(names, MAX_ROOMS)


def _room_prices(page: DetailPage) -> list[tuple[str, str]]:
    table = page.soup.select_one('#hprt-table, [data-testid="availability-table"]')
    text = tag_text(table) if table is not None else page.text
    prices = []
    for match in _ROOM_PRICE_RE.finditer(text or ""):
        amount, currency = parse_price(match.group(0))
        prices.append((amount, currency))
        if len(prices) >= MAX_ROOMS:
            break
    return prices


def rooms(page: DetailPage) -> list[Room]:
    """Room names with prices paired by table order."""
    names = first_match((_room_names_from_table, _room_names_from_blocks), page) or []
    prices = _room_prices(page) if names else []
    result = []
    for index, name in enumerate(names):
        price, currency = prices[index] if index < len(prices) else (None, None)
        result.append(Room(name=name, price=price, currency=currency))
    return result


# --- languages ---

def _languages_from_ld(page: DetailPage) -> list[str]:
    value = page.ld("availableLanguage")
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, list):
        return []
    names = [item.get("name") if isinstance(item, dict) else item for item in value]
    return dedupe(clean_text(str(name)) for name in names if name)


def _languages_from_json(page: DetailPage) -> list[str]:
    match = _LANGUAGE_ARRAY_RE.search(page.html)
    if not match:
        return []
    body = match.group(1)
    # Objects like {"name": "English"} or plain strings
    pattern = _LANGUAGE_NAME_RE if "{" in body else _QUOTED_RE
    return dedupe(clean_text(found.group(1)) for found in pattern.finditer(body))


def _languages_from_section(page: DetailPage) -> list[str]:
    label = page.find_label(r"Languages?\s+spoken")
    if label is None:
        return []
    container = label.parent if label.parent is not None else label
    text = tag_text(container) or ""
    return dedupe(re.findall(rf"\b({_LANGUAGES})\b", text))


def _languages_from_text(page: DetailPage) -> list[str]:
    match = _LANGUAGE_LIST_RE.search(page.text)
    if not match:
        return []
    return dedupe(re.findall(rf"\b({_LANGUAGES})\b", match.group(0)))


def _languages_from_host_profile(page: DetailPage) -> list[str]:
    value = _host_profile(page).get("language")
    if not value:
        return []
    return dedupe(part.strip() for part in re.split(r"[,،]", value) if len(part.strip()) > 1)


LANGUAGE_RULES = (
    _languages_from_ld,
    _languages_from_json,
    _languages_from_section,
    _languages_from_host_profile,
    _languages_from_text,
)


def languages_spoken(page: DetailPage) -> list[str]:
    return first_match(LANGUAGE_RULES, page) or []


# --- property info ---

def _host_profile(page: DetailPage) -> dict[str, str]:
    """Label/value pairs from host profile list items, keyed by topic."""
    found: dict[str, str] = {}
    for item in page.soup.select('[data-testid="TextListItem"]'):
        spans = [tag_text(span) for span in item.find_all("span")]
        spans = [text for text in spans if text]
        if len(spans) < 2:
            continue
        label, value = spans[0].lower(), spans[1]
        if "company" in label or "host" in label:
            found.setdefault("company_info", value)
        elif "neighborhood" in label or "neighbourhood" in label or "area" in label:
            found.setdefault("neighborhood", value)
        elif "language" in label:
            found.setdefault("language", value)
    return found


def _about_text(page: DetailPage) -> str | None:
    label = page.find_label(r"About\s+(?:the\s+)?(?:host|property|hotel)")
    if label is None:
        return None
    for tag in label.find_all_next(["p", "div"], limit=10):
        text = tag_text(tag)
        if text and 30 <= len(text) <= 500:
            return text
    return None


def _house_rules(page: DetailPage) -> str | None:
    for selector in (
        '[data-testid="property-section-policies"]',
        "#policy_conditions",
        ".hp_policy_description, .policy_conditions",
    ):
        text = page.select_text(selector)
        if text and len(text) > 20:
            return text
    return None


def property_info(page: DetailPage) -> dict[str, str]:
    info = {key: value for key, value in _host_profile(page).items() if key != "language"}
    description = page.select_text('[data-testid="property-description"]')
    if description and 50 < len(description) < 1000:
        info["description"] = description
    about = _about_text(page)
    if about:
        info["about"] = about
    rules = _house_rules(page)
    if rules:
        info["house_rules"] = rules
    return info
