"""Nearby-places ("Area info") discovery.

Booking.com renders the surroundings block as a run of short headings, each
followed by list items such as ``Restaurant | Al Fanar | 350 m``. The set of
headings changes between properties and locales, so categories are
discovered from the page rather than looked up by name.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, NavigableString, Tag

from booking_scraper.extractors.parsing import category_key, clean_text, is_distance, split_distance, tag_text
from booking_scraper.schemas.hotel import NearbyPlace
from booking_scraper.services.stealth import SURROUNDINGS_HEADING_RE

logger = logging.getLogger(__name__)

KNOWN_PREFIXES = (
    "Restaurant", "Cafe", "Subway", "Train", "Airport", "Metro", "Museum", "Park",
    "Bank", "Pharmacy", "Market", "Tram", "Bus", "Square", "Forest",
)

FALLBACK_LABELS = (
    "What's nearby",
    "Top attractions",
    "Closest Airports",
    "Public transit",
    "Restaurants & cafes",
    "Natural beauty",
)

SURROUNDINGS_SELECTOR = (
    '[class*="property-surroundings"], [data-testid="property-surroundings"], '
    '[data-testid="location-highlights"]'
)
LOOSE_HEADING_SELECTOR = 'h3, h4, div[class*="title"], [class*="heading"]'

_EXCLUDED_KEY_RE = re.compile(r"area_info|show_map|availability|reviews|check|property_surroundings")
_DISTANCE_KEY_RE = re.compile(r"^\d+(?:_\d+)?(?:_km|_m|_mi)?$")
_SURROUNDINGS_RE = re.compile(SURROUNDINGS_HEADING_RE, re.IGNORECASE)
_PREFIX_RE = "|".join(KNOWN_PREFIXES)
_SEPARATED_PREFIX_RE = re.compile(rf"^({_PREFIX_RE})(?:\s*[•·|]\s*|\s+-\s+)(.+)$", re.IGNORECASE)
_GLUED_PREFIX_RE = re.compile(rf"^({_PREFIX_RE})(?=[A-Z])(.+)$")
_BULLETS_RE = re.compile(r"^[•·\s-]+|[•·\s-]+$")
_AIRPORT_JSON_RE = re.compile(
    r'"title":"([^"]*Airport[^"]*)","subtitle":"\(([A-Z]+)\)\s*(\d+\.?\d*)\s*(km|mi)"'
)

_SKIPPED_TAGS = frozenset({"script", "style", "noscript", "button", "svg", "template"})


@dataclass
class _Categories:
    """Accumulates discovered categories in page order."""

    items: dict[str, list[NearbyPlace]] = field(default_factory=dict)
    current: str | None = None

    def open(self, key: str) -> None:
        self.current = key

    def add(self, place: NearbyPlace | None, key: str | None = None) -> None:
        key = key or self.current
        if place is None or key is None:
            return
        bucket = self.items.setdefault(key, [])
        if all(existing.name != place.name for existing in bucket):
            bucket.append(place)

    def result(self) -> dict[str, list[NearbyPlace]]:
        return {key: places for key, places in self.items.items() if places}


def heading_key(text: str | None) -> str | None:
    """Category key for a heading-like text, or None when it is not one."""
    text = clean_text(text)
    if not text or not 3 <= len(text) <= 50:
        return None
    if "?" in text or "}" in text or is_distance(text):
        return None
    key = category_key(text)
    if len(key) < 2 or _EXCLUDED_KEY_RE.search(key) or _DISTANCE_KEY_RE.match(key):
        return None
    return key


def is_listitem(tag: Tag) -> bool:
    return tag.name == "li" or tag.get("role") == "listitem"


def _text_nodes(tag: Tag) -> list[str]:
    return [text for text in (clean_text(s) for s in tag.find_all(string=True)) if text]


def parse_place(item: Tag) -> NearbyPlace | None:
    parts = _text_nodes(item)
    if not parts:
        return None

    place_type = None
    for prefix in KNOWN_PREFIXES:
        if parts[0].lower() == prefix.lower() and len(parts) > 1:
            place_type = prefix
            parts = parts[1:]
            break

    label, distance = split_distance(" ".join(parts))
    if place_type is None:
        match = _SEPARATED_PREFIX_RE.match(label) or _GLUED_PREFIX_RE.match(label)
        if match:
            place_type = match.group(1).capitalize()
            label = match.group(2)

    name = _BULLETS_RE.sub("", label).strip()
    if len(name) < 2 or "..." in name:
        return None
    return NearbyPlace(name=name, type=place_type, distance=distance)


def find_surroundings(soup: BeautifulSoup) -> Tag | None:
    section = soup.select_one(SURROUNDINGS_SELECTOR)
    if section is not None:
        return section
    for heading in soup.find_all("h2"):
        if _SURROUNDINGS_RE.search(heading.get_text(" ")):
            return heading.find_parent("section") or heading.parent
    return None


def is_role_listitem(tag: Tag) -> bool:
    return tag.get("role") == "listitem"


def _walk(node: Tag, found: _Categories, is_item: Callable[[Tag], bool] = is_listitem) -> None:
    for child in node.children:
        if isinstance(child, Tag):
            if child.name in _SKIPPED_TAGS:
                continue
            if is_item(child):
                found.add(parse_place(child))
                continue
            _walk(child, found, is_item)
        # Plain text only; comments, doctype and script bodies are subclasses
        elif type(child) is NavigableString:
            key = heading_key(str(child))
            if key:
                found.open(key)


def _is_inside(tag: Tag, ancestor: Tag) -> bool:
    return tag is ancestor or any(parent is ancestor for parent in tag.parents)


def _loose_heading_key(tag: Tag, labels_only: bool = False) -> str | None:
    if tag.find_parent(is_listitem) is not None:
        return None
    text = tag_text(tag)
    if text and text.lower() in (label.lower() for label in FALLBACK_LABELS):
        return category_key(text)
    return None if labels_only else heading_key(text)


def _places_after(heading: Tag, scope: Tag) -> list[NearbyPlace]:
    places: list[NearbyPlace] = []
    last_item = None
    for element in heading.find_all_next(True):
        if not _is_inside(element, scope):
            break
        if _is_inside(element, heading) or (last_item is not None and _is_inside(element, last_item)):
            continue
        if is_listitem(element):
            last_item = element
            place = parse_place(element)
            if place is not None:
                places.append(place)
            continue
        # Next category starts
        if element.name in ("h2", "h3", "h4") or element.css.match(LOOSE_HEADING_SELECTOR):
            break
    return places


def _loose_pass(scope: Tag, found: _Categories, *, labels_only: bool = False) -> None:
    for heading in scope.select(LOOSE_HEADING_SELECTOR):
        key = _loose_heading_key(heading, labels_only)
        if key is None or key in found.items:
            continue
        for place in _places_after(heading, scope):
            found.add(place, key)


def merge_airports(area_info: dict[str, list[NearbyPlace]], html: str) -> None:
    """Add airports from the embedded map JSON to ``closest_airports``."""
    airports = area_info.get("closest_airports", [])
    by_name = {place.name.lower(): place for place in airports}
    for match in _AIRPORT_JSON_RE.finditer(html):
        name = clean_text(match.group(1))
        code = match.group(2)
        existing = by_name.get(name.lower())
        if existing is not None:
            existing.code = existing.code or code
            continue
        place = NearbyPlace(name=name, code=code, distance=f"{match.group(3)} {match.group(4)}")
        airports.append(place)
        by_name[name.lower()] = place
    if airports:
        area_info["closest_airports"] = airports


def discover_area_info(soup: BeautifulSoup, html: str) -> dict[str, list[NearbyPlace]]:
    section = find_surroundings(soup)
    found = _Categories()
    if section is not None:
        _walk(section, found)
    else:
        # Plain <li> outside the section are menus and facility lists
        logger.debug("No surroundings section found, matching role=listitem across the page")
        _walk(soup, found, is_role_listitem)

    if len(found.result()) < 2:
        logger.debug("Only %d nearby categories found, trying heading pass", len(found.result()))
        if section is not None:
            _loose_pass(section, found)
        _loose_pass(soup, found, labels_only=True)

    area_info = found.result()
    merge_airports(area_info, html)
    logger.debug("Nearby categories: %s", ", ".join(area_info) or "none")
    return area_info
