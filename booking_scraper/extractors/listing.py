"""Search results page -> hotel summaries.

Every field has a tuple of rules ordered from the most stable marker to the
loosest text pattern; ``first_match`` picks the first one that yields a value.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import cached_property

from bs4 import BeautifulSoup, Tag

from booking_scraper.extractors.parsing import (
    clean_text,
    first_match,
    parse_int,
    parse_price,
    parse_rating,
    tag_text,
)
from booking_scraper.schemas.hotel import HotelSummary
from booking_scraper.services.url_builder import canonicalize_hotel_url

logger = logging.getLogger(__name__)

CARD_SELECTOR = '[data-testid="property-card"]'
CARD_FALLBACK_SELECTOR = ".sr_property_block, .c-sr-hotel-card, [data-hotelid]"

_HOTEL_LINK_RE = re.compile(r'https://www\.booking\.com/hotel/[^"\'\s<>]+')
_HOTEL_IMAGE_RE = re.compile(r'(https://cf\.bstatic\.com/xdata/images/hotel[^"\'\s<>]+)')
_SCORED_RE = re.compile(r"Scored\s+(\d+(?:\.\d+)?)", re.IGNORECASE)
_REVIEWS_RE = re.compile(r"(\d[\d,]*)\s*(?:verified\s+|external\s+)?reviews?\b", re.IGNORECASE)
_SHOW_ON_MAP_RE = re.compile(r"([^\n]+?)\s*Show on map", re.IGNORECASE)
_FROM_CENTRE_RE = re.compile(r"(\d+(?:\.\d+)?\s*(?:km|mi|m) from (?:downtown|centre|center|city centre))", re.IGNORECASE)
_DISPLAYED_PRICE_RE = re.compile(r'"displayedPrice"[^}]*?"amount"\s*:\s*"?(\d[\d,.]*)')


@dataclass
class Card:
    tag: Tag

    @cached_property
    def text(self) -> str:
        return self.tag.get_text("\n")

    @cached_property
    def flat_text(self) -> str:
        return " ".join(self.text.split())

    @cached_property
    def html(self) -> str:
        return str(self.tag)

    def select_text(self, selector: str) -> str | None:
        return tag_text(self.tag.select_one(selector))


def find_cards(soup: BeautifulSoup) -> list[Tag]:
    cards = soup.select(CARD_SELECTOR)
    if not cards:
        cards = soup.select(CARD_FALLBACK_SELECTOR)
    return cards


# --- name ---

NAME_RULES = (
    lambda card: card.select_text('[data-testid="title"]'),
    lambda card: card.select_text(".sr-hotel__name"),
    lambda card: card.select_text("h3"),
)


# --- link ---

def _href(card: Card, selector: str) -> str | None:
    tag = card.tag.select_one(selector)
    return tag.get("href") if tag else None


def _link_from_markup(card: Card) -> str | None:
    match = _HOTEL_LINK_RE.search(card.html)
    return match.group(0) if match else None


LINK_RULES = (
    lambda card: _href(card, 'a[data-testid="title-link"]'),
    lambda card: _href(card, '[data-testid="title"] a, a[data-testid="property-card-desktop-single-image"]'),
    lambda card: _href(card, 'a.hotel_name_link, a[href*="/hotel/"]'),
    _link_from_markup,
)


# --- picture ---

def _img_src(tag: Tag | None) -> str | None:
    if tag is None:
        return None
    return tag.get("src") or tag.get("data-src")


def _picture_from_image_hook(card: Card) -> str | None:
    hook = card.tag.select_one('[data-testid="image"]')
    if hook is None:
        return None
    return _img_src(hook if hook.name == "img" else hook.find("img"))


def _picture_from_markup(card: Card) -> str | None:
    match = _HOTEL_IMAGE_RE.search(card.html)
    return match.group(1) if match else None


PICTURE_RULES = (
    _picture_from_image_hook,
    _picture_from_markup,
    lambda card: _img_src(card.tag.select_one(".hotel_image img, .sr_item_photo img, img")),
)


# --- rating / reviews ---

def _rating_from_aria(card: Card) -> float | None:
    for tag in card.tag.select("[aria-label]"):
        match = _SCORED_RE.search(tag["aria-label"])
        if match:
            return parse_rating(match.group(1))
    return None


def _review_score_block(card: Card) -> Tag | None:
    return card.tag.select_one('[data-testid="review-score"]')


def _rating_from_score_block(card: Card) -> float | None:
    block = _review_score_block(card)
    if block is None:
        return None
    # Score sits in the leading element; the rest of the block holds the review count
    return parse_rating(tag_text(block.find(True)))


def _reviews_from_score_block(card: Card) -> int | None:
    block = _review_score_block(card)
    match = _REVIEWS_RE.search(tag_text(block) or "")
    return parse_int(match.group(1)) if match else None


def _reviews_from_text(card: Card) -> int | None:
    match = _REVIEWS_RE.search(card.flat_text)
    return parse_int(match.group(1)) if match else None


RATING_RULES = (
    _rating_from_score_block,
    _rating_from_aria,
    lambda card: parse_rating(card.select_text(".bui-review-score__badge, .review-score-badge")),
    lambda card: parse_rating(_SCORED_RE.search(card.flat_text).group(1)) if _SCORED_RE.search(card.flat_text) else None,
)

REVIEWS_RULES = (
    _reviews_from_score_block,
    lambda card: parse_int(card.select_text(".bui-review-score__text, .review-score-widget__subtext")),
    _reviews_from_text,
)


# --- location ---

def _location_from_hooks(card: Card) -> str | None:
    address = card.select_text('[data-testid="address"]')
    distance = card.select_text('[data-testid="distance"]')
    if address and distance:
        return f"{address} - {distance}"
    return address or distance


def _location_from_text(card: Card) -> str | None:
    match = _SHOW_ON_MAP_RE.search(card.text) or _FROM_CENTRE_RE.search(card.text)
    return clean_text(match.group(1)) if match else None


LOCATION_RULES = (
    _location_from_hooks,
    lambda card: card.select_text(".sr_card_address_line, .address"),
    _location_from_text,
)


# --- price ---

def _price_from(card: Card, selector: str) -> tuple[str, str | None] | None:
    amount, currency = parse_price(card.select_text(selector))
    return (amount, currency) if amount else None


def _price_from_json(card: Card) -> tuple[str, str | None] | None:
    match = _DISPLAYED_PRICE_RE.search(card.html)
    return (match.group(1).replace(",", ""), None) if match else None


def _price_from_currency_text(card: Card) -> tuple[str, str | None] | None:
    amount, currency = parse_price(card.flat_text)
    return (amount, currency) if amount and currency else None


PRICE_RULES = (
    lambda card: _price_from(card, '[data-testid="price-and-discounted-price"]'),
    lambda card: _price_from(card, '[data-testid="price"]'),
    lambda card: _price_from(card, '.bui-price-display__value, .prco-valign-middle-helper, [class*="price"]'),
    _price_from_json,
    _price_from_currency_text,
)


def extract_summary(card: Card) -> HotelSummary | None:
    name = first_match(NAME_RULES, card)
    if not name:
        return None
    price = first_match(PRICE_RULES, card)
    amount, currency = price if price else (None, None)
    return HotelSummary(
        name=name,
        link=canonicalize_hotel_url(first_match(LINK_RULES, card)),
        picture_url=clean_text(first_match(PICTURE_RULES, card)),
        rating=first_match(RATING_RULES, card),
        reviews_count=first_match(REVIEWS_RULES, card),
        location=first_match(LOCATION_RULES, card),
        price_per_night=amount,
        currency=currency,
    )


def extract_listings(html: str) -> list[HotelSummary]:
    soup = BeautifulSoup(html, "html.parser")
    hotels: list[HotelSummary] = []
    cards = find_cards(soup)
    for tag in cards:
        summary = extract_summary(Card(tag))
        if summary is not None:
            hotels.append(summary)
    logger.debug("Extracted %d hotels from %d cards", len(hotels), len(cards))
    return hotels
