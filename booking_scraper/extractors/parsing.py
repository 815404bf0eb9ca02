"""Lenient value parsing shared by the listing and detail extractors."""

from __future__ import annotations

import html
import re
import unicodedata
from collections.abc import Callable, Iterable
from typing import TypeVar

from bs4 import Tag

T = TypeVar("T")
C = TypeVar("C")

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_RATING_RE = re.compile(r"(?<![\d.,])(\d{1,2}(?:[.,]\d{1,2})?)(?![\d]|[.,]\d)")
_DISTANCE_RE = re.compile(r"(\d+(?:[.,]\d+)?\s*(?:km|mi|m))\b", re.IGNORECASE)
_TIME_RE = re.compile(r"(\d{1,2})[:.](\d{2})")

CURRENCY_SYMBOLS = {
    "US$": "USD",
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "₹": "INR",
    "¥": "JPY",
    "₩": "KRW",
    "₺": "TRY",
    "R$": "BRL",
    "CHF": "CHF",
    "AED": "AED",
}
CURRENCY_CODES = ("USD", "EUR", "GBP", "AED", "INR", "JPY", "CAD", "AUD", "CHF", "SAR", "QAR", "THB", "TRY")

_CURRENCY_TOKEN = "|".join(
    [*CURRENCY_CODES, *(re.escape(s) for s in sorted(CURRENCY_SYMBOLS, key=len, reverse=True))]
)
PRICE_AFTER_CURRENCY_RE = re.compile(rf"({_CURRENCY_TOKEN})\s*(\d[\d,]*(?:\.\d+)?)")
PRICE_BEFORE_CURRENCY_RE = re.compile(rf"(\d[\d,]*(?:\.\d+)?)\s*({_CURRENCY_TOKEN})")


def first_match(rules: Iterable[Callable[[C], T | None]], context: C) -> T | None:
    """Evaluate extraction rules in rank order; the first non-None value wins."""
    for rule in rules:
        value = rule(context)
        if value is not None and value != "" and value != []:
            return value
    return None


def clean_text(value: str | None) -> str | None:
    """Decode entities and collapse whitespace. Empty results become None."""
    if value is None:
        return None
    text = " ".join(html.unescape(value).split())
    return text or None


def tag_text(tag: Tag | None, separator: str = " ") -> str | None:
    if tag is None:
        return None
    return clean_text(tag.get_text(separator))


def parse_number(value: str | None) -> str | None:
    """Return the first number in ``value`` as a string with commas stripped."""
    if not value:
        return None
    match = _NUMBER_RE.search(value)
    return match.group(0).replace(",", "") if match else None


def parse_int(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    number = parse_number(str(value))
    if number is None:
        return None
    try:
        return int(float(number))
    except ValueError:
        return None


def parse_float(value) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    number = parse_number(str(value))
    if number is None:
        return None
    try:
        return float(number)
    except ValueError:
        return None


def parse_rating(value: str | None) -> float | None:
    """Review score on the 0-10 scale, tolerating a decimal comma."""
    if not value:
        return None
    match = _RATING_RE.search(value)
    if not match:
        return None
    score = float(match.group(1).replace(",", "."))
    return score if 0 <= score <= 10 else None


def normalize_currency(token: str | None) -> str | None:
    if not token:
        return None
    token = token.strip()
    if token.upper() in CURRENCY_CODES:
        return token.upper()
    return CURRENCY_SYMBOLS.get(token)


def parse_price(text: str | None) -> tuple[str | None, str | None]:
    """Split a rendered price into (amount, currency code).

    Tries "US$1,234", then "1,234 USD", then a bare number.
    """
    if not text:
        return None, None
    text = html.unescape(text).replace("\xa0", " ")
    match = PRICE_AFTER_CURRENCY_RE.search(text)
    if match:
        return match.group(2).replace(",", ""), normalize_currency(match.group(1))
    match = PRICE_BEFORE_CURRENCY_RE.search(text)
    if match:
        return match.group(1).replace(",", ""), normalize_currency(match.group(2))
    return parse_number(text), None


def split_distance(text: str) -> tuple[str, str | None]:
    """Separate a trailing "1.2 km" style token from a label."""
    matches = list(_DISTANCE_RE.finditer(text))
    if not matches:
        return text.strip(), None
    match = matches[-1]
    distance = " ".join(match.group(1).split())
    label = (text[: match.start()] + text[match.end():]).strip()
    return label, distance


def is_distance(text: str) -> bool:
    return bool(re.fullmatch(r"\d+(?:[.,]\d+)?\s*(?:km|mi|m)", text.strip(), re.IGNORECASE))


def normalize_time(value: str | None) -> str | None:
    """"3:00" -> "03:00"."""
    if not value:
        return None
    match = _TIME_RE.search(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def category_key(label: str) -> str:
    """"Restaurants & cafés" -> "restaurants_and_cafes"."""
    text = html.unescape(label).replace("&", " and ")
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"['’`\"]", "", text.lower())
    return re.sub(r"[^a-z0-9]+", "_", text).strip("_")


def dedupe(values: Iterable[str], limit: int | None = None) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
            if limit is not None and len(seen) >= limit:
                break
    return seen
