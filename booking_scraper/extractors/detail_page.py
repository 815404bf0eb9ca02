from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property

from bs4 import BeautifulSoup, NavigableString, Tag

from booking_scraper.extractors.parsing import clean_text, tag_text

logger = logging.getLogger(__name__)

HOTEL_LD_TYPES = frozenset({"Hotel", "LodgingBusiness", "Accommodation"})


def _ld_types(entity: dict) -> set[str]:
    types = entity.get("@type")
    if isinstance(types, str):
        return {types}
    if isinstance(types, list):
        return {t for t in types if isinstance(t, str)}
    return set()


def _ld_entities(data) -> list[dict]:
    if isinstance(data, list):
        return [entity for item in data for entity in _ld_entities(item)]
    if isinstance(data, dict):
        graph = data.get("@graph")
        return [data, *_ld_entities(graph)] if graph else [data]
    return []


def load_json_ld(soup: BeautifulSoup) -> list[dict]:
    entities: list[dict] = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Skipping unparseable JSON-LD block (%d chars)", len(raw or ""))
            continue
        entities.extend(_ld_entities(data))
    return entities


def find_hotel_entity(entities: list[dict]) -> dict:
    for entity in entities:
        if _ld_types(entity) & HOTEL_LD_TYPES:
            return entity
    return {}


@dataclass
class DetailPage:
    """Parsed hotel page shared by every detail rule."""

    soup: BeautifulSoup
    html: str
    hotel_ld: dict = field(default_factory=dict)
    ld_entities: list[dict] = field(default_factory=list)

    @classmethod
    def parse(cls, html: str) -> DetailPage:
        soup = BeautifulSoup(html, "html.parser")
        entities = load_json_ld(soup)
        return cls(soup=soup, html=html, hotel_ld=find_hotel_entity(entities), ld_entities=entities)

    @cached_property
    def text(self) -> str:
        body = self.soup.body or self.soup
        return " ".join(body.get_text(" ").split())

    def ld(self, *path: str):
        """Walk nested JSON-LD keys of the hotel entity; None when any is missing."""
        value = self.hotel_ld
        for key in path:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        return value

    def ld_text(self, *path: str) -> str | None:
        value = self.ld(*path)
        return clean_text(str(value)) if value not in (None, "") else None

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def select_text(self, selector: str) -> str | None:
        return tag_text(self.soup.select_one(selector))

    def search(self, pattern: str | re.Pattern, flags: int = re.IGNORECASE) -> str | None:
        """First capture group of ``pattern`` in the raw HTML."""
        match = re.search(pattern, self.html, flags)
        return clean_text(match.group(1)) if match else None

    def search_text(self, pattern: str | re.Pattern, flags: int = re.IGNORECASE) -> str | None:
        """First capture group of ``pattern`` in the visible page text."""
        match = re.search(pattern, self.text, flags)
        return clean_text(match.group(1)) if match else None

    def find_label(self, pattern: str) -> Tag | None:
        """Element whose own text matches ``pattern`` (e.g. a section heading)."""
        regex = re.compile(pattern, re.IGNORECASE)
        node = self.soup.find(string=lambda s: type(s) is NavigableString and regex.search(s) is not None)
        return node.parent if node is not None else None
