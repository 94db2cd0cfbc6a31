"""Decoders for the backend's listing feeds and signin response."""
from __future__ import annotations

import json
import logging
import re
from typing import Callable, Dict, NamedTuple, Tuple

from models import Listing
from services.errors import ResponseFormatError

logger = logging.getLogger(__name__)

USER_ID_PATTERN = re.compile(r"UserID:\s*(\d+)")
RECORD_SEPARATOR = ", "
PAIR_SEPARATOR = ": "
LISTING_KEYS = ("id", "name", "payment", "image")
DESCRIPTION_KEYS = ("description",)
DASHBOARD_DESCRIPTION_KEYS = ("desc", "description")

Decoder = Callable[[str], Tuple[Listing, ...]]


def parse_record_line(line: str) -> Dict[str, str]:
    """Split ``key: value, key: value`` into a dict with lower-cased keys."""
    parts: Dict[str, str] = {}
    for chunk in line.split(RECORD_SEPARATOR):
        key, sep, value = chunk.partition(PAIR_SEPARATOR)
        if not sep:
            continue
        parts[key.strip().lower()] = value.strip()
    return parts


def _description(parts: Dict[str, str], keys: Tuple[str, ...]) -> str | None:
    for key in keys[:-1]:
        if parts.get(key):
            return parts[key]
    return parts.get(keys[-1])


def _listing_from_parts(parts: Dict[str, str], description_keys: Tuple[str, ...]) -> Listing:
    missing = [key for key in LISTING_KEYS if key not in parts]
    if not any(key in parts for key in description_keys):
        missing.append(description_keys[-1])
    if missing:
        logger.debug("Listing record without %s: %r", ", ".join(missing), parts)
    return Listing(
        id=parts.get("id"),
        name=parts.get("name"),
        description=_description(parts, description_keys),
        payment_per_day=parts.get("payment"),
        image=parts.get("image"),
    )


def parse_listings(
    text: str,
    description_keys: Tuple[str, ...] = DESCRIPTION_KEYS,
) -> Tuple[Listing, ...]:
    """Decode the newline separated record feed."""
    body = text.strip()
    if not body:
        return ()
    return tuple(
        _listing_from_parts(parse_record_line(line), description_keys)
        for line in body.split("\n")
    )


def parse_dashboard_listings(text: str) -> Tuple[Listing, ...]:
    """Decode the per-user feed, which names the description ``Desc``."""
    return parse_listings(text, DASHBOARD_DESCRIPTION_KEYS)


def _as_text(value) -> str | None:
    if value is None:
        return None
    return str(value)


def parse_listings_json(text: str) -> Tuple[Listing, ...]:
    """Decode a JSON array of listing objects."""
    if not text.strip():
        return ()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseFormatError("Listings response is not valid JSON") from exc
    if not isinstance(payload, list):
        raise ResponseFormatError("Listings response must be a JSON array")

    listings = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ResponseFormatError("Listing entries must be JSON objects")
        listings.append(
            Listing(
                id=_as_text(entry.get("id")),
                name=_as_text(entry.get("name")),
                description=_as_text(entry.get("description")),
                payment_per_day=_as_text(entry.get("paymentPerDay")),
                image=_as_text(entry.get("image")),
            )
        )
    return tuple(listings)


class Codec(NamedTuple):
    """Decoders for the public feed and the per-user feed."""

    listings: Decoder
    dashboard: Decoder


CODECS: Dict[str, Codec] = {
    "lines": Codec(parse_listings, parse_dashboard_listings),
    "json": Codec(parse_listings_json, parse_listings_json),
}


def get_codec(fmt: str) -> Codec:
    try:
        return CODECS[fmt]
    except KeyError:
        raise ValueError(f"Unknown listing format: {fmt}") from None


def extract_user_id(text: str) -> str | None:
    match = USER_ID_PATTERN.search(text)
    return match.group(1) if match else None


def format_record_line(listing: Listing, description_key: str = "Description") -> str:
    """Render a listing the way the backend writes it."""
    return (
        f"ID: {listing.id}, Name: {listing.name}, {description_key}: {listing.description}, "
        f"Payment: {listing.payment_per_day}, Image: {listing.image}"
    )


__all__ = [
    "Codec",
    "Decoder",
    "extract_user_id",
    "format_record_line",
    "get_codec",
    "parse_dashboard_listings",
    "parse_listings",
    "parse_listings_json",
    "parse_record_line",
]
