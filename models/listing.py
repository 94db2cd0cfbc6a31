"""
Data models for rental listings
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Listing:
    """A rental listing as described by the backend feed.

    Fields are kept as text exactly as received; ``None`` marks a field the
    backend line did not carry.
    """

    id: str | None
    name: str | None
    description: str | None
    payment_per_day: str | None
    image: str | None
