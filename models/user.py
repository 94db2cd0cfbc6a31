"""Data model for the signed-in account."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class User:
    """Account returned by a successful signin. Held only in memory."""

    id: str
    email: str
