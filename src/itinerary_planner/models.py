"""Pydantic models for trip requests, itineraries, and persisted records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

MAX_DAYS = 30
MAX_PARTY_SIZE = 50
MAX_PREFERENCES_CHARS = 1000


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TripRequest(BaseModel):
    """Validated parameters from the trip form."""

    destination: str
    days: int
    budget: float | None = None
    party_size: int = 1
    preferences: str = ""
    transcript: str = ""  # Free text from the speech-to-text widget

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> tuple[TripRequest | None, list[str]]:
        """Validate a JSON request body.

        Returns (request, []) when valid, or (None, errors) listing every
        problem found.
        """
        errors: list[str] = []
        destination = str(body.get("destination") or "").strip()
        days = _as_number(body.get("days"))
        raw_budget = body.get("budget")
        budget = None if raw_budget is None else _as_number(raw_budget)
        raw_party = body.get("partySize")
        party_size = 1 if raw_party is None else _as_number(raw_party)
        preferences = str(body.get("preferences") or "")

        if not destination:
            errors.append("destination must not be empty")
        if days is None or days <= 0 or days > MAX_DAYS or days != int(days):
            errors.append(f"days must be an integer between 1 and {MAX_DAYS}")
        if raw_budget is not None and (budget is None or budget < 0):
            errors.append("budget must be a non-negative number")
        if (
            party_size is None
            or party_size <= 0
            or party_size > MAX_PARTY_SIZE
            or party_size != int(party_size)
        ):
            errors.append(f"partySize must be an integer between 1 and {MAX_PARTY_SIZE}")
        if len(preferences) > MAX_PREFERENCES_CHARS:
            errors.append("preferences is too long")

        if errors:
            return None, errors
        return (
            cls(
                destination=destination,
                days=int(days),
                budget=budget,
                party_size=int(party_size),
                preferences=preferences,
                transcript=str(body.get("transcript") or ""),
            ),
            [],
        )


def _as_number(value: Any) -> float | None:
    """Coerce form input to a finite number, or None."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


class Activity(BaseModel):
    time: str
    name: str
    type: str
    address: str | None = None
    estimatedCost: float | None = None


class DayPlan(BaseModel):
    day: int
    activities: list[Activity] = Field(default_factory=list)


class Accommodation(BaseModel):
    name: str
    pricePerNight: float
    nights: int


class Restaurant(BaseModel):
    name: str
    type: str
    estimatedCostPerPerson: float


class Itinerary(BaseModel):
    """The itinerary shape requested from the model.

    Model output is returned to clients as parsed, not validated against
    this class; it describes the shape for the mock tier.
    """

    itinerary: list[DayPlan] = Field(default_factory=list)
    totalEstimatedCost: float = 0
    accommodations: list[Accommodation] = Field(default_factory=list)
    transportPlan: str = ""
    restaurants: list[Restaurant] = Field(default_factory=list)
    summary: str = ""


class SavedItinerary(BaseModel):
    id: str = Field(default_factory=lambda: f"it_{uuid.uuid4().hex[:10]}")
    title: str | None = None
    summary: str | None = None
    itinerary: str  # JSON text, parsed back on read
    created_at: str = Field(default_factory=_now_iso)


class Expense(BaseModel):
    id: str = Field(default_factory=lambda: f"ex_{uuid.uuid4().hex[:10]}")
    amount: float
    category: str
    note: str | None = None
    created_at: str = Field(default_factory=_now_iso)
