"""Deterministic itinerary used when no LLM provider is configured."""

from __future__ import annotations

from ..models import (
    Accommodation,
    Activity,
    DayPlan,
    Itinerary,
    Restaurant,
    TripRequest,
)


def _day_activities(destination: str) -> list[Activity]:
    return [
        Activity(time="09:00", name=f"{destination} landmark tour", type="sight", estimatedCost=200),
        Activity(time="12:00", name=f"{destination} local food lunch", type="restaurant", estimatedCost=150),
        Activity(time="14:00", name="Afternoon leisure / shopping (per preferences)", type="other", estimatedCost=100),
        Activity(time="18:00", name="Recommended dinner (family friendly)", type="restaurant", estimatedCost=200),
    ]


def build_mock_itinerary(trip: TripRequest) -> dict:
    """Same structure the model is asked for, filled with placeholder plans."""
    days = [
        DayPlan(day=d, activities=_day_activities(trip.destination))
        for d in range(1, trip.days + 1)
    ]
    total = sum(a.estimatedCost or 0 for day in days for a in day.activities)
    itinerary = Itinerary(
        itinerary=days,
        totalEstimatedCost=total,
        accommodations=[
            Accommodation(
                name=f"{trip.destination} recommended hotel",
                pricePerNight=800,
                nights=trip.days,
            )
        ],
        transportPlan="Round trip by plane; metro or taxi within the city",
        restaurants=[
            Restaurant(
                name=f"{trip.destination} local favourite",
                type="local cuisine",
                estimatedCostPerPerson=120,
            )
        ],
        summary=f"{trip.days}-day itinerary for {trip.destination} (mock data)",
    )
    return itinerary.model_dump(mode="json", exclude_none=True)
