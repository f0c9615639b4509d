"""Provider-agnostic prompt templates for itinerary generation and JSON recovery."""

from __future__ import annotations

from ..models import TripRequest

SCHEMA_HINT = """{
  "itinerary": [ { "day": 1, "activities": [ {"time": "08:00", "name": "xxx", "type": "sight|restaurant|transport|lodging|other", "address": "optional", "estimatedCost": 100 } ] } ],
  "totalEstimatedCost": 1234,
  "accommodations": [ {"name": "xxx", "pricePerNight": 300, "nights": 3} ],
  "transportPlan": "short description of getting there and getting around",
  "restaurants": [ {"name": "xxx", "type": "xx", "estimatedCostPerPerson": 100} ],
  "summary": "a short summary"
}"""


def build_itinerary_prompt(trip: TripRequest) -> str:
    """Build the generation prompt from validated trip parameters."""
    budget = f"{trip.budget:g}" if trip.budget is not None else "not specified"
    return f"""Act as a travel planner and produce a structured JSON itinerary from this request:
- Destination: {trip.destination}
- Days: {trip.days}
- Total budget: {budget}
- Party size: {trip.party_size}
- Preferences: {trip.preferences}
- Additional spoken notes: {trip.transcript}

Respond with a single JSON object in exactly this format:
{SCHEMA_HINT}

Return only the JSON object. Do not add any explanation outside the JSON."""


def build_reformat_prompt(raw_output: str) -> str:
    """Ask the model to convert arbitrary prior output into the target JSON."""
    return f"""Below is the output of a model. Convert it strictly into the JSON structure described after it and return only the JSON object, with no explanation or extra text.

Original output:
\"\"\"
{raw_output}
\"\"\"

The output must be a machine-parseable JSON object with this structure:
{SCHEMA_HINT}"""


def build_completion_prompt(partial_output: str, original_prompt: str) -> str:
    """Ask the model to finish a JSON object that was cut off."""
    return f"""Below is a model output that was truncated. Using the context, complete it and return the full JSON object. Return only JSON.

Truncated output:
\"\"\"
{partial_output}
\"\"\"

Return only a valid JSON object with this structure (no explanatory text):
{SCHEMA_HINT}

Original generation request (for reference):
{original_prompt}"""
