"""YAML persistence for saved itineraries and expenses."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .models import Expense, SavedItinerary

logger = logging.getLogger("itinerary-planner")


class PlannerStore:
    """Load and save itineraries and expenses in a single YAML file.

    Reads and writes are synchronous, so a save never interleaves with
    another handler on the event loop.
    """

    def __init__(self, path: str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = yaml.safe_load(self._path.read_text())
        except yaml.YAMLError as e:
            logger.warning("Could not read %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        )

    def load_itineraries(self) -> list[SavedItinerary]:
        try:
            return [SavedItinerary(**r) for r in self._load().get("itineraries") or []]
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring malformed itineraries in %s: %s", self._path, e)
            return []

    def load_expenses(self) -> list[Expense]:
        try:
            return [Expense(**r) for r in self._load().get("expenses") or []]
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring malformed expenses in %s: %s", self._path, e)
            return []

    def add_itinerary(self, record: SavedItinerary) -> SavedItinerary:
        data = self._load()
        data.setdefault("itineraries", []).append(record.model_dump(mode="json"))
        self._save(data)
        return record

    def add_expense(self, record: Expense) -> Expense:
        data = self._load()
        data.setdefault("expenses", []).append(record.model_dump(mode="json"))
        self._save(data)
        return record

    def recent_itineraries(self, limit: int = 50) -> list[SavedItinerary]:
        """Newest first."""
        records = sorted(self.load_itineraries(), key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    def recent_expenses(self, limit: int = 100) -> list[Expense]:
        """Newest first."""
        records = sorted(self.load_expenses(), key=lambda r: r.created_at, reverse=True)
        return records[:limit]
