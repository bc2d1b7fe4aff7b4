from __future__ import annotations

import json
from pathlib import Path

from ..core.enums import Region
from ..core.errors import PartialDataUnavailable
from ..core.models import Listing, Period, ReportRequest
from .base import MarketDataSource, MetricSeries


def load_request(path: str | Path) -> ReportRequest:
    """Load a saved ReportRequest JSON document."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return ReportRequest.from_dict(json.load(f))


class JsonFileAdapter(MarketDataSource):
    """Serves metrics and listings from a saved request, for offline exports."""

    name = "json-file"

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> ReportRequest:
        try:
            return load_request(self.path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PartialDataUnavailable(self.name, f"cannot load {self.path}: {e}") from e

    def fetch_metrics(self, region: Region, period: Period) -> MetricSeries:
        request = self._load()
        return list(request.price_per_area), list(request.days_on_market)

    def fetch_listings(self, region: Region, period: Period) -> list[Listing]:
        return list(self._load().listings)
