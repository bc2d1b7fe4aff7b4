"""Base interface for market-data sources feeding the newsletter exporter."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ..core.enums import Region
from ..core.models import DaysOnMarketPoint, Listing, Period, PricePerAreaPoint


MetricSeries = tuple[list[PricePerAreaPoint], list[DaysOnMarketPoint]]


class MarketDataSource(ABC):
    """Abstract base class for market-data sources.

    Sources are blocking and read-only. They raise ``PartialDataUnavailable``
    when data cannot be fetched or parsed; retries and fallbacks belong to the
    caller.
    """

    name: str = "source"

    @abstractmethod
    def fetch_metrics(self, region: Region, period: Period) -> MetricSeries:
        """Fetch the monthly metric series for a region, ending at ``period``.

        Returns:
            Tuple of (price-per-area points, days-on-market points), each
            chronological.

        Raises:
            PartialDataUnavailable: On transport or parse errors
        """
        pass

    @abstractmethod
    def fetch_listings(self, region: Region, period: Period) -> list[Listing]:
        """Fetch listing records for a region and month.

        Raises:
            PartialDataUnavailable: On transport or parse errors
        """
        pass

    def _safe_int(self, value: Any, default: int = 0) -> int:
        """Safely convert value to int, returning default on failure."""
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default

    def _safe_float(self, value: Any, default: float | None = None) -> float | None:
        """Safely convert value to float, returning default on failure."""
        try:
            return float(value)
        except (TypeError, ValueError):
            return default


def trailing_window(points: Sequence[Any], period: Period, months: int) -> list[Any]:
    """Keep the last ``months`` points up to and including ``period``, oldest first."""
    eligible = [p for p in points if p.year * 12 + (p.month - 1) <= period.ordinal]
    eligible.sort(key=lambda p: (p.year, p.month))
    return eligible[-months:] if months > 0 else []
