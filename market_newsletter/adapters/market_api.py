"""REST client for the brokerage market-data backend."""

from __future__ import annotations

from typing import Any

import requests

from ..core.constants import TRAILING_MONTHS
from ..core.enums import ListingStatus, Region
from ..core.errors import PartialDataUnavailable
from ..core.logging_config import get_logger
from ..core.models import (
    DAYS_ON_MARKET,
    PRICE_PER_AREA,
    DaysOnMarketPoint,
    Listing,
    Period,
    PricePerAreaPoint,
    dated_rows,
)
from .base import MarketDataSource, MetricSeries, trailing_window

logger = get_logger(__name__)

# Backend keeps every month on record; fetch enough to cover the trailing window
METRICS_FETCH_LIMIT = 24


class MarketApiAdapter(MarketDataSource):
    """Adapter for the market-data REST API (JSON over HTTP)."""

    name = "market-api"

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """Initialize the adapter.

        Args:
            base_url: API root, e.g. ``http://localhost:3001/api``
            api_token: Optional admin bearer token
            timeout: Request timeout in seconds (default: 30)
            session: Optional requests session (tests inject one)
        """
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise PartialDataUnavailable(self.name, f"request to {path} failed: {e}") from e

        if resp.status_code != 200:
            raise PartialDataUnavailable(self.name, f"{path} returned HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise PartialDataUnavailable(self.name, f"{path} returned invalid JSON") from e

    def fetch_metrics(self, region: Region, period: Period) -> MetricSeries:
        payload = self._get(
            f"/market-data/all/{region.value}", params={"limit": METRICS_FETCH_LIMIT}
        )
        if not isinstance(payload, dict):
            raise PartialDataUnavailable(self.name, "metrics payload is not an object")

        price_points = [
            PricePerAreaPoint(
                month=self._safe_int(row.get("month")),
                year=self._safe_int(row.get("year")),
                value=self._safe_float(row.get("price_per_sqft"), 0.0) or 0.0,
                average_price=self._safe_float(row.get("average_price")),
                total_sales=self._safe_int(row.get("total_sales")),
                median_days_on_market=_opt_int(row.get("median_days_on_market")),
            )
            for row in dated_rows(payload.get("pricePerSqft") or [], PRICE_PER_AREA)
        ]
        dom_points = [
            DaysOnMarketPoint(
                month=self._safe_int(row.get("month")),
                year=self._safe_int(row.get("year")),
                average_days=self._safe_float(row.get("average_days_on_market"), 0.0) or 0.0,
                median_days=self._safe_float(row.get("median_days_on_market")),
            )
            for row in dated_rows(payload.get("daysOnMarket") or [], DAYS_ON_MARKET)
        ]
        price_window = trailing_window(price_points, period, TRAILING_MONTHS)
        dom_window = trailing_window(dom_points, period, TRAILING_MONTHS)
        logger.debug(
            "Fetched market metrics",
            extra={
                "region": region.value,
                "price_rows": len(price_window),
                "dom_rows": len(dom_window),
            },
        )
        return price_window, dom_window

    def fetch_listings(self, region: Region, period: Period) -> list[Listing]:
        payload = self._get(
            "/market-data/newsletter-data",
            params={"community": region.value, "month": period.month, "year": period.year},
        )
        if not isinstance(payload, dict) or not payload.get("success", True):
            raise PartialDataUnavailable(self.name, "newsletter data request was not successful")

        rows = (payload.get("data") or {}).get("mlsListings") or []
        listings = []
        for row in rows:
            mls = str(row.get("mls_number") or row.get("mls") or row.get("id") or "").strip()
            if not mls:
                continue
            listings.append(
                Listing(
                    id=mls,
                    status=ListingStatus.parse(row.get("status")),
                    price=self._safe_float(row.get("price"), 0.0) or 0.0,
                    address=str(row.get("address") or ""),
                    beds=self._safe_int(row.get("beds")),
                    baths=self._safe_float(row.get("baths"), 0.0) or 0.0,
                    area=self._safe_int(row.get("sqft")),
                    days_on_market=_opt_int(row.get("days_in_market", row.get("days_on_market"))),
                    year_built=_opt_int(row.get("year_built")),
                )
            )
        logger.debug(
            "Fetched listings", extra={"region": region.value, "listings": len(listings)}
        )
        return listings


def _opt_int(value: Any) -> int | None:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None
