"""Shared fixtures for newsletter tests."""

from __future__ import annotations

import pytest

from market_newsletter.adapters.base import MarketDataSource
from market_newsletter.core.enums import ListingStatus, Region
from market_newsletter.core.errors import PartialDataUnavailable
from market_newsletter.core.models import (
    DaysOnMarketPoint,
    Listing,
    Narrative,
    Period,
    PricePerAreaPoint,
    ReportRequest,
)


class StaticSource(MarketDataSource):
    """In-memory data source; pass an exception to make a fetch fail."""

    name = "static"

    def __init__(self, price_per_area=(), days_on_market=(), listings=(), metrics_error=None, listings_error=None):
        self.price_per_area = list(price_per_area)
        self.days_on_market = list(days_on_market)
        self.listings = list(listings)
        self.metrics_error = metrics_error
        self.listings_error = listings_error
        self.calls: list[str] = []

    def fetch_metrics(self, region, period):
        self.calls.append("metrics")
        if self.metrics_error:
            raise self.metrics_error
        return list(self.price_per_area), list(self.days_on_market)

    def fetch_listings(self, region, period):
        self.calls.append("listings")
        if self.listings_error:
            raise self.listings_error
        return list(self.listings)


def make_listing(index: int, status: ListingStatus, price: float = 450_000.0) -> Listing:
    return Listing(
        id=f"SW24{index:05d}",
        status=status,
        price=price,
        address=f"{100 + index} Cahuilla Rd, Anza, CA",
        beds=3,
        baths=2.0,
        area=1600 + index * 10,
        days_on_market=20 + index,
        year_built=1990,
    )


@pytest.fixture
def period() -> Period:
    return Period(month=3, year=2024)


@pytest.fixture
def price_points() -> list[PricePerAreaPoint]:
    return [
        PricePerAreaPoint(month=1, year=2024, value=295.0, average_price=480_000.0, total_sales=4, median_days_on_market=41),
        PricePerAreaPoint(month=2, year=2024, value=301.5, average_price=492_500.0, total_sales=6, median_days_on_market=38),
        PricePerAreaPoint(month=3, year=2024, value=310.0, average_price=505_000.0, total_sales=5, median_days_on_market=35),
    ]


@pytest.fixture
def dom_points() -> list[DaysOnMarketPoint]:
    return [
        DaysOnMarketPoint(month=1, year=2024, average_days=48.0, median_days=41.0),
        DaysOnMarketPoint(month=2, year=2024, average_days=44.0, median_days=38.0),
        DaysOnMarketPoint(month=3, year=2024, average_days=39.0, median_days=35.0),
    ]


@pytest.fixture
def anza_listings() -> list[Listing]:
    """Three active, one pending and one closed listing."""
    return [
        make_listing(1, ListingStatus.ACTIVE, 389_000.0),
        make_listing(2, ListingStatus.ACTIVE, 525_000.0),
        make_listing(3, ListingStatus.ACTIVE, 715_000.0),
        make_listing(4, ListingStatus.PENDING, 449_900.0),
        make_listing(5, ListingStatus.CLOSED, 610_000.0),
    ]


@pytest.fixture
def anza_request(period, price_points, anza_listings) -> ReportRequest:
    return ReportRequest(
        region=Region.ANZA,
        period=period,
        narrative=Narrative(
            analysis="Inventory in Anza stayed tight through the first quarter.",
            summary="Prices per square foot rose for the third straight month.",
        ),
        price_per_area=tuple(price_points),
        days_on_market=(),
        listings=tuple(anza_listings),
    )


@pytest.fixture
def full_request(anza_request, dom_points) -> ReportRequest:
    return ReportRequest(
        region=anza_request.region,
        period=anza_request.period,
        narrative=anza_request.narrative,
        price_per_area=anza_request.price_per_area,
        days_on_market=tuple(dom_points),
        listings=anza_request.listings,
    )


@pytest.fixture
def empty_request(period) -> ReportRequest:
    return ReportRequest(region=Region.IDYLLWILD, period=period)


@pytest.fixture
def unavailable() -> PartialDataUnavailable:
    return PartialDataUnavailable("static", "backend down")


@pytest.fixture
def static_source() -> type[StaticSource]:
    return StaticSource
