"""Chart materialization: report data to renderable ChartSpec objects.

Each chart slot derives its labels and series from one part of the request.
A slot whose series would be empty is left out of the result entirely, so the
renderer never sees a zero-filled or placeholder chart.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..core.constants import (
    BUYER_RATIO_ABOVE,
    PRICE_BUCKETS,
    SELLER_RATIO_BELOW,
    TEMPERATURE_LABELS,
    TEMPERATURE_PRESETS,
)
from ..core.enums import ChartKind, ListingStatus, MarketTier, ValueFormat
from ..core.logging_config import get_logger
from ..core.models import (
    ChartSpec,
    EffectiveMetrics,
    Listing,
    ReportRequest,
    apply_overrides,
    has_data,
)
from .formatting import month_label

logger = get_logger(__name__)

PRICE_PER_AREA_CHART = "price_per_area"
MEDIAN_SOLD_PRICE_CHART = "median_sold_price"
DAYS_ON_MARKET_CHART = "days_on_market"
STATUS_BREAKDOWN_CHART = "status_breakdown"
PRICE_RANGE_CHART = "price_range_distribution"
MARKET_TEMPERATURE_CHART = "market_temperature"


@dataclass(frozen=True)
class StatusCounts:
    active: int = 0
    pending: int = 0
    closed: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.active + self.pending + self.closed + self.other


def count_statuses(listings: Sequence[Listing]) -> StatusCounts:
    active = pending = closed = other = 0
    for listing in listings:
        if listing.status is ListingStatus.ACTIVE:
            active += 1
        elif listing.status is ListingStatus.PENDING:
            pending += 1
        elif listing.status.is_closed:
            closed += 1
        else:
            other += 1
    return StatusCounts(active=active, pending=pending, closed=closed, other=other)


def market_tier(active: int, pending: int, closed: int) -> MarketTier | None:
    """Classify the market from the active to (pending + closed) ratio.

    Returns None when there are no active, pending or closed listings.
    """
    absorbed = pending + closed
    if active + absorbed == 0:
        return None
    if absorbed == 0:
        return MarketTier.BUYER
    ratio = active / absorbed
    if ratio < SELLER_RATIO_BELOW:
        return MarketTier.SELLER
    if ratio > BUYER_RATIO_ABOVE:
        return MarketTier.BUYER
    return MarketTier.BALANCED


def market_temperature(active: int, pending: int, closed: int) -> tuple[int, int, int] | None:
    """(seller, balanced, buyer) percentages for the listing mix."""
    tier = market_tier(active, pending, closed)
    return TEMPERATURE_PRESETS[tier] if tier is not None else None


def _build(
    kind: ChartKind,
    title: str,
    labels: Sequence[str],
    series: Sequence[float],
    value_format: ValueFormat,
) -> ChartSpec | None:
    if not has_data(series):
        return None
    return ChartSpec(
        kind=kind,
        title=title,
        labels=tuple(labels),
        series=tuple(float(v) for v in series),
        value_format=value_format,
    )


def _price_per_area(request: ReportRequest, metrics: EffectiveMetrics) -> ChartSpec | None:
    rows = metrics.price_per_area
    return _build(
        ChartKind.LINE,
        "Price per Sq Ft",
        [month_label(r.month, r.year) for r in rows],
        [r.value for r in rows],
        ValueFormat.CURRENCY,
    )


def _median_sold_price(request: ReportRequest, metrics: EffectiveMetrics) -> ChartSpec | None:
    rows = [r for r in metrics.price_per_area if r.average_price is not None]
    return _build(
        ChartKind.LINE,
        "Median Sold Price",
        [month_label(r.month, r.year) for r in rows],
        [r.average_price for r in rows if r.average_price is not None],
        ValueFormat.CURRENCY,
    )


def _days_on_market(request: ReportRequest, metrics: EffectiveMetrics) -> ChartSpec | None:
    rows = metrics.days_on_market
    return _build(
        ChartKind.BAR,
        "Average Days on Market",
        [month_label(r.month, r.year) for r in rows],
        [r.average_days for r in rows],
        ValueFormat.DAYS,
    )


def _status_breakdown(request: ReportRequest, metrics: EffectiveMetrics) -> ChartSpec | None:
    if not has_data(request.listings):
        return None
    counts = count_statuses(request.listings)
    return _build(
        ChartKind.DOUGHNUT,
        "Listing Status",
        ["Active", "Pending", "Closed", "Other"],
        [counts.active, counts.pending, counts.closed, counts.other],
        ValueFormat.COUNT,
    )


def _price_ranges(request: ReportRequest, metrics: EffectiveMetrics) -> ChartSpec | None:
    prices = [listing.price for listing in request.listings if listing.price > 0]
    if not has_data(prices):
        return None
    counts = [sum(1 for p in prices if low <= p < high) for _, low, high in PRICE_BUCKETS]
    return _build(
        ChartKind.BAR,
        "Price Range Distribution",
        [label for label, _, _ in PRICE_BUCKETS],
        counts,
        ValueFormat.COUNT,
    )


def _market_temperature(request: ReportRequest, metrics: EffectiveMetrics) -> ChartSpec | None:
    counts = count_statuses(request.listings)
    split = market_temperature(counts.active, counts.pending, counts.closed)
    if split is None:
        return None
    return _build(
        ChartKind.DOUGHNUT,
        "Market Temperature",
        TEMPERATURE_LABELS,
        split,
        ValueFormat.PERCENT,
    )


# Slot order is the order charts appear in the newsletter
CHART_SLOTS: dict[str, Callable[[ReportRequest, EffectiveMetrics], ChartSpec | None]] = {
    PRICE_PER_AREA_CHART: _price_per_area,
    MEDIAN_SOLD_PRICE_CHART: _median_sold_price,
    DAYS_ON_MARKET_CHART: _days_on_market,
    STATUS_BREAKDOWN_CHART: _status_breakdown,
    PRICE_RANGE_CHART: _price_ranges,
    MARKET_TEMPERATURE_CHART: _market_temperature,
}


def materialize(request: ReportRequest) -> dict[str, ChartSpec]:
    """Derive every chart that has data, keyed by slot name in slot order."""
    metrics = apply_overrides(request)
    charts: dict[str, ChartSpec] = {}
    for name, build in CHART_SLOTS.items():
        spec = build(request, metrics)
        if spec is None:
            logger.debug("No data for chart, omitting", extra={"chart": name})
            continue
        charts[name] = spec
    logger.info(
        f"Materialized {len(charts)}/{len(CHART_SLOTS)} charts",
        extra={"region": request.region.value, "charts": list(charts)},
    )
    return charts
