"""Data aggregation for one newsletter export.

Metrics and listings are fetched concurrently. A failed fetch is not an error
for the export: the section is simply empty and renders a "no data"
placeholder. When no narrative is supplied one is synthesized from whatever
data came back, so the report never carries blank narrative text.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from ..adapters.base import MarketDataSource
from ..core.enums import Region
from ..core.errors import PartialDataUnavailable
from ..core.logging_config import get_logger
from ..core.models import (
    DaysOnMarketPoint,
    Listing,
    Narrative,
    OverrideKey,
    Period,
    PricePerAreaPoint,
    ReportRequest,
)
from .formatting import format_currency
from .materializer import count_statuses

logger = get_logger(__name__)


async def _fetch_metrics(
    source: MarketDataSource, region: Region, period: Period
) -> tuple[list[PricePerAreaPoint], list[DaysOnMarketPoint]]:
    try:
        return await asyncio.to_thread(source.fetch_metrics, region, period)
    except PartialDataUnavailable as e:
        logger.warning(
            "Market metrics unavailable, rendering without them",
            extra={"source": e.source, "error": str(e), "region": region.value},
        )
        return [], []


async def _fetch_listings(
    source: MarketDataSource, region: Region, period: Period
) -> list[Listing]:
    try:
        return await asyncio.to_thread(source.fetch_listings, region, period)
    except PartialDataUnavailable as e:
        logger.warning(
            "Listings unavailable, rendering without them",
            extra={"source": e.source, "error": str(e), "region": region.value},
        )
        return []


def synthesize_narrative(
    region: Region,
    period: Period,
    price_per_area: Sequence[PricePerAreaPoint],
    days_on_market: Sequence[DaysOnMarketPoint],
    listings: Sequence[Listing],
) -> Narrative:
    """Build analysis and summary sentences from the retrieved data."""
    place = region.display_name
    when = f"{period.month_name} {period.year}"

    if not price_per_area and not days_on_market and not listings:
        message = f"No market data was available for {place} in {when}."
        return Narrative(analysis=message, summary=message)

    counts = count_statuses(listings)
    prices = [listing.price for listing in listings if listing.price > 0]
    analysis_parts: list[str] = []
    if listings:
        active_share = counts.active / len(listings) * 100
        analysis_parts.append(
            f"Market activity in {place} shows {active_share:.1f}% active listings"
        )
        if prices:
            analysis_parts[-1] += f" with a median price of {format_currency(float(np.median(prices)))}"
        analysis_parts[-1] += "."
    if days_on_market:
        latest = days_on_market[-1]
        analysis_parts.append(f"Average days on market: {latest.average_days:.0f}.")
    elif listings:
        doms = [listing.days_on_market for listing in listings if listing.days_on_market is not None]
        if doms:
            analysis_parts.append(f"Average days on market: {float(np.mean(doms)):.0f}.")
    if not analysis_parts:
        analysis_parts.append(f"Market activity in {place} for {when} is summarized below.")

    summary_parts: list[str] = []
    if listings:
        summary_parts.append(
            f"{when} saw {counts.active} active, {counts.pending} pending and "
            f"{counts.closed} closed listings in {place}."
        )
    if price_per_area:
        first, last = price_per_area[0], price_per_area[-1]
        if len(price_per_area) > 1 and first.value > 0:
            change = (last.value - first.value) / first.value * 100
            direction = "up" if change >= 0 else "down"
            summary_parts.append(
                f"Price per square foot is {direction} {abs(change):.1f}% over the last "
                f"{len(price_per_area)} months, at {format_currency(last.value)}."
            )
        else:
            summary_parts.append(f"Price per square foot stands at {format_currency(last.value)}.")
    if not summary_parts:
        summary_parts.append(f"No listing activity was reported for {place} in {when}.")

    return Narrative(analysis=" ".join(analysis_parts), summary=" ".join(summary_parts))


async def aggregate(
    region: Region,
    period: Period,
    *,
    metrics_source: MarketDataSource,
    listings_source: MarketDataSource | None = None,
    narrative: Narrative | None = None,
    overrides: Mapping[OverrideKey, Any] | None = None,
) -> ReportRequest:
    """Collect metrics, listings and narrative into one ReportRequest.

    Args:
        region: Region the newsletter covers
        period: Reporting month
        metrics_source: Source for the monthly metric series
        listings_source: Source for listings (defaults to ``metrics_source``)
        narrative: Operator-written narrative; synthesized when omitted
        overrides: Operator corrections of displayed metric cells

    Returns:
        The aggregated request. Never raises for missing data.
    """
    listings_source = listings_source or metrics_source
    (price_rows, dom_rows), listings = await asyncio.gather(
        _fetch_metrics(metrics_source, region, period),
        _fetch_listings(listings_source, region, period),
    )

    if narrative is None:
        narrative = synthesize_narrative(region, period, price_rows, dom_rows, listings)

    logger.info(
        "Aggregated report data",
        extra={
            "region": region.value,
            "month": period.month,
            "year": period.year,
            "price_rows": len(price_rows),
            "dom_rows": len(dom_rows),
            "listings": len(listings),
        },
    )
    return ReportRequest(
        region=region,
        period=period,
        narrative=narrative,
        price_per_area=tuple(price_rows),
        days_on_market=tuple(dom_rows),
        listings=tuple(listings),
        overrides=dict(overrides or {}),
    )
