"""Tests for chart materialization."""

from __future__ import annotations

import dataclasses
import itertools

import pytest

from market_newsletter.core.enums import ChartKind, ListingStatus, MarketTier, Region
from market_newsletter.core.models import (
    ChartSpec,
    DaysOnMarketPoint,
    OverrideKey,
    Period,
    PricePerAreaPoint,
    ReportRequest,
    apply_overrides,
    has_data,
)
from market_newsletter.report.formatting import month_label
from market_newsletter.report.materializer import (
    CHART_SLOTS,
    DAYS_ON_MARKET_CHART,
    MARKET_TEMPERATURE_CHART,
    MEDIAN_SOLD_PRICE_CHART,
    PRICE_PER_AREA_CHART,
    PRICE_RANGE_CHART,
    STATUS_BREAKDOWN_CHART,
    count_statuses,
    market_temperature,
    market_tier,
    materialize,
)


class TestChartOmission:
    """Charts without backing data are left out entirely."""

    def test_empty_request_has_no_charts(self, empty_request: ReportRequest) -> None:
        assert materialize(empty_request) == {}

    def test_missing_price_series_omits_price_charts(self, full_request: ReportRequest) -> None:
        request = dataclasses.replace(full_request, price_per_area=())
        charts = materialize(request)
        assert PRICE_PER_AREA_CHART not in charts
        assert MEDIAN_SOLD_PRICE_CHART not in charts
        assert DAYS_ON_MARKET_CHART in charts

    def test_missing_dom_series_omits_dom_chart(self, full_request: ReportRequest) -> None:
        request = dataclasses.replace(full_request, days_on_market=())
        charts = materialize(request)
        assert DAYS_ON_MARKET_CHART not in charts
        assert PRICE_PER_AREA_CHART in charts

    def test_missing_listings_omits_listing_charts(self, full_request: ReportRequest) -> None:
        request = dataclasses.replace(full_request, listings=())
        charts = materialize(request)
        for name in (STATUS_BREAKDOWN_CHART, PRICE_RANGE_CHART, MARKET_TEMPERATURE_CHART):
            assert name not in charts

    def test_rows_without_average_price_omit_median_sold_price(self, full_request: ReportRequest) -> None:
        rows = tuple(dataclasses.replace(p, average_price=None) for p in full_request.price_per_area)
        charts = materialize(dataclasses.replace(full_request, price_per_area=rows))
        assert MEDIAN_SOLD_PRICE_CHART not in charts
        assert PRICE_PER_AREA_CHART in charts

    def test_full_request_materializes_every_slot_in_order(self, full_request: ReportRequest) -> None:
        charts = materialize(full_request)
        assert list(charts) == list(CHART_SLOTS)

    def test_every_chart_has_data(self, full_request: ReportRequest) -> None:
        for spec in materialize(full_request).values():
            assert has_data(spec.series)
            assert len(spec.labels) == len(spec.series)


class TestLabels:
    def test_month_label_is_abbreviation_and_year(self) -> None:
        assert month_label(1, 2024) == "Jan 2024"
        assert month_label(12, 2023) == "Dec 2023"

    def test_month_label_rejects_invalid_month(self) -> None:
        with pytest.raises(ValueError):
            month_label(13, 2024)

    def test_price_chart_labels_are_deterministic(self) -> None:
        request = ReportRequest(
            region=Region.ANZA,
            period=Period(1, 2024),
            price_per_area=(PricePerAreaPoint(month=1, year=2024, value=300.0),),
        )
        first = materialize(request)[PRICE_PER_AREA_CHART]
        second = materialize(request)[PRICE_PER_AREA_CHART]
        assert first.labels == ("Jan 2024",)
        assert first == second


class TestOverrides:
    def test_override_replaces_chart_value(self, full_request: ReportRequest) -> None:
        request = dataclasses.replace(
            full_request, overrides={OverrideKey("pricePerArea", 0, "value"): 333.0}
        )
        spec = materialize(request)[PRICE_PER_AREA_CHART]
        assert spec.series[0] == 333.0
        assert spec.series[1] == 301.5

    def test_override_does_not_mutate_request(self, full_request: ReportRequest) -> None:
        request = dataclasses.replace(
            full_request, overrides={OverrideKey("daysOnMarket", 2, "averageDays"): 12.0}
        )
        spec = materialize(request)[DAYS_ON_MARKET_CHART]
        assert spec.series[2] == 12.0
        assert request.days_on_market[2].average_days == 39.0

    def test_invalid_override_is_ignored(self, full_request: ReportRequest) -> None:
        request = dataclasses.replace(
            full_request,
            overrides={
                OverrideKey("pricePerArea", 9, "value"): 1.0,
                OverrideKey("pricePerArea", 0, "bogus"): 1.0,
                OverrideKey("unknownSeries", 0, "value"): 1.0,
            },
        )
        assert materialize(request) == materialize(full_request)

    @pytest.mark.parametrize("value", ["515000", None, float("inf"), True])
    def test_non_numeric_override_value_is_ignored(self, full_request: ReportRequest, value) -> None:
        request = dataclasses.replace(
            full_request, overrides={OverrideKey("pricePerArea", 0, "averagePrice"): value}
        )
        metrics = apply_overrides(request)
        assert metrics.price_per_area[0].average_price == 480_000.0
        assert materialize(request) == materialize(full_request)


class TestMarketTemperature:
    def test_no_listings_has_no_tier(self) -> None:
        assert market_tier(0, 0, 0) is None
        assert market_temperature(0, 0, 0) is None

    def test_only_active_is_buyer_market(self) -> None:
        assert market_tier(4, 0, 0) is MarketTier.BUYER

    @pytest.mark.parametrize(
        ("active", "absorbed", "tier"),
        [
            (1, 1, MarketTier.SELLER),
            (3, 2, MarketTier.SELLER),
            (4, 2, MarketTier.BALANCED),
            (10, 2, MarketTier.BALANCED),
            (11, 2, MarketTier.BUYER),
        ],
    )
    def test_tier_thresholds(self, active: int, absorbed: int, tier: MarketTier) -> None:
        assert market_tier(active, absorbed, 0) is tier

    def test_presets_sum_to_one_hundred(self) -> None:
        for active in range(0, 20):
            split = market_temperature(active, 1, 1)
            assert split is not None
            assert sum(split) == 100

    def test_bands_are_monotonic_in_activity_ratio(self) -> None:
        """Holding pending + closed fixed, more active listings never raises the
        seller band and never lowers the buyer band."""
        for pending, closed in itertools.product(range(0, 4), repeat=2):
            if pending + closed == 0:
                continue
            previous = None
            for active in range(0, 40):
                split = market_temperature(active, pending, closed)
                assert split is not None
                if previous is not None:
                    assert split[0] <= previous[0]
                    assert split[2] >= previous[2]
                previous = split


class TestStatusCounts:
    def test_sold_counts_as_closed(self, anza_listings) -> None:
        listings = [*anza_listings, dataclasses.replace(anza_listings[0], status=ListingStatus.SOLD)]
        counts = count_statuses(listings)
        assert (counts.active, counts.pending, counts.closed) == (3, 1, 2)

    def test_other_statuses_are_counted_separately(self, anza_listings) -> None:
        listings = [*anza_listings, dataclasses.replace(anza_listings[0], status=ListingStatus.EXPIRED)]
        counts = count_statuses(listings)
        assert counts.other == 1
        assert counts.total == 6


class TestAnzaScenario:
    """Anza, March 2024: three months of price data, no DOM data, 3/1/1 listings."""

    def test_charts(self, anza_request: ReportRequest) -> None:
        charts = materialize(anza_request)
        assert PRICE_PER_AREA_CHART in charts
        assert DAYS_ON_MARKET_CHART not in charts
        assert charts[PRICE_PER_AREA_CHART].labels == ("Jan 2024", "Feb 2024", "Mar 2024")

    def test_temperature_is_seller_tier(self, anza_request: ReportRequest) -> None:
        charts = materialize(anza_request)
        assert charts[MARKET_TEMPERATURE_CHART].series == (60.0, 30.0, 10.0)
        assert market_tier(3, 1, 1) is MarketTier.SELLER

    def test_status_breakdown(self, anza_request: ReportRequest) -> None:
        spec = materialize(anza_request)[STATUS_BREAKDOWN_CHART]
        assert spec.kind is ChartKind.DOUGHNUT
        assert dict(zip(spec.labels, spec.series)) == {
            "Active": 3.0,
            "Pending": 1.0,
            "Closed": 1.0,
            "Other": 0.0,
        }

    def test_price_ranges(self, anza_request: ReportRequest) -> None:
        spec = materialize(anza_request)[PRICE_RANGE_CHART]
        assert spec.series == (1.0, 2.0, 2.0, 0.0, 0.0)


class TestChartSpec:
    def test_rejects_empty_series(self) -> None:
        with pytest.raises(ValueError, match="no data"):
            ChartSpec(kind=ChartKind.LINE, title="Empty", labels=(), series=())

    def test_rejects_mismatched_labels(self) -> None:
        with pytest.raises(ValueError, match="labels"):
            ChartSpec(kind=ChartKind.BAR, title="Bad", labels=("a",), series=(1.0, 2.0))


def test_dom_chart_is_bar_of_average_days(dom_points) -> None:
    request = ReportRequest(
        region=Region.AGUANGA,
        period=Period(3, 2024),
        days_on_market=tuple(dom_points) + (DaysOnMarketPoint(month=4, year=2024, average_days=30.0),),
    )
    spec = materialize(request)[DAYS_ON_MARKET_CHART]
    assert spec.kind is ChartKind.BAR
    assert spec.series == (48.0, 44.0, 39.0, 30.0)
