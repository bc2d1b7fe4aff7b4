from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from .constants import MONTH_NAMES
from .enums import ChartKind, ListingStatus, Region, ValueFormat
from .logging_config import get_logger

logger = get_logger(__name__)

PRICE_PER_AREA = "pricePerArea"
DAYS_ON_MARKET = "daysOnMarket"

MIN_YEAR = 2020
MAX_YEAR = 2050


@dataclass(frozen=True)
class Period:
    month: int
    year: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month {self.month}. Month must be 1-12")
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValueError(
                f"Invalid year {self.year}. Year must be {MIN_YEAR}-{MAX_YEAR}"
            )

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def ordinal(self) -> int:
        """Months since year zero, for chronological comparisons."""
        return self.year * 12 + (self.month - 1)


@dataclass(frozen=True)
class PricePerAreaPoint:
    month: int
    year: int
    value: float
    average_price: float | None = None
    total_sales: int | None = None
    median_days_on_market: int | None = None


@dataclass(frozen=True)
class DaysOnMarketPoint:
    month: int
    year: int
    average_days: float
    median_days: float | None = None


@dataclass(frozen=True)
class Listing:
    id: str
    status: ListingStatus
    price: float
    address: str
    beds: int = 0
    baths: float = 0.0
    area: int = 0
    days_on_market: int | None = None
    year_built: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "price": self.price,
            "address": self.address,
            "beds": self.beds,
            "baths": self.baths,
            "area": self.area,
            "daysOnMarket": self.days_on_market,
            "yearBuilt": self.year_built,
        }


@dataclass(frozen=True)
class Narrative:
    analysis: str
    summary: str


@dataclass(frozen=True)
class OverrideKey:
    """Identifies one displayed metric cell: (series name, row index, field name)."""

    series: str
    row: int
    field: str


# JSON field name -> dataclass attribute, per metric series
SERIES_FIELDS: dict[str, dict[str, str]] = {
    PRICE_PER_AREA: {
        "value": "value",
        "averagePrice": "average_price",
        "totalSales": "total_sales",
        "medianDaysOnMarket": "median_days_on_market",
    },
    DAYS_ON_MARKET: {
        "averageDays": "average_days",
        "medianDays": "median_days",
    },
}


@dataclass(frozen=True)
class ReportRequest:
    """Aggregated input to one newsletter export."""

    region: Region
    period: Period
    narrative: Narrative | None = None
    price_per_area: tuple[PricePerAreaPoint, ...] = ()
    days_on_market: tuple[DaysOnMarketPoint, ...] = ()
    listings: tuple[Listing, ...] = ()
    overrides: Mapping[OverrideKey, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReportRequest:
        """Build a request from its camelCase JSON shape."""
        period = data.get("period") or {}
        metrics = data.get("metrics") or {}
        narrative_data = data.get("narrative")
        narrative = None
        if narrative_data:
            narrative = Narrative(
                analysis=str(narrative_data.get("analysis", "")),
                summary=str(narrative_data.get("summary", "")),
            )
        return cls(
            region=Region.parse(data["region"]),
            period=Period(month=int(period["month"]), year=int(period["year"])),
            narrative=narrative,
            price_per_area=tuple(
                PricePerAreaPoint(
                    month=int(float(p["month"])),
                    year=int(float(p["year"])),
                    value=float(p["value"]),
                    average_price=_opt_float(p.get("averagePrice")),
                    total_sales=_opt_int(p.get("totalSales")),
                    median_days_on_market=_opt_int(p.get("medianDaysOnMarket")),
                )
                for p in dated_rows(metrics.get(PRICE_PER_AREA) or [], PRICE_PER_AREA)
            ),
            days_on_market=tuple(
                DaysOnMarketPoint(
                    month=int(float(p["month"])),
                    year=int(float(p["year"])),
                    average_days=float(p["averageDays"]),
                    median_days=_opt_float(p.get("medianDays")),
                )
                for p in dated_rows(metrics.get(DAYS_ON_MARKET) or [], DAYS_ON_MARKET)
            ),
            listings=tuple(
                Listing(
                    id=str(item["id"]),
                    status=ListingStatus.parse(item.get("status")),
                    price=float(item.get("price") or 0),
                    address=str(item.get("address", "")),
                    beds=int(item.get("beds") or 0),
                    baths=float(item.get("baths") or 0),
                    area=int(item.get("area") or 0),
                    days_on_market=_opt_int(item.get("daysOnMarket")),
                    year_built=_opt_int(item.get("yearBuilt")),
                )
                for item in data.get("listings", [])
            ),
            overrides={
                OverrideKey(series=o["series"], row=int(o["row"]), field=o["field"]): _override_value(
                    o.get("value")
                )
                for o in data.get("overrides", [])
            },
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "region": self.region.value,
            "period": {"month": self.period.month, "year": self.period.year},
            "metrics": {
                PRICE_PER_AREA: [
                    {
                        "month": p.month,
                        "year": p.year,
                        "value": p.value,
                        "averagePrice": p.average_price,
                        "totalSales": p.total_sales,
                        "medianDaysOnMarket": p.median_days_on_market,
                    }
                    for p in self.price_per_area
                ],
                DAYS_ON_MARKET: [
                    {
                        "month": p.month,
                        "year": p.year,
                        "averageDays": p.average_days,
                        "medianDays": p.median_days,
                    }
                    for p in self.days_on_market
                ],
            },
            "listings": [item.to_dict() for item in self.listings],
            "overrides": [
                {"series": k.series, "row": k.row, "field": k.field, "value": v}
                for k, v in self.overrides.items()
            ],
        }
        if self.narrative is not None:
            result["narrative"] = {
                "analysis": self.narrative.analysis,
                "summary": self.narrative.summary,
            }
        return result


@dataclass(frozen=True)
class EffectiveMetrics:
    """Metric rows as displayed: source values with overrides applied last."""

    price_per_area: tuple[PricePerAreaPoint, ...]
    days_on_market: tuple[DaysOnMarketPoint, ...]


def apply_overrides(request: ReportRequest) -> EffectiveMetrics:
    """Return copies of the metric rows with operator overrides applied.

    The request is never mutated. Overrides naming an unknown series, field or
    a row outside the series, and non-numeric values, are skipped with a
    warning.
    """
    rows: dict[str, list[Any]] = {
        PRICE_PER_AREA: list(request.price_per_area),
        DAYS_ON_MARKET: list(request.days_on_market),
    }
    for key, value in request.overrides.items():
        fields = SERIES_FIELDS.get(key.series)
        attr = fields.get(key.field) if fields else None
        series_rows = rows.get(key.series)
        if attr is None or series_rows is None or not 0 <= key.row < len(series_rows):
            logger.warning(
                "Ignoring override for missing metric cell",
                extra={"series": key.series, "row": key.row, "field": key.field},
            )
            continue
        if not _is_number(value):
            logger.warning(
                "Ignoring non-numeric override value",
                extra={"series": key.series, "row": key.row, "field": key.field, "value": repr(value)},
            )
            continue
        series_rows[key.row] = replace(series_rows[key.row], **{attr: value})
    return EffectiveMetrics(
        price_per_area=tuple(rows[PRICE_PER_AREA]),
        days_on_market=tuple(rows[DAYS_ON_MARKET]),
    )


def has_data(series: Sequence[Any]) -> bool:
    """True when a series has at least one value to draw."""
    return len(series) > 0


@dataclass(frozen=True)
class ChartSpec:
    kind: ChartKind
    title: str
    labels: tuple[str, ...]
    series: tuple[float, ...]
    value_format: ValueFormat = ValueFormat.COUNT

    def __post_init__(self) -> None:
        if not has_data(self.series):
            raise ValueError(f"Chart '{self.title}' has no data")
        if len(self.labels) != len(self.series):
            raise ValueError(
                f"Chart '{self.title}' has {len(self.labels)} labels "
                f"for {len(self.series)} values"
            )


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _opt_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(float(value))


def _row_month(row: Any) -> tuple[int, int] | None:
    if not isinstance(row, Mapping):
        return None
    try:
        month = int(float(row["month"]))
        year = int(float(row["year"]))
    except (KeyError, TypeError, ValueError, OverflowError):
        return None
    if not 1 <= month <= 12 or year <= 0:
        return None
    return month, year


def dated_rows(rows: Iterable[Any], series: str) -> list[Mapping[str, Any]]:
    """Keep the metric rows that carry a month (1-12) and a year.

    Rows without one cannot be placed on the month axis and are dropped with a
    warning.
    """
    kept = []
    for index, row in enumerate(rows):
        if _row_month(row) is None:
            logger.warning(
                "Dropping metric row without a valid month",
                extra={"series": series, "row": index},
            )
            continue
        kept.append(row)
    return kept


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _override_value(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Override value {value!r} is not a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Override value {value!r} is not a number") from None
    if not math.isfinite(number):
        raise ValueError(f"Override value {value!r} is not a finite number")
    return number
