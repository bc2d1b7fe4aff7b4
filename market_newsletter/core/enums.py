from __future__ import annotations

from enum import Enum


class Region(str, Enum):
    ANZA = "anza"
    AGUANGA = "aguanga"
    IDYLLWILD = "idyllwild"
    MOUNTAIN_CENTER = "mountain_center"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, value: str | Region) -> Region:
        """Parse a region, accepting hyphenated or mixed-case spellings."""
        if isinstance(value, Region):
            return value
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise ValueError(f"Invalid region '{value}'. Must be one of: {valid}") from None


class ListingStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    CLOSED = "closed"
    SOLD = "sold"
    EXPIRED = "expired"
    WITHDRAWN = "withdrawn"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> ListingStatus:
        if not value:
            return cls.UNKNOWN
        cleaned = value.strip().lower()
        if cleaned == "canceled":
            return cls.CANCELLED
        try:
            return cls(cleaned)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_closed(self) -> bool:
        return self in (ListingStatus.CLOSED, ListingStatus.SOLD)


class ChartKind(str, Enum):
    LINE = "line"
    BAR = "bar"
    DOUGHNUT = "doughnut"


class ValueFormat(str, Enum):
    CURRENCY = "currency"
    DAYS = "days"
    COUNT = "count"
    PERCENT = "percent"


class MarketTier(str, Enum):
    SELLER = "seller"
    BALANCED = "balanced"
    BUYER = "buyer"
