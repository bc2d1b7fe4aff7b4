"""MLS CSV export ingestion.

Turns a CSV export from the MLS (one row per listing, vendor column names)
into ``Listing`` records. Rows without an MLS number or a usable address are
skipped. The CSV carries no monthly aggregates, so ``fetch_metrics`` returns
empty series.
"""

from __future__ import annotations

import csv
import io
import re
from pathlib import Path
from typing import Any

from ..core.enums import ListingStatus, Region
from ..core.errors import PartialDataUnavailable
from ..core.logging_config import get_logger
from ..core.models import Listing, Period
from .base import MarketDataSource, MetricSeries

logger = get_logger(__name__)

STATUS_CODES: dict[str, ListingStatus] = {
    "A": ListingStatus.ACTIVE,
    "P": ListingStatus.PENDING,
    "C": ListingStatus.CLOSED,
    "S": ListingStatus.SOLD,
    "X": ListingStatus.EXPIRED,
    "W": ListingStatus.WITHDRAWN,
}

ADDRESS_COLUMNS = (
    "Street #",
    "Street Direction",
    "Street Name",
    "Post Direction",
    "Street Suffix",
)

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def parse_number(value: Any) -> float | None:
    """Parse '$425,000' style values; None when empty or unparseable."""
    if value is None:
        return None
    cleaned = _NON_NUMERIC.sub("", str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_status(code: str | None) -> ListingStatus:
    if not code or not code.strip():
        return ListingStatus.ACTIVE
    code = code.strip().upper()
    if code in STATUS_CODES:
        return STATUS_CODES[code]
    return ListingStatus.parse(code)


def parse_row(row: dict[str, str]) -> Listing | None:
    """Convert one CSV row to a Listing, or None when the row is unusable."""
    mls = (row.get("List Number") or "").strip()
    street = " ".join(
        (row.get(col) or "").strip() for col in ADDRESS_COLUMNS if (row.get(col) or "").strip()
    )
    if not street:
        city = (row.get("City") or "").strip()
        state = (row.get("State") or "").strip()
        street = ", ".join(part for part in (city, state) if part)
    if not mls or not street:
        return None

    price = parse_number(row.get("List Price")) or parse_number(row.get("Closed Price")) or 0.0
    beds = parse_number(row.get("Total Bedrooms"))
    baths = parse_number(row.get("Total Baths"))
    area = parse_number(row.get("Approx SqFt"))
    year_built = parse_number(row.get("Year Built"))
    dom = parse_number(row.get("Days on Market"))

    return Listing(
        id=mls,
        status=parse_status(row.get("Status")),
        price=price,
        address=street,
        beds=round(beds) if beds else 0,
        baths=baths or 0.0,
        area=round(area) if area else 0,
        days_on_market=round(dom) if dom is not None else None,
        year_built=round(year_built) if year_built else None,
    )


def parse_csv(text: str) -> tuple[list[Listing], int]:
    """Parse CSV text.

    Returns:
        Tuple of (listings, skipped row count)
    """
    reader = csv.DictReader(io.StringIO(text), skipinitialspace=True)
    if reader.fieldnames:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]
    listings: list[Listing] = []
    skipped = 0
    for row in reader:
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        listing = parse_row(row)
        if listing is None:
            skipped += 1
            continue
        listings.append(listing)
    return listings, skipped


class MlsCsvAdapter(MarketDataSource):
    """Listing source backed by an MLS CSV export on disk."""

    name = "mls-csv"

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def fetch_metrics(self, region: Region, period: Period) -> MetricSeries:
        return [], []

    def fetch_listings(self, region: Region, period: Period) -> list[Listing]:
        try:
            text = self.path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise PartialDataUnavailable(self.name, f"cannot read {self.path}: {e}") from e
        try:
            listings, skipped = parse_csv(text)
        except csv.Error as e:
            raise PartialDataUnavailable(self.name, f"cannot parse {self.path}: {e}") from e
        logger.info(
            f"Parsed {len(listings)} listings from CSV",
            extra={"path": str(self.path), "skipped": skipped, "region": region.value},
        )
        return listings
