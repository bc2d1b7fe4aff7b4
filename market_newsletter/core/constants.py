"""Fixed export constants.

These are product decisions rather than runtime flags: page format, raster
oversampling, image load bound, palette, month tables and the
market-temperature presets.
"""

from __future__ import annotations

from .enums import MarketTier

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

MONTH_ABBREVIATIONS: tuple[str, ...] = tuple(name[:3] for name in MONTH_NAMES)

# Offscreen layout width in CSS-like pixels, independent of any display.
RENDER_WIDTH = 800
RENDER_PADDING = 40

RASTER_SCALE = 2
IMAGE_LOAD_TIMEOUT = 5.0

# A4 portrait in millimetres
PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0
PAGE_MARGIN_MM = 10.0

TRAILING_MONTHS = 6
TOP_LISTINGS = 10

PALETTE: dict[str, str] = {
    "primary": "#8b4513",
    "secondary": "#d2b48c",
    "accent": "#a0522d",
    "muted": "#deb887",
    "ink": "#1a1a1a",
    "paper": "#ffffff",
    "rule": "#e6d5bd",
    "placeholder": "#f4ede3",
}

SERIES_COLORS: tuple[str, ...] = (
    PALETTE["primary"],
    PALETTE["secondary"],
    PALETTE["accent"],
    PALETTE["muted"],
    "#6b3410",
)

PRICE_BUCKETS: tuple[tuple[str, float, float], ...] = (
    ("Under $400k", 0.0, 400_000.0),
    ("$400k-$600k", 400_000.0, 600_000.0),
    ("$600k-$800k", 600_000.0, 800_000.0),
    ("$800k-$1M", 800_000.0, 1_000_000.0),
    ("Over $1M", 1_000_000.0, float("inf")),
)

# active / (pending + closed)
SELLER_RATIO_BELOW = 2.0
BUYER_RATIO_ABOVE = 5.0

# (seller, balanced, buyer); each preset sums to 100
TEMPERATURE_PRESETS: dict[MarketTier, tuple[int, int, int]] = {
    MarketTier.SELLER: (60, 30, 10),
    MarketTier.BALANCED: (25, 50, 25),
    MarketTier.BUYER: (10, 30, 60),
}

TEMPERATURE_LABELS: tuple[str, str, str] = ("Seller's Market", "Balanced", "Buyer's Market")
