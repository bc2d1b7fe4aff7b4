"""Render tree construction for the offscreen newsletter renderer.

The tree is laid out once per export at a fixed nominal width, with every
block carrying absolute pixel geometry. Styles come from a small stylesheet
cascade (base, then block kind, then per-block inline values) and are resolved
into a ``ComputedStyle`` on each node while the tree is built, so the capture
step never consults the stylesheet.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from ..core.branding import Branding
from ..core.constants import PALETTE, RENDER_PADDING, RENDER_WIDTH, TOP_LISTINGS
from ..core.enums import ValueFormat
from ..core.models import ChartSpec, EffectiveMetrics, ReportRequest, apply_overrides
from ..report.formatting import (
    format_currency,
    format_days,
    format_optional,
    format_value,
    month_label,
)
from ..report.materializer import count_statuses
from .fonts import get_font


class BlockKind(str, Enum):
    HEADER = "header"
    TEXT = "text"
    TABLE = "table"
    CHART = "chart"
    PLACEHOLDER = "placeholder"
    FOOTER = "footer"


@dataclass(frozen=True)
class ComputedStyle:
    font_size: int = 12
    heading_size: int = 16
    bold: bool = False
    color: str = PALETTE["ink"]
    heading_color: str = PALETTE["primary"]
    background: str | None = None
    border_color: str | None = None
    accent_color: str = PALETTE["secondary"]
    padding: int = 12
    line_height: float = 1.5
    row_height: int = 26


STYLESHEET: dict[str, dict[str, Any]] = {
    "base": {
        "font_size": 12,
        "color": PALETTE["ink"],
        "padding": 12,
    },
    BlockKind.HEADER.value: {
        "font_size": 14,
        "heading_size": 28,
        "background": PALETTE["primary"],
        "color": PALETTE["paper"],
        "heading_color": PALETTE["paper"],
        "padding": 24,
    },
    BlockKind.TEXT.value: {
        "heading_size": 18,
        "line_height": 1.55,
    },
    BlockKind.TABLE.value: {
        "font_size": 11,
        "heading_size": 16,
        "border_color": PALETTE["rule"],
        "accent_color": PALETTE["placeholder"],
    },
    BlockKind.CHART.value: {
        "border_color": PALETTE["rule"],
        "padding": 8,
    },
    BlockKind.PLACEHOLDER.value: {
        "font_size": 13,
        "color": PALETTE["accent"],
        "background": PALETTE["placeholder"],
        "border_color": PALETTE["muted"],
    },
    BlockKind.FOOTER.value: {
        "font_size": 10,
        "color": PALETTE["paper"],
        "background": PALETTE["ink"],
        "padding": 16,
    },
}


def resolve_style(kind: BlockKind, inline: Mapping[str, Any] | None = None) -> ComputedStyle:
    """Resolve base, kind and inline declarations into one computed style."""
    values: dict[str, Any] = {}
    values.update(STYLESHEET["base"])
    values.update(STYLESHEET.get(kind.value, {}))
    if inline:
        values.update(inline)
    return ComputedStyle(**values)


@dataclass(frozen=True)
class Box:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class Block:
    kind: BlockKind
    box: Box
    style: ComputedStyle


@dataclass(frozen=True)
class HeaderBlock(Block):
    title: str = ""
    subtitle: str = ""
    tagline: str = ""
    logo_source: str | None = None
    logo_box: Box | None = None


@dataclass(frozen=True)
class TextBlock(Block):
    heading: str = ""
    lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class TableBlock(Block):
    title: str = ""
    columns: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()
    column_widths: tuple[int, ...] = ()

    def cell(self, row: int, column: str) -> str:
        return self.rows[row][self.columns.index(column)]


@dataclass(frozen=True)
class ChartBlock(Block):
    name: str = ""
    spec: ChartSpec | None = None


@dataclass(frozen=True)
class PlaceholderBlock(Block):
    message: str = ""


@dataclass(frozen=True)
class FooterBlock(Block):
    lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class RenderTree:
    width: int
    height: int
    blocks: tuple[Block, ...] = field(default_factory=tuple)

    def image_sources(self) -> list[str]:
        """Every external image the capture depends on."""
        return [
            b.logo_source
            for b in self.blocks
            if isinstance(b, HeaderBlock) and b.logo_source
        ]

    def find(self, kind: type[Block]) -> list[Any]:
        return [b for b in self.blocks if isinstance(b, kind)]

    def table(self, title: str) -> TableBlock:
        for block in self.find(TableBlock):
            if block.title == title:
                return block
        raise KeyError(title)


def wrap_text(text: str, font: Any, max_width: float) -> list[str]:
    """Greedy word wrap using the font's advance widths."""
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if font.getlength(candidate) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


SNAPSHOT_TABLE = "Market Snapshot"
PRICE_TABLE = "Monthly Price Trends"
DOM_TABLE = "Monthly Days on Market"
LISTINGS_TABLE = "Featured Listings"

BLOCK_GAP = 16
HEADER_HEIGHT = 150
LOGO_SIZE = 96
CHART_HEIGHT = 340
PLACEHOLDER_HEIGHT = 64


class _Layout:
    """Stacks blocks vertically inside the fixed-width page column."""

    def __init__(self, width: int):
        self.width = width
        self.inner_width = width - 2 * RENDER_PADDING
        self.y = 0
        self.blocks: list[Block] = []

    def add_full_width(self, block_type: type[Block], height: int, **fields: Any) -> None:
        kind = fields.pop("kind")
        inline = fields.pop("inline", None)
        block = block_type(
            kind=kind,
            box=Box(0, self.y, self.width, height),
            style=resolve_style(kind, inline),
            **fields,
        )
        self.blocks.append(block)
        self.y += height + BLOCK_GAP

    def add(self, block_type: type[Block], height: int, **fields: Any) -> None:
        kind = fields.pop("kind")
        inline = fields.pop("inline", None)
        block = block_type(
            kind=kind,
            box=Box(RENDER_PADDING, self.y, self.inner_width, height),
            style=resolve_style(kind, inline),
            **fields,
        )
        self.blocks.append(block)
        self.y += height + BLOCK_GAP

    def text(self, heading: str, body: str) -> None:
        style = resolve_style(BlockKind.TEXT)
        body_font = get_font(False, style.font_size)
        lines = tuple(wrap_text(body, body_font, self.inner_width - 2 * style.padding))
        line_px = int(style.font_size * style.line_height)
        heading_px = int(style.heading_size * 1.4)
        height = 2 * style.padding + heading_px + len(lines) * line_px
        self.add(TextBlock, height, kind=BlockKind.TEXT, heading=heading, lines=lines)

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[str]],
        weights: Sequence[int],
    ) -> None:
        style = resolve_style(BlockKind.TABLE)
        total = sum(weights)
        usable = self.inner_width - 2 * style.padding
        widths = [usable * w // total for w in weights]
        widths[-1] += usable - sum(widths)
        heading_px = int(style.heading_size * 1.6)
        height = 2 * style.padding + heading_px + (len(rows) + 1) * style.row_height
        self.add(
            TableBlock,
            height,
            kind=BlockKind.TABLE,
            title=title,
            columns=tuple(columns),
            rows=tuple(tuple(r) for r in rows),
            column_widths=tuple(widths),
        )

    def placeholder(self, message: str) -> None:
        self.add(PlaceholderBlock, PLACEHOLDER_HEIGHT, kind=BlockKind.PLACEHOLDER, message=message)


def _snapshot_rows(request: ReportRequest, metrics: EffectiveMetrics) -> list[tuple[str, str]]:
    counts = count_statuses(request.listings)
    prices = [listing.price for listing in request.listings if listing.price > 0]
    rows = [
        ("Active Listings", format_value(counts.active, ValueFormat.COUNT)),
        ("Pending Listings", format_value(counts.pending, ValueFormat.COUNT)),
        ("Closed Sales", format_value(counts.closed, ValueFormat.COUNT)),
        (
            "Median List Price",
            format_currency(float(np.median(prices))) if prices else "N/A",
        ),
    ]
    if metrics.days_on_market:
        rows.append(("Average Days on Market", format_days(metrics.days_on_market[-1].average_days)))
    else:
        doms = [item.days_on_market for item in request.listings if item.days_on_market is not None]
        rows.append(
            ("Average Days on Market", format_days(float(np.mean(doms))) if doms else "N/A")
        )
    if metrics.price_per_area:
        rows.append(("Price per Sq Ft", format_currency(metrics.price_per_area[-1].value)))
    return rows


def build_tree(
    request: ReportRequest,
    charts: Mapping[str, ChartSpec],
    branding: Branding,
    *,
    logo_source: str | None = None,
    width: int = RENDER_WIDTH,
) -> RenderTree:
    """Lay out the complete newsletter for one export.

    Table values come from the request with overrides applied last. Charts are
    placed in the mapping's order; a metric section without data gets a
    placeholder block instead of a table.
    """
    metrics = apply_overrides(request)
    layout = _Layout(width)
    logo = logo_source or branding.logo

    header_style = resolve_style(BlockKind.HEADER)
    logo_box = None
    if logo:
        logo_box = Box(
            width - header_style.padding - LOGO_SIZE,
            (HEADER_HEIGHT - LOGO_SIZE) // 2,
            LOGO_SIZE,
            LOGO_SIZE,
        )
    layout.add_full_width(
        HeaderBlock,
        HEADER_HEIGHT,
        kind=BlockKind.HEADER,
        title=f"{request.region.display_name} Market Report",
        subtitle=f"{request.period.month_name.upper()}, {request.period.year}",
        tagline=f"{branding.name} | {branding.tagline}",
        logo_source=logo,
        logo_box=logo_box,
    )

    narrative = request.narrative
    if narrative is not None:
        if narrative.analysis:
            layout.text("Market Analysis", narrative.analysis)
        if narrative.summary:
            layout.text("Summary", narrative.summary)

    layout.table(SNAPSHOT_TABLE, ("Metric", "Value"), _snapshot_rows(request, metrics), (3, 2))

    if metrics.price_per_area:
        layout.table(
            PRICE_TABLE,
            ("Month", "Price/Sq Ft", "Avg Price", "Total Sales", "Median DOM"),
            [
                (
                    month_label(r.month, r.year),
                    format_currency(r.value),
                    format_optional(r.average_price, ValueFormat.CURRENCY),
                    format_optional(r.total_sales, ValueFormat.COUNT),
                    format_optional(r.median_days_on_market, ValueFormat.DAYS),
                )
                for r in metrics.price_per_area
            ],
            (2, 2, 2, 2, 2),
        )
    else:
        layout.placeholder("No price per square foot data available")

    if metrics.days_on_market:
        layout.table(
            DOM_TABLE,
            ("Month", "Average Days", "Median Days"),
            [
                (
                    month_label(r.month, r.year),
                    format_days(r.average_days),
                    format_optional(r.median_days, ValueFormat.DAYS),
                )
                for r in metrics.days_on_market
            ],
            (2, 2, 2),
        )
    else:
        layout.placeholder("No days on market data available")

    for name, spec in charts.items():
        layout.add(ChartBlock, CHART_HEIGHT, kind=BlockKind.CHART, name=name, spec=spec)

    if request.listings:
        top = sorted(request.listings, key=lambda item: item.price, reverse=True)[:TOP_LISTINGS]
        layout.table(
            LISTINGS_TABLE,
            ("Address", "Status", "Price", "Bd/Ba", "Sq Ft", "DOM"),
            [
                (
                    item.address,
                    item.status.value.title(),
                    format_currency(item.price),
                    f"{item.beds}/{item.baths:g}",
                    format_value(item.area, ValueFormat.COUNT) if item.area else "N/A",
                    str(item.days_on_market) if item.days_on_market is not None else "N/A",
                )
                for item in top
            ],
            (6, 2, 2, 2, 2, 1),
        )
    else:
        layout.placeholder("No listing data available")

    footer_lines = tuple(line for line in (branding.name, branding.contact) if line)
    footer_style = resolve_style(BlockKind.FOOTER)
    footer_height = 2 * footer_style.padding + len(footer_lines) * int(
        footer_style.font_size * footer_style.line_height
    )
    layout.add_full_width(FooterBlock, footer_height, kind=BlockKind.FOOTER, lines=footer_lines)

    total_height = layout.y - BLOCK_GAP
    return RenderTree(width=width, height=total_height, blocks=tuple(layout.blocks))
