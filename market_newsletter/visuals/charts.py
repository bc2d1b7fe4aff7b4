"""Chart rendering for materialized newsletter charts."""

from __future__ import annotations

import importlib
from collections.abc import Callable
from io import BytesIO
from typing import Any

import numpy as np

from ..core.constants import PALETTE, SERIES_COLORS
from ..core.enums import ChartKind
from ..core.logging_config import get_logger
from ..core.models import ChartSpec
from ..report.formatting import format_tick, format_value

logger = get_logger(__name__)


class ChartBackendUnavailable(RuntimeError):
    """The plotting backend could not be loaded."""

    pass


def acquire_chart_backend() -> Any:
    """Load matplotlib with the non-interactive Agg backend.

    Returns:
        The ``matplotlib.figure`` module

    Raises:
        ChartBackendUnavailable: If matplotlib cannot be imported or configured
    """
    try:
        matplotlib = importlib.import_module("matplotlib")
        # Use non-interactive backend for server environments
        matplotlib.use("Agg")
        return importlib.import_module("matplotlib.figure")
    except (ImportError, ValueError, RuntimeError) as e:
        raise ChartBackendUnavailable(f"matplotlib unavailable: {e}") from e


class ChartGenerator:
    """Render ChartSpec objects to PNG images using matplotlib.

    Figures are created through ``matplotlib.figure.Figure`` rather than
    pyplot, so no global figure registry is shared between exports.
    """

    def __init__(self, figure_module: Any | None = None, dpi: int = 100):
        """Initialize chart generator.

        Args:
            figure_module: Loaded ``matplotlib.figure`` module (acquired when None)
            dpi: Resolution for chart images (default: 100)
        """
        self._figure_module = figure_module or acquire_chart_backend()
        self.dpi = dpi
        self._renderers: dict[ChartKind, Callable[[Any, ChartSpec], None]] = {
            ChartKind.LINE: self._draw_line,
            ChartKind.BAR: self._draw_bar,
            ChartKind.DOUGHNUT: self._draw_doughnut,
        }

    @property
    def supported_kinds(self) -> frozenset[ChartKind]:
        return frozenset(self._renderers)

    def render(self, spec: ChartSpec, width_px: int, height_px: int) -> bytes:
        """Render a chart to PNG bytes of exactly ``width_px`` x ``height_px``."""
        draw = self._renderers.get(spec.kind)
        if draw is None:
            raise ValueError(f"Unsupported chart kind: {spec.kind}")

        fig = self._figure_module.Figure(
            figsize=(width_px / self.dpi, height_px / self.dpi), dpi=self.dpi
        )
        fig.patch.set_facecolor(PALETTE["paper"])
        ax = fig.add_subplot(1, 1, 1)
        draw(ax, spec)
        ax.set_title(spec.title, fontsize=13, fontweight="bold", color=PALETTE["ink"])
        fig.tight_layout()

        buffer = BytesIO()
        fig.savefig(buffer, dpi=self.dpi, format="png", facecolor=fig.get_facecolor())
        logger.debug(
            "Rendered chart",
            extra={"title": spec.title, "kind": spec.kind.value, "size": buffer.tell()},
        )
        return buffer.getvalue()

    def _style_axes(self, ax: Any, spec: ChartSpec) -> None:
        ax.grid(axis="y", alpha=0.3, color=PALETTE["secondary"])
        ax.set_axisbelow(True)
        for side in ("top", "right"):
            ax.spines[side].set_visible(False)
        ax.yaxis.set_major_formatter(
            self._formatter(lambda value: format_tick(value, spec.value_format))
        )

    def _formatter(self, fn: Callable[[float], str]) -> Any:
        ticker = importlib.import_module("matplotlib.ticker")
        return ticker.FuncFormatter(lambda value, _pos: fn(value))

    def _draw_line(self, ax: Any, spec: ChartSpec) -> None:
        x = np.arange(len(spec.labels))
        ax.plot(
            x,
            spec.series,
            color=PALETTE["primary"],
            marker="o",
            linewidth=2.5,
        )
        ax.fill_between(x, spec.series, color=PALETTE["secondary"], alpha=0.15)
        ax.set_xticks(x)
        ax.set_xticklabels(spec.labels, rotation=0, fontsize=9)
        self._style_axes(ax, spec)

        for xi, value in zip(x, spec.series, strict=True):
            ax.annotate(
                format_tick(value, spec.value_format),
                (xi, value),
                textcoords="offset points",
                xytext=(0, 8),
                ha="center",
                fontsize=8,
            )

    def _draw_bar(self, ax: Any, spec: ChartSpec) -> None:
        x = np.arange(len(spec.labels))
        bars = ax.bar(x, spec.series, width=0.6, color=PALETTE["primary"], alpha=0.8)
        ax.set_xticks(x)
        ax.set_xticklabels(spec.labels, rotation=0, fontsize=9)
        self._style_axes(ax, spec)

        # Add value labels on bars
        for bar, value in zip(bars, spec.series, strict=True):
            if value > 0:
                ax.text(
                    bar.get_x() + bar.get_width() / 2.0,
                    bar.get_height(),
                    format_value(value, spec.value_format),
                    ha="center",
                    va="bottom",
                    fontsize=8,
                )

    def _draw_doughnut(self, ax: Any, spec: ChartSpec) -> None:
        colors = [SERIES_COLORS[i % len(SERIES_COLORS)] for i in range(len(spec.series))]
        total = sum(spec.series)
        if total <= 0:
            ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
            ax.axis("off")
            return
        wedges, _ = ax.pie(
            spec.series,
            colors=colors,
            startangle=90,
            counterclock=False,
            wedgeprops={"width": 0.4, "edgecolor": PALETTE["paper"], "linewidth": 2},
        )
        legend_labels = [
            f"{label} ({format_value(value, spec.value_format)})"
            for label, value in zip(spec.labels, spec.series, strict=True)
        ]
        ax.legend(
            wedges,
            legend_labels,
            loc="center left",
            bbox_to_anchor=(1.0, 0.5),
            frameon=False,
            fontsize=9,
        )
        ax.set_aspect("equal")
