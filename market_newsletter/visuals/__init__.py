"""Visualization package for newsletter chart rendering.

Charts are described by ``ChartSpec`` (kind, title, labels, series) and drawn
with matplotlib's object-oriented API into PNG bytes that the offscreen
renderer pastes into the report raster.

Main Components:
    - ChartGenerator: one drawing routine per ChartKind, PNG output
    - acquire_chart_backend: explicit matplotlib loading step; callers fall
      back to a static placeholder image when it raises

Usage:
    from market_newsletter.visuals import ChartGenerator

    generator = ChartGenerator()
    png = generator.render(spec, width_px=1440, height_px=720)
"""

from __future__ import annotations

from .charts import ChartBackendUnavailable, ChartGenerator, acquire_chart_backend

__all__ = ["ChartBackendUnavailable", "ChartGenerator", "acquire_chart_backend"]
