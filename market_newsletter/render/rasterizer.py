"""Offscreen rendering of the newsletter into a single raster.

Rendering steps for one export:
1. Register fonts (idempotent) and lay out a fresh RenderTree
2. Wait for every embedded image, each bounded by the image timeout
3. Draw each chart block's ChartSpec to PNG (static placeholder when the chart
   backend is unavailable or a chart fails)
4. Capture the tree into one Pillow image at the oversampling scale

Image load failures and timeouts are recovered locally (the image is left
blank). Any exception during capture is fatal and surfaces as CaptureFailure.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any

import requests
from PIL import Image, ImageDraw, UnidentifiedImageError

from ..core.branding import Branding
from ..core.constants import IMAGE_LOAD_TIMEOUT, PALETTE, RASTER_SCALE
from ..core.errors import CaptureFailure, ImageLoadTimeout
from ..core.logging_config import get_logger
from ..core.models import ChartSpec, ReportRequest
from ..visuals.charts import ChartBackendUnavailable, ChartGenerator
from .fonts import get_font, register_fonts
from .tree import (
    Block,
    BlockKind,
    ChartBlock,
    FooterBlock,
    HeaderBlock,
    PlaceholderBlock,
    RenderTree,
    TableBlock,
    TextBlock,
    build_tree,
)

logger = get_logger(__name__)


@dataclass
class Raster:
    """Bitmap of a whole render tree, at ``scale`` device pixels per layout pixel."""

    image: Image.Image
    scale: int

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def to_png(self) -> bytes:
        buffer = BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def release(self) -> None:
        self.image.close()


class ImageLoader:
    """Loads embedded images concurrently, each wait individually time-boxed.

    Sources may be ``http(s)://`` URLs, ``data:`` URIs or filesystem paths.
    """

    def __init__(self, timeout: float = IMAGE_LOAD_TIMEOUT, session: requests.Session | None = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def _read_bytes(self, source: str) -> bytes:
        if source.startswith(("http://", "https://")):
            resp = self.session.get(source, timeout=self.timeout)
            resp.raise_for_status()
            return resp.content
        if source.startswith("data:"):
            _, _, payload = source.partition(",")
            return base64.b64decode(payload, validate=True)
        return Path(source).read_bytes()

    def _load_blocking(self, source: str) -> Image.Image:
        data = self._read_bytes(source)
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")

    async def load(self, source: str) -> Image.Image | None:
        """Wait for one image to reach a terminal state.

        Returns:
            The decoded image, or None when it errored or timed out
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._load_blocking, source), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            err = ImageLoadTimeout(source, self.timeout)
            logger.warning(str(err), extra={"source": source[:200], "timeout": self.timeout})
            return None
        except (OSError, requests.RequestException, ValueError) as e:
            # UnidentifiedImageError is an OSError
            logger.warning(
                "Image failed to load, leaving it blank",
                extra={"source": source[:200], "error": str(e), "error_type": type(e).__name__},
            )
            return None

    async def load_all(self, sources: list[str]) -> dict[str, Image.Image | None]:
        unique = list(dict.fromkeys(sources))
        results = await asyncio.gather(*(self.load(s) for s in unique))
        return dict(zip(unique, results, strict=True))


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


def _static_chart_image(spec: ChartSpec, width: int, height: int, scale: int) -> Image.Image:
    """Fallback drawn when the chart backend cannot render a chart."""
    img = Image.new("RGB", (width, height), _hex_to_rgb(PALETTE["placeholder"]))
    draw = ImageDraw.Draw(img)
    title_font = get_font(True, 14 * scale)
    body_font = get_font(False, 11 * scale)
    draw.text((16 * scale, 16 * scale), spec.title, font=title_font, fill=PALETTE["primary"])
    draw.text(
        (16 * scale, 44 * scale), "Chart unavailable", font=body_font, fill=PALETTE["accent"]
    )
    return img


class _Canvas:
    """Drawing context mapping layout pixels to raster pixels."""

    def __init__(self, image: Image.Image, scale: int):
        self.image = image
        self.scale = scale
        self.draw = ImageDraw.Draw(image)

    def s(self, value: float) -> int:
        return int(round(value * self.scale))

    def rect(self, x: float, y: float, w: float, h: float, fill: str | None, outline: str | None = None) -> None:
        if fill is None and outline is None:
            return
        self.draw.rectangle(
            (self.s(x), self.s(y), self.s(x + w) - 1, self.s(y + h) - 1),
            fill=fill,
            outline=outline,
            width=max(1, self.scale),
        )

    def text(self, x: float, y: float, text: str, size: int, color: str, bold: bool = False) -> None:
        self.draw.text((self.s(x), self.s(y)), text, font=get_font(bold, self.s(size)), fill=color)

    def fit_text(self, text: str, size: int, max_width: float, bold: bool = False) -> str:
        font = get_font(bold, self.s(size))
        limit = self.s(max_width)
        if font.getlength(text) <= limit:
            return text
        while text and font.getlength(text + "...") > limit:
            text = text[:-1]
        return text + "..."

    def paste(self, img: Image.Image, x: float, y: float, w: float, h: float) -> None:
        size = (self.s(w), self.s(h))
        if img.size != size:
            img = img.resize(size, Image.Resampling.LANCZOS)
        if img.mode == "RGBA":
            self.image.paste(img, (self.s(x), self.s(y)), img)
        else:
            self.image.paste(img, (self.s(x), self.s(y)))


def _draw_header(canvas: _Canvas, block: HeaderBlock, ctx: _CaptureContext) -> None:
    b, st = block.box, block.style
    canvas.rect(b.x, b.y, b.width, b.height, st.background)
    canvas.text(b.x + st.padding, b.y + st.padding, block.title, st.heading_size, st.heading_color, bold=True)
    canvas.text(b.x + st.padding, b.y + st.padding + st.heading_size * 1.5, block.subtitle, st.font_size + 4, st.color, bold=True)
    canvas.text(b.x + st.padding, b.y + b.height - st.padding - st.font_size * 1.2, block.tagline, st.font_size, st.color)
    if block.logo_source and block.logo_box is not None:
        logo = ctx.images.get(block.logo_source)
        lb = block.logo_box
        if logo is not None:
            contained = logo.copy()
            contained.thumbnail((canvas.s(lb.width), canvas.s(lb.height)), Image.Resampling.LANCZOS)
            offset_x = (canvas.s(lb.width) - contained.width) / (2 * canvas.scale)
            offset_y = (canvas.s(lb.height) - contained.height) / (2 * canvas.scale)
            canvas.paste(
                contained,
                lb.x + offset_x,
                b.y + lb.y + offset_y,
                contained.width / canvas.scale,
                contained.height / canvas.scale,
            )


def _draw_text(canvas: _Canvas, block: TextBlock, ctx: _CaptureContext) -> None:
    b, st = block.box, block.style
    canvas.rect(b.x, b.y, b.width, b.height, st.background, st.border_color)
    canvas.text(b.x + st.padding, b.y + st.padding, block.heading, st.heading_size, st.heading_color, bold=True)
    y = b.y + st.padding + int(st.heading_size * 1.4)
    line_px = int(st.font_size * st.line_height)
    for line in block.lines:
        canvas.text(b.x + st.padding, y, line, st.font_size, st.color, bold=st.bold)
        y += line_px


def _draw_table(canvas: _Canvas, block: TableBlock, ctx: _CaptureContext) -> None:
    b, st = block.box, block.style
    canvas.rect(b.x, b.y, b.width, b.height, st.background, st.border_color)
    canvas.text(b.x + st.padding, b.y + st.padding, block.title, st.heading_size, st.heading_color, bold=True)
    top = b.y + st.padding + int(st.heading_size * 1.6)
    text_offset = (st.row_height - st.font_size) / 2 - 1
    for row_index, row in enumerate((block.columns, *block.rows)):
        y = top + row_index * st.row_height
        is_header = row_index == 0
        if is_header:
            canvas.rect(b.x + st.padding, y, b.width - 2 * st.padding, st.row_height, st.heading_color)
        elif row_index % 2 == 0:
            canvas.rect(b.x + st.padding, y, b.width - 2 * st.padding, st.row_height, st.accent_color)
        x = b.x + st.padding
        for cell, col_width in zip(row, block.column_widths, strict=True):
            color = PALETTE["paper"] if is_header else st.color
            text = canvas.fit_text(str(cell), st.font_size, col_width - 12, bold=is_header)
            canvas.text(x + 6, y + text_offset, text, st.font_size, color, bold=is_header)
            x += col_width


def _draw_chart(canvas: _Canvas, block: ChartBlock, ctx: _CaptureContext) -> None:
    b, st = block.box, block.style
    canvas.rect(b.x, b.y, b.width, b.height, st.background, st.border_color)
    img = ctx.charts.get(block.name)
    if img is not None:
        canvas.paste(img, b.x + st.padding, b.y + st.padding, b.width - 2 * st.padding, b.height - 2 * st.padding)


def _draw_placeholder(canvas: _Canvas, block: PlaceholderBlock, ctx: _CaptureContext) -> None:
    b, st = block.box, block.style
    canvas.rect(b.x, b.y, b.width, b.height, st.background, st.border_color)
    canvas.text(b.x + st.padding, b.y + (b.height - st.font_size) / 2 - 1, block.message, st.font_size, st.color)


def _draw_footer(canvas: _Canvas, block: FooterBlock, ctx: _CaptureContext) -> None:
    b, st = block.box, block.style
    canvas.rect(b.x, b.y, b.width, b.height, st.background)
    y = b.y + st.padding
    for line in block.lines:
        canvas.text(b.x + st.padding + 24, y, line, st.font_size, st.color)
        y += int(st.font_size * st.line_height)


@dataclass
class _CaptureContext:
    images: Mapping[str, Image.Image | None]
    charts: Mapping[str, Image.Image]


BLOCK_DRAWERS: dict[BlockKind, Callable[[_Canvas, Any, _CaptureContext], None]] = {
    BlockKind.HEADER: _draw_header,
    BlockKind.TEXT: _draw_text,
    BlockKind.TABLE: _draw_table,
    BlockKind.CHART: _draw_chart,
    BlockKind.PLACEHOLDER: _draw_placeholder,
    BlockKind.FOOTER: _draw_footer,
}


class OffscreenRenderer:
    """Renders a ReportRequest and its charts into a Raster.

    Each ``render`` call builds and discards its own tree; the renderer holds
    only configuration, so concurrent exports do not share mutable state.
    """

    def __init__(
        self,
        branding: Branding | None = None,
        *,
        logo_source: str | None = None,
        scale: int = RASTER_SCALE,
        image_loader: ImageLoader | None = None,
        chart_generator: ChartGenerator | None = None,
    ):
        self.branding = branding or Branding()
        self.logo_source = logo_source
        self.scale = scale
        self.image_loader = image_loader or ImageLoader()
        self._chart_generator = chart_generator

    def _acquire_charts(self) -> ChartGenerator | None:
        if self._chart_generator is not None:
            return self._chart_generator
        try:
            return ChartGenerator()
        except ChartBackendUnavailable as e:
            logger.warning(
                "Chart backend unavailable, charts will render as static placeholders",
                extra={"error": str(e)},
            )
            return None

    def _render_charts(self, tree: RenderTree) -> dict[str, Image.Image]:
        generator = self._acquire_charts()
        images: dict[str, Image.Image] = {}
        failures: list[tuple[str, str]] = []
        for block in tree.find(ChartBlock):
            style = block.style
            width = (block.box.width - 2 * style.padding) * self.scale
            height = (block.box.height - 2 * style.padding) * self.scale
            if block.spec is None:
                continue
            if generator is None:
                images[block.name] = _static_chart_image(block.spec, width, height, self.scale)
                continue
            try:
                png = generator.render(block.spec, width, height)
                with Image.open(BytesIO(png)) as img:
                    images[block.name] = img.convert("RGB")
            except Exception as e:
                failures.append((block.name, str(e)))
                logger.warning(f"Failed to render chart {block.name}: {e}", exc_info=True)
                images[block.name] = _static_chart_image(block.spec, width, height, self.scale)
        if failures:
            logger.warning(
                f"Rendered {len(images) - len(failures)}/{len(images)} charts natively. "
                f"Failures: {', '.join(f[0] for f in failures)}",
                extra={"failures": failures},
            )
        return images

    def capture(
        self,
        tree: RenderTree,
        images: Mapping[str, Image.Image | None],
        charts: Mapping[str, Image.Image],
    ) -> Raster:
        """Draw the tree into one image at the oversampling scale.

        Raises:
            CaptureFailure: If drawing raises for any reason
        """
        try:
            size = (tree.width * self.scale, tree.height * self.scale)
            image = Image.new("RGB", size, _hex_to_rgb(PALETTE["paper"]))
            canvas = _Canvas(image, self.scale)
            ctx = _CaptureContext(images=images, charts=charts)
            for block in tree.blocks:
                BLOCK_DRAWERS[block.kind](canvas, block, ctx)
        except Exception as e:
            logger.error(
                "Failed to capture newsletter raster",
                extra={"error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            raise CaptureFailure(f"Raster capture failed: {e}") from e
        return Raster(image=image, scale=self.scale)

    async def render(self, request: ReportRequest, charts: Mapping[str, ChartSpec]) -> Raster:
        register_fonts()
        try:
            tree = build_tree(request, charts, self.branding, logo_source=self.logo_source)
        except Exception as e:
            logger.error(
                "Failed to build newsletter layout",
                extra={"error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            raise CaptureFailure(f"Layout failed: {e}") from e
        logger.debug(
            "Built render tree",
            extra={"blocks": len(tree.blocks), "width": tree.width, "height": tree.height},
        )
        images = await self.image_loader.load_all(tree.image_sources())
        chart_images = self._render_charts(tree)
        raster = self.capture(tree, images, chart_images)
        logger.info(
            "Captured newsletter raster",
            extra={"width": raster.width, "height": raster.height, "scale": raster.scale},
        )
        return raster
