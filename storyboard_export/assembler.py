"""
Storyboard Export — Document assembler.

Turns prepared scene images into one artifact:
- Paginated landscape PDF (one page per scene, rasterized text blocks)
- ZIP bundle (Scene_NN.png per scene + script.txt manifest)
- Comic sheet (2-column print-resolution grid with badges and captions)
- Long strip (single column, full-width images, captions underneath)
- Configurable comic layout (presets, bubbles) and its small preview

Uses Pillow for all drawing; zipfile for the bundle.
"""

import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from PIL import Image, ImageDraw

from storyboard_export.bubbles import BubbleLayout, draw_bubble, layout_bubble
from storyboard_export.geometry import (
    GridItem,
    GridLayout,
    column_width,
    contain_fit,
    layout_grid,
    panel_height,
)
from storyboard_export.image_loader import encode_png
from storyboard_export.models import (
    BorderStyle,
    Box,
    BubbleConfig,
    ExportArtifact,
    GenerationMode,
    PageMargins,
    PanelAspectRatio,
    PanelLayoutConfig,
    Scene,
    safe_title,
)
from storyboard_export.text_layout import FontSpec, TextLayoutEngine

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
PLACEHOLDER_FILL = (238, 238, 238)

# Document: A4 landscape rendered at 5 px/mm
PX_PER_MM = 5
DOC_PAGE_WIDTH = 297 * PX_PER_MM
DOC_PAGE_HEIGHT = 210 * PX_PER_MM
DOC_MARGIN = 10 * PX_PER_MM
DOC_SPACING = 5 * PX_PER_MM
DOC_TEXT_PADDING = 1 * PX_PER_MM
DOC_TITLE_FONT = FontSpec(size=6 * PX_PER_MM, bold=True)
DOC_BODY_FONT = FontSpec(size=4 * PX_PER_MM)
DOC_RESOLUTION = 25.4 * PX_PER_MM  # DPI that maps pixels back to A4

# Bundle
BUNDLE_FOLDER = "storyboard_images"
MANIFEST_NAME = "script.txt"
MANIFEST_DELIMITER = "-------------------"

# Leading bytes → extension for undecodable images shipped as-is
RAW_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", ".png"),
    (b"\xff\xd8\xff", ".jpg"),
    (b"GIF8", ".gif"),
    (b"BM", ".bmp"),
)
RAW_FALLBACK_EXT = ".bin"

# Comic sheet
SHEET_WIDTH = 2480            # A4 width at 300 DPI
SHEET_MARGIN = 120
SHEET_GUTTER_X = 80
SHEET_GUTTER_Y = 100
SHEET_COLUMNS = 2
SHEET_HEADER = 320            # Panels start below title + metadata band
SHEET_TITLE_FONT = FontSpec(size=80, bold=True)
SHEET_META_FONT = FontSpec(size=30, bold=True)
SHEET_META_COLOR = (85, 85, 85)
SHEET_RULE_Y = 260
SHEET_RULE_WIDTH = 4
SHEET_SHADOW_OFFSET = 15
SHEET_BORDER_WIDTH = 6
SHEET_BADGE_RADIUS = 25
SHEET_BADGE_FONT = FontSpec(size=24, bold=True)
SHEET_CAPTION_FONT = FontSpec(size=32)
SHEET_CAPTION_GAP = 25
SHEET_CAPTION_PADDING = 30
SHEET_FOOTER_OFFSET = 40
SHEET_PUBLISHER = "AI STORYBOARD COMICS"

# Long strip
STRIP_WIDTH = 1080
STRIP_PADDING_X = 40
STRIP_HEADER = 150
STRIP_TITLE_FONT = FontSpec(size=48, bold=True)
STRIP_CAPTION_FONT = FontSpec(size=24)
STRIP_CAPTION_GAP = 20
STRIP_CAPTION_PADDING = 40
STRIP_SPACING = 20
STRIP_BOTTOM = 80

# Configurable layout (values at print width; the preview scales them down)
LAYOUT_PRINT_WIDTH = 2480
PREVIEW_WIDTH = 800
PREVIEW_HEADER = 100
PREVIEW_TITLE_SIZE = 32
PREVIEW_MAX_SCENES = 6
LAYOUT_SHADOW_OFFSET = 12
LAYOUT_SHADOW_FILL = (0, 0, 0, 26)
LAYOUT_BADGE_DIAMETER = 96
LAYOUT_BADGE_FONT_SIZE = 44
DASH_ON = 10
DASH_OFF = 5


def sniff_extension(data: bytes) -> str:
    """File extension guessed from magic bytes; ".bin" when unrecognised."""
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    for signature, ext in RAW_SIGNATURES:
        if data.startswith(signature):
            return ext
    return RAW_FALLBACK_EXT


class SurfaceUnavailableError(RuntimeError):
    """A drawing surface could not be allocated."""


def new_canvas(size: tuple, color=WHITE, mode: str = "RGB") -> Image.Image:
    width, height = size
    try:
        return Image.new(mode, (int(width), int(height)), color)
    except (MemoryError, ValueError, Image.DecompressionBombError) as e:
        raise SurfaceUnavailableError(f"Cannot allocate {width}x{height} {mode} surface: {e}") from e


@dataclass
class SceneImage:
    """A scene paired with its (possibly composited) decoded image."""
    scene: Scene
    image: Optional[Image.Image] = None
    raw: bytes = b""

    @property
    def ratio(self) -> Optional[float]:
        if self.image is not None and self.image.width > 0 and self.image.height > 0:
            return self.image.width / self.image.height
        return None


@dataclass(frozen=True)
class PageLayout:
    """Geometry of one document page."""
    title_box: Optional[Box]
    image_box: Box
    narrative_box: Optional[Box]
    title_lines: tuple = ()
    narrative_lines: tuple = ()


@dataclass
class SheetLayout:
    """Geometry of a composite raster: the grid plus per-panel text."""
    grid: GridLayout
    caption_lines: list = field(default_factory=list)
    bubbles: list = field(default_factory=list)


class DocumentAssembler:
    """Assembles prepared scene images into export artifacts."""

    def __init__(self, engine: TextLayoutEngine, debug: bool = False):
        self.engine = engine
        self.debug = debug

    # ============================================================
    # Shared drawing helpers
    # ============================================================

    def _fit_image(self, img: Image.Image, target_w: int, target_h: int) -> Image.Image:
        """Resize and crop image to fit target dimensions (cover mode)."""
        scale = max(target_w / img.width, target_h / img.height)

        new_w = max(1, round(img.width * scale))
        new_h = max(1, round(img.height * scale))
        img = img.resize((new_w, new_h), Image.Resampling.LANCZOS)

        left = (new_w - target_w) // 2
        top = (new_h - target_h) // 2
        return img.crop((left, top, left + target_w, top + target_h))

    def _paste_scaled(self, canvas: Image.Image, item: SceneImage, box: Box):
        """Stretch the image into box, or fill a placeholder if it never decoded."""
        if item.image is None:
            ImageDraw.Draw(canvas).rectangle(box.as_xyxy(), fill=PLACEHOLDER_FILL)
            return
        resized = item.image.resize((box.width, box.height), Image.Resampling.LANCZOS)
        canvas.paste(resized, (box.x, box.y))

    def _draw_centered(self, draw: ImageDraw.ImageDraw, text: str, x: float, y: float,
                       spec: FontSpec, fill=BLACK):
        if text:
            draw.text((x, y), text, fill=fill, font=self.engine.font(spec), anchor="mm")

    def _caption(self, item: SceneImage, width: float, spec: FontSpec, padding: int) -> tuple:
        """(lines, block height incl. padding) for a detached caption."""
        lines = self.engine.wrap(item.scene.narrative, width, spec)
        if not lines:
            return [], 0
        return lines, self.engine.block_height(lines, spec) + padding

    def _draw_dashed_rect(self, draw: ImageDraw.ImageDraw, box: Box, width: int):
        x0, y0, x1, y1 = box.x, box.y, box.right, box.bottom
        for start, end, horizontal, fixed in (
            (x0, x1, True, y0), (x0, x1, True, y1), (y0, y1, False, x0), (y0, y1, False, x1),
        ):
            pos = start
            while pos < end:
                stop = min(pos + DASH_ON, end)
                if horizontal:
                    draw.line([(pos, fixed), (stop, fixed)], fill=BLACK, width=width)
                else:
                    draw.line([(fixed, pos), (fixed, stop)], fill=BLACK, width=width)
                pos = stop + DASH_OFF

    def _encode_raster(self, image: Image.Image, target_width: Optional[int]) -> bytes:
        if target_width and target_width != image.width:
            height = max(1, round(image.height * target_width / image.width))
            image = image.resize((target_width, height), Image.Resampling.LANCZOS)
        return encode_png(image)

    # ============================================================
    # Paginated document
    # ============================================================

    def build_document(self, items: list[SceneImage], title: str,
                       mode: GenerationMode = GenerationMode.STORYBOARD) -> ExportArtifact:
        """
        One landscape A4 page per scene: title block, contain-fit image,
        narrative block pinned to the bottom margin.
        """
        artifact = ExportArtifact(
            filename=f"{safe_title(title)}_Storyboard.pdf",
            media_type="application/pdf",
            layout=[],
        )
        if not items:
            logger.warning("No scenes to paginate — empty document")
            return artifact

        label = "Panel" if mode == GenerationMode.COMIC else "Scene"
        content_w = DOC_PAGE_WIDTH - 2 * DOC_MARGIN
        pages = []

        try:
            for item in items:
                page = new_canvas((DOC_PAGE_WIDTH, DOC_PAGE_HEIGHT))
                page_layout = self._render_page(
                    page, item, f"{title} - {label} {item.scene.ordinal}", content_w,
                )
                pages.append(page)
                artifact.layout.append(page_layout)
                if self.debug:
                    logger.info(f"Page {len(pages)}: {page_layout}")
        except SurfaceUnavailableError as e:
            logger.warning(f"Document assembly aborted: {e}")
            return ExportArtifact(filename=artifact.filename, media_type=artifact.media_type)

        buf = io.BytesIO()
        pages[0].save(
            buf,
            format="PDF",
            save_all=True,
            append_images=pages[1:],
            resolution=DOC_RESOLUTION,
        )
        artifact.data = buf.getvalue()
        artifact.page_count = len(pages)
        logger.info(f"Document assembled: {artifact.filename} ({len(pages)} pages)")
        return artifact

    def _render_page(self, page: Image.Image, item: SceneImage, title_text: str,
                     content_w: int) -> PageLayout:
        title_img, title_lines = self.engine.render_block(
            title_text, content_w, DOC_TITLE_FONT, padding=DOC_TEXT_PADDING)
        body_img, body_lines = self.engine.render_block(
            item.scene.narrative, content_w, DOC_BODY_FONT, padding=DOC_TEXT_PADDING)

        header_h = title_img.height + DOC_SPACING if title_img else 0
        footer_h = body_img.height + DOC_SPACING if body_img else 0
        available_h = max(1, DOC_PAGE_HEIGHT - 2 * DOC_MARGIN - header_h - footer_h)

        title_box = None
        if title_img:
            title_box = Box(DOC_MARGIN, DOC_MARGIN, title_img.width, title_img.height)
            page.paste(title_img, (title_box.x, title_box.y), title_img)

        src_w = item.image.width if item.image else 0
        src_h = item.image.height if item.image else 0
        img_w, img_h = contain_fit(src_w, src_h, content_w, available_h)
        image_box = Box(DOC_MARGIN + (content_w - img_w) // 2, DOC_MARGIN + header_h, img_w, img_h)
        self._paste_scaled(page, item, image_box)

        narrative_box = None
        if body_img:
            narrative_box = Box(DOC_MARGIN, DOC_PAGE_HEIGHT - DOC_MARGIN - body_img.height,
                                body_img.width, body_img.height)
            page.paste(body_img, (narrative_box.x, narrative_box.y), body_img)

        return PageLayout(
            title_box=title_box,
            image_box=image_box,
            narrative_box=narrative_box,
            title_lines=tuple(title_lines),
            narrative_lines=tuple(body_lines),
        )

    # ============================================================
    # Bundle
    # ============================================================

    @staticmethod
    def manifest_entry(scene: Scene) -> str:
        return (
            f"SCENE {scene.ordinal}\n"
            f"VISUAL: {scene.visual_prompt}\n"
            f"NARRATIVE: {scene.narrative}\n"
            f"{MANIFEST_DELIMITER}\n"
        )

    def build_bundle(self, items: list[SceneImage], title: str) -> ExportArtifact:
        """
        ZIP with storyboard_images/Scene_NN.png per scene plus script.txt.

        Scenes whose bytes arrived but never decoded are shipped unverified,
        named by their sniffed type (Scene_NN.jpg, ... or .bin).
        """
        artifact = ExportArtifact(
            filename=f"{safe_title(title)}_Assets.zip",
            media_type="application/zip",
            layout=[],
        )
        if not items:
            logger.warning("No scenes to bundle — empty archive")
            return artifact

        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for item in items:
                stem = f"{BUNDLE_FOLDER}/Scene_{item.scene.ordinal:02d}"
                if item.image is not None:
                    name = f"{stem}.png"
                    zf.writestr(name, encode_png(item.image))
                elif item.raw:
                    name = stem + sniff_extension(item.raw)
                    zf.writestr(name, item.raw)
                else:
                    logger.warning(f"Scene {item.scene.ordinal} has no image data — skipped in bundle")
                    continue
                artifact.layout.append(name)

            manifest = "\n".join(self.manifest_entry(item.scene) for item in items)
            zf.writestr(MANIFEST_NAME, manifest)

        artifact.data = buf.getvalue()
        artifact.page_count = len(artifact.layout)
        logger.info(f"Bundle assembled: {artifact.filename} ({len(artifact.layout)} images)")
        return artifact

    # ============================================================
    # Comic sheet
    # ============================================================

    def plan_comic_sheet(self, items: list[SceneImage], text_baked: bool) -> SheetLayout:
        margins = PageMargins(top=SHEET_HEADER, bottom=SHEET_MARGIN,
                              left=SHEET_MARGIN, right=SHEET_MARGIN)
        width = column_width(SHEET_WIDTH, SHEET_COLUMNS, margins, SHEET_GUTTER_X)

        grid_items = []
        captions = []
        for item in items:
            lines, caption_h = ([], 0)
            if not text_baked:
                lines, caption_h = self._caption(item, width, SHEET_CAPTION_FONT, SHEET_CAPTION_PADDING)
            captions.append(lines)
            grid_items.append(GridItem(
                panel_height=panel_height(width, PanelAspectRatio.AUTO, item.ratio),
                caption_height=caption_h,
            ))

        grid = layout_grid(grid_items, SHEET_COLUMNS, SHEET_WIDTH, margins,
                           spacing=SHEET_GUTTER_X, row_spacing=SHEET_GUTTER_Y)
        return SheetLayout(grid=grid, caption_lines=captions)

    def build_comic_sheet(
        self,
        items: list[SceneImage],
        title: str,
        text_baked: bool,
        issue_date: Optional[date] = None,
        target_width: Optional[int] = None,
    ) -> ExportArtifact:
        """
        Single print-width page: header band, 2-column grid of shadowed,
        bordered panels with numbered badges, captions under each panel
        unless the text is already baked into the images.
        """
        artifact = ExportArtifact(filename=f"{safe_title(title)}_ComicPage.png", media_type="image/png")
        if not items:
            logger.warning("No scenes for comic sheet — empty image")
            return artifact

        sheet = self.plan_comic_sheet(items, text_baked)
        artifact.layout = sheet
        grid = sheet.grid
        if self.debug:
            grid.log("comic-sheet")

        try:
            canvas = new_canvas((SHEET_WIDTH, grid.total_height))
        except SurfaceUnavailableError as e:
            logger.warning(f"Comic sheet aborted: {e}")
            return artifact

        draw = ImageDraw.Draw(canvas)

        # Header
        self._draw_centered(draw, title, SHEET_WIDTH / 2, 120, SHEET_TITLE_FONT)
        issued = (issue_date or date.today()).isoformat()
        self._draw_centered(draw, f"ISSUE #01  •  {issued}  •  {SHEET_PUBLISHER}",
                            SHEET_WIDTH / 2, 220, SHEET_META_FONT, fill=SHEET_META_COLOR)
        draw.line([(SHEET_MARGIN, SHEET_RULE_Y), (SHEET_WIDTH - SHEET_MARGIN, SHEET_RULE_Y)],
                  fill=BLACK, width=SHEET_RULE_WIDTH)

        for item, placement, lines in zip(items, grid.placements, sheet.caption_lines):
            box = placement.box

            # Hard-edged drop shadow
            draw.rectangle(
                Box(box.x + SHEET_SHADOW_OFFSET, box.y + SHEET_SHADOW_OFFSET,
                    box.width, box.height).as_xyxy(),
                fill=BLACK,
            )
            self._paste_scaled(canvas, item, box)
            draw.rectangle(box.as_xyxy(), outline=BLACK, width=SHEET_BORDER_WIDTH)

            # Numbered badge straddling the top-left corner
            r = SHEET_BADGE_RADIUS
            draw.ellipse([box.x - r, box.y - r, box.x + r, box.y + r], fill=BLACK)
            self._draw_centered(draw, str(item.scene.ordinal), box.x, box.y,
                                SHEET_BADGE_FONT, fill=WHITE)

            if lines:
                self.engine.draw_lines(draw, lines, box.x, box.bottom + SHEET_CAPTION_GAP,
                                       SHEET_CAPTION_FONT, fill=BLACK)

        self._draw_centered(draw, "PAGE 1", SHEET_WIDTH / 2,
                            grid.total_height - SHEET_FOOTER_OFFSET, SHEET_BADGE_FONT)

        artifact.data = self._encode_raster(canvas, target_width)
        artifact.page_count = 1
        logger.info(f"Comic sheet assembled: {artifact.filename} "
                    f"({len(items)} panels, {grid.rows} rows, {SHEET_WIDTH}x{grid.total_height})")
        return artifact

    # ============================================================
    # Long strip
    # ============================================================

    def plan_long_strip(self, items: list[SceneImage], text_baked: bool) -> SheetLayout:
        caption_width = STRIP_WIDTH - 2 * STRIP_PADDING_X
        grid_items = []
        captions = []
        for item in items:
            lines, caption_h = ([], 0)
            if not text_baked:
                lines, caption_h = self._caption(item, caption_width, STRIP_CAPTION_FONT,
                                                 STRIP_CAPTION_PADDING)
            captions.append(lines)
            ratio = item.ratio
            # Undecoded images keep a 16:9 slot in the strip
            policy = PanelAspectRatio.AUTO if ratio else PanelAspectRatio.WIDE
            grid_items.append(GridItem(
                panel_height=panel_height(STRIP_WIDTH, policy, ratio),
                caption_height=caption_h,
            ))

        margins = PageMargins(top=STRIP_HEADER, bottom=STRIP_BOTTOM, left=0, right=0)
        grid = layout_grid(grid_items, 1, STRIP_WIDTH, margins, spacing=STRIP_SPACING)
        return SheetLayout(grid=grid, caption_lines=captions)

    def build_long_strip(
        self,
        items: list[SceneImage],
        title: str,
        text_baked: bool,
        target_width: Optional[int] = None,
    ) -> ExportArtifact:
        """Full-width images stacked vertically, captions directly beneath each."""
        artifact = ExportArtifact(filename=f"{safe_title(title)}_LongImage.png", media_type="image/png")
        if not items:
            logger.warning("No scenes for long strip — empty image")
            return artifact

        strip = self.plan_long_strip(items, text_baked)
        artifact.layout = strip
        grid = strip.grid
        if self.debug:
            grid.log("long-strip")

        try:
            canvas = new_canvas((STRIP_WIDTH, grid.total_height))
        except SurfaceUnavailableError as e:
            logger.warning(f"Long strip aborted: {e}")
            return artifact

        draw = ImageDraw.Draw(canvas)
        self._draw_centered(draw, title, STRIP_WIDTH / 2, STRIP_HEADER / 2, STRIP_TITLE_FONT)

        for item, placement, lines in zip(items, grid.placements, strip.caption_lines):
            box = placement.box
            self._paste_scaled(canvas, item, box)
            if lines:
                self.engine.draw_lines(draw, lines, STRIP_PADDING_X, box.bottom + STRIP_CAPTION_GAP,
                                       STRIP_CAPTION_FONT, fill=BLACK)

        artifact.data = self._encode_raster(canvas, target_width)
        artifact.page_count = 1
        logger.info(f"Long strip assembled: {artifact.filename} "
                    f"({len(items)} scenes, {STRIP_WIDTH}x{grid.total_height})")
        return artifact

    # ============================================================
    # Configurable comic layout + preview
    # ============================================================

    def render_layout_sheet(
        self,
        items: list[SceneImage],
        title: str,
        layout: PanelLayoutConfig,
        bubble: Optional[BubbleConfig],
        with_text: bool,
        canvas_width: int = LAYOUT_PRINT_WIDTH,
    ) -> tuple:
        """
        Draw a preset-driven comic page.

        Metrics in layout/bubble are print-width pixels; they are scaled by
        canvas_width / 2480 so the same config drives the preview.

        Returns:
            (image, SheetLayout)
        """
        scale = canvas_width / LAYOUT_PRINT_WIDTH
        header = round(PREVIEW_HEADER * canvas_width / PREVIEW_WIDTH)
        page_margin = layout.page_margin.scaled(scale)
        margins = PageMargins(top=page_margin.top + header, bottom=page_margin.bottom,
                              left=page_margin.left, right=page_margin.right)
        spacing = round(layout.panel_spacing * scale)
        width = column_width(canvas_width, layout.columns, margins, spacing)

        uniform = None
        if layout.uniform_height:
            uniform = panel_height(width, layout.panel_aspect_ratio)
        grid_items = [
            GridItem(panel_height=panel_height(width, layout.panel_aspect_ratio, item.ratio))
            for item in items
        ]
        grid = layout_grid(grid_items, layout.columns, canvas_width, margins,
                           spacing=spacing, uniform_height=uniform)
        sheet = SheetLayout(grid=grid)
        if self.debug:
            grid.log("layout-sheet")

        canvas = new_canvas((canvas_width, grid.total_height))
        draw = ImageDraw.Draw(canvas)
        title_spec = FontSpec(size=max(1, round(PREVIEW_TITLE_SIZE * canvas_width / PREVIEW_WIDTH)), bold=True)
        self._draw_centered(draw, title or "Preview", canvas_width / 2, header / 2, title_spec)

        border_w = max(1, round(layout.border_width * scale)) if layout.border_width else 0
        shadow_offset = max(1, round(LAYOUT_SHADOW_OFFSET * scale))
        badge_r = max(1, round(LAYOUT_BADGE_DIAMETER * scale / 2))
        badge_spec = FontSpec(size=max(1, round(LAYOUT_BADGE_FONT_SIZE * scale)), bold=True)
        scaled_bubble = bubble.scaled(scale) if bubble else None

        for item, placement in zip(items, grid.placements):
            box = placement.box

            if layout.border_style == BorderStyle.SOLID:
                shade = new_canvas((box.width, box.height), LAYOUT_SHADOW_FILL, mode="RGBA")
                canvas.paste(shade, (box.x + shadow_offset, box.y + shadow_offset), shade)

            if item.image is not None:
                canvas.paste(self._fit_image(item.image, box.width, box.height), (box.x, box.y))
            else:
                draw.rectangle(box.as_xyxy(), fill=PLACEHOLDER_FILL)

            if layout.border_style != BorderStyle.NONE and border_w:
                if layout.border_style == BorderStyle.DASHED:
                    self._draw_dashed_rect(draw, box, border_w)
                else:
                    draw.rectangle(box.as_xyxy(), outline=BLACK, width=border_w)

            if layout.show_panel_numbers:
                draw.ellipse([box.x - badge_r, box.y - badge_r, box.x + badge_r, box.y + badge_r],
                             fill=BLACK)
                self._draw_centered(draw, str(item.scene.ordinal), box.x, box.y, badge_spec, fill=WHITE)

            if with_text and scaled_bubble and item.scene.narrative:
                placed: BubbleLayout = layout_bubble(self.engine, item.scene.narrative, box, scaled_bubble)
                sheet.bubbles.append(placed)
                canvas = draw_bubble(canvas, self.engine, placed, scaled_bubble, debug=self.debug)
                draw = ImageDraw.Draw(canvas)

        return canvas, sheet

    def build_layout_sheet(
        self,
        items: list[SceneImage],
        title: str,
        layout: PanelLayoutConfig,
        bubble: Optional[BubbleConfig],
        with_text: bool,
        target_width: Optional[int] = None,
    ) -> ExportArtifact:
        """Print-resolution preset layout as a comic page PNG."""
        artifact = ExportArtifact(filename=f"{safe_title(title)}_ComicPage.png", media_type="image/png")
        if not items:
            logger.warning("No scenes for comic layout — empty image")
            return artifact

        try:
            canvas, sheet = self.render_layout_sheet(items, title, layout, bubble, with_text)
        except SurfaceUnavailableError as e:
            logger.warning(f"Comic layout aborted: {e}")
            return artifact

        artifact.layout = sheet
        artifact.data = self._encode_raster(canvas, target_width)
        artifact.page_count = 1
        logger.info(f"Comic layout assembled: {artifact.filename} "
                    f"({len(items)} panels, {layout.columns} columns, {len(sheet.bubbles)} bubbles)")
        return artifact

    def render_preview(
        self,
        items: list[SceneImage],
        title: str,
        layout: PanelLayoutConfig,
        bubble: Optional[BubbleConfig],
        with_text: bool,
    ) -> Optional[Image.Image]:
        """Small on-screen preview of the first scenes. None when nothing to show."""
        shown = [item for item in items[:PREVIEW_MAX_SCENES] if item.scene.has_image]
        if not shown:
            return None
        try:
            canvas, _ = self.render_layout_sheet(shown, title, layout, bubble, with_text,
                                                 canvas_width=PREVIEW_WIDTH)
        except SurfaceUnavailableError as e:
            logger.warning(f"Preview unavailable: {e}")
            return None
        return canvas
