"""
Storyboard Export — Text layout.

Character-by-character greedy wrapping against a pixel width.
No word boundaries, no hyphenation: CJK text has no spaces to break on,
and every script is treated the same way.
"""

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

LINE_HEIGHT_FACTOR = 1.4

# Bundled fonts are looked up first
FONTS_DIR = Path(__file__).parent / "assets" / "fonts"

# CJK-capable families first, then Latin fallbacks
REGULAR_FONT_FILES = [
    "NotoSansCJK-Regular.ttc",
    "NotoSansCJKsc-Regular.otf",
    "NotoSansSC-Regular.ttf",
    "msyh.ttc",              # Microsoft YaHei
    "simhei.ttf",
    "PingFang.ttc",
    "wqy-microhei.ttc",
    "DroidSansFallbackFull.ttf",
    "DejaVuSans.ttf",
    "arial.ttf",
]
BOLD_FONT_FILES = [
    "NotoSansCJK-Bold.ttc",
    "NotoSansCJKsc-Bold.otf",
    "NotoSansSC-Bold.ttf",
    "msyhbd.ttc",
    "DejaVuSans-Bold.ttf",
    "arialbd.ttf",
]

FONT_DIRS = [
    FONTS_DIR,
    Path(os.environ.get("WINDIR", "C:\\Windows")) / "Fonts",
    Path("/usr/share/fonts"),
    Path("/usr/share/fonts/truetype"),
    Path("/usr/share/fonts/opentype/noto"),
    Path("/usr/share/fonts/truetype/dejavu"),
    Path("/usr/share/fonts/truetype/wqy"),
    Path("/usr/share/fonts/truetype/droid"),
    Path("/System/Library/Fonts"),
    Path.home() / ".local" / "share" / "fonts",
]


@dataclass(frozen=True)
class FontSpec:
    """Font request: pixel size + weight."""
    size: int
    bold: bool = False
    line_height_factor: float = LINE_HEIGHT_FACTOR

    @property
    def line_height(self) -> int:
        return max(1, round(self.size * self.line_height_factor))


class TextLayoutEngine:
    """
    Measures and wraps text. One engine per export call; fonts are
    cached on the instance.
    """

    def __init__(self, font_path: Optional[str] = None, bold_font_path: Optional[str] = None):
        self.font_path = font_path
        self.bold_font_path = bold_font_path
        self._fonts: dict = {}

    # ---------- fonts ----------

    def font(self, spec: FontSpec) -> ImageFont.ImageFont:
        key = (spec.size, spec.bold)
        if key not in self._fonts:
            self._fonts[key] = self._load_font(spec)
        return self._fonts[key]

    def _load_font(self, spec: FontSpec) -> ImageFont.ImageFont:
        """Load a font, trying configured → bundled/system → Pillow default."""
        configured = self.bold_font_path if spec.bold else self.font_path
        if spec.bold and not configured:
            configured = self.font_path
        if configured:
            try:
                return ImageFont.truetype(configured, spec.size)
            except OSError as e:
                logger.warning(f"Configured font '{configured}' unusable: {e}")

        names = (BOLD_FONT_FILES + REGULAR_FONT_FILES) if spec.bold else REGULAR_FONT_FILES
        for name in names:
            for font_dir in FONT_DIRS:
                font_path = font_dir / name
                if font_path.exists():
                    try:
                        return ImageFont.truetype(str(font_path), spec.size)
                    except OSError:
                        continue

        logger.warning(f"No CJK/TrueType font found — using Pillow default at {spec.size}px. "
                       f"Set STORYBOARD_FONT_PATH or place fonts in {FONTS_DIR}.")
        return ImageFont.load_default(size=spec.size)

    # ---------- measuring ----------

    def measure(self, text: str, spec: FontSpec) -> float:
        """Advance width of text in pixels."""
        if not text:
            return 0.0
        return self.font(spec).getlength(text)

    def wrap(self, text: str, max_width: float, spec: FontSpec) -> list[str]:
        """
        Greedy per-character wrap.

        A character is appended to the running line unless that would push
        the measured width past max_width; then the line is closed and the
        character starts the next one. A single character wider than
        max_width sits alone on its line. "".join(result) == text.
        """
        if not text:
            return []

        lines = []
        current = text[0]
        for char in text[1:]:
            if self.measure(current + char, spec) > max_width:
                lines.append(current)
                current = char
            else:
                current += char
        lines.append(current)
        return lines

    def block_height(self, lines: list[str], spec: FontSpec) -> int:
        """Height of a stack of lines (no padding)."""
        return len(lines) * spec.line_height

    def longest_line(self, lines: list[str], spec: FontSpec) -> float:
        return max((self.measure(line, spec) for line in lines), default=0.0)

    # ---------- rasterizing ----------

    def render_block(
        self,
        text: str,
        width: int,
        spec: FontSpec,
        color=(0, 0, 0, 255),
        padding: int = 0,
    ) -> tuple:
        """
        Rasterize wrapped text onto a transparent RGBA image.

        Returns:
            (image or None, lines) — None when text is empty
        """
        lines = self.wrap(text, width, spec)
        if not lines:
            return None, []

        height = max(1, self.block_height(lines, spec) + padding)
        block = Image.new("RGBA", (max(1, math.ceil(width)), height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(block)
        self.draw_lines(draw, lines, 0, 0, spec, fill=color)
        return block, lines

    def draw_lines(self, draw: ImageDraw.ImageDraw, lines: list[str], x: int, y: int,
                   spec: FontSpec, fill) -> None:
        """Left-aligned, top-anchored lines."""
        font = self.font(spec)
        for i, line in enumerate(lines):
            draw.text((x, y + i * spec.line_height), line, fill=fill, font=font)
