"""
Storyboard Export — Image compositor.

Bakes a scene's narrative into its image pixels. Two treatments:
- comic: opaque white caption bar across the bottom, single centred line,
  truncated with an ellipsis when too long
- cinematic (storyboard): transparent→black gradient over the bottom quarter,
  wrapped white subtitles stacked upward from the bottom with a soft shadow

The source image is never modified; a new RGB image is returned.
"""

import logging
import math

from PIL import Image, ImageDraw, ImageFilter

from storyboard_export.models import GenerationMode
from storyboard_export.text_layout import FontSpec, TextLayoutEngine

logger = logging.getLogger(__name__)

# Comic caption bar
BAR_MIN_HEIGHT = 60
BAR_HEIGHT_FRACTION = 0.15
BAR_FONT_FRACTION = 0.4
BAR_BORDER_WIDTH = 4
BAR_TEXT_MAX_FRACTION = 0.9
BAR_FILL = (255, 255, 255)
BAR_TEXT_COLOR = (0, 0, 0)
ELLIPSIS = "..."

# Cinematic subtitles
GRADIENT_HEIGHT_FRACTION = 0.25
GRADIENT_MAX_ALPHA = 0.9
SUBTITLE_MIN_FONT = 20
SUBTITLE_FONT_DIVISOR = 30
SUBTITLE_WIDTH_FRACTION = 0.8
SUBTITLE_BOTTOM_FRACTION = 0.05
SUBTITLE_COLOR = (255, 255, 255, 255)
SUBTITLE_SHADOW = (0, 0, 0, 204)
SUBTITLE_SHADOW_OFFSET = 2
SUBTITLE_SHADOW_BLUR = 2


class ImageCompositor:
    """Flattens narrative text onto scene images."""

    def __init__(self, engine: TextLayoutEngine):
        self.engine = engine

    def composite(self, image, text: str, mode: GenerationMode):
        """
        Return a new image with text baked in.

        No-op (returns the input) when text is empty or image is None.
        """
        if image is None or not text:
            return image

        canvas = image.convert("RGB")
        if mode == GenerationMode.COMIC:
            return self._caption_bar(canvas, text)
        return self._cinematic_subtitle(canvas, text)

    # ---------- comic ----------

    def caption_bar_height(self, image_height: int) -> int:
        return max(BAR_MIN_HEIGHT, math.floor(image_height * BAR_HEIGHT_FRACTION))

    def fit_single_line(self, text: str, max_width: float, spec: FontSpec) -> str:
        """Hard-truncate with an ellipsis until the line fits max_width."""
        full_width = self.engine.measure(text, spec)
        if full_width <= max_width:
            return text

        # Start from the proportional estimate, then trim until it fits
        keep = math.floor(len(text) * (max_width / full_width)) - len(ELLIPSIS) + 1
        keep = max(0, min(keep, len(text) - 1))
        candidate = text[:keep] + ELLIPSIS
        while keep > 0 and self.engine.measure(candidate, spec) > max_width:
            keep -= 1
            candidate = text[:keep] + ELLIPSIS
        return candidate

    def _caption_bar(self, canvas: Image.Image, text: str) -> Image.Image:
        width, height = canvas.size
        bar_h = self.caption_bar_height(height)
        top = height - bar_h

        draw = ImageDraw.Draw(canvas)
        draw.rectangle([0, top, width, height], fill=BAR_FILL)
        draw.line([(0, top), (width, top)], fill=(0, 0, 0), width=BAR_BORDER_WIDTH)

        spec = FontSpec(size=max(1, math.floor(bar_h * BAR_FONT_FRACTION)), bold=True)
        line = self.fit_single_line(text, width * BAR_TEXT_MAX_FRACTION, spec)
        draw.text(
            (width / 2, top + bar_h / 2),
            line,
            fill=BAR_TEXT_COLOR,
            font=self.engine.font(spec),
            anchor="mm",
        )
        return canvas

    # ---------- cinematic ----------

    def _gradient_mask(self, width: int, height: int) -> Image.Image:
        """Vertical alpha ramp 0 → 90%."""
        column = Image.new("L", (1, height))
        max_alpha = GRADIENT_MAX_ALPHA * 255
        denom = max(1, height - 1)
        column.putdata([round(max_alpha * y / denom) for y in range(height)])
        return column.resize((width, height))

    def _cinematic_subtitle(self, canvas: Image.Image, text: str) -> Image.Image:
        width, height = canvas.size
        grad_h = max(1, math.floor(height * GRADIENT_HEIGHT_FRACTION))
        top = height - grad_h

        black = Image.new("RGB", (width, grad_h), (0, 0, 0))
        canvas.paste(black, (0, top), self._gradient_mask(width, grad_h))

        spec = FontSpec(size=max(SUBTITLE_MIN_FONT, width // SUBTITLE_FONT_DIVISOR))
        lines = self.engine.wrap(text, width * SUBTITLE_WIDTH_FRACTION, spec)
        font = self.engine.font(spec)
        bottom_pad = height * SUBTITLE_BOTTOM_FRACTION

        # Last line nearest the bottom, earlier lines stacked upward
        positions = [
            (line, (width / 2, height - bottom_pad - i * spec.line_height))
            for i, line in enumerate(reversed(lines))
        ]

        shadow = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        shadow_draw = ImageDraw.Draw(shadow)
        for line, (x, y) in positions:
            shadow_draw.text((x, y + SUBTITLE_SHADOW_OFFSET), line,
                             fill=SUBTITLE_SHADOW, font=font, anchor="mb")
        shadow = shadow.filter(ImageFilter.GaussianBlur(SUBTITLE_SHADOW_BLUR))

        result = Image.alpha_composite(canvas.convert("RGBA"), shadow)
        draw = ImageDraw.Draw(result)
        for line, (x, y) in positions:
            draw.text((x, y), line, fill=SUBTITLE_COLOR, font=font, anchor="mb")
        return result.convert("RGB")
