"""
Storyboard Export — Speech bubbles.

Sizes a bubble from wrapped text, anchors it inside a panel, and draws it:
- Rounded rectangle (japanese / modern / custom)
- Half-rounded rectangle with a fixed triangular tail (american)
- Optional drop shadow drawn first, offset down-right
"""

import logging
from dataclasses import dataclass

from PIL import Image, ImageDraw

from storyboard_export.models import Box, BubbleConfig, BubblePosition, BubbleStyle
from storyboard_export.text_layout import FontSpec, TextLayoutEngine

logger = logging.getLogger(__name__)

BUBBLE_MARGIN = 20           # Gap between bubble and panel edge
MAX_WIDTH_FRACTION = 0.85    # Bubble never wider than this share of the panel
CENTER_THRESHOLD = 0.6       # AUTO centers bubbles taller than this share of the panel
SHADOW_OFFSET = (4, 4)
SHADOW_FILL = (0, 0, 0, 77)  # ~30% black

# Tail points relative to the bubble's bottom-left corner (fixed, size-independent)
TAIL_BASE_RIGHT = 40
TAIL_TIP = (20, 15)
TAIL_BASE_LEFT = 30


@dataclass(frozen=True)
class BubbleLayout:
    box: Box
    lines: tuple
    font: FontSpec


def bubble_font(config: BubbleConfig) -> FontSpec:
    return FontSpec(size=config.font_size, bold=True)


def layout_bubble(
    engine: TextLayoutEngine,
    text: str,
    panel: Box,
    config: BubbleConfig,
) -> BubbleLayout:
    """
    Compute a bubble's footprint and position inside panel.

    width  = min(longest line + 2*padding, 85% of panel width)
    height = lines * line_height + 2*padding
    """
    spec = bubble_font(config)
    max_width = panel.width * MAX_WIDTH_FRACTION
    lines = engine.wrap(text, max_width - 2 * config.padding, spec)

    width = min(engine.longest_line(lines, spec) + 2 * config.padding, max_width)
    height = engine.block_height(lines, spec) + 2 * config.padding
    width = max(1, round(width))
    height = max(1, round(height))

    x, y = resolve_position(config.position, panel, width, height)
    return BubbleLayout(box=Box(x, y, width, height), lines=tuple(lines), font=spec)


def resolve_position(position: BubblePosition, panel: Box, width: int, height: int) -> tuple:
    """Top-left corner of a width x height bubble for the given policy."""
    left = panel.x + BUBBLE_MARGIN
    right = panel.x + panel.width - width - BUBBLE_MARGIN
    top = panel.y + BUBBLE_MARGIN
    bottom = panel.y + panel.height - height - BUBBLE_MARGIN
    center = (panel.x + (panel.width - width) // 2, panel.y + (panel.height - height) // 2)

    if position == BubblePosition.TOP_LEFT:
        return left, top
    if position == BubblePosition.TOP_RIGHT:
        return right, top
    if position == BubblePosition.BOTTOM_LEFT:
        return left, bottom
    if position == BubblePosition.BOTTOM_RIGHT:
        return right, bottom
    if position == BubblePosition.CENTER:
        return center

    # AUTO
    if height > panel.height * CENTER_THRESHOLD:
        return center
    return left, top


def _tail_points(box: Box) -> list:
    base_y = box.bottom
    return [
        (box.x + TAIL_BASE_RIGHT, base_y),
        (box.x + TAIL_TIP[0], base_y + TAIL_TIP[1]),
        (box.x + TAIL_BASE_LEFT, base_y),
    ]


def _draw_shape(draw: ImageDraw.ImageDraw, box: Box, config: BubbleConfig, fill, outline, width: int,
                with_tail: bool = True):
    xyxy = [box.x, box.y, box.right, box.bottom]
    if config.style == BubbleStyle.AMERICAN:
        draw.rounded_rectangle(xyxy, radius=config.border_radius * 0.5,
                               fill=fill, outline=outline, width=width)
        if not with_tail:
            return
        tail = _tail_points(box)
        draw.polygon(tail, fill=fill, outline=outline, width=width)
        # Cover the seam between tail and body
        if width > 0:
            draw.line([(tail[2][0] + width, box.bottom), (tail[0][0] - width, box.bottom)],
                      fill=fill, width=width)
    else:
        draw.rounded_rectangle(xyxy, radius=config.border_radius,
                               fill=fill, outline=outline, width=width)


def draw_bubble(
    surface: Image.Image,
    engine: TextLayoutEngine,
    bubble: BubbleLayout,
    config: BubbleConfig,
    debug: bool = False,
) -> Image.Image:
    """
    Draw the bubble (shadow, body, text) onto surface.

    Drawn on an RGBA overlay so the shadow can be translucent; returns the
    composited surface (same mode as the input).
    """
    overlay = Image.new("RGBA", surface.size, (0, 0, 0, 0))
    overlay_draw = ImageDraw.Draw(overlay)

    if config.shadow:
        dx, dy = SHADOW_OFFSET
        shadow_box = Box(bubble.box.x + dx, bubble.box.y + dy, bubble.box.width, bubble.box.height)
        # Shadow follows the body only; the tail casts none
        _draw_shape(overlay_draw, shadow_box, config, SHADOW_FILL, None, 0, with_tail=False)

    _draw_shape(overlay_draw, bubble.box, config, config.color, config.border_color, config.border_width)

    mode = surface.mode
    result = Image.alpha_composite(surface.convert("RGBA"), overlay)

    draw = ImageDraw.Draw(result)
    engine.draw_lines(
        draw, list(bubble.lines),
        bubble.box.x + config.padding, bubble.box.y + config.padding,
        bubble.font, fill=config.text_color,
    )
    if debug:
        draw.rectangle(bubble.box.as_xyxy(), outline=(255, 0, 0), width=1)
        logger.info(f"Bubble {bubble.box} lines={len(bubble.lines)}")

    return result.convert(mode) if mode != "RGBA" else result
