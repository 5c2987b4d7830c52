"""
Storyboard Export — Panel geometry.

Panel sizes from aspect-ratio policies, and row-major grid placement.
Pure arithmetic: no drawing, no image access.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from storyboard_export.models import Box, PageMargins, PanelAspectRatio

logger = logging.getLogger(__name__)

# height = width * factor
ASPECT_HEIGHT_FACTORS = {
    PanelAspectRatio.SQUARE: 1.0,
    PanelAspectRatio.STANDARD: 0.75,
    PanelAspectRatio.WIDE: 0.5625,
    PanelAspectRatio.PORTRAIT: 1.333,
    PanelAspectRatio.TALL: 1.778,
}
AUTO_FALLBACK_FACTOR = 0.75  # 4:3 when the image ratio is unknown


def panel_height(width: int, policy: PanelAspectRatio, image_ratio: Optional[float] = None) -> int:
    """
    Height of a panel of the given width.

    Args:
        width: Panel width in pixels
        policy: Fixed ratio, or AUTO to follow the image
        image_ratio: Native width/height of the image (AUTO only)
    """
    if policy == PanelAspectRatio.AUTO:
        if image_ratio and image_ratio > 0:
            height = width / image_ratio
        else:
            height = width * AUTO_FALLBACK_FACTOR
    else:
        height = width * ASPECT_HEIGHT_FACTORS[policy]
    return max(1, round(height))


def column_width(canvas_width: int, columns: int, margins: PageMargins, spacing: int) -> int:
    """Width of one column after margins and gutters."""
    available = canvas_width - margins.left - margins.right - spacing * (columns - 1)
    return max(1, available // columns)


@dataclass(frozen=True)
class GridItem:
    """Input to layout_grid: a panel and the caption block hung under it."""
    panel_height: int
    caption_height: int = 0


@dataclass(frozen=True)
class PanelPlacement:
    index: int
    row: int
    column: int
    box: Box                 # The panel (image) rectangle
    caption_height: int = 0


@dataclass
class GridLayout:
    canvas_width: int
    total_height: int
    placements: list[PanelPlacement] = field(default_factory=list)
    row_heights: list[int] = field(default_factory=list)

    @property
    def rows(self) -> int:
        return len(self.row_heights)

    def log(self, label: str = "grid"):
        logger.info(f"[{label}] {self.canvas_width}x{self.total_height}, "
                    f"{len(self.placements)} panels in {self.rows} rows")
        for p in self.placements:
            logger.info(f"  #{p.index} r{p.row}c{p.column} {p.box} caption={p.caption_height}")


def layout_grid(
    items: list[GridItem],
    columns: int,
    canvas_width: int,
    margins: PageMargins,
    spacing: int,
    row_spacing: Optional[int] = None,
    uniform_height: Optional[int] = None,
) -> GridLayout:
    """
    Place items row-major, left to right, top to bottom.

    A new row starts whenever the column index wraps to 0 (except for the
    first item). Row height is the tallest panel + caption in that row.
    Total height = top margin + rows + row gutters + bottom margin.

    Args:
        items: Panel/caption heights, in scene order
        columns: Grid columns
        canvas_width: Full canvas width
        margins: Canvas margins (top margin includes any header band)
        spacing: Horizontal gutter
        row_spacing: Vertical gutter (defaults to spacing)
        uniform_height: If set, every panel gets this height
    """
    if columns < 1:
        raise ValueError(f"columns must be >= 1, got {columns}")
    if row_spacing is None:
        row_spacing = spacing

    width = column_width(canvas_width, columns, margins, spacing)
    layout = GridLayout(canvas_width=canvas_width, total_height=0)

    y = margins.top
    row = 0
    row_max = 0
    for i, item in enumerate(items):
        col = i % columns
        if col == 0 and i != 0:
            layout.row_heights.append(row_max)
            y += row_max + row_spacing
            row += 1
            row_max = 0

        h = uniform_height if uniform_height else item.panel_height
        h = max(1, h)
        x = margins.left + col * (width + spacing)
        layout.placements.append(PanelPlacement(
            index=i,
            row=row,
            column=col,
            box=Box(x, y, width, h),
            caption_height=item.caption_height,
        ))
        row_max = max(row_max, h + item.caption_height)

    if items:
        layout.row_heights.append(row_max)
        y += row_max

    layout.total_height = max(1, y + margins.bottom)
    return layout


def contain_fit(src_w: int, src_h: int, max_w: int, max_h: int) -> tuple:
    """
    Scale to the full available width, shrinking to max_h if too tall.
    Returns integer (width, height), both >= 1.
    """
    ratio = src_w / src_h if src_w > 0 and src_h > 0 else 1 / AUTO_FALLBACK_FACTOR
    width = max_w
    height = max_w / ratio
    if height > max_h:
        height = max_h
        width = max_h * ratio
    return max(1, round(width)), max(1, round(height))

