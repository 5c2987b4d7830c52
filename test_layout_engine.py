"""
Storyboard Export — Layout test suite.

Text wrapping, panel geometry and speech bubbles. No I/O.

Usage:
    python test_layout_engine.py                  # Run all tests
    python test_layout_engine.py test_wrap_basic  # Run specific test
    pytest test_layout_engine.py
"""

import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from PIL import Image

from storyboard_export.bubbles import (
    BUBBLE_MARGIN,
    draw_bubble,
    layout_bubble,
    resolve_position,
)
from storyboard_export.geometry import (
    GridItem,
    column_width,
    contain_fit,
    layout_grid,
    panel_height,
)
from storyboard_export.models import (
    Box,
    BubbleConfig,
    BubblePosition,
    BubbleStyle,
    PageMargins,
    PanelAspectRatio,
)
from storyboard_export.text_layout import FontSpec, TextLayoutEngine

CJK_SENTENCE = "夜色降临，城市的霓虹灯一盏接一盏亮起，主角独自站在天台边缘。"


# ============================================================
# Test 1: Text wrapping
# ============================================================

def test_wrap_basic():
    """Lines fit the width and concatenate back to the input."""
    engine = TextLayoutEngine()
    spec = FontSpec(size=20)
    text = CJK_SENTENCE * 3 + " mixed Latin words at the end"

    for max_width in (60, 150, 400):
        lines = engine.wrap(text, max_width, spec)
        assert "".join(lines) == text
        assert len(lines) >= 1
        for line in lines:
            assert engine.measure(line, spec) <= max_width or len(line) == 1, \
                f"Line too wide at {max_width}px: {line!r}"

    print("  PASS: Wrapped lines fit and reproduce the text")


def test_wrap_edge_cases():
    """Empty input, tiny widths, and no whitespace-based breaking."""
    engine = TextLayoutEngine()
    spec = FontSpec(size=20)

    assert engine.wrap("", 100, spec) == []
    assert engine.block_height([], spec) == 0

    # Narrower than any glyph: one character per line
    assert engine.wrap("测试文本", 1, spec) == ["测", "试", "文", "本"]

    # Spaces are ordinary characters, never break points on their own
    assert engine.wrap("a b c", 10_000, spec) == ["a b c"]
    lines = engine.wrap("ab  cd", 1, spec)
    assert lines == ["a", "b", " ", " ", "c", "d"]

    print("  PASS: Wrap edge cases behave")


def test_wrap_long_cjk_caption():
    """200 CJK characters at 20px into 400px: several lines, height = lines x line height."""
    engine = TextLayoutEngine()
    spec = FontSpec(size=20)
    text = ("测试文本" * 50)[:200]
    assert len(text) == 200

    lines = engine.wrap(text, 400, spec)
    assert len(lines) > 1, "200 characters should not fit a single 400px line"
    for line in lines:
        assert engine.measure(line, spec) <= 400

    assert spec.line_height == 28
    assert engine.block_height(lines, spec) == len(lines) * spec.line_height

    print(f"  PASS: 200 CJK characters → {len(lines)} lines")


def test_render_block():
    """Rasterized text block: transparent RGBA, height from line count + padding."""
    engine = TextLayoutEngine()
    spec = FontSpec(size=20, bold=True)

    block, lines = engine.render_block(CJK_SENTENCE, 200, spec, padding=5)
    assert block.mode == "RGBA"
    assert block.width == 200
    assert block.height == len(lines) * spec.line_height + 5

    empty, no_lines = engine.render_block("", 200, spec)
    assert empty is None and no_lines == []

    print("  PASS: Text blocks rasterize to the measured size")


# ============================================================
# Test 2: Panel geometry
# ============================================================

def test_panel_height_policies():
    """Fixed ratio table, auto with and without a native ratio."""
    assert panel_height(400, PanelAspectRatio.SQUARE) == 400
    assert panel_height(400, PanelAspectRatio.STANDARD) == 300
    assert panel_height(400, PanelAspectRatio.WIDE) == 225
    assert panel_height(400, PanelAspectRatio.PORTRAIT) == 533
    assert panel_height(400, PanelAspectRatio.TALL) == 711

    assert panel_height(400, PanelAspectRatio.AUTO, 2.0) == 200
    assert panel_height(400, PanelAspectRatio.AUTO) == 300        # 4:3 fallback
    assert panel_height(400, PanelAspectRatio.AUTO, 0) == 300
    assert panel_height(1, PanelAspectRatio.AUTO, 1000.0) == 1     # never below 1px

    print("  PASS: Aspect-ratio policies map to expected heights")


def test_grid_five_panels_two_columns():
    """5 scenes in 2 columns → 3 rows; panel 4 opens row 2 at column 0."""
    margins = PageMargins(top=320, bottom=120, left=120, right=120)
    items = [GridItem(panel_height=h) for h in (810, 600, 700, 900, 500)]
    grid = layout_grid(items, columns=2, canvas_width=2480, margins=margins,
                       spacing=80, row_spacing=100)

    assert grid.rows == 3
    assert grid.row_heights == [810, 900, 500]

    last = grid.placements[4]
    assert (last.row, last.column) == (2, 0)
    assert last.box.y == 320 + 810 + 100 + 900 + 100
    assert last.box.x == grid.placements[0].box.x == 120

    # Same row → same y; columns strictly increase in x
    assert grid.placements[2].box.y == grid.placements[3].box.y
    assert grid.placements[0].box.x < grid.placements[1].box.x

    assert grid.total_height == 320 + 810 + 900 + 500 + 2 * 100 + 120
    assert grid.total_height >= sum(grid.row_heights)

    print("  PASS: 5-panel grid places rows and columns correctly")


def test_grid_captions_and_uniform_height():
    """Captions extend row heights; uniform height overrides per-panel heights."""
    margins = PageMargins(top=10, bottom=10, left=10, right=10)
    items = [
        GridItem(panel_height=100, caption_height=50),
        GridItem(panel_height=120, caption_height=0),
        GridItem(panel_height=80, caption_height=10),
    ]
    grid = layout_grid(items, columns=2, canvas_width=430, margins=margins, spacing=10)
    assert grid.row_heights == [150, 90]
    assert grid.placements[0].box.width == column_width(430, 2, margins, 10) == 200

    uniform = layout_grid(items, columns=2, canvas_width=430, margins=margins,
                          spacing=10, uniform_height=200)
    assert all(p.box.height == 200 for p in uniform.placements)
    assert uniform.row_heights == [250, 210]

    empty = layout_grid([], columns=2, canvas_width=430, margins=margins, spacing=10)
    assert empty.placements == [] and empty.total_height == 20

    print("  PASS: Caption heights and uniform panels feed row heights")


def test_grid_reorder_keeps_item_geometry():
    """Reordering changes positions only, never per-item size."""
    margins = PageMargins(top=0, bottom=0, left=0, right=0)
    items = [GridItem(panel_height=h) for h in (100, 200, 300)]

    forward = layout_grid(items, 2, 400, margins, spacing=0)
    backward = layout_grid(list(reversed(items)), 2, 400, margins, spacing=0)

    sizes_forward = sorted((p.box.width, p.box.height) for p in forward.placements)
    sizes_backward = sorted((p.box.width, p.box.height) for p in backward.placements)
    assert sizes_forward == sizes_backward

    print("  PASS: Reordering preserves per-item geometry")


def test_contain_fit():
    """Wide images fill the width; tall images shrink to the height budget."""
    assert contain_fit(400, 200, 1000, 800) == (1000, 500)
    assert contain_fit(100, 1000, 1000, 800) == (80, 800)
    assert contain_fit(0, 0, 400, 1000) == (400, 300)      # undecoded → 4:3

    print("  PASS: Contain-fit keeps aspect ratio within budget")


# ============================================================
# Test 3: Speech bubbles
# ============================================================

PANEL = Box(0, 0, 400, 300)


def test_bubble_footprint():
    """Width capped at 85% of the panel, height = lines x line height + padding."""
    engine = TextLayoutEngine()
    config = BubbleConfig(font_size=24, padding=16)

    short = layout_bubble(engine, "你好", PANEL, config)
    assert len(short.lines) == 1
    assert short.box.height == short.font.line_height + 32
    assert short.box.width <= PANEL.width * 0.85

    long = layout_bubble(engine, CJK_SENTENCE * 2, PANEL, config)
    assert len(long.lines) > 1
    assert long.box.width <= round(PANEL.width * 0.85)
    assert long.box.height == len(long.lines) * long.font.line_height + 32

    print("  PASS: Bubble footprint follows wrapped text")


def test_bubble_positions():
    """Explicit corners hug their edges; AUTO centres tall bubbles."""
    w, h = 100, 50
    m = BUBBLE_MARGIN
    assert resolve_position(BubblePosition.TOP_LEFT, PANEL, w, h) == (m, m)
    assert resolve_position(BubblePosition.TOP_RIGHT, PANEL, w, h) == (400 - w - m, m)
    assert resolve_position(BubblePosition.BOTTOM_LEFT, PANEL, w, h) == (m, 300 - h - m)
    assert resolve_position(BubblePosition.BOTTOM_RIGHT, PANEL, w, h) == (400 - w - m, 300 - h - m)
    assert resolve_position(BubblePosition.CENTER, PANEL, w, h) == (150, 125)

    assert resolve_position(BubblePosition.AUTO, PANEL, w, h) == (m, m)
    assert resolve_position(BubblePosition.AUTO, PANEL, w, 200) == (150, 50)   # 200 > 60% of 300

    offset_panel = Box(1000, 500, 400, 300)
    assert resolve_position(BubblePosition.AUTO, offset_panel, w, h) == (1000 + m, 500 + m)

    print("  PASS: Bubble anchoring follows the position policy")


def test_bubble_drawing():
    """Fill, shadow and the american tail land where expected."""
    engine = TextLayoutEngine()
    red = (255, 0, 0)
    surface = Image.new("RGB", (400, 300), red)

    config = BubbleConfig(style=BubbleStyle.MODERN, shadow=True, border_width=2, padding=16)
    bubble = layout_bubble(engine, "你好", PANEL, config)
    result = draw_bubble(surface, engine, bubble, config)

    assert result.size == surface.size and result.mode == "RGB"
    assert surface.getpixel((bubble.box.x + bubble.box.width // 2, bubble.box.y + 5)) == red, \
        "Source surface must not change"
    assert result.getpixel((bubble.box.x + bubble.box.width // 2, bubble.box.y + 5)) == (255, 255, 255)

    shadow_px = result.getpixel((bubble.box.right + 2, bubble.box.y + bubble.box.height // 2))
    assert shadow_px[0] < 230, f"Expected darkened shadow pixel, got {shadow_px}"

    american = BubbleConfig(style=BubbleStyle.AMERICAN, border_width=2, padding=16)
    bubble = layout_bubble(engine, "你好", PANEL, american)
    result = draw_bubble(surface, engine, bubble, american)
    tail_px = result.getpixel((bubble.box.x + 30, bubble.box.bottom + 5))
    assert tail_px != red, "American bubble should have a tail below its bottom-left"

    print("  PASS: Bubbles draw fill, shadow and tail")


def test_american_shadow_skips_tail():
    """The american shadow copies the body only; no shadow tail below it."""
    engine = TextLayoutEngine()
    red = (255, 0, 0)
    surface = Image.new("RGB", (400, 300), red)

    config = BubbleConfig(style=BubbleStyle.AMERICAN, shadow=True, border_width=2, padding=16)
    bubble = layout_bubble(engine, "你好", PANEL, config)
    result = draw_bubble(surface, engine, bubble, config)

    # Inside the real tail
    assert result.getpixel((bubble.box.x + 30, bubble.box.bottom + 5)) != red
    # Where a tail shifted by the shadow offset would land, clear of the real tail and body shadow
    assert result.getpixel((bubble.box.x + 34, bubble.box.bottom + 9)) == red
    # Body shadow still drawn
    assert result.getpixel((bubble.box.right + 2, bubble.box.y + bubble.box.height // 2))[0] < 230

    print("  PASS: American bubble shadow has no tail")


def test_bubble_config_scaling():
    """Scaled configs shrink every metric but keep the style."""
    config = BubbleConfig(style="american", font_size=28, padding=20, border_width=4, border_radius=12)
    scaled = config.scaled(0.5)
    assert (scaled.font_size, scaled.padding, scaled.border_width, scaled.border_radius) == (14, 10, 2, 6)
    assert scaled.style == BubbleStyle.AMERICAN

    print("  PASS: Bubble config scales for previews")


# ============================================================
# Runner
# ============================================================

def main():
    """Run tests."""
    specific = sys.argv[1] if len(sys.argv) > 1 else None

    tests = {
        name: func for name, func in globals().items()
        if name.startswith("test_") and callable(func)
    }

    if specific:
        if specific not in tests:
            print(f"Unknown test: {specific}")
            print(f"Available: {', '.join(tests.keys())}")
            sys.exit(1)
        tests = {specific: tests[specific]}

    passed = 0
    failed = 0

    print("\nLayout Engine Tests")
    print("=" * 50)

    for name, func in tests.items():
        print(f"\n{name}:")
        try:
            func()
            passed += 1
        except Exception as e:
            print(f"  FAIL: {e}")
            failed += 1

    print(f"\n{'=' * 50}")
    print(f"Results: {passed} passed, {failed} failed")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
