"""
Storyboard Export — Data models.

Dataclasses for the export pipeline:
Scene + ExportConfig → (layout/bubble configs) → ExportArtifact.

Everything here is built fresh per export call and thrown away afterwards.
"""

import re
from dataclasses import dataclass, field, fields, replace
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Optional


# ============================================================
# Enumerations
# ============================================================

class ExportFormat(Enum):
    """Artifact kinds. Values are the editor's wire names."""

    DOCUMENT = "pdf"          # Paginated landscape document, one page per scene
    BUNDLE = "zip"            # Images + script.txt manifest
    COMPOSITE = "long-image"  # Single raster: strip or comic sheet


class GenerationMode(Enum):
    STORYBOARD = "storyboard"
    COMIC = "comic"


class PanelAspectRatio(Enum):
    AUTO = "auto"
    SQUARE = "1:1"
    STANDARD = "4:3"
    WIDE = "16:9"
    PORTRAIT = "3:4"
    TALL = "9:16"


class BorderStyle(Enum):
    NONE = "none"
    SOLID = "solid"
    DASHED = "dashed"


class BubbleStyle(Enum):
    JAPANESE = "japanese"
    AMERICAN = "american"    # Rectangle with a small triangular tail
    MODERN = "modern"
    CUSTOM = "custom"


class BubblePosition(Enum):
    AUTO = "auto"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CENTER = "center"


class LayoutPreset(Enum):
    JAPANESE = "japanese"
    AMERICAN = "american"
    WEBTOON = "webtoon"
    FOUR_PANEL = "four-panel"
    CUSTOM = "custom"


class ExportResolution(Enum):
    SCREEN = "screen"
    HD = "hd"
    UHD_4K = "4k"
    PRINT = "print"
    ORIGINAL = "original"
    CUSTOM = "custom"


# Target output width per resolution (None = keep rendered size)
RESOLUTION_WIDTHS = {
    ExportResolution.SCREEN: 1280,
    ExportResolution.HD: 1920,
    ExportResolution.UHD_4K: 3840,
    ExportResolution.PRINT: 2480,
    ExportResolution.ORIGINAL: None,
    ExportResolution.CUSTOM: None,
}


def _coerce(enum_cls, value):
    """Accept either an enum member or its wire value."""
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)


# ============================================================
# Geometry records
# ============================================================

@dataclass(frozen=True)
class Box:
    """Integer pixel rectangle."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def as_xyxy(self) -> tuple:
        """Pillow-style [x0, y0, x1, y1] (inclusive end)."""
        return (self.x, self.y, self.x + self.width - 1, self.y + self.height - 1)


# ============================================================
# Scene
# ============================================================

@dataclass(frozen=True)
class Scene:
    """One narrative beat with its generated image. Read-only to the exporter."""
    id: int
    narrative: str = ""
    visual_prompt: str = ""
    image_url: Optional[str] = None  # data: URL, http(s) URL, file:// URL or path
    characters: tuple = ()

    @property
    def ordinal(self) -> int:
        """1-based number shown to readers."""
        return self.id + 1

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    @classmethod
    def from_dict(cls, data: dict) -> "Scene":
        """
        Build from editor JSON (camelCase or snake_case image key).

        Raises:
            ValueError: entry is not an object or has no usable integer id
        """
        if not isinstance(data, dict) or "id" not in data:
            raise ValueError(f"Scene entry missing 'id': {data!r}")
        try:
            scene_id = int(data["id"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Scene entry has a non-integer id: {data['id']!r}") from e

        return cls(
            id=scene_id,
            narrative=data.get("narrative") or "",
            visual_prompt=data.get("visual_prompt") or data.get("visualPrompt") or "",
            image_url=data.get("imageUrl") or data.get("image_url"),
            characters=tuple(data.get("characters") or ()),
        )


# ============================================================
# Layout + bubble configuration
# ============================================================

@dataclass(frozen=True)
class PageMargins:
    top: int = 40
    bottom: int = 40
    left: int = 30
    right: int = 30

    def scaled(self, factor: float) -> "PageMargins":
        return PageMargins(
            top=round(self.top * factor),
            bottom=round(self.bottom * factor),
            left=round(self.left * factor),
            right=round(self.right * factor),
        )


@dataclass(frozen=True)
class PanelLayoutConfig:
    """Grid layout for comic sheets and previews."""
    columns: int = 2
    panel_aspect_ratio: PanelAspectRatio = PanelAspectRatio.AUTO
    panel_spacing: int = 30
    page_margin: PageMargins = field(default_factory=PageMargins)
    border_width: int = 3
    border_style: BorderStyle = BorderStyle.SOLID
    show_panel_numbers: bool = False

    def __post_init__(self):
        object.__setattr__(self, "panel_aspect_ratio",
                           _coerce(PanelAspectRatio, self.panel_aspect_ratio))
        object.__setattr__(self, "border_style", _coerce(BorderStyle, self.border_style))
        if isinstance(self.page_margin, dict):
            object.__setattr__(self, "page_margin", PageMargins(**self.page_margin))
        if not 1 <= int(self.columns) <= 4:
            raise ValueError(f"columns must be between 1 and 4, got {self.columns}")

    @property
    def uniform_height(self) -> bool:
        """Fixed ratios give every panel the same height."""
        return self.panel_aspect_ratio != PanelAspectRatio.AUTO


@dataclass(frozen=True)
class BubbleConfig:
    """Speech bubble appearance."""
    style: BubbleStyle = BubbleStyle.MODERN
    position: BubblePosition = BubblePosition.AUTO
    color: str = "#ffffff"         # Fill
    text_color: str = "#000000"
    border_width: int = 2
    border_color: str = "#000000"
    font_size: int = 24
    padding: int = 16
    border_radius: int = 16
    shadow: bool = False

    def __post_init__(self):
        object.__setattr__(self, "style", _coerce(BubbleStyle, self.style))
        object.__setattr__(self, "position", _coerce(BubblePosition, self.position))
        if self.font_size <= 0:
            raise ValueError(f"font_size must be positive, got {self.font_size}")

    def scaled(self, factor: float) -> "BubbleConfig":
        """Shrink metrics for a downscaled surface (preview)."""
        return replace(
            self,
            font_size=max(1, round(self.font_size * factor)),
            padding=round(self.padding * factor),
            border_width=round(self.border_width * factor),
            border_radius=round(self.border_radius * factor),
        )


LAYOUT_PRESETS = {
    LayoutPreset.JAPANESE: {
        "name": "Japanese manga",
        "layout": PanelLayoutConfig(
            columns=2, panel_spacing=20,
            page_margin=PageMargins(top=40, bottom=40, left=30, right=30),
            border_width=2,
        ),
        "bubble": BubbleConfig(
            style=BubbleStyle.JAPANESE, font_size=24, padding=16, border_radius=20,
        ),
    },
    LayoutPreset.AMERICAN: {
        "name": "American comic",
        "layout": PanelLayoutConfig(
            columns=2, panel_spacing=30,
            page_margin=PageMargins(top=50, bottom=50, left=40, right=40),
            border_width=4, show_panel_numbers=True,
        ),
        "bubble": BubbleConfig(
            style=BubbleStyle.AMERICAN, border_width=4, font_size=28,
            padding=20, border_radius=12, shadow=True,
        ),
    },
    LayoutPreset.WEBTOON: {
        "name": "Webtoon",
        "layout": PanelLayoutConfig(
            columns=1, panel_spacing=10,
            page_margin=PageMargins(top=20, bottom=20, left=20, right=20),
            border_width=0, border_style=BorderStyle.NONE,
        ),
        "bubble": BubbleConfig(
            style=BubbleStyle.MODERN, font_size=22, padding=14, border_radius=16,
        ),
    },
    LayoutPreset.FOUR_PANEL: {
        "name": "Four-panel strip",
        "layout": PanelLayoutConfig(
            columns=2, panel_aspect_ratio=PanelAspectRatio.SQUARE, panel_spacing=15,
            page_margin=PageMargins(top=30, bottom=30, left=25, right=25),
            border_width=3,
        ),
        "bubble": BubbleConfig(
            style=BubbleStyle.JAPANESE, font_size=20, padding=12, border_radius=18,
        ),
    },
    LayoutPreset.CUSTOM: {
        "name": "Custom",
        "layout": PanelLayoutConfig(),
        "bubble": BubbleConfig(),
    },
}


def get_preset(preset) -> dict:
    """Look up a preset; unknown names fall back to CUSTOM."""
    try:
        preset = _coerce(LayoutPreset, preset)
    except ValueError:
        preset = LayoutPreset.CUSTOM
    return LAYOUT_PRESETS[preset]


def apply_preset(preset, overrides: Optional[dict] = None) -> tuple:
    """
    Merge user overrides on top of a preset.

    Args:
        preset: LayoutPreset or its name
        overrides: Optional {"layout": {...}, "bubble": {...}} mapping
            (snake_case field names, enum values as strings)

    Returns:
        (PanelLayoutConfig, BubbleConfig)
    """
    base = get_preset(preset)
    overrides = overrides or {}
    layout = _merge(base["layout"], overrides.get("layout") or {})
    bubble = _merge(base["bubble"], overrides.get("bubble") or {})
    return layout, bubble


def _merge(config, values: dict):
    known = {f.name for f in fields(config)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {type(config).__name__} fields: {sorted(unknown)}")
    values = dict(values)
    if isinstance(values.get("page_margin"), dict):
        values["page_margin"] = replace(config.page_margin, **values["page_margin"])
    return replace(config, **values)


# ============================================================
# Export configuration + result
# ============================================================

@dataclass(frozen=True)
class ExportConfig:
    """User-chosen export options for one call."""
    format: ExportFormat = ExportFormat.DOCUMENT
    with_text: bool = False     # Bake narrative into image pixels
    resolution: ExportResolution = ExportResolution.ORIGINAL
    custom_width: Optional[int] = None
    comic_layout: Optional[PanelLayoutConfig] = None
    bubble: Optional[BubbleConfig] = None
    preset: Optional[LayoutPreset] = None
    issue_date: Optional[date] = None
    debug: bool = False

    def __post_init__(self):
        object.__setattr__(self, "format", _coerce(ExportFormat, self.format))
        object.__setattr__(self, "resolution", _coerce(ExportResolution, self.resolution))
        if self.preset is not None:
            object.__setattr__(self, "preset", _coerce(LayoutPreset, self.preset))
        if self.resolution == ExportResolution.CUSTOM and not self.custom_width:
            raise ValueError("custom resolution requires custom_width")

    @property
    def target_width(self) -> Optional[int]:
        if self.resolution == ExportResolution.CUSTOM:
            return self.custom_width
        return RESOLUTION_WIDTHS[self.resolution]

    def resolved_comic_layout(self) -> Optional[tuple]:
        """(layout, bubble) when a configurable comic layout was requested."""
        if self.comic_layout is None and self.bubble is None and self.preset is None:
            return None
        preset = get_preset(self.preset or LayoutPreset.CUSTOM)
        return (
            self.comic_layout or preset["layout"],
            self.bubble or preset["bubble"],
        )


def safe_title(title: str) -> str:
    """Whitespace runs become underscores for filenames."""
    return re.sub(r"\s+", "_", title)


@dataclass
class ExportArtifact:
    """A finished export: one named file blob plus the geometry it was drawn from."""
    filename: str
    data: bytes = b""
    media_type: str = "application/octet-stream"
    layout: Any = None
    page_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.data

    def save(self, output_dir: str) -> Path:
        """Write the artifact into output_dir and return its path."""
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        path = out / self.filename
        path.write_bytes(self.data)
        return path
