"""
Storyboard Export — render generated scenes into shareable artifacts.

One scene list → one of three artifact kinds:
1. Paginated landscape PDF (one page per scene)
2. ZIP bundle of scene images + script.txt manifest
3. Single PNG: comic sheet (comic mode) or long strip (storyboard mode)

Usage:
    from storyboard_export import StoryboardExporter, ExportConfig, Scene

    exporter = StoryboardExporter()
    artifact = await exporter.export(
        scenes=[Scene(id=0, narrative="...", image_url="data:image/png;base64,...")],
        config=ExportConfig(format="pdf"),
        title="My Story",
    )
"""

from storyboard_export.exporter import StoryboardExporter, export_scenes
from storyboard_export.models import (
    BubbleConfig,
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    GenerationMode,
    PanelLayoutConfig,
    Scene,
)

__all__ = [
    "StoryboardExporter",
    "export_scenes",
    "BubbleConfig",
    "ExportArtifact",
    "ExportConfig",
    "ExportFormat",
    "GenerationMode",
    "PanelLayoutConfig",
    "Scene",
]
