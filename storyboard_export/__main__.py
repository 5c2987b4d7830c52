"""
CLI entry point for Storyboard Export.

Usage:
    python -m storyboard_export scenes.json --title "My Story"                 # PDF
    python -m storyboard_export scenes.json --format zip                       # Image bundle
    python -m storyboard_export scenes.json --format long-image --mode comic   # Comic sheet
    python -m storyboard_export scenes.json --format long-image --with-text    # Strip, baked subtitles
    python -m storyboard_export scenes.json --format long-image --mode comic --preset american

scenes.json is either a list of scenes or {"title": "...", "scenes": [...]}.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from storyboard_export.exporter import StoryboardExporter
from storyboard_export.models import (
    ExportConfig,
    ExportFormat,
    ExportResolution,
    GenerationMode,
    LayoutPreset,
    Scene,
)
from storyboard_export.settings import layout_from_file, load_settings

logger = logging.getLogger("storyboard_export")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render storyboard scenes to PDF, ZIP or PNG")
    parser.add_argument("scenes", help="Path to scenes JSON")
    parser.add_argument("--title", type=str, default=None, help="Story title (default: from JSON)")
    parser.add_argument("--format", type=str, default=ExportFormat.DOCUMENT.value,
                        choices=[f.value for f in ExportFormat], help="Artifact format (default: pdf)")
    parser.add_argument("--mode", type=str, default=GenerationMode.STORYBOARD.value,
                        choices=[m.value for m in GenerationMode], help="Generation mode")
    parser.add_argument("--with-text", action="store_true", help="Bake narrative into the images")
    parser.add_argument("--preset", type=str, default=None,
                        choices=[p.value for p in LayoutPreset], help="Comic layout preset")
    parser.add_argument("--layout-config", type=str, default=None,
                        help="YAML file with layout/bubble overrides")
    parser.add_argument("--resolution", type=str, default=ExportResolution.ORIGINAL.value,
                        choices=[r.value for r in ExportResolution], help="Raster output width")
    parser.add_argument("--width", type=int, default=None, help="Width for --resolution custom")
    parser.add_argument("--output-dir", type=str, default=None, help="Where to write the artifact")
    parser.add_argument("--debug", action="store_true", help="Log computed layout geometry")
    return parser.parse_args(argv)


def load_scenes(path: str) -> tuple:
    """(title or None, scenes) from a JSON file."""
    with open(Path(path), "r", encoding="utf-8") as f:
        data = json.load(f)
    title = None
    if isinstance(data, dict):
        title = data.get("title")
        data = data.get("scenes", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of scenes, got {type(data).__name__}")
    return title, [Scene.from_dict(s) for s in data]


async def run(args) -> int:
    settings = load_settings()
    logging.getLogger().setLevel(logging.DEBUG if args.debug else settings.log_level)

    json_title, scenes = load_scenes(args.scenes)
    title = args.title or json_title or "Untitled"

    layout = bubble = None
    if args.layout_config:
        layout, bubble = layout_from_file(args.layout_config, preset=args.preset)

    config = ExportConfig(
        format=args.format,
        with_text=args.with_text,
        resolution=args.resolution,
        custom_width=args.width,
        comic_layout=layout,
        bubble=bubble,
        preset=args.preset,
        debug=args.debug,
    )

    exporter = StoryboardExporter(settings)
    artifact = await exporter.export(scenes, config, title, GenerationMode(args.mode))
    if artifact is None:
        print("No scenes with images — nothing exported.")
        return 0

    path = artifact.save(args.output_dir or settings.output_dir)
    print(f"Exported: {path} ({len(artifact.data):,} bytes)")
    return 0


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except (OSError, ValueError) as e:
        logger.error(f"Export failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
