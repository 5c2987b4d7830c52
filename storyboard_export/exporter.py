"""
Storyboard Export — Main orchestrator.

StoryboardExporter ties the stages together:
  Scenes → filter → decode (fan-out) → optional text baking → assemble → artifact

Output per format:
1. pdf         → <title>_Storyboard.pdf   (one landscape page per scene)
2. zip         → <title>_Assets.zip       (Scene_NN.png + script.txt)
3. long-image  → <title>_ComicPage.png    (comic mode)
                 <title>_LongImage.png    (storyboard mode)
"""

import logging
from typing import Optional

from PIL import Image

from storyboard_export.assembler import PREVIEW_MAX_SCENES, DocumentAssembler, SceneImage
from storyboard_export.compositor import ImageCompositor
from storyboard_export.image_loader import load_images
from storyboard_export.models import (
    BubbleConfig,
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    GenerationMode,
    PanelLayoutConfig,
    Scene,
    get_preset,
)
from storyboard_export.settings import ExportSettings
from storyboard_export.text_layout import TextLayoutEngine

logger = logging.getLogger(__name__)


class StoryboardExporter:
    """
    Public entry point for exports.

    Usage:
        exporter = StoryboardExporter()
        artifact = await exporter.export(scenes, ExportConfig(format="zip"), "My Story")
        if artifact:
            artifact.save("data/exports")

    Holds only settings; every call builds its own engine, surfaces and
    layout, so concurrent exports never share mutable state.
    """

    def __init__(self, settings: Optional[ExportSettings] = None):
        self.settings = settings or ExportSettings()

    def _engine(self) -> TextLayoutEngine:
        return TextLayoutEngine(
            font_path=self.settings.font_path,
            bold_font_path=self.settings.bold_font_path,
        )

    async def export(
        self,
        scenes: list[Scene],
        config: ExportConfig,
        title: str,
        mode: GenerationMode = GenerationMode.STORYBOARD,
    ) -> Optional[ExportArtifact]:
        """
        Export scenes in the requested format.

        Args:
            scenes: Scenes in display order (scenes without an image are dropped)
            config: Format, text baking and layout options
            title: Story title (whitespace becomes "_" in the filename)
            mode: Storyboard or comic — selects caption treatment and sheet vs strip

        Returns:
            ExportArtifact, or None when no scene has an image
        """
        mode = GenerationMode(mode) if not isinstance(mode, GenerationMode) else mode
        valid = [s for s in scenes if s.has_image]
        if not valid:
            logger.info("Export skipped: no scenes with images")
            return None

        logger.info(f"Exporting '{title}': {len(valid)}/{len(scenes)} scenes, "
                    f"format={config.format.value}, mode={mode.value}, with_text={config.with_text}")

        engine = self._engine()
        items = await self._prepare(valid, config, mode, engine)

        assembler = DocumentAssembler(engine, debug=config.debug)
        artifact = self._assemble(assembler, items, config, title, mode)

        if artifact.is_empty:
            logger.warning(f"Export produced an empty artifact: {artifact.filename}")
        else:
            logger.info(f"Export complete: {artifact.filename} ({len(artifact.data):,} bytes)")
        return artifact

    async def _prepare(
        self,
        scenes: list[Scene],
        config: ExportConfig,
        mode: GenerationMode,
        engine: TextLayoutEngine,
    ) -> list[SceneImage]:
        """Decode every image in one batch, then bake text if requested."""
        loaded = await load_images([s.image_url for s in scenes], timeout=self.settings.fetch_timeout)

        failed = sum(1 for img in loaded if not img.ok)
        if failed:
            logger.warning(f"{failed}/{len(loaded)} images failed to decode — using placeholders")

        items = [SceneImage(scene=s, image=img.image, raw=img.raw) for s, img in zip(scenes, loaded)]

        if config.with_text and not self._uses_bubbles(config, mode):
            compositor = ImageCompositor(engine)
            for item in items:
                item.image = self._composite_one(compositor, item, mode)
        return items

    def _composite_one(self, compositor: ImageCompositor, item: SceneImage,
                       mode: GenerationMode) -> Optional[Image.Image]:
        try:
            return compositor.composite(item.image, item.scene.narrative, mode)
        except (OSError, ValueError) as e:
            logger.warning(f"Compositing failed for scene {item.scene.ordinal}: {e} — keeping original")
            return item.image

    @staticmethod
    def _uses_bubbles(config: ExportConfig, mode: GenerationMode) -> bool:
        """Configured comic layouts carry the narrative in speech bubbles."""
        return (
            config.format == ExportFormat.COMPOSITE
            and mode == GenerationMode.COMIC
            and config.resolved_comic_layout() is not None
        )

    def _assemble(
        self,
        assembler: DocumentAssembler,
        items: list[SceneImage],
        config: ExportConfig,
        title: str,
        mode: GenerationMode,
    ) -> ExportArtifact:
        if config.format == ExportFormat.DOCUMENT:
            return assembler.build_document(items, title, mode)

        if config.format == ExportFormat.BUNDLE:
            return assembler.build_bundle(items, title)

        # Composite raster
        if mode == GenerationMode.COMIC:
            configured = config.resolved_comic_layout()
            if configured:
                layout, bubble = configured
                return assembler.build_layout_sheet(
                    items, title, layout, bubble, config.with_text, target_width=config.target_width,
                )
            return assembler.build_comic_sheet(
                items, title, config.with_text,
                issue_date=config.issue_date, target_width=config.target_width,
            )
        return assembler.build_long_strip(items, title, config.with_text, target_width=config.target_width)

    async def preview(
        self,
        scenes: list[Scene],
        title: str,
        layout: Optional[PanelLayoutConfig] = None,
        bubble: Optional[BubbleConfig] = None,
        with_text: bool = True,
    ) -> Optional[Image.Image]:
        """
        Render the on-screen comic preview (first scenes, 800 px wide).

        Returns:
            PIL image, or None when no scene has an image
        """
        shown = [s for s in scenes[:PREVIEW_MAX_SCENES] if s.has_image]
        if not shown:
            return None

        preset = get_preset("custom")
        layout = layout or preset["layout"]
        bubble = bubble or preset["bubble"]

        engine = self._engine()
        loaded = await load_images([s.image_url for s in shown], timeout=self.settings.fetch_timeout)
        items = [SceneImage(scene=s, image=img.image, raw=img.raw) for s, img in zip(shown, loaded)]
        return DocumentAssembler(engine).render_preview(items, title, layout, bubble, with_text)


async def export_scenes(
    scenes: list[Scene],
    config: ExportConfig,
    title: str,
    mode: GenerationMode = GenerationMode.STORYBOARD,
    settings: Optional[ExportSettings] = None,
) -> Optional[ExportArtifact]:
    """Module-level shortcut for StoryboardExporter().export(...)."""
    return await StoryboardExporter(settings).export(scenes, config, title, mode)

