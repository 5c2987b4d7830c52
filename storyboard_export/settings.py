"""
Storyboard Export — Settings.

Environment-driven settings (loaded via .env) and YAML layout overrides.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from storyboard_export.models import apply_preset

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "data/exports"
DEFAULT_FETCH_TIMEOUT = 30.0


@dataclass(frozen=True)
class ExportSettings:
    font_path: Optional[str] = None
    bold_font_path: Optional[str] = None
    output_dir: str = DEFAULT_OUTPUT_DIR
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None) -> ExportSettings:
    """Read STORYBOARD_* variables (after loading .env if present)."""
    load_dotenv(env_file)

    timeout_raw = os.environ.get("STORYBOARD_FETCH_TIMEOUT", "")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_FETCH_TIMEOUT
    except ValueError:
        logger.warning(f"Invalid STORYBOARD_FETCH_TIMEOUT '{timeout_raw}' — using {DEFAULT_FETCH_TIMEOUT}")
        timeout = DEFAULT_FETCH_TIMEOUT

    return ExportSettings(
        font_path=os.environ.get("STORYBOARD_FONT_PATH") or None,
        bold_font_path=os.environ.get("STORYBOARD_BOLD_FONT_PATH") or None,
        output_dir=os.environ.get("STORYBOARD_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR,
        fetch_timeout=timeout,
        log_level=(os.environ.get("STORYBOARD_LOG_LEVEL") or "INFO").upper(),
    )


def load_layout_overrides(path: str) -> dict:
    """
    Load a YAML file of layout/bubble overrides.

    Expected shape:
        preset: american
        layout:
          columns: 3
          page_margin: {top: 60}
        bubble:
          font_size: 30
    """
    with open(Path(path), "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Layout config {path} must be a mapping, got {type(data).__name__}")
    return data


def layout_from_file(path: str, preset=None) -> tuple:
    """(PanelLayoutConfig, BubbleConfig) from a YAML override file."""
    data = load_layout_overrides(path)
    chosen = preset or data.get("preset") or "custom"
    return apply_preset(chosen, data)
