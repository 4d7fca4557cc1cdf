"""TOML configuration loader for receipt2sheet."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

DEFAULT_SETTINGS_PATH = "~/.config/receipt2sheet/settings.json"


@dataclass
class CameraConfig:
    index: int = 0
    jpeg_quality: int = 92


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class VisionConfig:
    backend: str = "gemini"
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)


@dataclass
class ExportConfig:
    success_delay: float = 2.0
    timeout: float | None = None


@dataclass
class SettingsConfig:
    path: str = DEFAULT_SETTINGS_PATH


@dataclass
class AppConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    settings: SettingsConfig = field(default_factory=SettingsConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cam = raw.get("camera", {})
    vis = raw.get("vision", {})
    exp = raw.get("export", {})
    stg = raw.get("settings", {})

    claude_cfg = vis.get("claude", {})
    gemini_cfg = vis.get("gemini", {})

    # Resolve API keys: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )

    return AppConfig(
        camera=CameraConfig(
            index=cam.get("index", 0),
            jpeg_quality=cam.get("jpeg_quality", 92),
        ),
        vision=VisionConfig(
            backend=vis.get("backend", "gemini"),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        export=ExportConfig(
            success_delay=exp.get("success_delay", 2.0),
            timeout=exp.get("timeout"),
        ),
        settings=SettingsConfig(
            path=stg.get("path", DEFAULT_SETTINGS_PATH),
        ),
    )
