from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .tools import ToolQuery, query_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlenderLayout:
    """Where a given Blender release looks for user and system files."""

    version: str
    share_root: Path

    @property
    def system_scripts(self) -> Path:
        return self.share_root / self.version / "scripts"

    @property
    def app_templates(self) -> Path:
        return self.system_scripts / "startup" / "bl_app_templates_system"

    @property
    def theme_presets(self) -> Path:
        return self.system_scripts / "presets" / "interface_theme"

    @property
    def user_root(self) -> str:
        # Relative to the user's home.
        return f".config/blender/{self.version}"


def series(version: str) -> str:
    """Blender keeps per-release config under major.minor ("4.1.2" -> "4.1")."""
    parts = version.split(".")
    return ".".join(parts[:2])


def detect_blender(query: Callable[[str], ToolQuery] = query_tool) -> Optional[str]:
    result = query("blender")
    if not result.found:
        logger.warning("Blender not installed; skipping Blender configuration")
        return None
    if not result.version:
        logger.warning("Blender found but its version could not be determined")
        return None
    return series(result.version)
