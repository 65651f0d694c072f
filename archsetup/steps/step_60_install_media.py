from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.assets import copy_tree
from ..state_store import record_warning

logger = logging.getLogger(__name__)


class InstallMediaStep:
    step_id = "60_install_media"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        wallpapers = ctx.cfg.wallpapers_dir
        if wallpapers.is_dir():
            n = copy_tree(wallpapers, ctx.paths.backgrounds, dry_run=ctx.dry_run)
            logger.info("Copied %d wallpaper file(s) to %s", n, ctx.paths.backgrounds)
        else:
            logger.warning("Wallpapers directory %s does not exist", wallpapers)
            record_warning(state, self.step_id, "wallpapers missing", path=str(wallpapers))

        fonts = ctx.cfg.fonts_dir
        if fonts.is_dir():
            n = copy_tree(fonts, ctx.paths.fonts, dry_run=ctx.dry_run)
            ctx.run(["fc-cache", "-f"])
            logger.info("Copied %d font file(s) to %s", n, ctx.paths.fonts)
        else:
            logger.warning("Font directory %s not found", fonts)
            record_warning(state, self.step_id, "fonts missing", path=str(fonts))
        return state
