from __future__ import annotations

import logging
import os
from typing import Any, Dict

from ..context import RunContext
from ..state_store import record_warning

logger = logging.getLogger(__name__)


class InstallThemesStep:
    step_id = "55_install_themes"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        for theme in ctx.cfg.themes:
            name = theme.get("name") or theme.get("dest")
            dest = str(theme.get("dest") or "")
            url = str(theme.get("url") or "")
            if not dest or not url:
                logger.warning("Theme entry %r needs 'url' and 'dest'; skipping", theme)
                continue

            if os.path.lexists(dest):
                logger.info("Theme %s already present at %s", name, dest)
            else:
                r = ctx.run(["git", "clone", "--depth", "1", url, dest], check=False)
                if not r.ok:
                    logger.warning("Could not fetch theme %s from %s", name, url)
                    record_warning(state, self.step_id, "theme fetch failed", theme=name)
                    continue

            if theme.get("icon_cache"):
                ctx.run(["gtk-update-icon-cache", "-f", dest], check=False)
        return state
