from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..state_store import record_warning

logger = logging.getLogger(__name__)


class DefaultApplicationsStep:
    step_id = "80_default_applications"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        # xdg-mime writes ~/.config/mimeapps.list, so it must run as the user.
        for desktop, mime_types in ctx.cfg.mime_defaults.items():
            if not mime_types:
                continue
            r = ctx.run_as_user(["xdg-mime", "default", desktop, *mime_types], check=False)
            if r.ok:
                logger.info("Default for %s: %s", " ".join(mime_types), desktop)
            else:
                logger.warning("xdg-mime could not set %s as default", desktop)
                record_warning(state, self.step_id, "xdg-mime failed", desktop=desktop)
        return state
