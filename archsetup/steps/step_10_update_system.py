from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.pkg import pacman_sync_upgrade

logger = logging.getLogger(__name__)


class UpdateSystemStep:
    step_id = "10_update_system"
    optional = False

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Updating system packages")
        pacman_sync_upgrade(ctx)
        return state
