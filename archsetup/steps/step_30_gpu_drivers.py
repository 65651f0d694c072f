from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.pkg import pacman_install

logger = logging.getLogger(__name__)


class GpuDriversStep:
    step_id = "30_gpu_drivers"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        packages = ctx.cfg.gpu_packages
        if not packages:
            logger.info("No GPU packages configured")
            return state
        logger.info("Installing GPU driver stack: %s", " ".join(packages))
        pacman_install(ctx, packages)
        return state
