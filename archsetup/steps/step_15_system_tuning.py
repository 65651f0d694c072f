from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.sysconf import apply_swappiness, enable_unit

logger = logging.getLogger(__name__)


class SystemTuningStep:
    step_id = "15_system_tuning"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        # Periodic TRIM for SSDs.
        enable_unit(ctx, "fstrim.timer")

        swappiness = ctx.cfg.swappiness
        apply_swappiness(ctx, swappiness)
        logger.info("System tuning applied (fstrim.timer, vm.swappiness=%s)", swappiness)
        return state
