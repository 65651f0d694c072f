from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.bootstrap import bootstrap_helper
from ..state_store import record_report

logger = logging.getLogger(__name__)


class BootstrapHelperStep:
    step_id = "40_bootstrap_helper"
    optional = False

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        report = bootstrap_helper(ctx, ctx.cfg.helper)
        record_report(state, self.step_id, report.as_dict())
        return state
