from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.deploy import SKIPPED, deploy_to_users
from ..state_store import record_report, record_warning

logger = logging.getLogger(__name__)


class DeployUserConfigStep:
    step_id = "70_deploy_user_config"
    optional = False

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        items = ctx.cfg.deployments
        users, missing = ctx.deploy_users()
        for name in missing:
            logger.warning("Account %s does not exist; skipping", name)
            record_warning(state, self.step_id, "account missing", user=name)

        if not users:
            logger.warning("No target accounts for user configuration")
            return state

        logger.info(
            "Deploying %d template(s) to %s (backup suffix .bak.%s)",
            len(items),
            ", ".join(u.name for u in users),
            ctx.run_stamp,
        )
        results = deploy_to_users(items, users, stamp=ctx.run_stamp, dry_run=ctx.dry_run)
        for r in results:
            if r.status == SKIPPED:
                record_warning(state, self.step_id, r.reason or "skipped", user=r.user, dest=str(r.dest))
        record_report(state, self.step_id, [r.as_dict() for r in results])
        return state
