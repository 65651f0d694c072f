from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.sysconf import write_sudoers_fragment

logger = logging.getLogger(__name__)


class PrivilegePolicyStep:
    step_id = "25_privilege_policy"
    optional = False

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        write_sudoers_fragment(ctx)

        user = ctx.require_user()
        groups = ctx.run(["id", "-nG", user.name], check=False).stdout.split()
        if not ctx.dry_run and "wheel" not in groups:
            logger.info("Adding %s to wheel", user.name)
            ctx.run(["usermod", "-aG", "wheel", user.name])
        return state
