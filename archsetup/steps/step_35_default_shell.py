from __future__ import annotations

import logging
import os
from typing import Any, Dict

from ..context import RunContext
from ..lib.pkg import pacman_install

logger = logging.getLogger(__name__)


class DefaultShellStep:
    step_id = "35_default_shell"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        shell = ctx.cfg.default_shell
        user = ctx.require_user()
        if user.shell == shell:
            logger.info("%s already uses %s", user.name, shell)
            return state

        pacman_install(ctx, [os.path.basename(shell)])
        ctx.run(["chsh", "-s", shell, user.name])
        logger.info("Default shell for %s set to %s", user.name, shell)
        return state
