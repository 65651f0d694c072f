from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import RunContext
from ..lib.pkg import pacman_install
from ..lib.sysconf import enable_unit, write_firewall_ruleset

logger = logging.getLogger(__name__)


class FirewallStep:
    step_id = "20_firewall"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        pacman_install(ctx, ["nftables"])
        write_firewall_ruleset(ctx)
        enable_unit(ctx, "nftables.service")
        # enable --now does not reload an already running service.
        ctx.run(["systemctl", "restart", "nftables.service"])
        logger.info("Firewall enabled (inbound deny, outbound allow)")
        return state
