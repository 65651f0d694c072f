from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .assets import write_file

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)

NFTABLES_RULESET = """\
#!/usr/bin/nft -f
# Managed by archsetup: drop unsolicited inbound traffic, allow all outbound.

flush ruleset

table inet filter {
  chain input {
    type filter hook input priority filter; policy drop;

    ct state invalid drop
    ct state { established, related } accept
    iif "lo" accept
    meta l4proto ipv6-icmp accept
    meta l4proto icmp accept
  }

  chain forward {
    type filter hook forward priority filter; policy drop;
  }

  chain output {
    type filter hook output priority filter; policy accept;
  }
}
"""

SUDOERS_FRAGMENT = """\
# Managed by archsetup: lets AUR helpers install built packages non-interactively.
%wheel ALL=(root) NOPASSWD: /usr/bin/pacman
"""


def swappiness_conf(value: int) -> str:
    return f"vm.swappiness={int(value)}\n"


def enable_unit(ctx: "RunContext", unit: str, *, now: bool = True) -> None:
    argv = ["systemctl", "enable"]
    if now:
        argv.append("--now")
    ctx.run([*argv, unit])


def apply_swappiness(ctx: "RunContext", value: int) -> None:
    write_file(ctx.paths.sysctl_swappiness, swappiness_conf(value), dry_run=ctx.dry_run)
    ctx.run(["sysctl", "--system"])


def write_firewall_ruleset(ctx: "RunContext") -> None:
    write_file(ctx.paths.nftables_conf, NFTABLES_RULESET, mode=0o644, dry_run=ctx.dry_run)


def write_sudoers_fragment(ctx: "RunContext") -> None:
    """Install the pacman policy fragment; an invalid fragment is removed again."""

    path = Path(ctx.paths.sudoers_fragment)
    write_file(path, SUDOERS_FRAGMENT, mode=0o440, dry_run=ctx.dry_run)
    r = ctx.run(["visudo", "-cf", str(path)], check=False)
    if r.returncode != 0:
        if not ctx.dry_run:
            path.unlink(missing_ok=True)
        raise RuntimeError(f"visudo rejected {path}: {r.stderr.strip()}")
