from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    state_default: str = "/var/lib/archsetup/state.json"
    log_default: str = "/var/log/archsetup.log"
    sysctl_swappiness: str = "/etc/sysctl.d/99-swappiness.conf"
    nftables_conf: str = "/etc/nftables.conf"
    sudoers_fragment: str = "/etc/sudoers.d/10-archsetup"
    backgrounds: str = "/usr/share/backgrounds"
    fonts: str = "/usr/share/fonts"
    blender_share: str = "/usr/share/blender"


PATHS = Paths()


def is_root() -> bool:
    return os.geteuid() == 0


def invoking_user() -> str | None:
    """The account that ran sudo, if any."""
    user = os.environ.get("SUDO_USER") or None
    return None if user == "root" else user
