from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)


def pacman_sync_upgrade(ctx: "RunContext") -> None:
    ctx.run(["pacman", "-Syu", "--noconfirm"])


def pacman_install(ctx: "RunContext", packages: Sequence[str], *, needed: bool = True) -> None:
    if not packages:
        return
    argv = ["pacman", "-S", "--noconfirm"]
    if needed:
        argv.append("--needed")
    ctx.run([*argv, *packages])


def pacman_install_file(ctx: "RunContext", path: Path) -> None:
    ctx.run(["pacman", "-U", "--noconfirm", str(path)])


def helper_install(ctx: "RunContext", helper: str, package: str) -> None:
    """Install one repo or AUR package through the helper, as the target user.

    AUR helpers refuse to build as root; they escalate for the final pacman
    call themselves (see the sudoers fragment written by the privilege step).
    """
    ctx.run_as_user([helper, "-S", "--noconfirm", "--needed", package])
