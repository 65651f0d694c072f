"""Backup-then-copy deployment of template trees into user homes.

Each (user, destination) pair moves through ``absent -> copied`` or
``present -> backed-up -> copied``; a missing source or home ends in
``skipped``. A destination is never merged into or overwritten in place:
it is renamed to ``<dest>.bak.<stamp>`` first, with one stamp per run.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import pwd
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

STAMP_FORMAT = "%Y%m%d-%H%M%S"
NOBODY_UID = 65534
NON_INTERACTIVE_SHELLS = {"nologin", "false", "sync", "shutdown", "halt"}

COPIED = "copied"
SKIPPED = "skipped"


@dataclass(frozen=True)
class TargetUser:
    name: str
    uid: int
    gid: int
    home: Optional[Path]
    shell: str

    @classmethod
    def from_pwd(cls, entry: pwd.struct_passwd) -> "TargetUser":
        home = Path(entry.pw_dir) if entry.pw_dir else None
        return cls(name=entry.pw_name, uid=entry.pw_uid, gid=entry.pw_gid, home=home, shell=entry.pw_shell)

    @property
    def has_home(self) -> bool:
        return self.home is not None and self.home.is_dir()


@dataclass(frozen=True)
class DeployItem:
    source: Path
    dest: str  # relative to the user's home


@dataclass(frozen=True)
class DeployResult:
    user: str
    dest: Optional[Path]
    status: str
    backup: Optional[Path] = None
    reason: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "user": self.user,
            "dest": str(self.dest) if self.dest else None,
            "status": self.status,
            "backup": str(self.backup) if self.backup else None,
            "reason": self.reason,
        }


def make_run_stamp(now: Optional[dt.datetime] = None) -> str:
    return (now or dt.datetime.now()).strftime(STAMP_FORMAT)


def is_interactive_shell(shell: str) -> bool:
    return bool(shell) and os.path.basename(shell) not in NON_INTERACTIVE_SHELLS


def resolve_user(name: str) -> Optional[TargetUser]:
    try:
        return TargetUser.from_pwd(pwd.getpwnam(name))
    except KeyError:
        return None


def discover_users(min_uid: int = 1000, entries: Optional[Iterable[pwd.struct_passwd]] = None) -> List[TargetUser]:
    """Return human accounts: uid >= min_uid with an interactive login shell."""

    users: List[TargetUser] = []
    for entry in entries if entries is not None else pwd.getpwall():
        if entry.pw_uid < min_uid or entry.pw_uid == NOBODY_UID:
            continue
        if not is_interactive_shell(entry.pw_shell):
            continue
        users.append(TargetUser.from_pwd(entry))
    return users


def backup_path(dest: Path, stamp: str) -> Path:
    candidate = dest.with_name(f"{dest.name}.bak.{stamp}")
    n = 0
    while os.path.lexists(candidate):
        n += 1
        candidate = dest.with_name(f"{dest.name}.bak.{stamp}.{n}")
    return candidate


def chown_tree(path: Path, uid: int, gid: int) -> None:
    os.chown(path, uid, gid, follow_symlinks=False)
    if path.is_dir() and not path.is_symlink():
        for root, dirs, files in os.walk(path):
            for name in dirs + files:
                os.chown(os.path.join(root, name), uid, gid, follow_symlinks=False)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def is_home_relative(dest: str) -> bool:
    """True when dest names something strictly below a home directory."""
    rel = Path(dest)
    return bool(rel.parts) and not rel.is_absolute() and ".." not in rel.parts


def make_parents(dest: Path, owner: TargetUser) -> None:
    """Create missing parents of dest; those inside the owner's home get the owner's ids."""

    missing: List[Path] = []
    for parent in dest.parents:
        if parent.exists():
            break
        missing.append(parent)
    for parent in reversed(missing):
        parent.mkdir()
        if owner.home is not None and _is_within(parent, owner.home):
            os.chown(parent, owner.uid, owner.gid)


def _copy(source: Path, dest: Path) -> None:
    if source.is_dir():
        shutil.copytree(source, dest, symlinks=True)
    else:
        shutil.copy2(source, dest)


def deploy_tree(
    source: Path,
    dest: Path,
    *,
    owner: TargetUser,
    stamp: str,
    dry_run: bool = False,
) -> DeployResult:
    if not source.exists():
        logger.warning("Template %s missing; skipping %s for %s", source, dest, owner.name)
        return DeployResult(owner.name, dest, SKIPPED, reason="source missing")

    backup: Optional[Path] = None
    if os.path.lexists(dest):
        backup = backup_path(dest, stamp)
        if dry_run:
            logger.info("Would back up %s -> %s", dest, backup)
        else:
            dest.rename(backup)
            logger.info("Backed up %s -> %s", dest, backup)

    if dry_run:
        logger.info("Would copy %s -> %s", source, dest)
        return DeployResult(owner.name, dest, COPIED, backup=backup)

    make_parents(dest, owner)
    _copy(source, dest)
    chown_tree(dest, owner.uid, owner.gid)
    logger.info("Deployed %s -> %s (owner=%s)", source, dest, owner.name)
    return DeployResult(owner.name, dest, COPIED, backup=backup)


def deploy_to_users(
    items: Sequence[DeployItem],
    users: Sequence[TargetUser],
    *,
    stamp: str,
    dry_run: bool = False,
) -> List[DeployResult]:
    """Deploy every item into every user's home, isolating failures per user."""

    results: List[DeployResult] = []
    for user in users:
        if not user.has_home:
            logger.warning("Home directory for %s not found (%s); skipping", user.name, user.home)
            results.append(DeployResult(user.name, None, SKIPPED, reason="home missing"))
            continue

        for item in items:
            if not is_home_relative(item.dest):
                logger.warning("Refusing destination %r outside the home of %s", item.dest, user.name)
                results.append(DeployResult(user.name, None, SKIPPED, reason="destination outside home"))
                continue
            dest = user.home / item.dest
            # Parents may be user-owned symlinks pointing out of the home.
            if not _is_within(dest.parent.resolve(), user.home.resolve()):
                logger.warning("Refusing %s: its parent resolves outside the home of %s", dest, user.name)
                results.append(DeployResult(user.name, dest, SKIPPED, reason="destination outside home"))
                continue
            try:
                results.append(deploy_tree(item.source, dest, owner=user, stamp=stamp, dry_run=dry_run))
            except OSError as e:
                logger.warning("Deploying %s to %s failed: %s", item.source, dest, e)
                results.append(DeployResult(user.name, dest, SKIPPED, reason=str(e)))
    return results
