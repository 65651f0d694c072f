from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .config import ProvisionConfig
from .errors import ProvisionError
from .lib.command import CmdResult, run_cmd
from .lib.deploy import TargetUser, discover_users, resolve_user
from .lib.env import PATHS, Paths


@dataclass(frozen=True)
class RunContext:
    """Everything a step needs for one provisioning run."""

    cfg: ProvisionConfig
    target_user: str | None
    run_stamp: str
    dry_run: bool = False
    paths: Paths = PATHS
    runner: Callable[..., CmdResult] = field(default=run_cmd, compare=False, repr=False)

    def run(self, argv: Sequence[str], **kwargs: Any) -> CmdResult:
        kwargs.setdefault("dry_run", self.dry_run)
        return self.runner(argv, **kwargs)

    def run_as_user(self, argv: Sequence[str], **kwargs: Any) -> CmdResult:
        user = self.require_user()
        kwargs.setdefault("privilege_helper", self.cfg.privilege_helper)
        return self.run(argv, as_user=user.name, **kwargs)

    def require_user(self) -> TargetUser:
        if not self.target_user:
            raise ProvisionError("No target user: run via sudo from the desktop account or pass --user")
        user = resolve_user(self.target_user)
        if user is None:
            raise ProvisionError(f"Target user {self.target_user!r} does not exist")
        return user

    def deploy_users(self) -> tuple[list[TargetUser], list[str]]:
        """Accounts receiving per-user configuration, plus names that did not resolve."""

        wanted = self.cfg.deploy_users
        if wanted == "auto":
            return discover_users(self.cfg.min_uid), []

        users: list[TargetUser] = []
        missing: list[str] = []
        for name in wanted:
            user = resolve_user(name)
            if user is None:
                missing.append(name)
            else:
                users.append(user)
        return users, missing
