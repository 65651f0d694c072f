from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

PRIVILEGE_HELPERS = ("sudo", "runuser")


class CommandError(RuntimeError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed ({returncode}): {_fmt_argv(self.argv)}\n{stderr}".rstrip())


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def as_user_argv(user: str, argv: Sequence[str], *, privilege_helper: str = "sudo") -> list[str]:
    """Wrap argv so it runs under an unprivileged account."""

    if privilege_helper == "sudo":
        return ["sudo", "-H", "-u", user, "--", *argv]
    if privilege_helper == "runuser":
        return ["runuser", "-u", user, "--", *argv]
    raise ValueError(f"Unknown privilege helper: {privilege_helper!r} (expected one of {PRIVILEGE_HELPERS})")


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
    as_user: str | None = None,
    privilege_helper: str = "sudo",
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - as_user drops privileges to the named account for this command only.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    if as_user:
        argv_list = as_user_argv(as_user, argv_list, privilege_helper=privilege_helper)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(argv_list, 127, str(e)) from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, p.stderr)

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
