"""Shared pytest fixtures for archsetup tests."""

from __future__ import annotations

import os
import pwd
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

import pytest

from archsetup.config import ProvisionConfig
from archsetup.context import RunContext
from archsetup.lib.command import CmdResult, CommandError, as_user_argv
from archsetup.lib.deploy import TargetUser
from archsetup.lib.env import Paths


class FakeRunner:
    """Stands in for run_cmd: records argv lists, never touches the host."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []
        self._rules: List[tuple[Callable[[List[str]], bool], int, str]] = []
        self._hooks: List[tuple[Callable[[List[str]], bool], Callable[[List[str], Optional[str]], None]]] = []

    def fail_when(self, *tokens: str, returncode: int = 1) -> None:
        self._rules.append((lambda argv: all(t in argv for t in tokens), returncode, ""))

    def output_when(self, *tokens: str, stdout: str) -> None:
        self._rules.append((lambda argv: all(t in argv for t in tokens), 0, stdout))

    def on(self, *tokens: str, do: Callable[[List[str], Optional[str]], None]) -> None:
        self._hooks.append((lambda argv: all(t in argv for t in tokens), do))

    def commands(self, program: str) -> List[List[str]]:
        return [c for c in self.calls if program in c]

    def __call__(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        cwd: Optional[str] = None,
        dry_run: bool = False,
        as_user: Optional[str] = None,
        privilege_helper: str = "sudo",
        **_: Any,
    ) -> CmdResult:
        argv_list = list(argv)
        if as_user:
            argv_list = as_user_argv(as_user, argv_list, privilege_helper=privilege_helper)
        self.calls.append(argv_list)
        self.cwds.append(cwd)

        returncode, stdout = 0, ""
        for match, code, out in self._rules:
            if match(argv_list):
                returncode, stdout = code, out
        if returncode == 0 and not dry_run:
            for match, do in self._hooks:
                if match(argv_list):
                    do(argv_list, cwd)

        if check and returncode != 0:
            raise CommandError(argv_list, returncode, "simulated failure")
        return CmdResult(argv=argv_list, returncode=returncode, stdout=stdout, stderr="")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def current_user_name() -> str:
    return pwd.getpwuid(os.getuid()).pw_name


@pytest.fixture
def sandbox_paths(tmp_path: Path) -> Paths:
    root = tmp_path / "root"
    return Paths(
        state_default=str(root / "var/lib/archsetup/state.json"),
        log_default=str(root / "var/log/archsetup.log"),
        sysctl_swappiness=str(root / "etc/sysctl.d/99-swappiness.conf"),
        nftables_conf=str(root / "etc/nftables.conf"),
        sudoers_fragment=str(root / "etc/sudoers.d/10-archsetup"),
        backgrounds=str(root / "usr/share/backgrounds"),
        fonts=str(root / "usr/share/fonts"),
        blender_share=str(root / "usr/share/blender"),
    )


@pytest.fixture
def make_ctx(tmp_path: Path, runner: FakeRunner, sandbox_paths: Paths, current_user_name: str):
    def _make(raw: Optional[dict] = None, **overrides: Any) -> RunContext:
        kwargs: dict = {
            "cfg": ProvisionConfig(raw=raw or {}, base_dir=tmp_path),
            "target_user": current_user_name,
            "run_stamp": "20260101-120000",
            "paths": sandbox_paths,
            "runner": runner,
        }
        kwargs.update(overrides)
        return RunContext(**kwargs)

    return _make


@pytest.fixture
def ctx(make_ctx) -> RunContext:
    return make_ctx()


@pytest.fixture
def make_user(tmp_path: Path):
    """A TargetUser owned by the test process, with its home under tmp_path."""

    def _make(name: str = "alice", *, create_home: bool = True) -> TargetUser:
        home = tmp_path / "home" / name
        if create_home:
            home.mkdir(parents=True)
        return TargetUser(name=name, uid=os.getuid(), gid=os.getgid(), home=home, shell="/bin/zsh")

    return _make
