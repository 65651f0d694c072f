"""Acquire and install a helper tool that is not in the official repos.

Acquisition is an ordered list of strategies. Each strategy is retried a
bounded number of times with a fixed backoff; a strategy that runs out of
attempts hands over to the next one. Only exhausting the whole list is
fatal. Fetch and build commands run as the unprivileged target user, the
final install runs as root.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..errors import BootstrapExhausted
from .deploy import TargetUser
from .pkg import pacman_install, pacman_install_file
from .tools import ToolQuery, query_tool

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)

AUR_BASE = "https://aur.archlinux.org"


class ArtifactKind(str, enum.Enum):
    PACKAGE = "package"
    BINARY = "binary"


@dataclass(frozen=True)
class BootstrapArtifact:
    kind: ArtifactKind
    path: Path


@dataclass(frozen=True)
class Strategy:
    name: str
    acquire: Callable[[Path], BootstrapArtifact]


@dataclass(frozen=True)
class StrategyResult:
    strategy: str
    ok: bool
    attempts: int
    artifact: Optional[BootstrapArtifact] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class BootstrapReport:
    tool: str
    skipped: bool
    version: Optional[str] = None
    strategy: Optional[str] = None
    kind: Optional[str] = None
    attempts: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "skipped": self.skipped,
            "version": self.version,
            "strategy": self.strategy,
            "kind": self.kind,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class HelperToolSpec:
    name: str = "paru"
    binary: str = "paru"
    aur_url: str = f"{AUR_BASE}/paru.git"
    snapshot_url: str = f"{AUR_BASE}/cgit/aur.git/snapshot/paru.tar.gz"
    mirror_url: Optional[str] = "https://github.com/Morganamilo/paru.git"
    build_deps: Tuple[str, ...] = ("base-devel", "git", "rust")
    install_prefix: str = "/usr/local/bin"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HelperToolSpec":
        if not data:
            return cls()
        name = str(data.get("name") or cls.name)
        same_tool = name == cls.name
        return cls(
            name=name,
            binary=str(data.get("binary") or name),
            aur_url=str(data.get("aur_url") or f"{AUR_BASE}/{name}.git"),
            snapshot_url=str(data.get("snapshot_url") or f"{AUR_BASE}/cgit/aur.git/snapshot/{name}.tar.gz"),
            mirror_url=data.get("mirror_url") or (cls.mirror_url if same_tool else None),
            build_deps=tuple(data.get("build_deps") or cls.build_deps),
            install_prefix=str(data.get("install_prefix") or cls.install_prefix),
        )


@contextmanager
def scoped_workdir(prefix: str, owner: Optional[TargetUser] = None) -> Iterator[Path]:
    """Temporary directory owned by ``owner``, removed on every exit path."""

    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        if owner is not None:
            os.chown(path, owner.uid, owner.gid)
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("Removed work dir %s", path)


def _fresh_dir(path: Path) -> Path:
    # A previous attempt may have left a partial clone behind.
    if path.exists():
        shutil.rmtree(path)
    return path


def find_package_file(build_dir: Path, name: str) -> Path:
    candidates = [
        p
        for p in sorted(build_dir.glob(f"{name}-*.pkg.tar*"))
        if not p.name.endswith(".sig") and not p.name.startswith(f"{name}-debug-")
    ]
    if not candidates:
        raise RuntimeError(f"makepkg produced no package for {name} in {build_dir}")
    return candidates[-1]


def _makepkg(ctx: "RunContext", spec: HelperToolSpec, build_dir: Path) -> BootstrapArtifact:
    ctx.run_as_user(["makepkg", "--noconfirm", "--needed", "--cleanbuild"], cwd=str(build_dir))
    if ctx.dry_run:
        return BootstrapArtifact(ArtifactKind.PACKAGE, build_dir / f"{spec.name}.pkg.tar.zst")
    return BootstrapArtifact(ArtifactKind.PACKAGE, find_package_file(build_dir, spec.name))


def default_strategies(ctx: "RunContext", spec: HelperToolSpec) -> List[Strategy]:
    def aur_clone(workdir: Path) -> BootstrapArtifact:
        src = _fresh_dir(workdir / "aur")
        ctx.run_as_user(["git", "clone", "--depth", "1", spec.aur_url, str(src)])
        return _makepkg(ctx, spec, src)

    def aur_snapshot(workdir: Path) -> BootstrapArtifact:
        out = _fresh_dir(workdir / "snapshot")
        archive = workdir / f"{spec.name}.tar.gz"
        ctx.run_as_user(["curl", "-fsSL", "-o", str(archive), spec.snapshot_url])
        ctx.run_as_user(["mkdir", "-p", str(out)])
        ctx.run_as_user(["tar", "-xzf", str(archive), "-C", str(out)])
        return _makepkg(ctx, spec, out / spec.name)

    def mirror_cargo(workdir: Path) -> BootstrapArtifact:
        src = _fresh_dir(workdir / "mirror")
        ctx.run_as_user(["git", "clone", "--depth", "1", str(spec.mirror_url), str(src)])
        ctx.run_as_user(["cargo", "build", "--release", "--locked"], cwd=str(src))
        binary = src / "target" / "release" / spec.binary
        if not ctx.dry_run and not binary.is_file():
            raise RuntimeError(f"cargo build did not produce {binary}")
        return BootstrapArtifact(ArtifactKind.BINARY, binary)

    strategies = [Strategy("aur-clone", aur_clone), Strategy("aur-snapshot", aur_snapshot)]
    if spec.mirror_url:
        strategies.append(Strategy("mirror-cargo", mirror_cargo))
    return strategies


def _attempt(
    strategy: Strategy,
    workdir: Path,
    *,
    attempts: int,
    backoff_s: float,
    sleep: Callable[[float], None],
) -> StrategyResult:
    error: Optional[str] = None
    for n in range(1, attempts + 1):
        logger.info("Bootstrap strategy %s (attempt %d/%d)", strategy.name, n, attempts)
        try:
            artifact = strategy.acquire(workdir)
        except (OSError, RuntimeError) as e:
            error = str(e).strip() or e.__class__.__name__
            logger.warning("Strategy %s attempt %d/%d failed: %s", strategy.name, n, attempts, error)
            if n < attempts:
                sleep(backoff_s)
            continue
        return StrategyResult(strategy=strategy.name, ok=True, attempts=n, artifact=artifact)
    return StrategyResult(strategy=strategy.name, ok=False, attempts=attempts, error=error)


def run_strategies(
    strategies: Sequence[Strategy],
    workdir: Path,
    *,
    tool: str,
    attempts: int = 2,
    backoff_s: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> StrategyResult:
    """Return the first successful strategy result or raise BootstrapExhausted."""

    failures: List[str] = []
    for strategy in strategies:
        result = _attempt(strategy, workdir, attempts=attempts, backoff_s=backoff_s, sleep=sleep)
        if result.ok:
            logger.info("Acquired %s via %s", tool, strategy.name)
            return result
        logger.warning("Strategy %s exhausted after %d attempt(s)", strategy.name, result.attempts)
        failures.append(f"{strategy.name}: {result.error}")
    raise BootstrapExhausted(tool, failures)


def install_artifact(ctx: "RunContext", spec: HelperToolSpec, artifact: BootstrapArtifact) -> None:
    if artifact.kind is ArtifactKind.PACKAGE:
        pacman_install_file(ctx, artifact.path)
    else:
        target = Path(spec.install_prefix) / spec.binary
        ctx.run(["install", "-Dm755", str(artifact.path), str(target)])


def bootstrap_helper(
    ctx: "RunContext",
    spec: HelperToolSpec,
    *,
    strategies: Optional[Sequence[Strategy]] = None,
    query: Callable[[str], ToolQuery] = query_tool,
    sleep: Callable[[float], None] = time.sleep,
) -> BootstrapReport:
    existing = query(spec.binary)
    if existing.found:
        logger.info("%s already installed (version=%s); skipping bootstrap", spec.binary, existing.version)
        return BootstrapReport(tool=spec.name, skipped=True, version=existing.version)

    user = ctx.require_user()
    pacman_install(ctx, spec.build_deps)

    with scoped_workdir(prefix=f"archsetup-{spec.name}-", owner=user) as workdir:
        chosen = list(strategies) if strategies is not None else default_strategies(ctx, spec)
        result = run_strategies(
            chosen,
            workdir,
            tool=spec.name,
            attempts=ctx.cfg.retry_attempts,
            backoff_s=ctx.cfg.retry_backoff_s,
            sleep=sleep,
        )
        install_artifact(ctx, spec, result.artifact)

    logger.info("Installed %s (%s via %s)", spec.name, result.artifact.kind.value, result.strategy)
    return BootstrapReport(
        tool=spec.name,
        skipped=False,
        strategy=result.strategy,
        kind=result.artifact.kind.value,
        attempts=result.attempts,
    )
