"""Tests for the multi-strategy helper bootstrap."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from archsetup.errors import BootstrapExhausted, ProvisionError
from archsetup.lib.bootstrap import (
    ArtifactKind,
    BootstrapArtifact,
    HelperToolSpec,
    Strategy,
    bootstrap_helper,
    default_strategies,
    find_package_file,
    run_strategies,
    scoped_workdir,
)
from archsetup.lib.tools import ToolQuery


def _absent(_name: str) -> ToolQuery:
    return ToolQuery(found=False)


class Recorder:
    """Strategy body that fails a fixed number of times before succeeding."""

    def __init__(self, name: str, *, failures: int = 0, always_fail: bool = False, kind=ArtifactKind.PACKAGE):
        self.name = name
        self.failures = failures
        self.always_fail = always_fail
        self.kind = kind
        self.calls = 0
        self.workdirs: List[Path] = []

    def __call__(self, workdir: Path) -> BootstrapArtifact:
        self.calls += 1
        self.workdirs.append(workdir)
        if self.always_fail or self.calls <= self.failures:
            raise RuntimeError(f"{self.name} unavailable")
        return BootstrapArtifact(self.kind, workdir / f"{self.name}.artifact")

    def strategy(self) -> Strategy:
        return Strategy(self.name, self)


class TestRunStrategies:
    def test_first_failing_second_succeeding_never_runs_third(self, tmp_path: Path) -> None:
        one = Recorder("one", always_fail=True)
        two = Recorder("two")
        three = Recorder("three")
        sleeps: List[float] = []

        result = run_strategies(
            [one.strategy(), two.strategy(), three.strategy()],
            tmp_path,
            tool="paru",
            attempts=2,
            backoff_s=5.0,
            sleep=sleeps.append,
        )

        assert result.ok
        assert result.strategy == "two"
        assert result.artifact == BootstrapArtifact(ArtifactKind.PACKAGE, tmp_path / "two.artifact")
        assert one.calls == 2
        assert two.calls == 1
        assert three.calls == 0
        assert sleeps == [5.0]

    def test_retry_within_a_strategy(self, tmp_path: Path) -> None:
        flaky = Recorder("flaky", failures=1)
        backup = Recorder("backup")
        sleeps: List[float] = []

        result = run_strategies([flaky.strategy(), backup.strategy()], tmp_path, tool="paru", sleep=sleeps.append)

        assert result.strategy == "flaky"
        assert result.attempts == 2
        assert backup.calls == 0
        assert len(sleeps) == 1

    def test_exhaustion_raises_with_every_failure(self, tmp_path: Path) -> None:
        strategies = [Recorder(n, always_fail=True).strategy() for n in ("a", "b", "c")]

        with pytest.raises(BootstrapExhausted) as exc:
            run_strategies(strategies, tmp_path, tool="paru", attempts=2, sleep=lambda _s: None)

        assert exc.value.tool == "paru"
        assert [f.split(":")[0] for f in exc.value.failures] == ["a", "b", "c"]
        assert isinstance(exc.value, ProvisionError)

    def test_no_sleep_after_last_attempt(self, tmp_path: Path) -> None:
        sleeps: List[float] = []
        with pytest.raises(BootstrapExhausted):
            run_strategies(
                [Recorder("a", always_fail=True).strategy()],
                tmp_path,
                tool="paru",
                attempts=3,
                backoff_s=1.5,
                sleep=sleeps.append,
            )
        assert sleeps == [1.5, 1.5]

    def test_empty_strategy_list_is_exhaustion(self, tmp_path: Path) -> None:
        with pytest.raises(BootstrapExhausted):
            run_strategies([], tmp_path, tool="paru")


class TestBootstrapHelper:
    def test_skipped_when_already_installed(self, ctx, runner) -> None:
        one = Recorder("one")

        report = bootstrap_helper(
            ctx,
            HelperToolSpec(),
            strategies=[one.strategy()],
            query=lambda _n: ToolQuery(found=True, version="2.0.3"),
        )

        assert report.skipped
        assert report.version == "2.0.3"
        assert one.calls == 0
        assert runner.calls == []

    def test_installs_package_artifact_with_pacman(self, ctx, runner) -> None:
        one = Recorder("one")

        report = bootstrap_helper(ctx, HelperToolSpec(), strategies=[one.strategy()], query=_absent)

        assert report.kind == "package"
        assert report.strategy == "one"
        assert runner.calls[0] == ["pacman", "-S", "--noconfirm", "--needed", "base-devel", "git", "rust"]
        assert runner.calls[-1] == ["pacman", "-U", "--noconfirm", str(one.workdirs[0] / "one.artifact")]

    def test_installs_binary_artifact_into_prefix(self, ctx, runner) -> None:
        binary = Recorder("bin", kind=ArtifactKind.BINARY)

        report = bootstrap_helper(ctx, HelperToolSpec(), strategies=[binary.strategy()], query=_absent)

        assert report.kind == "binary"
        assert runner.calls[-1] == [
            "install",
            "-Dm755",
            str(binary.workdirs[0] / "bin.artifact"),
            "/usr/local/bin/paru",
        ]

    def test_workdir_removed_after_success(self, ctx) -> None:
        one = Recorder("one")
        bootstrap_helper(ctx, HelperToolSpec(), strategies=[one.strategy()], query=_absent)
        assert not one.workdirs[0].exists()

    def test_exhaustion_is_fatal_and_installs_nothing(self, make_ctx, runner) -> None:
        ctx = make_ctx({"bootstrap": {"attempts": 2, "backoff_s": 0}})
        failing = [Recorder(n, always_fail=True) for n in ("a", "b", "c")]

        with pytest.raises(BootstrapExhausted):
            bootstrap_helper(
                ctx,
                HelperToolSpec(),
                strategies=[f.strategy() for f in failing],
                query=_absent,
                sleep=lambda _s: None,
            )

        assert all(f.calls == 2 for f in failing)
        assert runner.commands("-U") == []
        assert not failing[0].workdirs[0].exists()

    def test_missing_target_user_is_fatal(self, make_ctx) -> None:
        ctx = make_ctx(target_user=None)
        with pytest.raises(ProvisionError):
            bootstrap_helper(ctx, HelperToolSpec(), strategies=[], query=_absent)

    def test_unknown_target_user_is_fatal(self, make_ctx) -> None:
        ctx = make_ctx(target_user="no-such-account-archsetup")
        with pytest.raises(ProvisionError, match="does not exist"):
            bootstrap_helper(ctx, HelperToolSpec(), strategies=[], query=_absent)


def _build_package(argv: List[str], cwd: Optional[str]) -> None:
    build_dir = Path(cwd or ".")
    build_dir.mkdir(parents=True, exist_ok=True)
    (build_dir / "paru-debug-2.0.3-1-x86_64.pkg.tar.zst").write_bytes(b"")
    (build_dir / "paru-2.0.3-1-x86_64.pkg.tar.zst").write_bytes(b"")


class TestDefaultStrategies:
    def test_primary_clone_failure_falls_back_to_snapshot(self, ctx, runner, current_user_name) -> None:
        spec = HelperToolSpec()
        runner.fail_when("clone", spec.aur_url)
        runner.on("makepkg", do=_build_package)

        report = bootstrap_helper(ctx, spec, query=_absent, sleep=lambda _s: None)

        assert report.strategy == "aur-snapshot"
        assert report.kind == "package"
        assert len([c for c in runner.calls if spec.aur_url in c]) == 2
        assert runner.commands("cargo") == []

        installed = runner.commands("-U")[0][-1]
        assert installed.endswith("/snapshot/paru/paru-2.0.3-1-x86_64.pkg.tar.zst")

        # Fetch and build happen as the unprivileged user; only install runs as root.
        for argv in runner.calls:
            if argv[0] != "pacman":
                assert argv[:5] == ["sudo", "-H", "-u", current_user_name, "--"]
        assert runner.commands("-U")[0][0] == "pacman"

    def test_mirror_build_produces_binary(self, ctx, runner) -> None:
        spec = HelperToolSpec()
        runner.fail_when("clone", spec.aur_url)
        runner.fail_when("curl")

        def cargo_build(argv: List[str], cwd: Optional[str]) -> None:
            out = Path(cwd) / "target" / "release"
            out.mkdir(parents=True)
            (out / "paru").write_bytes(b"\x7fELF")

        runner.on("cargo", "build", do=cargo_build)

        report = bootstrap_helper(ctx, spec, query=_absent, sleep=lambda _s: None)

        assert report.strategy == "mirror-cargo"
        assert report.kind == "binary"
        assert runner.calls[-1][:2] == ["install", "-Dm755"]
        assert runner.calls[-1][-1] == "/usr/local/bin/paru"

    def test_no_mirror_means_two_strategies(self, ctx) -> None:
        spec = HelperToolSpec.from_mapping({"name": "yay"})
        assert [s.name for s in default_strategies(ctx, spec)] == ["aur-clone", "aur-snapshot"]

    def test_makepkg_without_output_is_a_failure(self, ctx, runner) -> None:
        spec = HelperToolSpec()
        runner.fail_when("curl")
        runner.fail_when("clone", str(spec.mirror_url))

        with pytest.raises(BootstrapExhausted) as exc:
            bootstrap_helper(ctx, spec, query=_absent, sleep=lambda _s: None)
        assert "produced no package" in exc.value.failures[0]


class TestHelpers:
    def test_find_package_file_ignores_debug_and_signatures(self, tmp_path: Path) -> None:
        for name in ("paru-debug-2.0-1-x86_64.pkg.tar.zst", "paru-2.0-1-x86_64.pkg.tar.zst.sig"):
            (tmp_path / name).write_bytes(b"")
        with pytest.raises(RuntimeError):
            find_package_file(tmp_path, "paru")
        (tmp_path / "paru-2.0-1-x86_64.pkg.tar.zst").write_bytes(b"")
        assert find_package_file(tmp_path, "paru").name == "paru-2.0-1-x86_64.pkg.tar.zst"

    def test_scoped_workdir_removed_on_error(self) -> None:
        with pytest.raises(ValueError):
            with scoped_workdir("archsetup-test-") as workdir:
                (workdir / "partial").write_text("x", encoding="utf-8")
                raise ValueError("interrupted")
        assert not workdir.exists()

    def test_spec_from_mapping_derives_aur_urls(self) -> None:
        spec = HelperToolSpec.from_mapping({"name": "yay"})
        assert spec.aur_url == "https://aur.archlinux.org/yay.git"
        assert spec.snapshot_url.endswith("/snapshot/yay.tar.gz")
        assert spec.mirror_url is None
        assert spec.binary == "yay"

    def test_spec_defaults(self) -> None:
        assert HelperToolSpec.from_mapping({}) == HelperToolSpec()
