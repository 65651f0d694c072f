from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, Optional

from .config import load_config
from .context import RunContext
from .errors import ProvisionError
from .lib.deploy import make_run_stamp
from .lib.env import PATHS, invoking_user, is_root
from .logging_utils import configure_logging
from .pipeline import run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    BootstrapHelperStep,
    ConfigureBlenderStep,
    DefaultApplicationsStep,
    DefaultShellStep,
    DeployUserConfigStep,
    FirewallStep,
    GpuDriversStep,
    InstallMediaStep,
    InstallSoftwareStep,
    InstallThemesStep,
    PrivilegePolicyStep,
    SystemTuningStep,
    UpdateSystemStep,
)

logger = logging.getLogger(__name__)


def build_steps():
    return [
        UpdateSystemStep(),
        SystemTuningStep(),
        FirewallStep(),
        PrivilegePolicyStep(),
        GpuDriversStep(),
        DefaultShellStep(),
        BootstrapHelperStep(),
        InstallSoftwareStep(),
        InstallThemesStep(),
        InstallMediaStep(),
        DeployUserConfigStep(),
        ConfigureBlenderStep(),
        DefaultApplicationsStep(),
    ]


def run(
    *,
    config_path: Optional[str] = None,
    state_path: str = PATHS.state_default,
    log_path: str = PATHS.log_default,
    user: Optional[str] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Run the provisioning pipeline, persisting state for resume."""

    actual_log_path = configure_logging(log_path=log_path)

    cfg = load_config(config_path)
    ctx = RunContext(
        cfg=cfg,
        target_user=user or cfg.target_user or invoking_user(),
        run_stamp=make_run_stamp(),
        dry_run=dry_run,
    )
    logger.info("Provisioning for user=%s (run %s, dry_run=%s)", ctx.target_user, ctx.run_stamp, dry_run)

    state = ensure_defaults(load_state(state_path))
    state["execution"]["runs"].append(
        {
            "stamp": ctx.run_stamp,
            "target_user": ctx.target_user,
            "dry_run": dry_run,
            "log_path": actual_log_path,
        }
    )

    warnings_before = len(state["execution"]["warnings"])

    try:
        result = run_pipeline(
            ctx=ctx,
            state=state,
            steps=build_steps(),
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state["execution"]["summary"] = {
            "ran_steps": result.ran_steps,
            "skipped_steps": result.skipped_steps,
            "failed_steps": result.failed_steps,
            "warnings": len(state["execution"]["warnings"]) - warnings_before,
        }
        return state
    except Exception as e:
        if not isinstance(e, ProvisionError):
            logger.exception("Provisioning failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        if not dry_run:
            save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="archsetup", description="Post-install provisioning for an Arch Linux desktop")
    p.add_argument("--config", default=None, help="Path to provisioning config (YAML)")
    p.add_argument("--state", default=PATHS.state_default, help="Path to run state (json|yaml)")
    p.add_argument("--log", default=PATHS.log_default, help="Path to log file")
    p.add_argument("--user", default=None, help="Desktop account to configure (default: $SUDO_USER)")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_bootstrap_helper)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")

    args = p.parse_args(argv)

    if not is_root():
        sys.stderr.write("archsetup must be run as root. Use sudo.\n")
        return 1

    try:
        state = run(
            config_path=args.config,
            state_path=args.state,
            log_path=args.log,
            user=args.user,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=bool(args.force),
            dry_run=bool(args.dry_run),
        )
    except ProvisionError as e:
        logger.error("Provisioning aborted: %s", e)
        return 1

    warnings = state["execution"]["summary"]["warnings"]
    if warnings:
        logger.warning("Completed with %d warning(s); see the log for details", warnings)
    logger.info("Arch setup complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
