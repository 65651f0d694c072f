from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..context import RunContext
from ..lib.manifests import install_manifest, read_manifest
from ..lib.pkg import helper_install
from ..state_store import record_report, record_warning

logger = logging.getLogger(__name__)


class InstallSoftwareStep:
    step_id = "50_install_software"
    optional = False

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        helper = ctx.cfg.helper.binary
        manifest_path = ctx.cfg.manifest_path

        packages: List[str] = list(ctx.cfg.extra_packages)
        if manifest_path.is_file():
            packages += [p for p in read_manifest(manifest_path) if p not in packages]
        else:
            logger.warning("Manifest %s not found; installing extra packages only", manifest_path)
            record_warning(state, self.step_id, "manifest missing", path=str(manifest_path))

        logger.info("Installing %d package(s) with %s", len(packages), helper)
        report = install_manifest(packages, lambda pkg: helper_install(ctx, helper, pkg))
        if report.failed:
            record_warning(state, self.step_id, "packages failed", packages=report.failed)
        record_report(state, self.step_id, {"installed": report.installed, "failed": report.failed})
        return state
