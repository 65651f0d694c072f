from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..context import RunContext
from ..lib.assets import copy_file, copy_tree
from ..lib.blender import BlenderLayout, detect_blender
from ..lib.deploy import DeployItem, deploy_to_users
from ..state_store import record_report, record_warning

logger = logging.getLogger(__name__)


class ConfigureBlenderStep:
    step_id = "75_configure_blender"
    optional = True

    def run(self, ctx: RunContext, state: Dict[str, Any]) -> Dict[str, Any]:
        version = detect_blender()
        if version is None:
            record_warning(state, self.step_id, "blender not detected")
            return state

        layout = BlenderLayout(version=version, share_root=Path(ctx.paths.blender_share))
        templates = ctx.cfg.blender_dir
        logger.info("Configuring Blender %s from %s", version, templates)

        users, _missing = ctx.deploy_users()
        user_template = ctx.cfg.blender_user_template
        if user_template.is_dir():
            items = [
                DeployItem(source=child, dest=f"{layout.user_root}/{child.name}")
                for child in sorted(user_template.iterdir())
            ]
        else:
            logger.warning("No Blender user template at %s", user_template)
            items = []
        results = deploy_to_users(
            items,
            users,
            stamp=ctx.run_stamp,
            dry_run=ctx.dry_run,
        )

        app_templates = templates / "bl_app_templates_system"
        if app_templates.is_dir():
            copy_tree(app_templates, layout.app_templates, dry_run=ctx.dry_run)
        else:
            logger.warning("No Blender app templates at %s", app_templates)

        preset = templates / ctx.cfg.blender_theme_preset
        if preset.is_file():
            copy_file(preset, layout.theme_presets, dry_run=ctx.dry_run)
        else:
            logger.warning("Blender theme preset %s not found", preset)
            record_warning(state, self.step_id, "theme preset missing", path=str(preset))

        record_report(
            state,
            self.step_id,
            {"version": version, "deployments": [r.as_dict() for r in results]},
        )
        return state
