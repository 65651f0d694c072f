from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .lib.bootstrap import HelperToolSpec
from .lib.deploy import DeployItem, is_home_relative

DEFAULT_GPU_PACKAGES = ["nvidia", "nvidia-utils", "cuda"]

DEFAULT_DEPLOYMENTS = [
    {"source": "dotfiles/xfce4", "dest": ".config/xfce4"},
    {"source": "dotfiles/gtk-3.0", "dest": ".config/gtk-3.0"},
    {"source": "dotfiles/zshrc", "dest": ".zshrc"},
]

DEFAULT_THEMES = [
    {
        "name": "Skeuos-Blue-Dark",
        "url": "https://github.com/daniruiz/skeuos-gtk.git",
        "dest": "/usr/share/themes/Skeuos-Blue-Dark",
    },
    {
        "name": "Tela",
        "url": "https://github.com/vinceliuice/Tela-icon-theme.git",
        "dest": "/usr/share/icons/Tela",
        "icon_cache": True,
    },
]

DEFAULT_MIME_DEFAULTS = {
    "sxiv.desktop": ["image/png", "image/jpeg", "image/bmp"],
    "mpv.desktop": ["video/mp4", "video/x-matroska"],
    "firefox.desktop": ["application/pdf"],
}


@dataclass(frozen=True)
class ProvisionConfig:
    raw: Dict[str, Any] = field(default_factory=dict)
    base_dir: Path = field(default_factory=Path.cwd)

    def _section(self, name: str) -> Dict[str, Any]:
        value = self.raw.get(name) or {}
        if not isinstance(value, dict):
            raise ValueError(f"config.{name} must be a mapping")
        return value

    def resolve(self, rel: str | Path) -> Path:
        p = Path(rel).expanduser()
        return p if p.is_absolute() else self.base_dir / p

    @property
    def target_user(self) -> str | None:
        return self.raw.get("target_user") or None

    @property
    def manifest_path(self) -> Path:
        return self.resolve(self.raw.get("manifest") or "softwareList.txt")

    @property
    def templates_dir(self) -> Path:
        return self.resolve(self.raw.get("templates_dir") or "templates")

    @property
    def extra_packages(self) -> List[str]:
        return [str(p) for p in (self.raw.get("extra_packages", ["gmic"]) or [])]

    @property
    def gpu_packages(self) -> List[str]:
        return [str(p) for p in (self.raw.get("gpu_packages", DEFAULT_GPU_PACKAGES) or [])]

    @property
    def default_shell(self) -> str:
        return str(self.raw.get("default_shell") or "/bin/zsh")

    @property
    def swappiness(self) -> int:
        return int(self._section("tuning").get("swappiness", 10))

    @property
    def privilege_helper(self) -> str:
        return str(self.raw.get("privilege_helper") or "sudo")

    @property
    def retry_attempts(self) -> int:
        return max(1, int(self._section("bootstrap").get("attempts", 2)))

    @property
    def retry_backoff_s(self) -> float:
        return float(self._section("bootstrap").get("backoff_s", 5.0))

    @property
    def helper(self) -> HelperToolSpec:
        return HelperToolSpec.from_mapping(self._section("bootstrap").get("helper") or {})

    @property
    def deploy_users(self) -> str | List[str]:
        users = self._section("deploy").get("users", "auto")
        if users == "auto":
            return "auto"
        if not isinstance(users, list):
            raise ValueError("config.deploy.users must be 'auto' or a list of account names")
        return [str(u) for u in users]

    @property
    def min_uid(self) -> int:
        return int(self._section("deploy").get("min_uid", 1000))

    @property
    def deployments(self) -> List[DeployItem]:
        items = self._section("deploy").get("items", DEFAULT_DEPLOYMENTS) or []
        out: List[DeployItem] = []
        for item in items:
            if not isinstance(item, dict) or not item.get("source") or not item.get("dest"):
                raise ValueError(f"Deployment entries need 'source' and 'dest': {item!r}")
            if not is_home_relative(str(item["dest"])):
                raise ValueError(f"Deployment dest must be a path below the home directory: {item['dest']!r}")
            out.append(DeployItem(source=self.templates_dir / str(item["source"]), dest=str(item["dest"])))
        return out

    @property
    def themes(self) -> List[Dict[str, Any]]:
        return list(self.raw.get("themes", DEFAULT_THEMES) or [])

    @property
    def wallpapers_dir(self) -> Path:
        return self.templates_dir / str(self._section("media").get("wallpapers", "Wallpapers"))

    @property
    def fonts_dir(self) -> Path:
        return self.templates_dir / str(self._section("media").get("fonts", "fonts"))

    @property
    def mime_defaults(self) -> Dict[str, List[str]]:
        mapping = self.raw.get("mime_defaults", DEFAULT_MIME_DEFAULTS) or {}
        return {str(k): [str(m) for m in v] for k, v in mapping.items()}

    @property
    def blender_dir(self) -> Path:
        return self.templates_dir / str(self._section("blender").get("templates", "blender"))

    @property
    def blender_theme_preset(self) -> str:
        return str(self._section("blender").get("theme_preset", "Dark_Wood.xml"))

    @property
    def blender_user_template(self) -> Path:
        return self.blender_dir / str(self._section("blender").get("user_template", "blenderversion"))


def load_config(path: str | None) -> ProvisionConfig:
    """Load a YAML run configuration; None means built-in defaults."""

    if path is None:
        return ProvisionConfig()

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("provisioning config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    return ProvisionConfig(raw=raw, base_dir=p.resolve().parent)
