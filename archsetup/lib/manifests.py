from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List

logger = logging.getLogger(__name__)


@dataclass
class ManifestReport:
    installed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def parse_manifest(text: str) -> List[str]:
    """One package per line; blank lines and '#' comments are ignored."""

    packages: List[str] = []
    for line in text.splitlines():
        name = line.strip()
        if not name or name.startswith("#"):
            continue
        packages.append(name)
    return packages


def read_manifest(path: Path) -> List[str]:
    return parse_manifest(path.read_text(encoding="utf-8"))


def install_manifest(packages: Iterable[str], install_one: Callable[[str], None]) -> ManifestReport:
    """Install packages one at a time, in order; a failure never stops the rest."""

    report = ManifestReport()
    for package in packages:
        try:
            install_one(package)
        except (OSError, RuntimeError) as e:
            logger.warning("Package %s failed to install: %s", package, e)
            report.failed.append(package)
            continue
        report.installed.append(package)
    logger.info("Manifest done: %d installed, %d failed", len(report.installed), len(report.failed))
    return report
