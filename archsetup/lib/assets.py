from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def copy_tree(src: str | Path, dst: str | Path, *, dry_run: bool = False) -> int:
    """Merge the contents of src into dst (system-wide asset dirs). Returns files copied."""

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(str(s))

    if dry_run:
        logger.info("Would copy tree %s -> %s", s, d)
        return 0

    copied = 0
    d.mkdir(parents=True, exist_ok=True)
    for item in s.rglob("*"):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)
            copied += 1
    return copied


def write_file(path: str | Path, contents: str, *, mode: int | None = None, dry_run: bool = False) -> None:
    p = Path(path)
    if dry_run:
        logger.info("Would write %s", p)
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        p.chmod(mode)
    logger.info("Wrote %s", p)


def copy_file(src: str | Path, dst_dir: str | Path, *, dry_run: bool = False) -> Path:
    s = Path(src)
    out = Path(dst_dir) / s.name
    if dry_run:
        logger.info("Would copy %s -> %s", s, out)
        return out
    out.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(s, out)
    return out
