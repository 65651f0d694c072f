from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(?<![\d.])(\d+(?:\.\d+)+)")


@dataclass(frozen=True)
class ToolQuery:
    found: bool
    version: Optional[str] = None


def parse_version(text: str) -> Optional[str]:
    """Return the first dotted version token on the first non-empty line."""

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        m = _VERSION_RE.search(line)
        return m.group(1) if m else None
    return None


def query_tool(name: str, version_args: Sequence[str] = ("--version",)) -> ToolQuery:
    path = shutil.which(name)
    if path is None:
        return ToolQuery(found=False)

    try:
        p = subprocess.run(
            [path, *version_args],
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=60,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Unable to query %s version: %s", name, e)
        return ToolQuery(found=True)

    if p.returncode != 0:
        return ToolQuery(found=True)
    return ToolQuery(found=True, version=parse_version(p.stdout))
