"""Find report files on disk."""

from __future__ import annotations

import fnmatch
import glob
from pathlib import Path


def is_ignored(path: str, ignore: list[str]) -> bool:
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return any(fnmatch.fnmatch(normalized, pattern) for pattern in ignore)


def find_report_files(patterns: list[str], ignore: list[str], root: Path | None = None) -> list[Path]:
    """Expand glob patterns relative to `root`.

    Files only, ignore globs applied, de-duplicated in discovery order.
    """
    base = root or Path.cwd()
    found: dict[str, Path] = {}
    for pattern in patterns:
        for match in sorted(glob.glob(pattern, root_dir=base, recursive=True)):
            if match in found or is_ignored(match, ignore):
                continue
            if (base / match).is_file():
                found[match] = base / match if root is not None else Path(match)
    return list(found.values())
