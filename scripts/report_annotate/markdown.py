"""Markdown helpers for the skipped-annotations PR comment.

Keep surface area small: mention escaping + diff links + collapsible alerts.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import PurePosixPath

_ALERT_TYPE = {
    "error": "CAUTION",
    "warning": "WARNING",
    "notice": "NOTE",
}

# `@name` or `@org/team` not already inside backticks and not part of an email.
_MENTION_RE = re.compile(r"(?<![\w`@])@([A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?(?:/[\w-]+)?)(?![\w`-])")


def alert_type(severity: str | None) -> str:
    """GitHub alert type for a severity."""
    text = str(severity or "").strip().lower()
    return _ALERT_TYPE.get(text, _ALERT_TYPE["notice"])


def escape_mentions(text: str) -> str:
    """Wrap `@mentions` in backticks so they do not notify anyone."""
    return _MENTION_RE.sub(r"`@\1`", text)


def relative_path(path: str, workspace: str = "") -> str:
    """Make report paths repo-relative.

    Reports often carry absolute runner paths such as
    /home/runner/work/repo/repo/src/app.ts.
    """
    text = (path or "").strip().replace("\\", "/")
    root = (workspace or "").strip().replace("\\", "/").rstrip("/")
    if root and text.startswith(root + "/"):
        text = text[len(root) + 1:]
    while text.startswith("./"):
        text = text[2:]
    return str(PurePosixPath(text)) if text else ""


def diff_url(
    path: str,
    line: int | None,
    *,
    server: str,
    owner: str,
    repo: str,
    pr_number: int,
) -> str | None:
    """Link into the pull request's "Files changed" view at a file and line."""
    path = (path or "").strip()
    server = (server or "").rstrip("/")
    if not (server and owner and repo and path):
        return None
    anchor = hashlib.sha256(path.encode("utf-8")).hexdigest()
    url = f"{server}/{owner}/{repo}/pull/{pr_number}/files#diff-{anchor}"
    if line is not None and line > 0:
        url += f"R{line}"
    return url


def quote_lines(lines: list[str]) -> list[str]:
    """Prefix every line with `> `; blank lines become a bare `>`."""
    return [f"> {ln}" if ln else ">" for ln in lines]


def collapsible_alert(severity: str, summary: str, body_lines: list[str]) -> list[str]:
    """A GitHub alert holding a <details> block."""
    if not body_lines:
        return []
    inner = [
        f"[!{alert_type(severity)}]",
        "<details>",
        f"<summary>{summary}</summary>",
        "",
        *body_lines,
        "",
        "</details>",
    ]
    return quote_lines(inner)
