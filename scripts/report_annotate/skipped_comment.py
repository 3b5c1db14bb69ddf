"""Skipped-annotations PR comment.

Annotations over the per-severity cap are listed in one PR comment. Earlier
comments are found by their heading, minimized as outdated, and only then is
the new one posted, so a reader sees one live list at a time. Everything here
is best effort: failures are logged and never fail the run.
"""

from __future__ import annotations

import html
from typing import Protocol

from report_annotate.annotations import PendingFinding, SkippedSet
from report_annotate.github import CommentApiError, CommentPage, PriorComment, RunContext
from report_annotate.markdown import collapsible_alert, diff_url, escape_mentions, relative_path
from report_annotate.workflow import WorkflowLog

# First line of every comment this action posts. Older comments are found by
# it, so changing it orphans every comment posted before the change.
SKIPPED_MARKER = "## Skipped Annotations"

COMMENTS_PER_PAGE = 100
MINIMIZE_CLASSIFIER = "OUTDATED"

_SECTION_LABEL = {
    "error": "Errors",
    "warning": "Warnings",
    "notice": "Notices",
}


class CommentApi(Protocol):
    def list_comments(self, owner: str, repo: str, pr_number: int, page: int, per_page: int) -> CommentPage:
        ...

    def minimize_comment(self, node_id: str, classifier: str) -> None:
        ...

    def create_comment(self, owner: str, repo: str, pr_number: int, body: str) -> None:
        ...


def discover_comments(api: CommentApi, ctx: RunContext, *, per_page: int = COMMENTS_PER_PAGE) -> list[PriorComment]:
    """Fetch every comment on the PR, page by page, until a short page."""
    comments: list[PriorComment] = []
    page = 1
    while True:
        batch = api.list_comments(ctx.owner, ctx.repo, ctx.pr_number, page, per_page)
        comments.extend(batch.comments)
        if batch.size < per_page:
            return comments
        page += 1


def find_skipped_comments(comments: list[PriorComment]) -> list[PriorComment]:
    """Comments this action posted on earlier runs."""
    return [c for c in comments if c.body.startswith(SKIPPED_MARKER)]


def minimize_comments(api: CommentApi, comments: list[PriorComment], log: WorkflowLog) -> int:
    """Minimize each comment independently. Returns how many succeeded."""
    minimized = 0
    for comment in comments:
        try:
            api.minimize_comment(comment.node_id, MINIMIZE_CLASSIFIER)
        except CommentApiError as exc:
            log.warning(f"Failed to minimize previous comment {comment.id}: {exc}")
            continue
        minimized += 1
        log.debug(f"Minimized previous comment {comment.id}.")
    return minimized


def render_entry(finding: PendingFinding, ctx: RunContext) -> list[str]:
    # Messages land inside <details>; stray tags like </details> would end it early.
    message_lines = escape_mentions(html.escape(finding.message, quote=False)).splitlines() or [""]
    if finding.file and finding.start_line:
        path = relative_path(finding.file, ctx.workspace)
        url = diff_url(
            path,
            finding.start_line,
            server=ctx.server_url,
            owner=ctx.owner,
            repo=ctx.repo,
            pr_number=ctx.pr_number or 0,
        )
        label = f"`{path}:{finding.start_line}`"
        link = f"[{label}]({url})" if url else label
        message_lines[0] = f"{link} {message_lines[0]}"
    return message_lines


def render_skipped_comment(skipped: SkippedSet, max_per_type: int, ctx: RunContext) -> str:
    """Render the comment body."""
    lines = [
        SKIPPED_MARKER,
        "",
        f"The maximum number of annotations per type ({max_per_type}) was reached. "
        "The following annotations were not shown:",
    ]
    for severity, findings in skipped.by_severity():
        if not findings:
            continue
        body: list[str] = []
        for finding in findings:
            if body:
                body.append("")
            body.extend(render_entry(finding, ctx))
        lines.append("")
        lines.extend(collapsible_alert(severity, f"{_SECTION_LABEL[severity]} ({len(findings)})", body))
    return "\n".join(lines) + "\n"


def reconcile_skipped_comment(
    api: CommentApi,
    ctx: RunContext,
    skipped: SkippedSet,
    max_per_type: int,
    log: WorkflowLog,
) -> bool:
    """Replace the previous skipped-annotations comment with a new one.

    Returns True when a new comment was posted.
    """
    if not ctx.is_pull_request:
        log.info("Not running on a pull request, skipping comment creation.")
        return False

    try:
        previous = find_skipped_comments(discover_comments(api, ctx))
    except CommentApiError as exc:
        # Posting without minimizing would leave two live lists.
        log.error(f"Failed to list PR comments, skipping comment creation: {exc}")
        return False

    if previous:
        minimized = minimize_comments(api, previous, log)
        log.info(f"Minimized {minimized} of {len(previous)} previous skipped annotation comment(s).")

    body = render_skipped_comment(skipped, max_per_type, ctx)
    try:
        api.create_comment(ctx.owner, ctx.repo, ctx.pr_number, body)
    except CommentApiError as exc:
        log.error(f"Failed to create PR comment: {exc}")
        return False
    log.info("Created PR comment with skipped annotations.")
    return True
