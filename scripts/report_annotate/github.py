"""GitHub PR comment transport over the `gh` CLI.

List issue comments (paginated REST), minimize a comment (GraphQL) and create
a comment. Calls are never retried; callers decide what a failure means.
"""
from __future__ import annotations

import json
import os
import subprocess
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

MINIMIZE_MUTATION = """
mutation($subjectId: ID!, $classifier: ReportedContentClassifiers!) {
  minimizeComment(input: {subjectId: $subjectId, classifier: $classifier}) {
    minimizedComment { isMinimized }
  }
}
"""


class CommentApiError(Exception):
    """A GitHub comment call failed."""


class CommentPermissionError(CommentApiError):
    """Token lacks pull-requests: write permission."""


def _run_gh(args: list[str]) -> subprocess.CompletedProcess[str]:
    """Run a gh CLI command.

    Raises:
        CommentPermissionError: Token lacks pull-requests: write permission
        CommentApiError: Other gh CLI failures
    """
    try:
        result = subprocess.run(["gh", *args], capture_output=True, text=True, check=False)
    except OSError as exc:
        raise CommentApiError(f"unable to run gh: {exc}") from exc

    if result.returncode == 0:
        return result

    stderr = (result.stderr or "").strip()
    lower = stderr.lower()
    if any(s in lower for s in ("403", "resource not accessible", "insufficient")):
        raise CommentPermissionError(
            "Unable to manage PR comments: token lacks pull-requests: write permission.\n"
            "Add this to your workflow:\n"
            "permissions:\n"
            "  contents: read\n"
            "  pull-requests: write"
        )
    raise CommentApiError(f"gh {' '.join(args[:2])} failed (exit {result.returncode}): {stderr}")


@dataclass(frozen=True)
class PriorComment:
    """An existing PR comment."""

    id: int
    node_id: str
    body: str


def _to_prior_comment(raw: object) -> PriorComment | None:
    if not isinstance(raw, dict):
        return None
    comment_id = raw.get("id")
    node_id = raw.get("node_id")
    if not isinstance(comment_id, int) or not isinstance(node_id, str):
        return None
    return PriorComment(id=comment_id, node_id=node_id, body=str(raw.get("body") or ""))


@dataclass(frozen=True)
class CommentPage:
    """One page of PR comments.

    `size` counts every entry GitHub returned, including ones that could not be
    read as comments, so callers can tell a full page from the last one.
    """

    comments: list[PriorComment]
    size: int


class GhCommentApi:
    """Comment API backed by `gh api`."""

    def list_comments(self, owner: str, repo: str, pr_number: int, page: int, per_page: int) -> CommentPage:
        endpoint = f"repos/{owner}/{repo}/issues/{pr_number}/comments?per_page={per_page}&page={page}"
        result = _run_gh(["api", endpoint])
        try:
            payload = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise CommentApiError(f"invalid JSON from {endpoint}: {exc}") from exc
        if not isinstance(payload, list):
            raise CommentApiError(f"unexpected response from {endpoint}: expected list")
        comments = [_to_prior_comment(item) for item in payload]
        return CommentPage(comments=[c for c in comments if c is not None], size=len(payload))

    def minimize_comment(self, node_id: str, classifier: str) -> None:
        _run_gh([
            "api",
            "graphql",
            "-f", f"query={MINIMIZE_MUTATION}",
            "-f", f"subjectId={node_id}",
            "-f", f"classifier={classifier}",
        ])

    def create_comment(self, owner: str, repo: str, pr_number: int, body: str) -> None:
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", suffix=".md", delete=False) as handle:
            handle.write(body)
            body_file = handle.name
        try:
            _run_gh([
                "api",
                f"repos/{owner}/{repo}/issues/{pr_number}/comments",
                "-F", f"body=@{body_file}",
            ])
        finally:
            Path(body_file).unlink(missing_ok=True)


@dataclass(frozen=True)
class RunContext:
    """Where the action is running."""

    owner: str
    repo: str
    pr_number: int | None = None
    server_url: str = "https://github.com"
    workspace: str = ""

    @property
    def is_pull_request(self) -> bool:
        return self.pr_number is not None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RunContext":
        """Build the context from the runner's GITHUB_* variables."""
        env = os.environ if environ is None else environ
        owner, _, repo = (env.get("GITHUB_REPOSITORY") or "").strip().partition("/")
        return cls(
            owner=owner,
            repo=repo,
            pr_number=_event_pr_number(env.get("GITHUB_EVENT_PATH")),
            server_url=(env.get("GITHUB_SERVER_URL") or "https://github.com").rstrip("/"),
            workspace=(env.get("GITHUB_WORKSPACE") or "").strip(),
        )


def _event_pr_number(event_path: str | None) -> int | None:
    if not event_path:
        return None
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        return None
    number = pull_request.get("number")
    if isinstance(number, bool) or not isinstance(number, int):
        return None
    return number
