"""Import helpers and shared fakes for the test suite."""
import importlib.util
import sys
from pathlib import Path

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"
FIXTURES = Path(__file__).parent / "fixtures"

# Add scripts/ to sys.path so tests can import report_annotate without installing it.
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from report_annotate.github import CommentApiError, CommentPage, PriorComment  # noqa: E402


def _import_script(name: str, filename: str):
    """Import a script file as a module using importlib."""
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / filename)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


report_annotate_script = _import_script("report_annotate_script", "report-annotate.py")


class RecordingLog:
    """WorkflowLog stand-in that keeps (level, message) pairs."""

    def __init__(self):
        self.records: list[tuple[str, str]] = []

    def _add(self, level, message):
        self.records.append((level, message))

    def debug(self, message):
        self._add("debug", message)

    def info(self, message):
        self._add("info", message)

    def notice(self, message):
        self._add("notice", message)

    def warning(self, message):
        self._add("warning", message)

    def error(self, message):
        self._add("error", message)

    def start_group(self, title):
        self._add("group", title)

    def end_group(self):
        self._add("endgroup", "")

    def group(self, title):
        from contextlib import contextmanager

        @contextmanager
        def _group():
            self.start_group(title)
            try:
                yield
            finally:
                self.end_group()

        return _group()

    def messages(self, level):
        return [message for lvl, message in self.records if lvl == level]


class RecordingSink:
    """Annotation sink that keeps every emit call in order."""

    def __init__(self):
        self.calls: list[tuple[str, str, dict]] = []

    def emit(self, severity, message, **properties):
        self.calls.append((severity, message, properties))


class FakeCommentApi:
    """In-memory PR comment store with call recording and failure injection."""

    def __init__(self, comments=None, *, fail_list=False, fail_create=False, fail_minimize=()):
        self.comments: list[dict] = [dict(c) for c in (comments or [])]
        self.calls: list[tuple] = []
        self.fail_list = fail_list
        self.fail_create = fail_create
        self.fail_minimize = set(fail_minimize)
        self._next_id = max((c["id"] for c in self.comments), default=0) + 1

    def list_comments(self, owner, repo, pr_number, page, per_page):
        self.calls.append(("list", owner, repo, pr_number, page, per_page))
        if self.fail_list:
            raise CommentApiError("list failed")
        start = (page - 1) * per_page
        batch = self.comments[start:start + per_page]
        return CommentPage(
            comments=[PriorComment(id=c["id"], node_id=c["node_id"], body=c["body"]) for c in batch],
            size=len(batch),
        )

    def minimize_comment(self, node_id, classifier):
        self.calls.append(("minimize", node_id, classifier))
        if node_id in self.fail_minimize:
            raise CommentApiError(f"minimize failed for {node_id}")
        for comment in self.comments:
            if comment["node_id"] == node_id:
                comment["minimized"] = True

    def create_comment(self, owner, repo, pr_number, body):
        self.calls.append(("create", owner, repo, pr_number, body))
        if self.fail_create:
            raise CommentApiError("API Error")
        comment_id = self._next_id
        self._next_id += 1
        self.comments.append({"id": comment_id, "node_id": f"IC_{comment_id}", "body": body})

    def calls_of(self, kind):
        return [call for call in self.calls if call[0] == kind]

    def live_skipped_comments(self):
        return [
            c for c in self.comments
            if c["body"].startswith("## Skipped Annotations") and not c.get("minimized")
        ]
