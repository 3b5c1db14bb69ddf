"""Per-severity annotation capping.

The runner only shows a limited number of annotations per step, so findings
are capped per severity: a flood of notices never hides an error.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from typing import Protocol

from report_annotate.workflow import WorkflowLog

SEVERITIES = ("error", "warning", "notice")

DEFAULT_MAX_PER_TYPE = 10


@dataclass(frozen=True)
class PendingFinding:
    """One finding extracted from a report, waiting to be annotated."""

    severity: str
    message: str
    title: str | None = None
    file: str | None = None
    start_line: int = 1
    end_line: int | None = None
    start_column: int | None = None
    end_column: int | None = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"invalid finding severity: {self.severity!r}")
        if not self.message.strip():
            raise ValueError("finding message must be non-empty")

    def properties(self) -> dict[str, str | int | None]:
        """Annotation properties, without severity and message."""
        data = asdict(self)
        del data["severity"], data["message"]
        return data


class AnnotationSink(Protocol):
    def emit(self, severity: str, message: str, **properties: object) -> None:
        ...


@dataclass
class Tally:
    """Counts of annotations actually emitted."""

    errors: int = 0
    warnings: int = 0
    notices: int = 0
    total: int = 0

    def add(self, severity: str) -> None:
        if severity == "error":
            self.errors += 1
        elif severity == "warning":
            self.warnings += 1
        elif severity == "notice":
            self.notices += 1
        self.total += 1

    def as_outputs(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class SkippedSet:
    """Findings over the per-severity cap."""

    errors: list[PendingFinding] = field(default_factory=list)
    warnings: list[PendingFinding] = field(default_factory=list)
    notices: list[PendingFinding] = field(default_factory=list)

    def by_severity(self) -> list[tuple[str, list[PendingFinding]]]:
        return [("error", self.errors), ("warning", self.warnings), ("notice", self.notices)]

    @property
    def total(self) -> int:
        return len(self.errors) + len(self.warnings) + len(self.notices)


@dataclass
class AnnotationResult:
    accepted: list[PendingFinding]
    skipped: SkippedSet
    tally: Tally


def partition_by_severity(findings: Iterable[PendingFinding]) -> dict[str, list[PendingFinding]]:
    """Group findings by severity, keeping encounter order within each group."""
    groups: dict[str, list[PendingFinding]] = {severity: [] for severity in SEVERITIES}
    for finding in findings:
        groups[finding.severity].append(finding)
    return groups


def cap_findings(
    findings: Iterable[PendingFinding],
    max_per_type: int,
) -> tuple[list[PendingFinding], SkippedSet]:
    """Accept the first `max_per_type` findings of each severity.

    Accepted findings come back ordered errors, warnings, notices.
    """
    if max_per_type < 0:
        raise ValueError("max_per_type must be >= 0")
    groups = partition_by_severity(findings)
    accepted: list[PendingFinding] = []
    for severity in SEVERITIES:
        accepted.extend(groups[severity][:max_per_type])
    skipped = SkippedSet(
        errors=groups["error"][max_per_type:],
        warnings=groups["warning"][max_per_type:],
        notices=groups["notice"][max_per_type:],
    )
    return accepted, skipped


def annotate(
    findings: Iterable[PendingFinding],
    *,
    max_per_type: int,
    sink: AnnotationSink,
    log: WorkflowLog,
    on_skipped: Callable[[SkippedSet, int], None] | None = None,
) -> AnnotationResult:
    """Emit capped findings to the sink and hand the overflow to `on_skipped`."""
    accepted, skipped = cap_findings(findings, max_per_type)

    tally = Tally()
    for finding in accepted:
        sink.emit(finding.severity, finding.message, **finding.properties())
        tally.add(finding.severity)

    if skipped.total:
        log.warning(
            f"Maximum number of annotations per type reached ({max_per_type}). "
            f"{skipped.total} annotations were not shown."
        )
        if on_skipped is not None:
            on_skipped(skipped, max_per_type)

    return AnnotationResult(accepted=accepted, skipped=skipped, tally=tally)
