"""Report matcher definitions.

A matcher tells the report parser how to find the repeating items in a report
and how to pull each annotation field out of one item. Every selector except
`item` is evaluated relative to the item node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConfigError(RuntimeError):
    """Invalid action configuration or matcher definition."""


class ReportFormat(str, Enum):
    """Report formats a matcher can declare."""

    XML = "xml"


# Levels a matcher may assign, in the order they are checked by default.
LEVELS = ("error", "warning", "notice", "ignore")

# camelCase config key -> dataclass field
_OPTIONAL_SELECTORS = {
    "title": "title",
    "file": "file",
    "startLine": "start_line",
    "endLine": "end_line",
    "startColumn": "start_column",
    "endColumn": "end_column",
}


@dataclass(frozen=True)
class ReportMatcher:
    """Data class for one report matcher."""

    format: ReportFormat
    item: str
    message: str
    level: dict[str, str] = field(default_factory=dict)
    title: str | None = None
    file: str | None = None
    start_line: str | None = None
    end_line: str | None = None
    start_column: str | None = None
    end_column: str | None = None

    @classmethod
    def from_dict(cls, name: str, raw: Any) -> "ReportMatcher":
        """Build a matcher from its JSON/YAML shape."""
        ctx = f"matcher '{name}'"
        if not isinstance(raw, dict):
            raise ConfigError(f"{ctx}: expected mapping")

        raw_format = raw.get("format")
        try:
            report_format = ReportFormat(str(raw_format).strip().lower())
        except ValueError:
            raise ConfigError(f"Unsupported matcher format in {name}: {raw_format}") from None

        item = _require_selector(raw.get("item"), f"{ctx}.item")
        message = _require_selector(raw.get("message"), f"{ctx}.message")

        level: dict[str, str] = {}
        raw_level = raw.get("level")
        if raw_level is not None:
            if not isinstance(raw_level, dict):
                raise ConfigError(f"{ctx}.level: expected mapping")
            for key, selector in raw_level.items():
                if key not in LEVELS:
                    raise ConfigError(f"{ctx}.level: unknown level '{key}' (expected one of {', '.join(LEVELS)})")
                level[key] = _require_selector(selector, f"{ctx}.level.{key}")

        optional: dict[str, str | None] = {}
        for key, attr in _OPTIONAL_SELECTORS.items():
            value = raw.get(key, raw.get(attr))
            optional[attr] = None if value is None else _require_selector(value, f"{ctx}.{key}")

        return cls(format=report_format, item=item, message=message, level=level, **optional)


def _require_selector(value: Any, ctx: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    if not value.strip():
        raise ConfigError(f"{ctx}: must be non-empty")
    return value


def parse_matchers(raw: Any, ctx: str = "customMatchers") -> dict[str, ReportMatcher]:
    """Parse a `{name: matcher}` mapping."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{ctx}: expected mapping of matcher name to matcher")
    return {str(name): ReportMatcher.from_dict(str(name), value) for name, value in raw.items()}


# Generic JUnit XML. Passing testcases are ignored, skipped ones become notices.
JUNIT = ReportMatcher(
    format=ReportFormat.XML,
    item="//testcase",
    level={
        "ignore": "not(failure) and not(skipped) and not(error)",
        "notice": "skipped",
    },
    message="""
        if(error, normalize(concat(error/@message, " \n ", error/text())),
            if(skipped, skipped/@message,
                normalize(concat(failure/@message, " \n ", failure/text()))
            )
        )""",
    title='concat(@classname, " - ", @name)',
    file="@file",
    start_line="@line",
)

# ESLint's junit formatter: one testcase per rule violation.
JUNIT_ESLINT = ReportMatcher(
    format=ReportFormat.XML,
    item="//testcase",
    level={
        "warning": 'contains(failure/text(), "Warning - ")',
    },
    message="failure/@message",
    title=r"replace(@name, 'org\.eslint\.', '')",
    file="parent::testsuite/@name",
    start_line=r"match(failure, 'line (\d+)')",
    start_column=r"match(failure, 'col (\d+)')",
)

# jest-junit. The stack trace carries `<file>.spec.ts:<line>:<column>`.
JUNIT_JEST = ReportMatcher(
    format=ReportFormat.XML,
    item="//testcase",
    level={
        "ignore": "not(failure) and not(skipped) and not(error)",
        "notice": "skipped",
    },
    message="""
        if(error, normalize(concat(error/@message, " \n ", error/text())),
            if(skipped, skipped/@message,
                normalize(failure/text())
            )
        )""",
    title="@name",
    file="@file",
    start_line=r"match(failure, '.*\.spec\.\w{2,3}:(\d+):.*')",
    start_column=r"match(failure, '.*\.spec\.\w{2,3}:\d+:(\d+).*')",
)

BUILTIN_MATCHERS: dict[str, ReportMatcher] = {
    "junit": JUNIT,
    "junit-eslint": JUNIT_ESLINT,
    "junit-jest": JUNIT_JEST,
}
