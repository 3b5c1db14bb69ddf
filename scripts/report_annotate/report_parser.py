"""Apply a report matcher to a report file.

Each matched item becomes at most one PendingFinding. Selector failures are
fatal: a report that cannot be read the way its matcher says must fail the
run instead of quietly under-reporting.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from pathlib import Path

from lxml import etree

from report_annotate.annotations import PendingFinding
from report_annotate.matchers import ConfigError, ReportFormat, ReportMatcher
from report_annotate.workflow import WorkflowLog
from report_annotate.xpath_select import SelectorError, XPathSelect, is_element


class MalformedDocumentError(ValueError):
    """The report bytes are not a well-formed document."""


class DocumentParseError(RuntimeError):
    """A report file could not be read or parsed."""

    def __init__(self, path: Path | str, cause: str) -> None:
        self.path = str(path)
        super().__init__(f"Unable to parse report {path}: {cause}")


def parse_xml(raw: bytes) -> etree._Element:
    """Parse XML report bytes. Entities and network access are disabled."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        root = etree.fromstring(raw, parser)
    except etree.XMLSyntaxError as exc:
        raise MalformedDocumentError(str(exc)) from exc
    if root is None:
        raise MalformedDocumentError("empty document")
    return root


def _optional_text(xpath: XPathSelect, selector: str | None) -> str | None:
    if selector is None:
        return None
    value = xpath.string(selector).strip()
    return value or None


def _optional_int(xpath: XPathSelect, selector: str | None) -> int | None:
    if selector is None:
        return None
    value = xpath.number(selector)
    if math.isnan(value) or math.isinf(value) or value < 1:
        return None
    return int(value)


def resolve_level(xpath: XPathSelect, matcher: ReportMatcher, log: WorkflowLog) -> str:
    """First level whose selector is true wins; otherwise `error`."""
    for level, selector in matcher.level.items():
        matched = xpath.boolean(selector)
        log.debug(f"Checking level {level} with path {selector}: {matched}")
        if matched:
            return level
    return "error"


def build_finding(item: etree._Element, matcher: ReportMatcher, log: WorkflowLog) -> PendingFinding | None:
    """Evaluate one item. Returns None for ignored items and empty messages."""
    xpath = XPathSelect(item)
    level = resolve_level(xpath, matcher, log)
    if level == "ignore":
        log.debug("Ignoring item.")
        return None

    message = xpath.string(matcher.message).strip()
    if not message:
        log.debug("Skipping item with empty message.")
        return None

    return PendingFinding(
        severity=level,
        message=message,
        title=_optional_text(xpath, matcher.title),
        file=_optional_text(xpath, matcher.file),
        start_line=_optional_int(xpath, matcher.start_line) or 1,
        end_line=_optional_int(xpath, matcher.end_line),
        start_column=_optional_int(xpath, matcher.start_column),
        end_column=_optional_int(xpath, matcher.end_column),
    )


def parse_xml_report(
    path: Path,
    matcher: ReportMatcher,
    findings: list[PendingFinding],
    log: WorkflowLog,
) -> None:
    """Parse one XML report, appending its findings."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise DocumentParseError(path, str(exc)) from exc
    try:
        document = parse_xml(raw)
    except MalformedDocumentError as exc:
        raise DocumentParseError(path, str(exc)) from exc

    items = XPathSelect(document).nodes(matcher.item)
    if not items:
        log.warning(f"No items found in {path}")
        return
    if not all(is_element(item) for item in items):
        # lxml cannot use an attribute or text node as an evaluation context.
        raise ConfigError(
            f"Item selector \"{matcher.item}\" selected attribute or text nodes in {path}; "
            "item selectors must select elements (select the owning element and read the value in `message`)"
        )
    log.debug(f"Found {len(items)} items in {path}.")

    for index, item in enumerate(items):
        try:
            finding = build_finding(item, matcher, log)
        except SelectorError as exc:
            log.warning(f"Failed to process item {index + 1} in {path}: {exc}")
            raise
        if finding is not None:
            findings.append(finding)


ReportParser = Callable[[Path, ReportMatcher, list[PendingFinding], WorkflowLog], None]

REPORT_PARSERS: dict[ReportFormat, ReportParser] = {
    ReportFormat.XML: parse_xml_report,
}


def parse_report(
    path: Path,
    matcher_name: str,
    matcher: ReportMatcher,
    findings: list[PendingFinding],
    log: WorkflowLog,
) -> None:
    """Dispatch on the matcher's format."""
    parser = REPORT_PARSERS.get(matcher.format)
    if parser is None:
        raise ConfigError(f"Unsupported matcher format in {matcher_name}: {matcher.format.value}")
    log.debug(f"Parsing {path}")
    parser(path, matcher, findings, log)
