"""Annotate a workflow run from test/lint reports.

Reads reports with the configured matchers, emits capped annotations, lists
the overflow in a PR comment and writes the counts as step outputs.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

from report_annotate.annotations import AnnotationSink, PendingFinding, SkippedSet, Tally, annotate
from report_annotate.config import (
    DEFAULT_CONFIG_PATH,
    Config,
    ConfigError,
    ReportSpec,
    config_from_inputs,
    load_file_config,
    merge_config,
    parse_report_spec,
    resolve_matchers,
)
from report_annotate.github import GhCommentApi, RunContext
from report_annotate.matchers import ReportMatcher
from report_annotate.report_files import find_report_files
from report_annotate.report_parser import DocumentParseError, parse_report
from report_annotate.skipped_comment import CommentApi, reconcile_skipped_comment
from report_annotate.workflow import WorkflowAnnotationSink, WorkflowLog, write_outputs
from report_annotate.xpath_select import SelectorError


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Annotate a workflow run from test/lint reports.")
    p.add_argument("--reports", default="", help="Newline separated 'matcher|glob1, glob2' entries")
    p.add_argument("--ignore", default="", help="Newline separated globs to skip")
    p.add_argument("--max-annotations", default="", help="Maximum annotations per severity")
    p.add_argument("--custom-matchers", default="", help="JSON object of matcher name -> matcher")
    p.add_argument("--config-path", default="", help=f"YAML config file (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--root", default=".", help="Directory report globs are relative to")
    p.add_argument(
        "--github-output",
        default=os.environ.get("GITHUB_OUTPUT", ""),
        help="Path to GITHUB_OUTPUT file. If omitted, outputs are printed to stdout.",
    )
    return p.parse_args(argv)


def load_config(args: argparse.Namespace, log: WorkflowLog) -> Config:
    inputs = config_from_inputs(
        reports=args.reports,
        ignore=args.ignore,
        max_annotations=args.max_annotations,
        custom_matchers=args.custom_matchers,
    )
    log.debug(f"Parsed inputs: {inputs}")
    file_config = load_file_config(Path(args.config_path or DEFAULT_CONFIG_PATH), log)
    log.debug(f"Parsed yaml config: {file_config}")
    config = merge_config(inputs, file_config)
    log.debug(f"Final config: {config}")
    return config


def find_reports(
    specs: list[ReportSpec],
    ignore: list[str],
    root: Path,
    log: WorkflowLog,
) -> dict[str, list[Path]]:
    """Report files per matcher name, in configuration order."""
    reports: dict[str, list[Path]] = {}
    for spec in specs:
        with log.group(f"Finding {spec.matcher} reports"):
            files = find_report_files(spec.patterns, ignore, root)
            if not files:
                log.warning(f"No reports found for {spec.matcher} using patterns {', '.join(spec.patterns)}")
                continue
            known = reports.setdefault(spec.matcher, [])
            known.extend(f for f in files if f not in known)
            log.info(f"Found {len(files)} report(s) for {spec.matcher}")
    return reports


def collect_findings(
    reports: dict[str, list[Path]],
    matchers: dict[str, ReportMatcher],
    log: WorkflowLog,
) -> list[PendingFinding]:
    findings: list[PendingFinding] = []
    for name, files in reports.items():
        with log.group(f"Parsing {name} reports"):
            before = len(findings)
            for path in files:
                parse_report(path, name, matchers[name], findings, log)
            log.info(f"Parsed {len(findings) - before} annotation(s) from {len(files)} report(s)")
    return findings


def run(
    args: argparse.Namespace,
    *,
    log: WorkflowLog,
    sink: AnnotationSink,
    api: CommentApi,
    ctx: RunContext,
) -> Tally:
    """Run the whole action. Raises on configuration and report errors."""
    with log.group("Configuration"):
        config = load_config(args, log)
        specs = [parse_report_spec(entry) for entry in config.reports]
        matchers = resolve_matchers(specs, config.custom_matchers)

    reports = find_reports(specs, config.ignore, Path(args.root), log)
    findings = collect_findings(reports, matchers, log)

    def _post_skipped(skipped: SkippedSet, max_per_type: int) -> None:
        with log.group("Skipped annotations comment"):
            reconcile_skipped_comment(api, ctx, skipped, max_per_type, log)

    result = annotate(
        findings,
        max_per_type=config.max_annotations,
        sink=sink,
        log=log,
        on_skipped=_post_skipped,
    )

    tally = result.tally
    output_path = Path(args.github_output) if args.github_output else None
    write_outputs(output_path, tally.as_outputs())
    log.info(
        f"Annotated {tally.total} finding(s): {tally.errors} error(s), "
        f"{tally.warnings} warning(s), {tally.notices} notice(s)."
    )
    return tally


def main(argv: list[str] | None = None) -> int:
    """Main."""
    args = parse_args(argv)
    log = WorkflowLog()
    try:
        run(
            args,
            log=log,
            sink=WorkflowAnnotationSink(),
            api=GhCommentApi(),
            ctx=RunContext.from_env(),
        )
    except (ConfigError, SelectorError, DocumentParseError) as exc:
        log.error(str(exc))
        return 1
    return 0
