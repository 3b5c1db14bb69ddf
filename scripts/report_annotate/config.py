"""Action configuration.

Three layers, merged field by field, first set value wins:

    action inputs  >  .github/report-annotate.yml  >  built-in defaults

An empty list or mapping counts as unset, so an empty `reports` input falls
through to the config file and then to the defaults; there is no way to
configure "no reports".
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from report_annotate.annotations import DEFAULT_MAX_PER_TYPE
from report_annotate.matchers import BUILTIN_MATCHERS, ConfigError, ReportMatcher, parse_matchers
from report_annotate.workflow import WorkflowLog

__all__ = [
    "Config",
    "ConfigError",
    "DEFAULTS",
    "DEFAULT_CONFIG_PATH",
    "ReportSpec",
    "config_from_inputs",
    "load_file_config",
    "merge_config",
    "parse_report_spec",
    "resolve_matchers",
]

DEFAULT_CONFIG_PATH = ".github/report-annotate.yml"

DEFAULTS: dict[str, Any] = {
    "reports": ["junit|junit/*.xml"],
    "ignore": ["node_modules/**", "dist/**"],
    "max_annotations": DEFAULT_MAX_PER_TYPE,
    "custom_matchers": {},
}


@dataclass(frozen=True)
class Config:
    """Data class for the merged action config."""

    reports: list[str]
    ignore: list[str]
    max_annotations: int
    custom_matchers: dict[str, ReportMatcher] = field(default_factory=dict)


@dataclass(frozen=True)
class ReportSpec:
    """One `matcher|glob1, glob2` entry."""

    matcher: str
    patterns: list[str]


def _require_str_list(value: Any, ctx: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"{ctx}: expected list")
    out: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"{ctx}[{idx}]: expected non-empty string")
        out.append(item.strip())
    return out


def _require_positive_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx}: expected integer")
    if value < 1:
        raise ConfigError(f"{ctx}: must be >= 1")
    return value


def _split_lines(value: str | None) -> list[str]:
    return [line.strip() for line in (value or "").splitlines() if line.strip()]


def _is_unset(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, dict, str)):
        return not value
    return False


def config_from_inputs(
    *,
    reports: str | None = None,
    ignore: str | None = None,
    max_annotations: str | None = None,
    custom_matchers: str | None = None,
) -> dict[str, Any]:
    """Turn raw action inputs (multiline strings, JSON) into a config layer."""
    layer: dict[str, Any] = {
        "reports": _split_lines(reports),
        "ignore": _split_lines(ignore),
    }

    raw_max = (max_annotations or "").strip()
    if raw_max:
        try:
            layer["max_annotations"] = _require_positive_int(int(raw_max), "max-annotations")
        except ValueError:
            raise ConfigError(f"max-annotations: expected integer, got {raw_max!r}") from None

    raw_matchers = (custom_matchers or "").strip()
    if raw_matchers:
        try:
            decoded = json.loads(raw_matchers)
        except json.JSONDecodeError as e:
            raise ConfigError(f"custom-matchers: invalid JSON: {e}") from e
        layer["custom_matchers"] = parse_matchers(decoded, "custom-matchers")
    return layer


def load_file_config(path: Path, log: WorkflowLog) -> dict[str, Any]:
    """Load the YAML config file; a missing file is an empty layer."""
    if not path.is_file():
        log.info(f"No config file found at {path}.")
        return {}
    log.info(f"Using config file at {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"unable to read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected mapping")

    layer: dict[str, Any] = {}
    reports = raw.get("reports")
    if reports is not None:
        layer["reports"] = _require_str_list(reports, "config.reports")
    ignore = raw.get("ignore")
    if ignore is not None:
        layer["ignore"] = _require_str_list(ignore, "config.ignore")
    max_annotations = raw.get("maxAnnotations", raw.get("max_annotations"))
    if max_annotations is not None:
        layer["max_annotations"] = _require_positive_int(max_annotations, "config.maxAnnotations")
    custom = raw.get("customMatchers", raw.get("custom_matchers"))
    if custom is not None:
        layer["custom_matchers"] = parse_matchers(custom, "config.customMatchers")
    return layer


def merge_config(
    inputs: Mapping[str, Any],
    file_config: Mapping[str, Any],
    defaults: Mapping[str, Any] = DEFAULTS,
) -> Config:
    """Merge the three layers field by field."""
    merged: dict[str, Any] = {}
    for key in DEFAULTS:
        for layer in (inputs, file_config, defaults):
            value = layer.get(key)
            if not _is_unset(value):
                merged[key] = value
                break
        else:
            merged[key] = DEFAULTS[key]
    return Config(
        reports=list(merged["reports"]),
        ignore=list(merged["ignore"]),
        max_annotations=merged["max_annotations"],
        custom_matchers=dict(merged["custom_matchers"]),
    )


def parse_report_spec(value: str) -> ReportSpec:
    """Parse `matcher|glob1, glob2`."""
    matcher, sep, patterns = value.partition("|")
    matcher = matcher.strip()
    globs = [p.strip() for p in patterns.split(",") if p.strip()]
    if not sep or not matcher or not globs:
        raise ConfigError(f"invalid report entry {value!r}: expected 'matcher|glob1, glob2'")
    return ReportSpec(matcher=matcher, patterns=globs)


def resolve_matchers(specs: list[ReportSpec], custom: Mapping[str, ReportMatcher]) -> dict[str, ReportMatcher]:
    """Look up the matcher for every configured report before anything is parsed."""
    available = {**BUILTIN_MATCHERS, **custom}
    resolved: dict[str, ReportMatcher] = {}
    for spec in specs:
        matcher = available.get(spec.matcher)
        if matcher is None:
            raise ConfigError(f"No matcher found for {spec.matcher}")
        resolved[spec.matcher] = matcher
    return resolved
