"""Tests for report_annotate.config."""
import json

import pytest

from conftest import FIXTURES, RecordingLog
from report_annotate.config import (
    DEFAULTS,
    ConfigError,
    ReportSpec,
    config_from_inputs,
    load_file_config,
    merge_config,
    parse_report_spec,
    resolve_matchers,
)
from report_annotate.matchers import BUILTIN_MATCHERS, ReportMatcher

CUSTOM = {"format": "xml", "item": "//testCase", "message": "oopsie-daisy/text()"}


class TestConfigFromInputs:
    def test_multiline_lists(self):
        layer = config_from_inputs(reports="junit|a.xml\n\n  junit-jest|b.xml  \n", ignore="dist/**")
        assert layer["reports"] == ["junit|a.xml", "junit-jest|b.xml"]
        assert layer["ignore"] == ["dist/**"]
        assert "max_annotations" not in layer
        assert "custom_matchers" not in layer

    def test_max_annotations(self):
        assert config_from_inputs(max_annotations=" 25 ")["max_annotations"] == 25

    @pytest.mark.parametrize("raw", ["ten", "0", "-3", "1.5"])
    def test_bad_max_annotations(self, raw):
        with pytest.raises(ConfigError, match="max-annotations"):
            config_from_inputs(max_annotations=raw)

    def test_custom_matchers_json(self):
        layer = config_from_inputs(custom_matchers=json.dumps({"custom-matcher": CUSTOM}))
        assert isinstance(layer["custom_matchers"]["custom-matcher"], ReportMatcher)

    def test_custom_matchers_invalid_json(self):
        with pytest.raises(ConfigError, match="invalid JSON"):
            config_from_inputs(custom_matchers="{not json")

    def test_custom_matchers_not_a_mapping(self):
        with pytest.raises(ConfigError, match="custom-matchers"):
            config_from_inputs(custom_matchers="[1, 2]")


class TestLoadFileConfig:
    def test_fixture(self):
        log = RecordingLog()
        layer = load_file_config(FIXTURES / "test-config.yml", log)
        assert layer == {
            "reports": ["junit|fixtures/junit-generic.xml"],
            "ignore": ["node_modules/**"],
            "max_annotations": 5,
        }
        assert log.messages("info") == [f"Using config file at {FIXTURES / 'test-config.yml'}"]

    def test_missing_file(self, tmp_path):
        log = RecordingLog()
        path = tmp_path / "nope.yml"
        assert load_file_config(path, log) == {}
        assert log.messages("info") == [f"No config file found at {path}."]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_file_config(path, RecordingLog()) == {}

    def test_snake_case_keys_and_custom_matchers(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "max_annotations: 3\n"
            "custom_matchers:\n"
            "  mine:\n"
            "    format: xml\n"
            "    item: //testCase\n"
            "    message: oopsie-daisy/text()\n",
            encoding="utf-8",
        )
        layer = load_file_config(path, RecordingLog())
        assert layer["max_annotations"] == 3
        assert layer["custom_matchers"]["mine"].item == "//testCase"

    @pytest.mark.parametrize(
        "content, match",
        [
            ("reports: [\n", "invalid YAML"),
            ("- just\n- a list\n", "expected mapping"),
            ("reports: junit|x.xml\n", "config.reports: expected list"),
            ("ignore: ['']\n", r"config.ignore\[0\]"),
            ("maxAnnotations: 0\n", "must be >= 1"),
            ("maxAnnotations: true\n", "expected integer"),
        ],
    )
    def test_invalid(self, tmp_path, content, match):
        path = tmp_path / "bad.yml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError, match=match):
            load_file_config(path, RecordingLog())


class TestMergeConfig:
    def test_defaults_only(self):
        config = merge_config({}, {})
        assert config.reports == DEFAULTS["reports"]
        assert config.ignore == DEFAULTS["ignore"]
        assert config.max_annotations == 10
        assert config.custom_matchers == {}

    def test_inputs_beat_file_beat_defaults(self):
        config = merge_config(
            {"reports": ["junit|in.xml"]},
            {"reports": ["junit|file.xml"], "max_annotations": 5},
        )
        assert config.reports == ["junit|in.xml"]
        assert config.max_annotations == 5
        assert config.ignore == DEFAULTS["ignore"]

    def test_empty_input_list_falls_through(self):
        config = merge_config({"reports": [], "ignore": []}, {"ignore": ["build/**"]})
        assert config.reports == DEFAULTS["reports"]
        assert config.ignore == ["build/**"]

    def test_merged_lists_are_copies(self):
        config = merge_config({}, {})
        config.reports.append("junit|extra.xml")
        assert DEFAULTS["reports"] == ["junit|junit/*.xml"]


class TestReportSpec:
    def test_parse(self):
        assert parse_report_spec("junit-jest| a/*.xml ,b/**/*.xml") == ReportSpec(
            matcher="junit-jest", patterns=["a/*.xml", "b/**/*.xml"]
        )

    @pytest.mark.parametrize("value", ["junit", "|a.xml", "junit|", "junit| , "])
    def test_invalid(self, value):
        with pytest.raises(ConfigError, match="invalid report entry"):
            parse_report_spec(value)

    def test_resolve_builtin_and_custom(self):
        custom = {"mine": ReportMatcher.from_dict("mine", CUSTOM)}
        resolved = resolve_matchers(
            [ReportSpec("junit", ["a.xml"]), ReportSpec("mine", ["b.xml"])],
            custom,
        )
        assert resolved["junit"] is BUILTIN_MATCHERS["junit"]
        assert resolved["mine"] is custom["mine"]

    def test_custom_overrides_builtin_name(self):
        custom = {"junit": ReportMatcher.from_dict("junit", CUSTOM)}
        assert resolve_matchers([ReportSpec("junit", ["a.xml"])], custom)["junit"] is custom["junit"]

    def test_unknown_matcher(self):
        with pytest.raises(ConfigError, match="No matcher found for nope"):
            resolve_matchers([ReportSpec("nope", ["a.xml"])], {})
