"""GitHub Actions workflow command helpers.

Annotations, log lines, log groups and step outputs all go through the
runner's `::command::` protocol. Everything here writes to a stream so tests
can capture it.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

# Annotation property names as the runner expects them.
_PROPERTY_NAMES = {
    "title": "title",
    "file": "file",
    "start_line": "line",
    "end_line": "endLine",
    "start_column": "col",
    "end_column": "endColumn",
}


def escape_data(value: object) -> str:
    """Escape a command message."""
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: object) -> str:
    """Escape a command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_command(command: str, message: object = "", properties: Mapping[str, object] | None = None) -> str:
    """Format one workflow command line, skipping unset properties."""
    props = ""
    if properties:
        parts = [f"{key}={escape_property(value)}" for key, value in properties.items() if value is not None]
        if parts:
            props = " " + ",".join(parts)
    return f"::{command}{props}::{escape_data(message)}"


class WorkflowLog:
    """Log lines and collapsible groups for the Actions log."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def _write(self, line: str) -> None:
        print(line, file=self.stream)

    def debug(self, message: str) -> None:
        self._write(format_command("debug", message))

    def info(self, message: str) -> None:
        self._write(message)

    def notice(self, message: str) -> None:
        self._write(format_command("notice", message))

    def warning(self, message: str) -> None:
        self._write(format_command("warning", message))

    def error(self, message: str) -> None:
        self._write(format_command("error", message))

    def start_group(self, title: str) -> None:
        self._write(f"::group::{escape_data(title)}")

    def end_group(self) -> None:
        self._write("::endgroup::")

    @contextmanager
    def group(self, title: str) -> Iterator[None]:
        """Wrap output in a collapsible group. The group is closed on error too."""
        self.start_group(title)
        try:
            yield
        finally:
            self.end_group()


class WorkflowAnnotationSink:
    """Annotation sink that prints `::error file=...::message` commands.

    Annotations are written in call order; the runner shows them in that order.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(
        self,
        severity: str,
        message: str,
        *,
        title: str | None = None,
        file: str | None = None,
        start_line: int | None = None,
        end_line: int | None = None,
        start_column: int | None = None,
        end_column: int | None = None,
    ) -> None:
        values = {
            "title": title,
            "file": file,
            "start_line": start_line,
            "end_line": end_line,
            "start_column": start_column,
            "end_column": end_column,
        }
        properties = {_PROPERTY_NAMES[key]: value for key, value in values.items() if value is not None}
        stream = self._stream if self._stream is not None else sys.stdout
        print(format_command(severity, message, properties), file=stream)


def write_outputs(output_path: Path | None, values: Mapping[str, object], *, stream: TextIO | None = None) -> None:
    """Append `key=value` lines to GITHUB_OUTPUT, or print them when no file is set."""
    if output_path is None:
        out = stream if stream is not None else sys.stdout
        for key, value in values.items():
            print(f"{key}={value}", file=out)
        return
    with output_path.open("a", encoding="utf-8") as fh:
        for key, value in values.items():
            fh.write(f"{key}={value}\n")
