#!/usr/bin/env python3

"""Annotate a workflow run from test/lint reports."""

from report_annotate.action import main

if __name__ == "__main__":
    raise SystemExit(main())
