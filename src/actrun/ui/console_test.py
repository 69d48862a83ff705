from __future__ import annotations

import io

from actrun.analyzer import analyze
from actrun.parser import parse_workflow
from actrun.ui.console import Console

WORKFLOW = """
name: CI
jobs:
  lint:
    runs-on: ubuntu-latest
    if: github.event_name == 'pull_request'
    steps:
      - run: ruff check .
  build:
    runs-on: ubuntu-latest
    needs: lint
    steps:
      - run: make
"""


def test_analysis_output(console, context):
    console.print_analysis(analyze(parse_workflow(WORKFLOW), context))
    out = console.out.getvalue()

    assert out.startswith("WORKFLOW: CI\nTrigger: push\n")
    assert "github.ref        = refs/heads/main" in out
    assert "[SKIP] JOB: lint (SKIPPED: condition evaluated to false)" in out
    assert "  if: github.event_name == 'pull_request' -> FALSE" in out
    assert "[SKIP] JOB: build (SKIPPED: dependency 'lint' was skipped)" in out
    assert "  needs: [lint]" in out
    assert "    . make" in out
    assert "Summary: 0 job(s) will run, 2 skipped" in out


def test_failure_output(console):
    console.print_failure("Compile", "step failed with exit code 2\nmore", exit_code=2)
    assert console.out.getvalue() == (
        "STEP FAILED: Compile\nExit code: 2\nError: step failed with exit code 2\n"
    )


def test_debug_failure_output_keeps_details():
    console = Console(debug=True, out=io.StringIO(), err=io.StringIO())
    console.print_failure("build", "line one\nline two", is_job=True)
    assert "JOB FAILED: build" in console.out.getvalue()
    assert "Error details: line one\nline two" in console.out.getvalue()


def test_container_output_prefixed(console):
    console.print_container_output("a\nb\n")
    console.print_container_output("  \n")
    assert console.out.getvalue() == "  | a\n  | b\n"


def test_errors_go_to_err(console):
    console.print_error("Boom", "it broke", suggestion="try again")
    assert console.out.getvalue() == ""
    assert "ERROR: Boom" in console.err.getvalue()
    assert "try again" in console.err.getvalue()


def test_workflow_list(console):
    console.print_workflow_list([("a.yml", "A"), ("longer.yml", "B")])
    assert console.out.getvalue() == "a.yml       A\nlonger.yml  B\n"
