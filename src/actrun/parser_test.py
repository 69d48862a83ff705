from __future__ import annotations

import pytest

from actrun.errors import ActionMetadataError, WorkflowParseError
from actrun.model import Labels
from actrun.parser import (
    find_workflows,
    load_action_metadata,
    load_workflow,
    parse_action_metadata,
    parse_workflow,
    workflow_files,
)


WORKFLOW = """
name: CI
on:
  push:
    branches: [main]
env:
  GLOBAL: 1
jobs:
  build:
    name: Build it
    runs-on: ubuntu-latest
    env:
      DEBUG: true
    container:
      image: python:3.12
      env:
        PIP_NO_CACHE_DIR: 1
    strategy:
      fail-fast: false
      max-parallel: 2
      matrix:
        python: ["3.11", "3.12"]
    outputs:
      version: ${{ steps.ver.outputs.version }}
    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 0
          lfs: false
      - id: ver
        if: github.ref == 'refs/heads/main'
        run: |
          echo "version=1" >> "$GITHUB_OUTPUT"
        env:
          COUNT: 3
  test:
    runs-on: [self-hosted, linux]
    needs: [build]
    if: ${{ success() }}
    container: node:20
    steps:
      - run: npm test
"""


class TestParseWorkflow:
    def test_full_document(self):
        wf = parse_workflow(WORKFLOW)

        assert wf.name == "CI"
        assert wf.on == {"push": {"branches": ["main"]}}
        assert wf.env == {"GLOBAL": "1"}
        assert list(wf.jobs) == ["build", "test"]

        build = wf.jobs["build"]
        assert build.name == "Build it"
        assert build.runs_on == Labels.one("ubuntu-latest")
        assert build.env == {"DEBUG": "true"}
        assert build.container.image == "python:3.12"
        assert build.container.env == {"PIP_NO_CACHE_DIR": "1"}
        assert build.strategy.fail_fast is False
        assert build.strategy.max_parallel == 2
        assert build.strategy.matrix == {"python": ["3.11", "3.12"]}
        assert build.outputs == {"version": "${{ steps.ver.outputs.version }}"}

        checkout, ver = build.steps
        assert checkout.uses == "actions/checkout@v4"
        assert checkout.inputs == {"fetch-depth": "0", "lfs": "false"}
        assert checkout.kind == "action"
        assert ver.id == "ver"
        assert ver.condition == "github.ref == 'refs/heads/main'"
        assert ver.run.startswith('echo "version=1"')
        assert ver.env == {"COUNT": "3"}

    def test_labels_and_string_container(self):
        test = parse_workflow(WORKFLOW).jobs["test"]
        assert test.name == "test"
        assert test.runs_on.as_list() == ["self-hosted", "linux"]
        assert test.dependencies == ["build"]
        assert test.condition == "${{ success() }}"
        assert test.container.image == "node:20"

    def test_single_need(self):
        wf = parse_workflow("jobs:\n  a: {runs-on: x}\n  b: {runs-on: x, needs: a}\n")
        assert wf.jobs["b"].needs == Labels.one("a")
        assert wf.jobs["a"].needs.as_list() == []

    def test_on_key_as_string_and_list(self):
        assert parse_workflow("on: push\n").on == "push"
        assert parse_workflow("on: [push, pull_request]\n").on == ["push", "pull_request"]

    def test_boolean_condition(self):
        wf = parse_workflow("jobs:\n  a:\n    if: false\n    steps: []\n")
        assert wf.jobs["a"].condition == "false"

    def test_empty_document(self):
        wf = parse_workflow("")
        assert wf.name == ""
        assert wf.jobs == {}

    def test_null_sections(self):
        wf = parse_workflow("env:\njobs:\n  a:\n    steps:\n")
        assert wf.env == {}
        assert wf.jobs["a"].steps == []

    def test_unknown_keys_ignored(self):
        wf = parse_workflow("concurrency: ci\njobs:\n  a:\n    timeout-minutes: 5\n")
        assert list(wf.jobs) == ["a"]

    @pytest.mark.parametrize(
        "text",
        [
            "jobs: [unclosed",
            "- just\n- a list\n",
            "jobs:\n  a: {}\n  a: {}\n",
            "jobs:\n  a:\n    steps: not-a-list\n",
        ],
    )
    def test_invalid_documents(self, text):
        with pytest.raises(WorkflowParseError) as exc:
            parse_workflow(text, source="ci.yml")
        assert exc.value.path == "ci.yml"
        assert str(exc.value).startswith("ci.yml: ")

    def test_duplicate_key_named(self):
        with pytest.raises(WorkflowParseError, match="duplicate key 'a'"):
            parse_workflow("jobs:\n  a: {}\n  a: {}\n")


class TestFiles:
    def test_load_workflow(self, tmp_path):
        path = tmp_path / "ci.yml"
        path.write_text("name: From file\n")
        assert load_workflow(path).name == "From file"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(WorkflowParseError, match="cannot read file"):
            load_workflow(tmp_path / "missing.yml")

    def test_find_workflows(self, tmp_path):
        workflows = tmp_path / ".github" / "workflows"
        workflows.mkdir(parents=True)
        (workflows / "b.yaml").write_text("name: b\n")
        (workflows / "a.yml").write_text("name: a\n")
        (workflows / "notes.txt").write_text("ignored\n")
        (workflows / "dir.yml").mkdir()

        assert [p.name for p in find_workflows(tmp_path)] == ["a.yml", "b.yaml"]

    def test_missing_directory(self, tmp_path):
        assert find_workflows(tmp_path) == []
        assert workflow_files(tmp_path / "nope") == []


ACTION = """
name: Greeter
description: Says hello
inputs:
  who-to-greet:
    description: Who
    default: World
  token:
outputs:
  time:
    description: When
runs:
  using: composite
  steps:
    - run: echo hello
      env:
        A: 1
"""


class TestActionMetadata:
    def test_parse(self):
        meta = parse_action_metadata(ACTION)
        assert meta.name == "Greeter"
        assert meta.inputs["who-to-greet"].default == "World"
        assert meta.inputs["token"].default == ""
        assert meta.inputs["token"].required is False
        assert list(meta.outputs) == ["time"]
        assert meta.runs.using == "composite"
        assert meta.runs.steps[0].run == "echo hello"
        assert meta.runs.steps[0].env == {"A": "1"}

    def test_docker_action(self):
        meta = parse_action_metadata("runs:\n  using: docker\n  image: docker://alpine\n  env:\n    X: y\n")
        assert meta.runs.image == "docker://alpine"
        assert meta.runs.env == {"X": "y"}

    def test_load_prefers_action_yml(self, tmp_path):
        (tmp_path / "action.yml").write_text("name: yml\n")
        (tmp_path / "action.yaml").write_text("name: yaml\n")
        assert load_action_metadata(tmp_path).name == "yml"

    def test_load_action_yaml(self, tmp_path):
        (tmp_path / "action.yaml").write_text("name: yaml\n")
        assert load_action_metadata(str(tmp_path)).name == "yaml"

    def test_missing_metadata(self, tmp_path):
        with pytest.raises(ActionMetadataError, match="action metadata not found"):
            load_action_metadata(tmp_path)

    @pytest.mark.parametrize("text", ["", "runs: [", "inputs: 3\n"])
    def test_invalid(self, text):
        with pytest.raises(ActionMetadataError):
            parse_action_metadata(text)
