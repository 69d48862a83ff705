from __future__ import annotations

import pytest

from actrun.context import (
    TriggerContext,
    build_context,
    default_event_payload,
    parse_secrets,
)
from actrun.git_facts.git import GitInfo


GIT = GitInfo(
    ref="refs/heads/feature",
    sha="abcdef0123456789abcdef0123456789abcdef01",
    actor="hubot",
    repository="octo/repo",
    workspace="/src/repo",
)


class TestLookup:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("github.event_name", "push"),
            ("github.ref", "refs/heads/main"),
            ("github.actor", "octocat"),
            ("github.repository", "octo/repo"),
            ("github.workspace", "/work/repo"),
            ("env.HOME", "/home/octocat"),
            ("secrets.TOKEN", "s3cret"),
            ("matrix.os", "linux"),
        ],
    )
    def test_simple_paths(self, context, path, expected):
        assert context.lookup(path) == (expected, True)

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "nope.thing",
            "github",
            "github.unknown",
            "github.ref.extra",
            "env",
            "env.HOME.extra",
            "env.MISSING",
            "secrets.MISSING",
            "jobs.build.status",
            "steps.one.outcome",
        ],
    )
    def test_not_found(self, context, path):
        assert context.lookup(path) == (None, False)

    def test_event_traversal(self, context):
        assert context.lookup("github.event.head_commit.message") == ("fix: things", True)
        assert context.lookup("github.event.head_commit.missing") == (None, False)
        assert context.lookup("github.event.ref.deeper") == (None, False)

    def test_event_alone_is_whole_payload(self, context):
        value, found = context.lookup("github.event")
        assert found
        assert value["ref"] == "refs/heads/main"

    def test_recorded_jobs_and_steps(self, context):
        context.record_job("build", "success", {"version": "1.2.3"})
        context.record_step("compile", "failure", {"artifact": "out.tar"})

        assert context.lookup("jobs.build.status") == ("success", True)
        assert context.lookup("jobs.build.outputs.version") == ("1.2.3", True)
        assert context.lookup("jobs.build.outputs.other") == (None, False)
        assert context.lookup("jobs.build.outputs") == (None, False)
        assert context.lookup("steps.compile.outcome") == ("failure", True)
        assert context.lookup("steps.compile.outputs.artifact") == ("out.tar", True)
        assert context.lookup("steps.compile.status") == (None, False)

    def test_record_copies_outputs(self, context):
        outputs = {"k": "v"}
        context.record_job("build", "success", outputs)
        outputs["k"] = "changed"
        assert context.jobs["build"].outputs == {"k": "v"}


class TestSnapshot:
    def test_snapshot_is_independent(self, context):
        snap = context.snapshot()
        snap.record_job("build", "success")
        snap.env["NEW"] = "1"
        snap.github.event["head_commit"]["message"] = "changed"

        assert context.jobs == {}
        assert "NEW" not in context.env
        assert context.github.event["head_commit"]["message"] == "fix: things"


class TestParseSecrets:
    def test_pairs(self):
        assert parse_secrets(["A=1", "B=x=y", "C="]) == {"A": "1", "B": "x=y", "C": ""}

    def test_entries_without_equals_are_ignored(self):
        assert parse_secrets(["JUSTKEY", "=value", "OK=1"]) == {"OK": "1"}


class TestDefaultPayload:
    def test_push(self):
        assert set(default_event_payload("push")) == {"ref", "before", "after", "commits"}

    def test_pull_request(self):
        payload = default_event_payload("pull_request")
        assert payload["action"] == "opened"
        assert payload["pull_request"]["number"] == 1

    def test_other_events_are_empty(self):
        assert default_event_payload("workflow_dispatch") == {}


class TestBuildContext:
    def test_uses_git_info(self):
        ctx = build_context(git_info=GIT, environ={"PATH": "/bin"})
        assert ctx.github.event_name == "push"
        assert ctx.github.ref == "refs/heads/feature"
        assert ctx.github.sha == GIT.sha
        assert ctx.github.actor == "hubot"
        assert ctx.github.repository == "octo/repo"
        assert ctx.github.workspace == "/src/repo"
        assert ctx.env == {"PATH": "/bin"}
        assert ctx.secrets == {}
        assert ctx.github.event == default_event_payload("push")

    def test_ref_override_and_payload(self):
        ctx = build_context(
            event_name="pull_request",
            ref="refs/pull/7/merge",
            event_payload={"number": 7},
            secrets={"TOKEN": "t"},
            git_info=GIT,
            environ={},
        )
        assert ctx.github.ref == "refs/pull/7/merge"
        assert ctx.lookup("github.event.number") == (7, True)
        assert ctx.lookup("secrets.TOKEN") == ("t", True)

    def test_environ_is_copied(self):
        environ = {"A": "1"}
        ctx = build_context(git_info=GIT, environ=environ)
        environ["A"] = "2"
        assert ctx.env["A"] == "1"

    def test_empty_context_finds_nothing(self):
        assert TriggerContext().lookup("github.ref") == ("", True)
        assert TriggerContext().lookup("env.HOME") == (None, False)
