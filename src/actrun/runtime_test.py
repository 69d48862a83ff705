from __future__ import annotations

import pytest

from actrun.model import Container, Job, Step
from actrun.runtime import JobRun, RunState, SideChannel, parse_assignments
from actrun.settings import ENV_FILE_MOUNT, OUTPUT_FILE_MOUNT, PLATFORM_ENV


class TestParseAssignments:
    def test_basic(self):
        assert parse_assignments("A=1\nB=two words\n") == {"A": "1", "B": "two words"}

    def test_trims_and_skips(self):
        content = "  KEY  =  value  \n\nnot an assignment\n=nokey\nEMPTY=\n"
        assert parse_assignments(content) == {"KEY": "value", "EMPTY": ""}

    def test_value_keeps_later_equals(self):
        assert parse_assignments("URL=http://x/?a=b") == {"URL": "http://x/?a=b"}

    def test_nul_bytes_dropped(self):
        assert parse_assignments("A=\x001\x00\n\x00B=2") == {"A": "1", "B": "2"}

    def test_later_lines_win(self):
        assert parse_assignments("A=1\nA=2") == {"A": "2"}

    def test_crlf(self):
        assert parse_assignments("A=1\r\nB=2\r\n") == {"A": "1", "B": "2"}


class TestSideChannel:
    def test_files_created_and_removed(self, tmp_path):
        with SideChannel(base_dir=str(tmp_path)) as channel:
            directory = channel.directory
            assert channel.env_file.is_file()
            assert channel.output_file.is_file()
        assert not directory.exists()
        assert channel.directory is None

    def test_paths_require_open(self):
        with pytest.raises(RuntimeError):
            SideChannel().env_file

    def test_collect_reads_then_truncates(self, tmp_path):
        with SideChannel(base_dir=str(tmp_path)) as channel:
            channel.env_file.write_text("FOO=bar\n")
            channel.output_file.write_text("version=1.0\n")

            assert channel.collect() == ({"FOO": "bar"}, {"version": "1.0"})
            assert channel.env_file.read_text() == ""
            assert channel.collect() == ({}, {})

    def test_deleted_file_is_empty_and_recreated(self, tmp_path):
        with SideChannel(base_dir=str(tmp_path)) as channel:
            channel.output_file.unlink()
            assert channel.collect() == ({}, {})
            channel.ensure_files()
            assert channel.output_file.is_file()

    def test_close_is_idempotent(self, tmp_path):
        channel = SideChannel(base_dir=str(tmp_path))
        channel.open()
        channel.close()
        channel.close()


class TestStepEnvironment:
    def _state(self, **kwargs) -> RunState:
        job = Job(
            name="build",
            env={"X": "1", "JOB_ONLY": "j"},
            container=Container(image="alpine", env={"X": "0", "CONTAINER_ONLY": "c"}),
        )
        state = RunState(working_dir="/repo", **kwargs)
        state.job = JobRun(name="build", job=job)
        return state

    def test_precedence(self):
        state = self._state()
        state.merge_env({"X": "2", "DYN": "d"})
        env = state.step_environment(Step(run="true", env={"X": "3"}))

        assert env["X"] == "3"
        assert env["JOB_ONLY"] == "j"
        assert env["CONTAINER_ONLY"] == "c"
        assert env["DYN"] == "d"

    def test_dynamic_beats_job(self):
        state = self._state()
        state.merge_env({"X": "2"})
        assert state.step_environment(Step(run="true"))["X"] == "2"

    def test_platform_variables_cannot_be_overridden(self):
        state = self._state()
        state.merge_env({"GITHUB_WORKSPACE": "/elsewhere"})
        env = state.step_environment(Step(run="true", env={"RUNNER_OS": "Windows"}))
        for key, value in PLATFORM_ENV.items():
            assert env[key] == value

    def test_side_channel_paths_only_when_open(self, tmp_path):
        state = self._state()
        assert "GITHUB_ENV" not in state.step_environment(Step(run="true"))

        with SideChannel(base_dir=str(tmp_path)) as channel:
            state.side_channel = channel
            env = state.step_environment(Step(run="true", env={"GITHUB_ENV": "/tmp/x"}))
            assert env["GITHUB_ENV"] == ENV_FILE_MOUNT
            assert env["GITHUB_OUTPUT"] == OUTPUT_FILE_MOUNT

    def test_merge_outputs_accumulates(self):
        state = RunState(working_dir="/repo")
        state.merge_outputs("build", {"a": "1"})
        state.merge_outputs("build", {"b": "2", "a": "3"})
        assert state.step_outputs == {"build": {"a": "3", "b": "2"}}
