from __future__ import annotations

import pytest

from actrun.errors import ContainerRuntimeError
from actrun.model import Container, Job, Step
from actrun.runtime import JobRun, RunState, SideChannel, StepServices
from actrun.settings import ENV_FILE_MOUNT, OUTPUT_FILE_MOUNT, WORKSPACE_MOUNT, Settings
from actrun.step_workflows import ACTION, SHELL, select_step_workflow, shell
from actrun.testing import FakeGit, FakeRuntime


def make(console, runtime=None, job=None):
    runtime = runtime or FakeRuntime()
    services = StepServices(runtime=runtime, git=FakeGit(), settings=Settings(), console=console)
    state = RunState(working_dir="/repo")
    state.job = JobRun(name="build", job=job or Job(name="build"))
    return runtime, state, services


class TestSelect:
    def test_run_wins_over_uses(self):
        assert select_step_workflow(Step(run="make", uses="actions/checkout@v4")) is SHELL

    def test_uses(self):
        assert select_step_workflow(Step(uses="actions/checkout@v4")) is ACTION

    def test_nothing_applies(self):
        assert select_step_workflow(Step(name="empty")) is None


class TestShellStep:
    def test_container_lifecycle(self, console):
        runtime, state, services = make(console, FakeRuntime(behavior=lambda c: (0, "hello\n")))

        exit_code = shell.execute(Step(id="greet", run="echo hello"), state, services)

        assert exit_code == 0
        assert runtime.methods() == ["pull", "create", "start", "wait", "logs", "stop", "remove"]
        config = runtime.created()[0]
        assert config.image == "ubuntu:latest"
        assert config.command == ["sh", "-c", "echo hello"]
        assert config.working_dir == WORKSPACE_MOUNT
        assert [m.target for m in config.mounts] == [WORKSPACE_MOUNT]
        assert config.mounts[0].source == "/repo"
        assert "  | hello" in console.out.getvalue()
        assert state.containers == {}

    def test_job_container_image(self, console):
        job = Job(name="build", container=Container(image="python:3.12"))
        runtime, state, services = make(console, job=job)
        shell.execute(Step(run="python -V"), state, services)
        assert runtime.created()[0].image == "python:3.12"

    def test_exit_code_returned(self, console):
        runtime, state, services = make(console, FakeRuntime(behavior=lambda c: (3, "")))
        assert shell.execute(Step(run="exit 3"), state, services) == 3
        assert runtime.methods()[-2:] == ["stop", "remove"]

    def test_command_substitution(self, console):
        runtime, state, services = make(console)
        state.merge_outputs("build", {"version": "1.2.3"})
        state.merge_env({"TARGET": "prod"})

        shell.execute(
            Step(run="deploy ${{ steps.build.outputs.version }} ${{ env.TARGET }} ${{ secrets.X }}"),
            state,
            services,
        )
        assert runtime.created()[0].command[-1] == "deploy 1.2.3 prod ${{ secrets.X }}"

    def test_side_channel_mounted(self, console, tmp_path):
        runtime, state, services = make(console)
        with SideChannel(base_dir=str(tmp_path)) as channel:
            state.side_channel = channel
            shell.execute(Step(run="true"), state, services)

        mounts = {m.target: m.source for m in runtime.created()[0].mounts}
        assert set(mounts) == {WORKSPACE_MOUNT, ENV_FILE_MOUNT, OUTPUT_FILE_MOUNT}
        assert mounts[ENV_FILE_MOUNT].endswith("GITHUB_ENV")
        env = runtime.created()[0].env
        assert env["GITHUB_ENV"] == ENV_FILE_MOUNT

    def test_cleanup_after_runtime_error(self, console):
        runtime, state, services = make(console, FakeRuntime(fail_on={"wait": "daemon gone"}))
        with pytest.raises(ContainerRuntimeError, match="daemon gone"):
            shell.execute(Step(id="s", run="true"), state, services)
        assert runtime.methods()[-2:] == ["stop", "remove"]
        assert state.containers == {}

    def test_cleanup_failures_are_not_fatal(self, console):
        runtime, state, services = make(
            console, FakeRuntime(fail_on={"stop": "already stopped", "remove": "in use"})
        )
        assert shell.execute(Step(run="true"), state, services) == 0
        assert runtime.methods()[-2:] == ["stop", "remove"]

    def test_create_failure_skips_cleanup(self, console):
        runtime, state, services = make(console, FakeRuntime(fail_on={"create": "bad image"}))
        with pytest.raises(ContainerRuntimeError):
            shell.execute(Step(run="true"), state, services)
        assert runtime.methods() == ["pull", "create"]
