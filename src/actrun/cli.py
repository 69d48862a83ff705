# cli.py
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from . import __version__
from .analyzer import Analyzer
from .context import build_context, parse_secrets
from .docker_client import DockerCLI
from .errors import ActrunError, AnalysisError, CIError, ContainerRuntimeError, GitError, WorkflowParseError
from .git_facts.git import GitRepo, read_git_info
from .logging import configure_logging, get_logger
from .parser import WORKFLOWS_DIR, load_workflow, workflow_files
from .runner import Executor
from .settings import Settings
from .ui.console import Console

log = get_logger(__name__)


def _load(console: Console, path: str):
    try:
        return load_workflow(path)
    except WorkflowParseError as e:
        console.print_error("Failed to load workflow", str(e))
        sys.exit(1)


def _trigger_context(console: Console, event: str, ref: str | None, secrets: tuple[str, ...], cwd: str):
    try:
        git_info = read_git_info(cwd=cwd)
    except GitError as e:
        console.print_error(
            "Could not read repository state",
            str(e),
            suggestion="Run actrun from inside a git repository.",
        )
        sys.exit(1)
    return build_context(
        event_name=event,
        ref=ref or "",
        secrets=parse_secrets(secrets),
        git_info=git_info,
    )


def _analyze(console: Console, workflow, context):
    try:
        return Analyzer(workflow, context).analyze()
    except AnalysisError as e:
        console.print_error("Workflow analysis failed", str(e))
        sys.exit(1)


def trigger_options(fn):
    fn = click.option(
        "--secret", "-s", "secrets", multiple=True, metavar="KEY=VALUE",
        help="Secret available as secrets.KEY (repeatable)",
    )(fn)
    fn = click.option("--ref", "-r", default=None, help="Git ref to simulate (defaults to the current ref)")(fn)
    fn = click.option("--event", "-e", default="push", show_default=True, help="Trigger event to simulate")(fn)
    return fn


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (debug logs, stack traces and condition traces)",
)
@click.pass_context
def cli(ctx, debug):
    """actrun - analyze and run GitHub Actions style workflows locally."""
    configure_logging(level=logging.DEBUG if debug else None)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["console"] = Console(debug=debug)


@cli.command()
@click.argument("workflow", type=click.Path(dir_okay=False))
@trigger_options
@click.pass_context
def dryrun(ctx, workflow, event, ref, secrets):
    """Show which jobs and steps would run, without running anything."""
    console: Console = ctx.obj["console"]

    wf = _load(console, workflow)
    context = _trigger_context(console, event, ref, secrets, cwd=".")
    result = _analyze(console, wf, context)
    console.print_analysis(result)


@cli.command()
@click.argument("workflow", type=click.Path(dir_okay=False))
@trigger_options
@click.option("--working-dir", default=".", show_default=True, help="Directory mounted as the workspace")
@click.pass_context
def run(ctx, workflow, event, ref, secrets, working_dir):
    """Run a workflow locally in Docker containers."""
    console: Console = ctx.obj["console"]
    settings = Settings.from_env()

    wf = _load(console, workflow)
    context = _trigger_context(console, event, ref, secrets, cwd=working_dir)
    analysis = _analyze(console, wf, context)

    runtime = DockerCLI(
        settings.docker_binary,
        stop_timeout=settings.stop_timeout,
        poll_interval=settings.wait_poll_interval,
    )
    try:
        version = runtime.ping()
    except ContainerRuntimeError as e:
        console.print_error(
            "Docker is not available",
            str(e),
            suggestion="Install and start Docker: https://docs.docker.com/get-docker/",
        )
        sys.exit(1)
    log.debug("docker_available", version=version)

    console.print_run_started(
        workflow=wf.name or Path(workflow).name,
        working_dir=str(Path(working_dir).resolve()),
        event=event,
        ref=context.github.ref,
    )

    executor = Executor(
        runtime,
        GitRepo(),
        settings=settings,
        console=console,
        working_dir=working_dir,
    )
    try:
        executor.execute(wf, context, analysis)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except CIError as e:
        console.print_failure(e.job or wf.name, str(e), is_job=True)
        console.print_workflow_result(wf.name or workflow, success=False)
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    console.print_workflow_result(wf.name or workflow, success=True)


@cli.command("list")
@click.option(
    "--dir", "-d", "directory",
    default=str(WORKFLOWS_DIR), show_default=True,
    type=click.Path(exists=True, file_okay=False),
    help="Directory to list workflows in",
)
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(["text", "json"]), default="text", show_default=True,
    help="Output format",
)
@click.option("--pretty-print", is_flag=True, default=False, help="Indent JSON / add a header to text output")
@click.pass_context
def list_workflows(ctx, directory, fmt, pretty_print):
    """List the workflows in a directory."""
    console: Console = ctx.obj["console"]

    files = []
    for path in workflow_files(directory):
        try:
            wf = load_workflow(path)
        except ActrunError as e:
            log.warning("workflow_parse_failed", file=str(path), error=str(e))
            continue
        files.append({"filename": path.name, "filepath": str(path), "workflow_name": wf.name})

    if fmt == "json":
        click.echo(json.dumps(files, indent=2 if pretty_print else None))
        return

    if pretty_print:
        console.print_header("Available Workflows")
    console.print_workflow_list([(f["filename"], f["workflow_name"] or "(unnamed)") for f in files])


@cli.command()
def version():
    """Print the actrun version."""
    click.echo(__version__)


if __name__ == "__main__":
    cli()
