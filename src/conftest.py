from __future__ import annotations

import io
import logging

import pytest

from actrun.context import GitHubInfo, TriggerContext
from actrun.logging import configure_logging
from actrun.ui.console import Console

configure_logging(level=logging.WARNING)


@pytest.fixture
def console() -> Console:
    """Console writing into in-memory buffers; read them back via console.out.getvalue()."""
    return Console(out=io.StringIO(), err=io.StringIO())


@pytest.fixture
def context() -> TriggerContext:
    return TriggerContext(
        github=GitHubInfo(
            event_name="push",
            ref="refs/heads/main",
            sha="0123456789abcdef0123456789abcdef01234567",
            actor="octocat",
            repository="octo/repo",
            workspace="/work/repo",
            event={"ref": "refs/heads/main", "head_commit": {"message": "fix: things"}},
        ),
        env={"HOME": "/home/octocat", "CI": "true"},
        secrets={"TOKEN": "s3cret"},
        matrix={"os": "linux"},
    )
