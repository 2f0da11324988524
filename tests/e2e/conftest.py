"""E2E test fixtures: real API, isolated temp directories."""

import subprocess
import sys

import pytest

from github_repo_explorer.explorer import GitHubExplorer
from github_repo_explorer.github import GitHubClient


def _run_cli(*args, timeout=300):
    """Run the github-explore CLI and return CompletedProcess."""
    cmd = [sys.executable, "-c", "from github_repo_explorer.cli import main; main()"]
    cmd.extend(args)
    return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)


@pytest.fixture
def e2e_cache(tmp_path):
    """Isolated temp cache directory (NOT ~/.cache, to avoid polluting real cache)."""
    d = tmp_path / "cache"
    d.mkdir()
    return d


@pytest.fixture
def explorer(e2e_cache):
    e = GitHubExplorer(client=GitHubClient(cache_dir=e2e_cache))
    yield e
    e.close()


@pytest.fixture
def run_cli():
    return _run_cli
