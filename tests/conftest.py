"""Test fixtures for the tag ledger.

This module provides shared fixtures used across multiple test modules.
Ledger tests run against real, throwaway git repositories so the atomic ref
primitives are exercised exactly as in production.

Fixtures:
    clean_env: Removes CI / override variables that would change gate decisions
    repo: An empty git repository with a committer identity
    make_commit: Factory creating empty commits and returning their ids
    store: TagStore over the repository with default policy
    remote: A bare repository registered as "origin"
"""

import pytest
from git import Repo

from tag_ledger.config import LedgerConfig
from tag_ledger.tag_store import TagStore

LEAKY_ENV_VARS = (
    "GITHUB_ACTIONS",
    "GITHUB_WORKFLOW",
    "GITHUB_ACTOR",
    "ALLOW_PROTECTED_TAG_PUSH",
    "ADMIN_OVERRIDE_TOKEN",
    "CONFIG_FILE",
    "GITHUB_OUTPUT",
    "METADATA",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Make sure the CI environment running the tests can't leak into them."""
    for name in LEAKY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def repo(tmp_path):
    """Creates an empty git repository under tmp_path/work.

    Signing is disabled so a developer's global git config can't interfere.
    """
    repo = Repo.init(tmp_path / "work")
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Ledger Test")
        writer.set_value("user", "email", "ledger@example.com")
        writer.set_value("commit", "gpgsign", "false")
        writer.set_value("tag", "gpgsign", "false")
    return repo


@pytest.fixture
def make_commit(repo):
    """Returns a function that creates an empty commit and returns its sha."""
    def _make_commit(message="change"):
        repo.git.commit("--allow-empty", "-m", message)
        return repo.head.commit.hexsha
    return _make_commit


@pytest.fixture
def store(repo):
    return TagStore(repo, LedgerConfig())


@pytest.fixture
def remote(tmp_path, repo):
    """Creates a bare repository and registers it as origin."""
    bare = Repo.init(tmp_path / "remote.git", bare=True)
    repo.create_remote("origin", str(tmp_path / "remote.git"))
    return bare
