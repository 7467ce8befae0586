"""
Git Operations Module for the Tag Ledger

This module handles repository setup and client initialization.
It provides the local Git repository used as the tag store's backing
namespace and, when a token is available, the GitHub repository used to
verify pushed tags.

Functions:
    setup_git_client: Sets up Git and GitHub clients with proper authentication

Raises:
    GitOperationError: When Git operations fail
"""

from typing import Optional

from git import Repo
from github import Github
from github.Repository import Repository

from .config import GITHUB_REPO
from .exceptions import GitOperationError


def setup_git_client(
    token: str = "", repo_name: str = "", path: str = "."
) -> tuple[Repo, Optional[Repository]]:
    """Set up Git and GitHub clients.

    The GitHub client is only created when a token is given.
    """
    try:
        repo = Repo(path)
        if not token:
            return repo, None
        github_client = Github(token)
        github_repo = github_client.get_repo(repo_name or GITHUB_REPO)
        return repo, github_repo
    except Exception as e:
        raise GitOperationError(f"Failed to setup git clients: {e}") from e
