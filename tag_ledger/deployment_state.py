"""
Deployment State Module

Read-only projection of "what is deployed where" over the tag ledger. Nothing
in this module writes tags.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from .config import ROOT_SCOPE
from .exceptions import AmbiguousState, NotFound
from .models import Tag, TagType
from .tag_classification import environment_tag_name
from .tag_store import TagStore

logger = logging.getLogger(__name__)


def conflict_scope_key(subproject: Optional[str], environment: str) -> str:
    """Key an external scheduler uses to serialize deployments.

    Two operations with the same key must not run concurrently; different
    keys may. The root project uses "." as its subproject segment.
    """
    return f"{subproject or ROOT_SCOPE}/{environment}"


class DeploymentStateTracker:
    """Derives current deployments from environment and version tags."""

    def __init__(self, store: TagStore):
        self.store = store

    def current_version(self, subproject: Optional[str], environment: str) -> Optional[Tag]:
        """
        Return the version tag deployed to an environment.

        Args:
            subproject: Subproject namespace, None for the root project
            environment: Environment name

        Returns:
            The co-located version tag, or None if the environment was never
            deployed or its commit carries no version tag

        Raises:
            AmbiguousState: If several version tags share the deployed commit
        """
        env_tag = environment_tag_name(environment, subproject)
        self.store.classify(env_tag)
        try:
            commit = self.store.points_at(env_tag)
        except NotFound:
            return None

        versions = [
            tag for tag in self.store.tags_in_subproject(subproject, TagType.VERSION)
            if tag.commit == commit
        ]
        if len(versions) > 1:
            raise AmbiguousState(env_tag, commit, sorted(tag.name for tag in versions))
        if not versions:
            logger.warning(f"{env_tag} points at {commit}, which has no version tag")
            return None
        return versions[0]

    def deployments(self, subproject: Optional[str] = None) -> Dict[str, Optional[Tag]]:
        """Current version for every configured environment of a subproject."""
        return {
            environment: self.current_version(subproject, environment)
            for environment in self.store.config.environments
        }

    def find_duplicate_versions(self, subproject: Optional[str] = None) -> Dict[str, List[str]]:
        """Report commits that carry more than one version tag.

        Returns:
            Mapping of commit to the version tag names sharing it
        """
        by_commit = defaultdict(list)
        for tag in self.store.tags_in_subproject(subproject, TagType.VERSION):
            by_commit[tag.commit].append(tag.name)
        duplicates = {commit: sorted(names) for commit, names in by_commit.items() if len(names) > 1}
        for commit, names in duplicates.items():
            logger.warning(f"Commit {commit} carries multiple version tags: {', '.join(names)}")
        return duplicates
