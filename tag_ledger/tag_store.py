"""
Tag Store for the Tag Ledger

This module contains every read and write against the shared tag namespace.
It is the "imperative shell" of the ledger: nothing else touches refs/tags/
directly.

Writes rely on git's own atomic ref primitives:
    - immutable tags are created with `git tag -a`, which refuses to replace
      an existing ref, so two racing creators cannot both succeed;
    - environment tags are written with `git update-ref <ref> <new> <old>`,
      a compare-and-swap that never leaves the ref absent. A lost race is
      retried from a fresh read a bounded number of times.

A local ref update is not globally exclusive once tags are pushed. After a
push the remote ref is read back; a mismatch is reported as PushRaceDrift,
which is a warning, not a failure.
"""

import logging
from typing import List, Optional, Any

from git import Repo
from git.exc import GitCommandError
from github.GithubException import UnknownObjectException

from .config import AUDIT_LOGGER, LedgerConfig, is_valid_override
from .exceptions import (
    ConcurrentUpdateError,
    CreateConflict,
    GitOperationError,
    ImmutableTagError,
    InvalidFormat,
    MissingVersionTag,
    NotFound,
    OverrideRequired,
    PushRaceDrift,
)
from .models import PushResult, Tag, TagRecord, TagType
from .tag_classification import classify_tag, version_tag_name

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER)

QUERY_FORMAT = "--format=%(refname:strip=2)%09%(objectname)%09%(*objectname)"


def tag_ref(name: str) -> str:
    return f"refs/tags/{name}"


class TagStore:
    """Handles all tag reads and writes for the application."""

    def __init__(
        self,
        repo: Repo,
        config: Optional[LedgerConfig] = None,
        github_repo: Any = None,
        dry_run: bool = False,
    ):
        """Initialize the tag store.

        Args:
            repo: Git repository object
            config: Ledger policy (environments, remote, retry budget)
            github_repo: Optional GitHub repository used to verify pushed tags
            dry_run: If True, don't perform actual writes
        """
        self.repo = repo
        self.config = config or LedgerConfig()
        self.github_repo = github_repo
        self.dry_run = dry_run

    def classify(self, name: str) -> TagRecord:
        return classify_tag(name, self.config.environments)

    # -----------------------------------------------------------------------------
    # Read Operations
    # -----------------------------------------------------------------------------

    def resolve_commit(self, revision: str) -> str:
        """Resolve a revision (sha, branch, HEAD...) to a full commit id.

        Raises:
            NotFound: If the revision doesn't name a commit
        """
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", f"{revision}^{{commit}}").strip()
        except GitCommandError as e:
            raise NotFound(revision) from e

    def points_at(self, name: str) -> str:
        """Return the commit a tag references.

        Raises:
            NotFound: If the tag doesn't exist
        """
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", f"{tag_ref(name)}^{{commit}}").strip()
        except GitCommandError as e:
            raise NotFound(name) from e

    def _read_ref(self, name: str) -> Optional[str]:
        """Raw ref value (tag object id for annotated tags), or None if absent."""
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", tag_ref(name)).strip()
        except GitCommandError:
            return None

    def _commit_or_none(self, name: str) -> Optional[str]:
        try:
            return self.points_at(name)
        except NotFound:
            return None

    def query(self, pattern: str = "*") -> List[Tag]:
        """List ledger tags matching a glob pattern.

        The result is a plain list, so it can be iterated any number of times.
        Names outside the ledger grammar are skipped.

        Args:
            pattern: Glob over tag names, as accepted by `git tag -l`

        Returns:
            Matching tags with the commits they reference
        """
        try:
            output = self.repo.git.tag("-l", QUERY_FORMAT, pattern)
        except GitCommandError as e:
            raise GitOperationError(f"Failed to list tags matching '{pattern}': {e}") from e

        tags = []
        for line in output.splitlines():
            parts = line.split("\t")
            if not parts[0]:
                continue
            name = parts[0]
            commit = parts[2] if len(parts) > 2 and parts[2] else parts[1]
            try:
                record = self.classify(name)
            except InvalidFormat:
                logger.debug(f"Skipping non-ledger tag: {name}")
                continue
            tags.append(Tag(record=record, commit=commit))
        return tags

    def tags_in_subproject(self, subproject: Optional[str], tag_type: Optional[TagType] = None) -> List[Tag]:
        """List ledger tags belonging to exactly one subproject namespace."""
        pattern = f"{subproject}/*" if subproject else "*"
        return [
            tag for tag in self.query(pattern)
            if tag.subproject == subproject and (tag_type is None or tag.type == tag_type)
        ]

    # -----------------------------------------------------------------------------
    # Write Operations
    # -----------------------------------------------------------------------------

    def create(self, name: str, commit: str, message: str) -> Tag:
        """Create a tag, or confirm it already points at the commit.

        Args:
            name: Tag name
            commit: Revision the tag should reference
            message: Annotation / reflog message

        Returns:
            The tag as it exists after the call

        Raises:
            InvalidFormat: If the name is not a ledger tag
            MissingVersionTag: If a state tag has no version tag at the commit
            CreateConflict: If an immutable tag already points elsewhere
        """
        record = self.classify(name)
        commit = self.resolve_commit(commit)

        if record.type == TagType.ENVIRONMENT:
            self.move(name, commit, message)
            return Tag(record=record, commit=commit)
        elif record.type == TagType.STATE:
            self._require_version_tag(record, commit)
        elif record.type == TagType.VERSION:
            pass
        else:
            raise ValueError(f"Unhandled tag type: {record.type}")

        if self.dry_run:
            print(f"[DRY RUN] Would create tag {name} at {commit}")
            return Tag(record=record, commit=commit)

        try:
            self.repo.git.tag("-a", "-m", message, name, commit)
        except GitCommandError as e:
            existing = self._commit_or_none(name)
            if existing is None:
                raise GitOperationError(f"Failed to create tag {name}: {e}") from e
            if existing != commit:
                raise CreateConflict(name, existing, commit) from e
            logger.info(f"Tag {name} already points to {commit}")
            return Tag(record=record, commit=commit)

        logger.info(f"Created {record.type.value} tag {name} at {commit}")
        return Tag(record=record, commit=commit)

    def _require_version_tag(self, record: TagRecord, commit: str) -> None:
        version_name = version_tag_name(record.semver, record.subproject)
        if self._commit_or_none(version_name) != commit:
            raise MissingVersionTag(record.name, version_name, commit)

    def move(self, name: str, new_commit: str, message: Optional[str] = None) -> Optional[str]:
        """Atomically point an environment tag at a new commit.

        Args:
            name: Environment tag name
            new_commit: Revision the tag should reference
            message: Reflog message

        Returns:
            The commit the tag referenced before the move, or None if it was absent

        Raises:
            ImmutableTagError: If the tag is a version or state tag
            ConcurrentUpdateError: If every attempt lost a race with another writer
        """
        record = self.classify(name)
        if record.type != TagType.ENVIRONMENT:
            raise ImmutableTagError(name, record.type.value)

        new_commit = self.resolve_commit(new_commit)
        message = message or f"Move {name} to {new_commit}"

        for attempt in range(1, self.config.max_attempts + 1):
            old_ref = self._read_ref(name)
            previous = self._commit_or_none(name) if old_ref else None

            if previous == new_commit:
                logger.info(f"Environment tag {name} already points to {new_commit}")
                return previous

            if self.dry_run:
                print(f"[DRY RUN] Would move {name}: {previous or '(absent)'} -> {new_commit}")
                return previous

            try:
                # Empty old value means "must not exist yet"
                self.repo.git.update_ref("-m", message, tag_ref(name), new_commit, old_ref or "")
            except GitCommandError as e:
                if self._read_ref(name) == old_ref:
                    raise GitOperationError(f"Failed to move tag {name}: {e}") from e
                logger.warning(
                    f"Tag {name} changed while moving it (attempt {attempt}/{self.config.max_attempts}), retrying"
                )
                continue

            logger.info(f"Moved environment tag {name}: {previous or '(absent)'} -> {new_commit}")
            return previous

        raise ConcurrentUpdateError(name, self.config.max_attempts)

    def delete(self, name: str, override_token: Optional[str], actor: str = "unknown", push: bool = False) -> str:
        """Delete a tag under administrative override.

        Args:
            name: Tag name
            override_token: Administrative override signal
            actor: Identity recorded in the audit log
            push: Also delete the tag on the remote

        Returns:
            The commit the deleted tag referenced

        Raises:
            OverrideRequired: If the override token is missing or invalid
            NotFound: If the tag doesn't exist
        """
        if not is_valid_override(override_token, self.config):
            raise OverrideRequired(name, "delete")

        commit = self.points_at(name)
        audit_logger.warning(f"Administrative delete of tag {name} (was {commit}) by {actor}")

        if self.dry_run:
            print(f"[DRY RUN] Would delete tag {name}" + (f" locally and on {self.config.remote}" if push else ""))
            return commit

        try:
            self.repo.git.tag("-d", name)
            if push:
                self.repo.git.push(self.config.remote, f":{tag_ref(name)}")
        except GitCommandError as e:
            raise GitOperationError(f"Failed to delete tag {name}: {e}") from e
        return commit

    # -----------------------------------------------------------------------------
    # Remote Operations
    # -----------------------------------------------------------------------------

    def push(self, name: str) -> PushResult:
        """Push a tag to the remote and verify what the remote ended up with.

        Environment tags are force-pushed; version and state tags never are.

        Returns:
            PushResult; its drift field holds a PushRaceDrift on mismatch

        Raises:
            CreateConflict: If the remote already holds a version or state tag at another commit
        """
        record = self.classify(name)
        intended = self.points_at(name)
        remote = self.config.remote
        ref = tag_ref(name)
        refspec = f"+{ref}:{ref}" if record.mutable else f"{ref}:{ref}"

        if self.dry_run:
            print(f"[DRY RUN] Would push {refspec} to {remote}")
            return PushResult(name=name, remote=remote, intended_commit=intended, remote_commit=intended)

        try:
            self.repo.git.push(remote, refspec)
        except GitCommandError as e:
            if not record.mutable:
                existing = self.read_remote_commit(name)
                if existing and existing != intended:
                    raise CreateConflict(name, existing, intended) from e
            raise GitOperationError(f"Failed to push tag {name} to {remote}: {e}") from e

        remote_commit = self.read_remote_commit(name)
        result = PushResult(name=name, remote=remote, intended_commit=intended, remote_commit=remote_commit)
        if remote_commit != intended:
            result.drift = PushRaceDrift(name, intended, remote_commit)
            logger.warning(f"{result.drift} (concurrent update; remote will reconcile)")
        else:
            logger.info(f"Pushed {name} to {remote}")
        return result

    def read_remote_commit(self, name: str) -> Optional[str]:
        """Read the commit a tag references on the remote, or None if absent."""
        if self.github_repo is not None:
            return self._read_github_commit(name)

        try:
            output = self.repo.git.ls_remote("--tags", self.config.remote, tag_ref(name), f"{tag_ref(name)}^{{}}")
        except GitCommandError as e:
            raise GitOperationError(f"Failed to read remote tag {name}: {e}") from e

        direct = None
        for line in output.splitlines():
            sha, _, ref = line.partition("\t")
            if ref == f"{tag_ref(name)}^{{}}":
                return sha
            if ref == tag_ref(name):
                direct = sha
        return direct

    def _read_github_commit(self, name: str) -> Optional[str]:
        try:
            git_ref = self.github_repo.get_git_ref(f"tags/{name}")
        except UnknownObjectException:
            return None
        if git_ref.object.type == "tag":
            return self.github_repo.get_git_tag(git_ref.object.sha).object.sha
        return git_ref.object.sha
