"""Plan builder - creates a ledger plan from configuration."""

import logging
from typing import Optional

from .deployment_state import DeploymentStateTracker, conflict_scope_key
from .environment import EnvironmentConfig
from .exceptions import MissingVersionTag, NotFound
from .message_generation import generate_tag_message
from .models import LedgerAction, LedgerPlan, MutationKind, TagMutation, TagState
from .rollback import RollbackResolver
from .semver import parse_semver
from .tag_classification import environment_tag_name, state_tag_name, version_tag_name
from .tag_store import TagStore

logger = logging.getLogger(__name__)


def prepare_plan(config: EnvironmentConfig, store: TagStore) -> LedgerPlan:
    """
    Prepare a complete ledger plan.

    This function reads current ledger state and determines the tag writes
    needed, but doesn't make any modifications.

    Args:
        config: Environment configuration
        store: Tag store for reading the ledger

    Raises:
        TagLedgerError: Any validation, lookup or resolution failure
    """
    plan = LedgerPlan(
        action=config.action,
        subproject=config.subproject,
        environment=config.environment or None,
        push=config.push,
        dry_run=config.dry_run,
    )

    if config.action == LedgerAction.CLASSIFY:
        plan.record = store.classify(config.tag_name)
    elif config.action == LedgerAction.SCOPE_KEY:
        plan.record = store.classify(environment_tag_name(config.environment, config.subproject))
        plan.scope_key = conflict_scope_key(config.subproject, config.environment)
    elif config.action == LedgerAction.STATUS:
        _plan_status(plan, config, store)
    elif config.action == LedgerAction.VALIDATE:
        plan.duplicate_versions = DeploymentStateTracker(store).find_duplicate_versions(config.subproject)
    elif config.action == LedgerAction.RELEASE:
        _plan_release(plan, config, store)
    elif config.action == LedgerAction.MARK:
        _plan_mark(plan, config, store)
    elif config.action == LedgerAction.DEPLOY:
        _plan_deploy(plan, config, store)
    elif config.action == LedgerAction.ROLLBACK:
        _plan_rollback(plan, config, store)
    elif config.action == LedgerAction.DELETE:
        _plan_delete(plan, config, store)
    else:
        raise ValueError(f"Unhandled action: {config.action}")

    return plan


def _plan_status(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore):
    tracker = DeploymentStateTracker(store)
    if not config.environment:
        plan.deployments = tracker.deployments(config.subproject)
        return
    plan.record = store.classify(environment_tag_name(config.environment, config.subproject))
    plan.scope_key = conflict_scope_key(config.subproject, config.environment)
    plan.current_version = tracker.current_version(config.subproject, config.environment)


def _plan_release(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore):
    semver = parse_semver(config.version)
    record = store.classify(version_tag_name(semver, config.subproject))
    commit = store.resolve_commit(config.commit_sha)
    logger.info(f"Planning release {record.name} at {commit}")

    plan.record = record
    plan.mutations.append(TagMutation(
        name=record.name,
        commit=commit,
        kind=MutationKind.CREATE,
        message=config.message or generate_tag_message(plan.action, record, commit, metadata=config.metadata),
        record=record,
    ))


def _plan_mark(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore):
    semver = parse_semver(config.version)
    record = store.classify(state_tag_name(semver, TagState(config.state), config.subproject))
    version_name = version_tag_name(semver, config.subproject)
    try:
        commit = store.points_at(version_name)
    except NotFound as e:
        raise MissingVersionTag(record.name, version_name, store.resolve_commit(config.commit_sha)) from e
    logger.info(f"Planning state tag {record.name} at {commit}")

    plan.record = record
    plan.mutations.append(TagMutation(
        name=record.name,
        commit=commit,
        kind=MutationKind.CREATE,
        message=config.message or generate_tag_message(plan.action, record, commit, metadata=config.metadata),
        record=record,
    ))


def _plan_environment_move(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore, commit: str):
    record = store.classify(environment_tag_name(config.environment, config.subproject))
    previous = _current_commit(store, record.name)

    plan.record = record
    plan.scope_key = conflict_scope_key(config.subproject, config.environment)
    plan.mutations.append(TagMutation(
        name=record.name,
        commit=commit,
        kind=MutationKind.MOVE,
        message=config.message or generate_tag_message(
            plan.action, record, commit, previous_commit=previous, metadata=config.metadata
        ),
        record=record,
    ))


def _plan_deploy(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore):
    if config.version:
        version_name = version_tag_name(parse_semver(config.version), config.subproject)
        commit = store.points_at(version_name)
        logger.info(f"Deploying {version_name} ({commit}) to {config.environment}")
    else:
        commit = store.resolve_commit(config.commit_sha)
        logger.info(f"Deploying commit {commit} to {config.environment}")
    _plan_environment_move(plan, config, store, commit)


def _plan_rollback(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore):
    resolution = RollbackResolver(store).resolve(config.subproject, config.environment)
    plan.resolution = resolution
    _plan_environment_move(plan, config, store, resolution.commit)


def _plan_delete(plan: LedgerPlan, config: EnvironmentConfig, store: TagStore):
    record = store.classify(config.tag_name)
    commit = store.points_at(record.name)
    logger.warning(f"Planning administrative delete of {record.name} ({commit})")

    plan.record = record
    plan.mutations.append(TagMutation(
        name=record.name,
        commit=commit,
        kind=MutationKind.DELETE,
        message=f"Delete {record.name}",
        record=record,
    ))


def _current_commit(store: TagStore, name: str) -> Optional[str]:
    try:
        return store.points_at(name)
    except NotFound:
        return None
