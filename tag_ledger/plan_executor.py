"""Plan executor - executes a prepared ledger plan."""

import logging

from .exceptions import TagLedgerError
from .models import ActorContext, ExecutionResult, LedgerPlan, MutationKind, MutationRequest, TagMutation
from .protection import ProtectionGate
from .tag_store import TagStore

logger = logging.getLogger(__name__)


def execute_plan(plan: LedgerPlan, store: TagStore, gate: ProtectionGate, actor: ActorContext) -> ExecutionResult:
    """
    Execute a prepared plan.

    Every mutation passes the protection gate before it reaches the tag store.
    Ledger errors stop execution and are returned in the result unchanged;
    push drift is recorded as a warning and does not fail the run.
    """
    result = ExecutionResult(success=True, dry_run=plan.dry_run)

    for commit, names in plan.duplicate_versions.items():
        result.success = False
        result.errors.append(f"Commit {commit} carries multiple version tags: {', '.join(names)}")

    if not plan.has_mutations():
        logger.info("No tag changes to execute.")
        return result

    try:
        for mutation in plan.mutations:
            _execute_mutation(mutation, plan, store, gate, actor, result)
    except TagLedgerError as e:
        result.success = False
        result.error = e
        result.errors.append(str(e))

    return result


def _execute_mutation(
    mutation: TagMutation,
    plan: LedgerPlan,
    store: TagStore,
    gate: ProtectionGate,
    actor: ActorContext,
    result: ExecutionResult,
):
    request = MutationRequest(name=mutation.name, commit=mutation.commit, kind=mutation.kind)
    decision = gate.enforce(request, actor)
    if decision.audit:
        result.audit_records.append(decision.audit)

    if mutation.kind == MutationKind.CREATE:
        store.create(mutation.name, mutation.commit, mutation.message)
    elif mutation.kind == MutationKind.MOVE:
        result.previous_commits[mutation.name] = store.move(mutation.name, mutation.commit, mutation.message)
    elif mutation.kind == MutationKind.DELETE:
        store.delete(mutation.name, actor.override_token, actor.name, push=plan.push)
        result.tags_written.append(mutation.name)
        return
    else:
        raise ValueError(f"Unhandled mutation kind: {mutation.kind}")

    result.tags_written.append(mutation.name)

    if plan.push:
        push_result = store.push(mutation.name)
        result.pushes.append(push_result)
        if push_result.drifted:
            result.warnings.append(str(push_result.drift))
