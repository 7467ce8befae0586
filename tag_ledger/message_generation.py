"""
Message Generation Module

Pure functions for generating tag annotations and operator-facing messages.
This module contains no side effects - only text formatting logic.
"""

from typing import Any, Dict, Optional

from .models import LedgerAction, MutationKind, MutationRequest, TagRecord


def generate_tag_message(
    action: LedgerAction,
    record: TagRecord,
    commit: str,
    previous_commit: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Generate the annotation (or reflog) message for a tag write.

    Args:
        action: The ledger action writing the tag
        record: Classified tag being written
        commit: Commit the tag will reference
        previous_commit: Commit an environment tag referenced before the move
        metadata: Optional workflow trigger metadata

    Returns:
        Message string
    """
    if action == LedgerAction.RELEASE:
        title = f"Release {record.name}"
    elif action == LedgerAction.MARK:
        title = f"Mark v{record.semver} as {record.state.value}"
    elif action == LedgerAction.ROLLBACK:
        title = f"Roll back {record.name}"
    else:
        title = f"Deploy {record.name}"

    lines = [title, "", f"Type: {record.type.value}", f"Commit: {commit}"]
    if record.subproject:
        lines.append(f"Subproject: {record.subproject}")
    if previous_commit:
        lines.append(f"Previous commit: {previous_commit}")

    source = (metadata or {}).get("source", {})
    if source.get("workflow_url"):
        lines.append(f"Workflow: {source['workflow_url']}")
    if source.get("actor"):
        lines.append(f"Actor: {source['actor']}")

    return "\n".join(lines)


def generate_block_message(record: TagRecord, request: MutationRequest, entry_point: str) -> str:
    """
    Generate the message shown when the protection gate blocks a mutation.

    Names the sanctioned entry point rather than the raw command attempted.
    """
    verb = "deleted" if request.kind == MutationKind.DELETE else "created or moved"
    return (
        f"Protected {record.type.value} tag '{record.name}' cannot be {verb} directly.\n"
        f"Use the Tag Assignment workflow instead: {entry_point}\n"
        f"Emergency administrators may set ALLOW_PROTECTED_TAG_PUSH or ADMIN_OVERRIDE_TOKEN "
        f"(the override is audited)."
    )
