"""
Protection Gate Module

Decides whether a proposed tag mutation may proceed.

This is a client-side compensating control: it inspects a mutation before it
leaves the local environment (the CLI executor and the pre-push hook call it).
Anyone who bypasses the local tooling bypasses the gate, so it is not a
substitute for server-side ref protection.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from .config import AUDIT_LOGGER, LedgerConfig, is_valid_override
from .exceptions import InvalidFormat, ProtectedRefBlocked
from .message_generation import generate_block_message
from .models import ActorContext, AuditRecord, MutationRequest, TagRecord
from .tag_classification import classify_tag

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER)


class GateVerdict(Enum):
    ALLOW = "allow"
    BLOCK = "block"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of evaluating one mutation."""
    verdict: GateVerdict
    request: MutationRequest
    reason: str
    message: Optional[str] = None
    audit: Optional[AuditRecord] = None

    @property
    def allowed(self) -> bool:
        return self.verdict == GateVerdict.ALLOW


def actor_from_env(env: Dict[str, str], config: LedgerConfig) -> ActorContext:
    """Build the actor context from CI / shell environment variables.

    A mutation counts as sanctioned automation when it runs inside GitHub
    Actions under one of the configured workflows.
    """
    in_actions = env.get("GITHUB_ACTIONS", "false").lower() == "true"
    workflow = env.get("GITHUB_WORKFLOW", "")
    via_automation = in_actions and (not config.sanctioned_workflows or workflow in config.sanctioned_workflows)
    override = env.get("ADMIN_OVERRIDE_TOKEN", "").strip() or env.get("ALLOW_PROTECTED_TAG_PUSH", "").strip()
    return ActorContext(
        name=env.get("GITHUB_ACTOR") or env.get("USER") or "unknown",
        via_automation=via_automation,
        override_token=override or None,
    )


class ProtectionGate:
    """ALLOW/BLOCK decisions for tag mutations."""

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or LedgerConfig()

    def evaluate(self, request: MutationRequest, actor: ActorContext) -> GateDecision:
        """
        Evaluate a proposed mutation.

        Args:
            request: Tag name, target commit and mutation kind
            actor: Who is mutating, and whether through the sanctioned pipeline

        Returns:
            GateDecision; BLOCK decisions carry an operator-facing message
        """
        try:
            record = classify_tag(request.name, self.config.environments)
        except InvalidFormat:
            logger.warning(f"Tag {request.name} does not follow the ledger tag patterns; not protected")
            return GateDecision(GateVerdict.ALLOW, request, reason="not a ledger tag")

        if not self._is_protected(record):
            return GateDecision(GateVerdict.ALLOW, request, reason=f"{record.type.value} tags are not protected")

        if actor.via_automation:
            return GateDecision(GateVerdict.ALLOW, request, reason="sanctioned automation")

        if is_valid_override(actor.override_token, self.config):
            audit = AuditRecord(
                actor=actor.name,
                tag=request.name,
                commit=request.commit,
                kind=request.kind,
                reason="administrative override",
                timestamp=datetime.now(timezone.utc),
            )
            audit_logger.warning(
                f"Protected tag {request.kind.value} of {request.name} "
                f"({request.commit or 'no commit'}) allowed by override for {actor.name}"
            )
            return GateDecision(GateVerdict.ALLOW, request, reason="administrative override", audit=audit)

        message = generate_block_message(record, request, self.config.entry_point)
        return GateDecision(GateVerdict.BLOCK, request, reason="protected tag outside automation", message=message)

    def enforce(self, request: MutationRequest, actor: ActorContext) -> GateDecision:
        """Evaluate a mutation and raise if it is blocked.

        Raises:
            ProtectedRefBlocked: With the block message
        """
        decision = self.evaluate(request, actor)
        if not decision.allowed:
            raise ProtectedRefBlocked(request.name, decision.message)
        return decision

    def _is_protected(self, record: TagRecord) -> bool:
        return record.type in self.config.protected_types
