"""
Environment Configuration Module

Handles parsing and validation of environment variables.
This is a pure module - no side effects, just data transformation.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Mapping
import logging

from .config import STATE_WORDS
from .exceptions import SemverParseError
from .models import LedgerAction
from .semver import parse_semver
from .tag_classification import SUBPROJECT_SEGMENT
from .utils import get_trigger_metadata

logger = logging.getLogger(__name__)

NEEDS_TAG_NAME = (LedgerAction.CLASSIFY, LedgerAction.DELETE)
NEEDS_VERSION = (LedgerAction.RELEASE, LedgerAction.MARK)
NEEDS_ENVIRONMENT = (LedgerAction.DEPLOY, LedgerAction.ROLLBACK, LedgerAction.SCOPE_KEY)


@dataclass
class EnvironmentConfig:
    """Configuration parsed from environment variables."""

    action: Optional[LedgerAction]
    tag_name: str = ""
    version: str = ""
    environment: str = ""
    state: str = ""
    subproject: Optional[str] = None
    commit_sha: str = "HEAD"
    message: str = ""
    push: bool = True
    dry_run: bool = False
    target_path: str = "."
    config_file: str = ""
    github_token: str = ""
    github_repository: str = ""
    trace_file: str = ""
    github_output: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    _raw_action: str = field(default="", init=False, repr=False)

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "EnvironmentConfig":
        """Create configuration from environment variables.

        Args:
            env: Dictionary of environment variables (typically os.environ)

        Returns:
            EnvironmentConfig instance
        """
        raw_action = env.get("ACTION", "").strip().lower()
        try:
            action = LedgerAction(raw_action)
        except ValueError:
            # Invalid action - will be caught in validation
            action = None

        config = cls(
            action=action,
            tag_name=env.get("TAG_NAME", "").strip(),
            version=env.get("VERSION", "").strip(),
            environment=env.get("ENVIRONMENT", "").strip(),
            state=env.get("STATE", "").strip().lower(),
            subproject=env.get("SUBPROJECT", "").strip().strip("/") or None,
            commit_sha=env.get("COMMIT_SHA", "").strip() or "HEAD",
            message=env.get("MESSAGE", ""),
            push=env.get("PUSH", "true").lower() == "true",
            dry_run=env.get("DRY_RUN", "false").lower() == "true",
            target_path=env.get("TARGET_PATH", "."),
            config_file=env.get("CONFIG_FILE", "").strip(),
            github_token=env.get("GH_TOKEN", ""),
            github_repository=env.get("GITHUB_REPOSITORY", ""),
            trace_file=env.get("TRACE_FILE", ""),
            github_output=env.get("GITHUB_OUTPUT", ""),
            metadata=get_trigger_metadata(env),
        )
        config._raw_action = raw_action

        if action == LedgerAction.DEPLOY and config.version and env.get("COMMIT_SHA", "").strip():
            logger.warning("COMMIT_SHA is ignored for deploy when VERSION is set; deploying the version's commit")
        return config

    def validate(self) -> List[str]:
        """Validate the configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.action is None:
            valid_actions = [a.value for a in LedgerAction]
            errors.append(
                f"Invalid ACTION '{self._raw_action}'. Valid options are: {', '.join(valid_actions)}"
            )
            return errors

        if self.action in NEEDS_TAG_NAME and not self.tag_name:
            errors.append(f"TAG_NAME is required for {self.action.value}")

        if self.action in NEEDS_VERSION and not self.version:
            errors.append(f"VERSION is required for {self.action.value}")

        if self.version:
            try:
                parse_semver(self.version)
            except SemverParseError as e:
                errors.append(f"Invalid VERSION: {e}")

        if self.action == LedgerAction.MARK:
            if not self.state:
                errors.append("STATE is required for mark")
            elif self.state not in STATE_WORDS:
                errors.append(f"Invalid STATE '{self.state}'. Must be one of: {', '.join(STATE_WORDS)}")

        if self.action in NEEDS_ENVIRONMENT and not self.environment:
            errors.append(f"ENVIRONMENT is required for {self.action.value}")

        if self.subproject:
            for segment in self.subproject.split("/"):
                if not SUBPROJECT_SEGMENT.match(segment):
                    errors.append(
                        f"Invalid SUBPROJECT '{self.subproject}': segments must be lowercase alphanumeric with hyphens"
                    )
                    break

        return errors
