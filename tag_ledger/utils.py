"""
Utility Functions Module for the Tag Ledger

This module provides helpers used by the command line entry points.

Functions:
    setup_logging: Configures application logging
    get_trigger_metadata: Retrieves and decodes workflow trigger metadata
    write_github_outputs: Appends step outputs for GitHub Actions
"""

import base64
import binascii
import json
import logging
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def get_trigger_metadata(env: Mapping[str, str]) -> dict:
    """Get metadata about what triggered this workflow.

    Returns:
        dict: Decoded metadata about the trigger source or empty dict if not available
    """
    encoded_metadata = env.get("METADATA")
    if not encoded_metadata:
        return {}

    try:
        decoded = base64.b64decode(encoded_metadata).decode("utf-8")
        return json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to decode metadata: {e}")
        return {}


def write_github_outputs(path: Optional[str], outputs: Dict[str, Optional[str]]) -> bool:
    """Append key=value pairs to the GitHub Actions output file.

    Returns:
        True if written, False if no output file is configured
    """
    if not path:
        return False

    with open(path, "a", encoding="utf-8") as f:
        for key, value in outputs.items():
            f.write(f"{key}={value if value is not None else ''}\n")
    return True
