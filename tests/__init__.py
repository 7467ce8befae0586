"""Test suite for the Tag Ledger.

This package contains test modules and fixtures for verifying the functionality
of the tag ledger. It includes tests for:
- Tag classification and version precedence
- Atomic tag writes and push verification
- Rollback resolution and deployment state
- The protection gate and pre-push hook
- Configuration handling and the CLI

The test suite uses pytest and provides fixtures for common test scenarios.
"""
