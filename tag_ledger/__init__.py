"""Git-tag deployment ledger: version, environment and state tags for CI/CD."""
