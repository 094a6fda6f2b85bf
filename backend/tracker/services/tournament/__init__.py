"""Tournament domain services: scoring, ledger, roster and leaderboards.

This package contains the pure scorekeeping logic imported by HTTP routes,
socket handlers and CLI commands, keeping transport concerns separated from
the tournament rules. Only ``store`` touches the database.
"""
