"""Adapters connecting the core notifier to Slack, SQLite, and scheduler payloads."""
