"""Core domain package for build-herald.

Core contains the notification decision, routing, and rendering logic without
any scheduler-, Slack-, or storage-specific code, keeping the business logic
portable.
"""
