"""Application entry point for build-herald."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sqlite3
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.event_mapper import build_event, build_job_config, fill_from_history
from adapters.slack_notifier import slack_notifier_factory
from adapters.sqlite_history import SQLiteBuildHistory
from adapters.user_directory import ConfigUserDirectory
from core.notifier import BuildNotifier, check_connection

NAME = "HERALD"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    values = []
    if redact_cfg.get("token", True) and settings.GLOBAL_CONFIG.auth_token:
        values.append(settings.GLOBAL_CONFIG.auth_token)
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/herald.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _load_payload(path: str) -> dict:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _build_notifier(history: Optional[SQLiteBuildHistory]) -> BuildNotifier:
    return BuildNotifier(
        global_config=settings.GLOBAL_CONFIG,
        publisher_factory=slack_notifier_factory(settings.GLOBAL_CONFIG.send_as, settings.SEND_TIMEOUT),
        user_directory=ConfigUserDirectory(settings.USERS),
        history=history,
    )


def _notify(phase: str, payload_path: str) -> int:
    logger = logging.getLogger(__name__)

    try:
        payload = _load_payload(payload_path)
        event = build_event(payload)
    except (OSError, ValueError) as exc:
        logger.error("Could not read build payload %s: %s", payload_path, exc)
        return 2

    history: Optional[SQLiteBuildHistory] = SQLiteBuildHistory(settings.DB_PATH)
    try:
        history.init_db()
        event = fill_from_history(event, payload, history)
    except sqlite3.Error as exc:
        # Carry on with payload-supplied results and no upstream lookups.
        logger.error("Build history %s unavailable: %s", settings.DB_PATH, exc)
        history = None

    # The build's environment is the agent environment plus payload overrides.
    build_env = payload.get("env") or {}

    def env_provider() -> dict:
        return {**os.environ, **build_env}

    job_config = build_job_config(settings.JOBS.get(event.project_name))
    notifier = _build_notifier(history)
    if phase == "started":
        outcomes = notifier.on_started(event, job_config, env_provider)
    else:
        outcomes = notifier.on_completed(event, job_config, env_provider)

    if history is not None:
        try:
            history.record(event)
        except sqlite3.Error as exc:
            logger.error("Could not record %s #%s in build history: %s", event.project_name, event.number, exc)

    delivered = sum(1 for outcome in outcomes if outcome.delivered)
    logger.info("%s %s #%s: %s/%s message(s) delivered", phase, event.project_name, event.number, delivered, len(outcomes))
    # Notifications are best-effort and never fail the calling job.
    return 0


def _test_connection(args: argparse.Namespace) -> int:
    config = settings.GLOBAL_CONFIG
    check = check_connection(
        slack_notifier_factory(config.send_as, settings.SEND_TIMEOUT),
        args.team_domain or config.team_domain,
        args.token or config.auth_token,
        args.room or config.room,
        config.build_server_url,
    )
    print(check.message)
    return 0 if check.ok else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="herald")
    subparsers = parser.add_subparsers(dest="command")

    started = subparsers.add_parser("started", help="Handle a build start event")
    started.add_argument("payload", help="Path to the build event JSON ('-' for stdin)")
    completed = subparsers.add_parser("completed", help="Handle a build completion event")
    completed.add_argument("payload", help="Path to the build event JSON ('-' for stdin)")

    test = subparsers.add_parser("test-connection", help="Send a test message to Slack")
    test.add_argument("--team-domain")
    test.add_argument("--token")
    test.add_argument("--room")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    _configure_logging()
    if args.command == "test-connection":
        _print_banner()
        return _test_connection(args)
    return _notify(args.command, args.payload)


if __name__ == "__main__":
    sys.exit(main())
