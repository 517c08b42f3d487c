"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from core.models import DirectMessageMode

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalConfig:
    """Server-wide defaults, passed in as a snapshot per event."""

    team_domain: Optional[str] = None
    auth_token: Optional[str] = None
    room: Optional[str] = None
    build_server_url: str = "/"
    send_as: Optional[str] = None
    direct_message_mode: DirectMessageMode = DirectMessageMode.NONE


@dataclass(frozen=True)
class NotificationFlags:
    """Per-job switches deciding which transitions notify."""

    notify_aborted: bool = False
    notify_failure: bool = False
    notify_repeated_failure: bool = False
    notify_not_built: bool = False
    notify_success: bool = False
    notify_back_to_normal: bool = False
    notify_unstable: bool = False
    show_commit_list: bool = False
    include_test_summary: bool = False
    include_custom_message: bool = False
    start_notification: bool = False
    custom_message: Optional[str] = None


@dataclass(frozen=True)
class JobConfig:
    """Per-job overrides; any blank value defers to ``GlobalConfig``."""

    team_domain: Optional[str] = None
    auth_token: Optional[str] = None
    room: Optional[str] = None
    direct_message: Optional[str] = None
    flags: Optional[NotificationFlags] = None


@dataclass(frozen=True)
class EffectiveConfig:
    """Fully resolved settings used for one event."""

    team_domain: Optional[str]
    auth_token: Optional[str]
    rooms: Tuple[str, ...]
    direct_message_mode: DirectMessageMode


def parse_direct_message_mode(value: Optional[str]) -> Optional[DirectMessageMode]:
    """Parse ``none|user|both``; returns ``None`` for blank input.

    Unrecognised text is logged and treated as ``NONE``.
    """

    if value is None or not value.strip():
        return None
    try:
        return DirectMessageMode(value.strip().lower())
    except ValueError:
        LOGGER.warning("Unknown direct message mode %r, using 'none'", value)
        return DirectMessageMode.NONE


def normalize_server_url(url: Optional[str]) -> str:
    """Return the build server URL with a guaranteed trailing slash."""

    if not url:
        return "/"
    return url if url.endswith("/") else f"{url}/"
