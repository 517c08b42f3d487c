"""Recipient routing for channel and direct-message delivery (core domain)."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from core.models import NO_DELIVERY, BuildEvent, CauseKind, DirectMessageMode, Recipients
from core.ports import UserDirectory

LOGGER = logging.getLogger(__name__)

MISSING_HANDLE_MESSAGE = "direct message requested but no chat username mapped for triggering user"


def resolve_chat_username(event: BuildEvent, directory: Optional[UserDirectory]) -> str:
    """Return the chat handle of the user who started the build, or ``""``.

    Only user-triggered builds carry an identity; downstream and SCM builds
    resolve to no username, which is not an error.
    """

    if event.cause_kind is not CauseKind.USER or not event.triggering_user_id:
        return ""
    if directory is None:
        return ""
    try:
        handle = directory.lookup_chat_handle(event.triggering_user_id)
    except Exception:
        LOGGER.exception("Chat handle lookup failed for user %s", event.triggering_user_id)
        return ""
    return (handle or "").strip().lstrip("@")


def route(rooms: Sequence[str], mode: DirectMessageMode, resolved_username: str) -> Recipients:
    """Compute the delivery targets for one message.

    Rules:
    - NONE: the rooms as configured.
    - USER: ``@username`` only; without a username nothing is delivered.
    - BOTH: rooms plus ``@username``; without a username the rooms alone,
      and with no rooms either nothing is delivered.
    """

    rooms = tuple(rooms)

    if mode is DirectMessageMode.NONE:
        return Recipients(targets=rooms)

    if not resolved_username:
        LOGGER.error(MISSING_HANDLE_MESSAGE)
        if mode is DirectMessageMode.USER or not rooms:
            return NO_DELIVERY
        return Recipients(targets=rooms)

    direct = f"@{resolved_username}"
    if mode is DirectMessageMode.USER:
        return Recipients(targets=(direct,))
    return Recipients(targets=rooms + (direct,))
