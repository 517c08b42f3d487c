"""Config-backed user directory adapter."""

from __future__ import annotations

from typing import Optional


class ConfigUserDirectory:
    """Maps platform user ids to Slack handles from the ``users`` config section."""

    def __init__(self, handles: dict[str, str]) -> None:
        self._handles = {str(user_id): str(handle) for user_id, handle in handles.items() if handle}

    def lookup_chat_handle(self, user_id: str) -> Optional[str]:
        return self._handles.get(user_id)
