"""Ports (interfaces) used by the core notifier.

Ports define the minimal contracts for delivery, directory, and history
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional, Protocol

from core.models import BuildEvent, Recipients, Result

# Returns the build's environment; allowed to raise.
EnvironmentProvider = Callable[[], Mapping[str, str]]


class ChatPublisher(Protocol):
    """Outbound chat transport."""

    def publish(self, text: str, color: str, recipients: Recipients) -> bool:
        ...


class PublisherFactory(Protocol):
    """Builds a publisher bound to one team/token pair."""

    def __call__(self, team_domain: Optional[str], auth_token: Optional[str]) -> ChatPublisher:
        ...


class UserDirectory(Protocol):
    """Maps platform user ids to chat handles."""

    def lookup_chat_handle(self, user_id: str) -> Optional[str]:
        ...


class BuildHistory(Protocol):
    """Read access to builds owned by the scheduler."""

    def get_build(self, project_name: str, number: int) -> Optional[BuildEvent]:
        ...

    def prior_results(self, project_name: str, number: int) -> List[Optional[Result]]:
        """Results of builds before ``number``, newest first."""
        ...
