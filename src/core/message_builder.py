"""Notification text rendering.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel. Output uses Slack markup, so every
literal fragment is escaped before it is appended while link fragments the
builder makes itself are appended as-is.
"""

from __future__ import annotations

import html
from typing import Optional, Union

from core import environment
from core.config import NotificationFlags
from core.models import NO_CHANGES, AuthorSummary, BuildEvent, CauseKind, CommitList, Result
from core.ports import EnvironmentProvider

NO_CHANGES_TEXT = "No Changes."


def escape(value: str) -> str:
    """Escape ``&``, ``<`` and ``>`` (in that order) for Slack markup."""

    return html.escape(value, quote=False)


def status_phrase(event: BuildEvent) -> str:
    """Return the short status text for the event."""

    if event.is_building:
        return "Starting..."
    result = event.current_result
    previous = event.previous_result
    if result is Result.SUCCESS and previous is Result.FAILURE:
        return "Back to normal"
    if result is Result.FAILURE and previous is Result.FAILURE:
        return "Still Failing"
    phrases = {
        Result.SUCCESS: "Success",
        Result.FAILURE: "Failure",
        Result.ABORTED: "Aborted",
        Result.NOT_BUILT: "Not built",
        Result.UNSTABLE: "Unstable",
    }
    return phrases.get(result, "Unknown")


class MessageBuilder:
    """Sequential builder that starts every message with the build title."""

    def __init__(self, event: BuildEvent, server_url: str) -> None:
        self._event = event
        self._server_url = server_url
        self._parts: list[str] = []
        self.append(event.full_display_name)
        self.append(" - ")
        self.append(event.display_name)
        self.append(" ")

    def append(self, value: object) -> "MessageBuilder":
        self._parts.append(escape(str(value)))
        return self

    def append_status_message(self) -> "MessageBuilder":
        return self.append(status_phrase(self._event))

    def append_duration(self) -> "MessageBuilder":
        return self.append(f" after {self._event.duration_text}")

    def append_open_link(self) -> "MessageBuilder":
        url = f"{self._server_url}{self._event.url}"
        self._parts.append(f" (<{url}|Open>)")
        return self

    def append_test_summary(self) -> "MessageBuilder":
        results = self._event.test_results
        if results is None:
            return self.append("\nNo Tests found.")
        return self.append(
            "\nTest Status:\n"
            f"\tPassed: {results.passed}, Failed: {results.failed}, Skipped: {results.skipped}"
        )

    def append_custom_message(
        self,
        template: Optional[str],
        env_provider: Optional[EnvironmentProvider] = None,
    ) -> "MessageBuilder":
        env = environment.read_environment(env_provider)
        self.append("\n")
        return self.append(environment.expand(template or "", env))

    def __str__(self) -> str:
        return "".join(self._parts)


def build_status_message(
    event: BuildEvent,
    server_url: str,
    flags: NotificationFlags,
    env_provider: Optional[EnvironmentProvider] = None,
) -> str:
    """Render the completion message: status, duration, link, extras."""

    message = MessageBuilder(event, server_url)
    message.append_status_message()
    message.append_duration()
    message.append_open_link()
    if flags.include_test_summary:
        message.append_test_summary()
    if flags.include_custom_message:
        message.append_custom_message(flags.custom_message, env_provider)
    return str(message)


def build_start_message(
    event: BuildEvent,
    server_url: str,
    summary: Union[AuthorSummary, object] = NO_CHANGES,
) -> Optional[str]:
    """Render the "started" message, or ``None`` when there is nothing to say.

    A non-empty author summary wins over the cause description. SCM-triggered
    builds have no cause line; polling already announces them.
    """

    message = MessageBuilder(event, server_url)
    # An SCM-triggered start with an author summary is still announced.
    if isinstance(summary, AuthorSummary) and summary.authors:
        message.append("Started by changes from ")
        message.append(", ".join(sorted(summary.authors)))
        message.append(f" ({summary.changed_file_count} file(s) changed)")
    elif event.cause_kind is not CauseKind.SCM:
        message.append(event.cause_description or status_phrase(event))
    else:
        return None
    return str(message.append_open_link())


def build_commit_list_message(
    event: BuildEvent,
    server_url: str,
    summary: Union[CommitList, object],
) -> str:
    """Render the commit list sent after the status message."""

    if not isinstance(summary, CommitList) or not summary.lines:
        return NO_CHANGES_TEXT
    message = MessageBuilder(event, server_url)
    message.append("Changes:\n- ")
    message.append("\n- ".join(sorted(summary.lines)))
    return str(message)
