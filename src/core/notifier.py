"""Build lifecycle notifier.

This module is integration-agnostic. It only relies on ports for delivery,
user lookup, and build history, so any scheduler adapter can drive it.

Completion handling runs in a fixed order:
1) Bail out when the job has no notification config
2) Resolve the effective config (job, environment, global)
3) Apply the decision matrix
4) Render and route the status message, then the optional commit list
5) Deliver sequentially; failures are logged, never raised
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from core import config_resolver
from core.changes import ChangeAggregator, SummaryMode
from core.config import EffectiveConfig, GlobalConfig, JobConfig, NotificationFlags
from core.message_builder import build_commit_list_message, build_start_message, build_status_message
from core.models import BuildEvent, ColorTag, DeliveryOutcome, Recipients, RenderedMessage
from core.ports import BuildHistory, EnvironmentProvider, PublisherFactory, UserDirectory
from core.routing import resolve_chat_username, route
from core.trigger import color_for, should_notify

LOGGER = logging.getLogger(__name__)

TEST_MESSAGE = "build-herald: you're all set on {server_url}"


@dataclass(frozen=True)
class ConnectionCheck:
    """User-facing outcome of a configuration test."""

    ok: bool
    message: str


class BuildNotifier:
    """Turns build lifecycle events into chat notifications."""

    def __init__(
        self,
        global_config: GlobalConfig,
        publisher_factory: PublisherFactory,
        user_directory: Optional[UserDirectory] = None,
        history: Optional[BuildHistory] = None,
        env_provider: Optional[EnvironmentProvider] = None,
    ) -> None:
        self._global = global_config
        self._publisher_factory = publisher_factory
        self._users = user_directory
        self._changes = ChangeAggregator(history)
        self._env_provider = env_provider

    def on_started(
        self,
        event: BuildEvent,
        job_config: Optional[JobConfig],
        env_provider: Optional[EnvironmentProvider] = None,
    ) -> List[DeliveryOutcome]:
        """Send the "started" message when the job asks for it."""

        flags = self._flags_for(event, job_config)
        if flags is None or not flags.start_notification:
            return []

        try:
            summary = self._changes.summarize(event, SummaryMode.AUTHORS)
            text = build_start_message(event, self._global.build_server_url, summary)
            if text is None:
                LOGGER.debug("Start of %s #%s has nothing to announce", event.project_name, event.number)
                return []
            if event.last_completed_result is None:
                color = ColorTag.GOOD
            else:
                color = color_for(event.last_completed_result)
            effective = self._resolve(job_config, env_provider)
            recipients = self._recipients(event, effective)
            return [self._deliver(RenderedMessage(text=text, color=color), recipients, effective)]
        except Exception:
            LOGGER.exception("Error while notifying start of %s #%s", event.project_name, event.number)
            return []

    def on_completed(
        self,
        event: BuildEvent,
        job_config: Optional[JobConfig],
        env_provider: Optional[EnvironmentProvider] = None,
    ) -> List[DeliveryOutcome]:
        """Send the status message and, optionally, the commit list."""

        flags = self._flags_for(event, job_config)
        if flags is None:
            return []

        try:
            color = should_notify(event.current_result, event.previous_result, flags)
            if color is None:
                LOGGER.debug(
                    "No notification for %s #%s (%s after %s)",
                    event.project_name,
                    event.number,
                    event.current_result,
                    event.previous_result.value,
                )
                return []

            provider = env_provider or self._env_provider
            effective = self._resolve(job_config, provider)
            recipients = self._recipients(event, effective)
            server_url = self._global.build_server_url

            messages = [RenderedMessage(text=build_status_message(event, server_url, flags, provider), color=color)]
            if flags.show_commit_list:
                commits = self._changes.summarize(event, SummaryMode.COMMITS)
                messages.append(RenderedMessage(text=build_commit_list_message(event, server_url, commits), color=color))

            return [self._deliver(message, recipients, effective) for message in messages]
        except Exception:
            LOGGER.exception("Error while notifying completion of %s #%s", event.project_name, event.number)
            return []

    def _flags_for(self, event: BuildEvent, job_config: Optional[JobConfig]) -> Optional[NotificationFlags]:
        if job_config is None or job_config.flags is None:
            LOGGER.warning("Project %s has no Slack configuration.", event.project_name)
            return None
        return job_config.flags

    def _resolve(self, job_config: JobConfig, env_provider: Optional[EnvironmentProvider]) -> EffectiveConfig:
        return config_resolver.resolve(job_config, self._global, env_provider or self._env_provider)

    def _recipients(self, event: BuildEvent, effective: EffectiveConfig) -> Recipients:
        username = resolve_chat_username(event, self._users)
        recipients = route(effective.rooms, effective.direct_message_mode, username)
        LOGGER.debug(
            "Slack user: %s, direct message: %s, room(s): %s",
            username,
            effective.direct_message_mode.value,
            ",".join(recipients.targets),
        )
        return recipients

    def _deliver(
        self,
        message: RenderedMessage,
        recipients: Recipients,
        effective: EffectiveConfig,
    ) -> DeliveryOutcome:
        if not recipients.deliverable:
            LOGGER.info("Delivery suppressed: no recipients")
            return DeliveryOutcome(message=message, recipients=recipients, delivered=False)

        try:
            publisher = self._publisher_factory(effective.team_domain, effective.auth_token)
            delivered = publisher.publish(message.text, message.color.value, recipients)
        except Exception as exc:
            LOGGER.exception("Slack delivery raised")
            return DeliveryOutcome(message=message, recipients=recipients, delivered=False, error=str(exc))

        if not delivered:
            LOGGER.warning("Slack delivery failed for %s", ",".join(recipients.targets) or "default channel")
        return DeliveryOutcome(message=message, recipients=recipients, delivered=delivered)


def check_connection(
    publisher_factory: PublisherFactory,
    team_domain: Optional[str],
    auth_token: Optional[str],
    room: Optional[str],
    server_url: str,
) -> ConnectionCheck:
    """Publish a test message and report the outcome to the user."""

    try:
        publisher = publisher_factory(team_domain, auth_token)
        recipients = Recipients(targets=tuple(config_resolver.split_rooms(room)))
        success = publisher.publish(TEST_MESSAGE.format(server_url=server_url), ColorTag.GOOD.value, recipients)
    except Exception as exc:
        return ConnectionCheck(ok=False, message=f"Client error : {exc}")
    return ConnectionCheck(ok=success, message="Success" if success else "Failure")

