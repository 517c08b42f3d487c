"""Slack notification adapter.

Posts attachments to the Slack CI integration endpoint of a team, one request
per target channel or ``@user``.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Optional

from core.models import Recipients

LOGGER = logging.getLogger(__name__)


class SlackNotifier:
    """Publisher adapter that sends messages to a Slack team."""

    def __init__(
        self,
        team_domain: Optional[str],
        token: Optional[str],
        send_as: Optional[str] = None,
        timeout: float = 10,
    ) -> None:
        self._team_domain = team_domain
        self._token = token
        self._send_as = send_as
        self._timeout = timeout

    def _endpoint(self) -> str:
        # The integration endpoint is deterministic and derived from the team.
        query = urllib.parse.urlencode({"token": self._token or ""})
        return f"https://{self._team_domain}.slack.com/services/hooks/jenkins-ci?{query}"

    def _payload(self, text: str, color: str, channel: Optional[str]) -> dict:
        attachment = {
            "fallback": text,
            "color": color,
            "fields": [{"title": "", "value": text, "short": False}],
            "mrkdwn_in": ["pretext", "text", "fields"],
        }
        payload: dict = {"attachments": [attachment]}
        if channel:
            payload["channel"] = channel
        if self._send_as:
            payload["username"] = self._send_as
        return payload

    def _post(self, payload: dict) -> bool:
        data = urllib.parse.urlencode({"payload": json.dumps(payload)}).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/x-www-form-urlencoded")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                status = response.status
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            LOGGER.error("Slack post to %s failed: %s %s", payload.get("channel", "default channel"), e.code, body)
            return False
        except urllib.error.URLError as e:
            LOGGER.error("Slack post to %s failed: %s", payload.get("channel", "default channel"), e.reason)
            return False
        if status != 200:
            LOGGER.error("Slack post returned HTTP %s", status)
            return False
        return True

    def publish(self, text: str, color: str, recipients: Recipients) -> bool:
        """Send the message to every target; True only if all succeeded."""

        if not self._team_domain:
            raise ValueError("Slack team domain is not configured")
        if not recipients.deliverable:
            return False

        channels = recipients.targets or (None,)
        result = True
        for channel in channels:
            LOGGER.info("Posting to %s on team %s", channel or "default channel", self._team_domain)
            if not self._post(self._payload(text, color, channel)):
                result = False
        return result


def slack_notifier_factory(send_as: Optional[str] = None, timeout: float = 10):
    """Return a ``PublisherFactory`` producing ``SlackNotifier`` instances."""

    def factory(team_domain: Optional[str], auth_token: Optional[str]) -> SlackNotifier:
        return SlackNotifier(team_domain, auth_token, send_as=send_as, timeout=timeout)

    return factory
