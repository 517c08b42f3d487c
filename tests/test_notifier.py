from __future__ import annotations

from dataclasses import replace
from typing import Optional

from core.config import GlobalConfig, JobConfig, NotificationFlags
from core.models import BuildEvent, CauseKind, ChangeEntry, ColorTag, Recipients, Result
from core.notifier import BuildNotifier, check_connection

GLOBAL = GlobalConfig(team_domain="acme", auth_token="token", room="#ci", build_server_url="http://host/")


class FakePublisher:
    def __init__(self, result: bool = True, error: Optional[Exception] = None) -> None:
        self.sent: list[tuple[str, str, Recipients]] = []
        self.teams: list[tuple[Optional[str], Optional[str]]] = []
        self._result = result
        self._error = error

    def factory(self, team_domain: Optional[str], auth_token: Optional[str]) -> "FakePublisher":
        self.teams.append((team_domain, auth_token))
        return self

    def publish(self, text: str, color: str, recipients: Recipients) -> bool:
        if self._error is not None:
            raise self._error
        self.sent.append((text, color, recipients))
        return self._result


class FakeDirectory:
    def lookup_chat_handle(self, user_id: str) -> Optional[str]:
        return {"jdoe": "alice"}.get(user_id)


def _event(**overrides) -> BuildEvent:
    base = BuildEvent(
        id="X#12",
        number=12,
        project_name="X",
        display_name="#12",
        full_display_name="X",
        url="job/X/12/",
        current_result=Result.FAILURE,
        previous_result=Result.SUCCESS,
        duration_text="3 min",
        changes=(ChangeEntry(message="break it", author="bob", affected_files=("a.py",)),),
    )
    return replace(base, **overrides)


def _notifier(publisher: FakePublisher) -> BuildNotifier:
    return BuildNotifier(GLOBAL, publisher.factory, user_directory=FakeDirectory())


def test_failure_end_to_end() -> None:
    publisher = FakePublisher()
    job = JobConfig(flags=NotificationFlags(notify_failure=True))

    outcomes = _notifier(publisher).on_completed(_event(), job)

    assert len(outcomes) == 1 and outcomes[0].delivered
    text, color, recipients = publisher.sent[0]
    assert text.endswith("Failure after 3 min (<http://host/job/X/12/|Open>)")
    assert color == "danger"
    assert recipients.targets == ("#ci",)
    assert publisher.teams == [("acme", "token")]


def test_commit_list_follows_status_message() -> None:
    publisher = FakePublisher()
    job = JobConfig(flags=NotificationFlags(notify_failure=True, show_commit_list=True))

    _notifier(publisher).on_completed(_event(), job)

    assert [color for _, color, _ in publisher.sent] == ["danger", "danger"]
    assert "Failure" in publisher.sent[0][0]
    assert publisher.sent[1][0] == "X - #12 Changes:\n- break it [bob]"


def test_missing_job_config_skips() -> None:
    publisher = FakePublisher()
    assert _notifier(publisher).on_completed(_event(), None) == []
    assert _notifier(publisher).on_started(_event(is_building=True), JobConfig()) == []
    assert publisher.sent == []


def test_quiet_transition_sends_nothing() -> None:
    publisher = FakePublisher()
    job = JobConfig(flags=NotificationFlags(notify_failure=True))
    event = _event(previous_result=Result.FAILURE)
    assert _notifier(publisher).on_completed(event, job) == []
    assert publisher.sent == []


def test_direct_message_only_without_handle_is_suppressed() -> None:
    publisher = FakePublisher()
    job = JobConfig(direct_message="user", flags=NotificationFlags(notify_failure=True))
    event = _event(cause_kind=CauseKind.USER, triggering_user_id="ghost")

    outcomes = _notifier(publisher).on_completed(event, job)

    assert len(outcomes) == 1 and not outcomes[0].delivered
    assert publisher.sent == []


def test_direct_message_both_routes_to_user() -> None:
    publisher = FakePublisher()
    job = JobConfig(direct_message="both", flags=NotificationFlags(notify_failure=True))
    event = _event(cause_kind=CauseKind.USER, triggering_user_id="jdoe")

    _notifier(publisher).on_completed(event, job)

    assert publisher.sent[0][2].targets == ("#ci", "@alice")


def test_delivery_errors_are_swallowed() -> None:
    publisher = FakePublisher(error=RuntimeError("boom"))
    job = JobConfig(flags=NotificationFlags(notify_failure=True))

    outcomes = _notifier(publisher).on_completed(_event(), job)

    assert len(outcomes) == 1
    assert not outcomes[0].delivered
    assert outcomes[0].error == "boom"


def test_start_notification_uses_last_completed_color() -> None:
    publisher = FakePublisher()
    job = JobConfig(flags=NotificationFlags(start_notification=True))
    event = _event(
        is_building=True,
        current_result=None,
        last_completed_result=Result.FAILURE,
        cause_kind=CauseKind.USER,
        cause_description="Started by user jdoe",
        changes=None,
    )

    _notifier(publisher).on_started(event, job)

    text, color, _ = publisher.sent[0]
    assert text == "X - #12 Started by user jdoe (<http://host/job/X/12/|Open>)"
    assert color == ColorTag.DANGER.value


def test_start_notification_announces_changes_for_scm_builds() -> None:
    publisher = FakePublisher()
    job = JobConfig(flags=NotificationFlags(start_notification=True))
    event = _event(is_building=True, current_result=None, cause_kind=CauseKind.SCM)

    _notifier(publisher).on_started(event, job)

    text, color, _ = publisher.sent[0]
    assert "Started by changes from bob (1 file(s) changed)" in text
    assert color == "good"


def test_start_notification_disabled() -> None:
    publisher = FakePublisher()
    job = JobConfig(flags=NotificationFlags(start_notification=False, notify_failure=True))
    assert _notifier(publisher).on_started(_event(is_building=True), job) == []


def test_check_connection_reports_failures() -> None:
    ok = FakePublisher()
    check = check_connection(ok.factory, "acme", "token", "#ci, #ops", "http://host/")
    assert check.ok and check.message == "Success"
    assert ok.sent[0][0] == "build-herald: you're all set on http://host/"
    assert ok.sent[0][2].targets == ("#ci", "#ops")

    rejected = check_connection(FakePublisher(result=False).factory, "acme", "token", "#ci", "http://host/")
    assert not rejected.ok and rejected.message == "Failure"

    broken = check_connection(FakePublisher(error=OSError("dns")).factory, "acme", "token", "#ci", "http://host/")
    assert not broken.ok
    assert broken.message == "Client error : dns"
