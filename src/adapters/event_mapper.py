"""Scheduler-to-core event mapping adapter.

This keeps the scheduler's JSON payload shape out of the core notifier.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from core.config import JobConfig, NotificationFlags
from core.models import BuildEvent, CauseKind, ChangeEntry, Result, TestResults, UpstreamRef
from core.ports import BuildHistory
from core.trigger import resolve_previous_result

_FLAG_NAMES = (
    "notify_aborted",
    "notify_failure",
    "notify_repeated_failure",
    "notify_not_built",
    "notify_success",
    "notify_back_to_normal",
    "notify_unstable",
    "show_commit_list",
    "include_test_summary",
    "include_custom_message",
    "start_notification",
)


def _result(value: Any, field_name: str) -> Optional[Result]:
    if value is None or value == "":
        return None
    try:
        return Result(str(value).upper())
    except ValueError as exc:
        raise ValueError(f"Unsupported {field_name}: {value}") from exc


def _cause_kind(value: Any) -> CauseKind:
    if not value:
        return CauseKind.OTHER
    try:
        return CauseKind(str(value).upper())
    except ValueError:
        return CauseKind.OTHER


def _upstream(raw: Optional[dict]) -> Optional[UpstreamRef]:
    if not raw or not raw.get("project"):
        return None
    return UpstreamRef(project_name=str(raw["project"]), build_number=int(raw["build"]))


def _changes(raw: Optional[list]) -> Optional[tuple[ChangeEntry, ...]]:
    # A missing key means the change set has not been computed yet.
    if raw is None:
        return None
    return tuple(
        ChangeEntry(
            message=str(item.get("message", "")),
            author=str(item.get("author", "")),
            affected_files=tuple(str(path) for path in item.get("files", []) or []),
        )
        for item in raw
    )


def _supplied_previous_result(payload: dict) -> Optional[Result]:
    # ABORTED never counts as the previous result; treat it as not supplied.
    previous = _result(payload.get("previous_result"), "previous_result")
    if previous is Result.ABORTED:
        return None
    return previous


def _tests(raw: Optional[dict]) -> Optional[TestResults]:
    if not raw:
        return None
    return TestResults(
        total=int(raw.get("total", 0)),
        failed=int(raw.get("failed", 0)),
        skipped=int(raw.get("skipped", 0)),
    )


def build_event(payload: dict) -> BuildEvent:
    """Build a core ``BuildEvent`` from a scheduler payload.

    Raises ``ValueError`` when required keys are missing or malformed.
    """

    try:
        return _build_event(payload)
    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"Malformed build payload: {exc!r}") from exc


def _build_event(payload: dict) -> BuildEvent:
    for key in ("project", "number"):
        if key not in payload:
            raise ValueError(f"Build payload is missing '{key}'")

    project = str(payload["project"])
    number = int(payload["number"])
    cause = payload.get("cause") or {}
    previous = _supplied_previous_result(payload) or Result.SUCCESS

    return BuildEvent(
        id=str(payload.get("id") or f"{project}#{number}"),
        number=number,
        project_name=project,
        display_name=str(payload.get("display_name") or f"#{number}"),
        full_display_name=str(payload.get("full_display_name") or project),
        url=str(payload.get("url") or f"job/{project}/{number}/"),
        is_building=bool(payload.get("building", False)),
        current_result=_result(payload.get("result"), "result"),
        previous_result=previous,
        last_completed_result=_result(payload.get("last_completed_result"), "last_completed_result"),
        duration_text=str(payload.get("duration", "")),
        cause_kind=_cause_kind(cause.get("kind")),
        cause_description=str(cause.get("description", "")),
        triggering_user_id=cause.get("user_id") or None,
        upstream=_upstream(cause.get("upstream")),
        changes=_changes(payload.get("changes")),
        test_results=_tests(payload.get("tests")),
    )


def event_to_payload(event: BuildEvent) -> dict:
    """Inverse of ``build_event``, used when persisting history."""

    payload: dict[str, Any] = {
        "id": event.id,
        "project": event.project_name,
        "number": event.number,
        "display_name": event.display_name,
        "full_display_name": event.full_display_name,
        "url": event.url,
        "building": event.is_building,
        "result": event.current_result.value if event.current_result else None,
        "previous_result": event.previous_result.value,
        "last_completed_result": event.last_completed_result.value if event.last_completed_result else None,
        "duration": event.duration_text,
        "cause": {
            "kind": event.cause_kind.value,
            "description": event.cause_description,
            "user_id": event.triggering_user_id,
        },
    }
    if event.upstream is not None:
        payload["cause"]["upstream"] = {
            "project": event.upstream.project_name,
            "build": event.upstream.build_number,
        }
    if event.changes is not None:
        payload["changes"] = [
            {"message": entry.message, "author": entry.author, "files": list(entry.affected_files)}
            for entry in event.changes
        ]
    if event.test_results is not None:
        payload["tests"] = {
            "total": event.test_results.total,
            "failed": event.test_results.failed,
            "skipped": event.test_results.skipped,
        }
    return payload


def build_job_config(raw: Optional[dict]) -> Optional[JobConfig]:
    """Build a ``JobConfig`` from the ``jobs.<name>`` section of config.json.

    ``None`` means the job has no notification configuration at all.
    """

    if raw is None:
        return None
    flags = NotificationFlags(
        custom_message=raw.get("custom_message"),
        **{name: bool(raw.get(name, False)) for name in _FLAG_NAMES},
    )
    return JobConfig(
        team_domain=raw.get("team_domain"),
        auth_token=raw.get("token"),
        room=raw.get("room"),
        direct_message=raw.get("direct_message"),
        flags=flags,
    )


def fill_from_history(event: BuildEvent, payload: dict, history: BuildHistory) -> BuildEvent:
    """Fill transition fields the scheduler left out using recorded builds."""

    prior = history.prior_results(event.project_name, event.number)
    changes = {}
    if _supplied_previous_result(payload) is None:
        changes["previous_result"] = resolve_previous_result(prior)
    if _result(payload.get("last_completed_result"), "last_completed_result") is None:
        changes["last_completed_result"] = next((result for result in prior if result is not None), None)
    if not changes:
        return event
    return dataclasses.replace(event, **changes)
