"""Notification decision matrix (core domain)."""

from __future__ import annotations

from typing import Iterable, Optional

from core.config import NotificationFlags
from core.models import ColorTag, Result


def color_for(result: Optional[Result]) -> ColorTag:
    """Map a build result to the attachment color."""

    if result is Result.SUCCESS:
        return ColorTag.GOOD
    if result is Result.FAILURE:
        return ColorTag.DANGER
    return ColorTag.WARNING


def resolve_previous_result(prior_results: Iterable[Optional[Result]]) -> Result:
    """Return the nearest prior result that counts for transitions.

    ``prior_results`` is ordered newest first. Aborted and unfinished builds
    are skipped; with nothing left the previous result is SUCCESS.
    """

    for result in prior_results:
        if result is None or result is Result.ABORTED:
            continue
        return result
    return Result.SUCCESS


def should_notify(
    current: Optional[Result],
    previous: Result,
    flags: NotificationFlags,
) -> Optional[ColorTag]:
    """Return the color to notify with, or ``None`` to stay quiet.

    Matching logic (any row is sufficient):
    - ABORTED with notify_aborted
    - FAILURE with notify_failure, unless the previous build failed too and
      notify_repeated_failure is off
    - NOT_BUILT with notify_not_built
    - SUCCESS after FAILURE/UNSTABLE with notify_back_to_normal
    - SUCCESS with notify_success
    - UNSTABLE with notify_unstable
    """

    fire = (
        (current is Result.ABORTED and flags.notify_aborted)
        or (
            current is Result.FAILURE
            and (previous is not Result.FAILURE or flags.notify_repeated_failure)
            and flags.notify_failure
        )
        or (current is Result.NOT_BUILT and flags.notify_not_built)
        or (
            current is Result.SUCCESS
            and previous in (Result.FAILURE, Result.UNSTABLE)
            and flags.notify_back_to_normal
        )
        or (current is Result.SUCCESS and flags.notify_success)
        or (current is Result.UNSTABLE and flags.notify_unstable)
    )
    if not fire:
        return None
    return color_for(current)
