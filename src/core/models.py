"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any scheduler- or chat-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class Result(str, Enum):
    """Coarse build outcome as reported by the scheduler."""

    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"
    NOT_BUILT = "NOT_BUILT"


class CauseKind(str, Enum):
    USER = "USER"
    SCM = "SCM"
    UPSTREAM = "UPSTREAM"
    OTHER = "OTHER"


class DirectMessageMode(str, Enum):
    NONE = "none"
    USER = "user"
    BOTH = "both"


class ColorTag(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class UpstreamRef:
    """Link to the build that triggered this one."""

    project_name: str
    build_number: int


@dataclass(frozen=True)
class ChangeEntry:
    """One commit from a build's change set."""

    message: str
    author: str
    affected_files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TestResults:
    """Aggregated test counts attached to a build."""

    __test__ = False

    total: int
    failed: int
    skipped: int

    @property
    def passed(self) -> int:
        return self.total - self.failed - self.skipped


@dataclass(frozen=True)
class BuildEvent:
    """Read-only view of one build at a lifecycle point.

    ``changes`` is ``None`` while the change set has not been computed yet,
    and an empty tuple when it was computed but holds no entries.
    """

    id: str
    number: int
    project_name: str
    display_name: str
    full_display_name: str
    url: str
    is_building: bool = False
    current_result: Optional[Result] = None
    previous_result: Result = Result.SUCCESS
    last_completed_result: Optional[Result] = None
    duration_text: str = ""
    cause_kind: CauseKind = CauseKind.OTHER
    cause_description: str = ""
    triggering_user_id: Optional[str] = None
    upstream: Optional[UpstreamRef] = None
    changes: Optional[Tuple[ChangeEntry, ...]] = None
    test_results: Optional[TestResults] = None


@dataclass(frozen=True)
class AuthorSummary:
    """Who changed what, used by the start notification."""

    authors: FrozenSet[str]
    changed_file_count: int


@dataclass(frozen=True)
class CommitList:
    """Distinct ``"<message> [<author>]"`` lines for the commit-list message."""

    lines: FrozenSet[str]


class _NoChanges:
    def __repr__(self) -> str:
        return "NO_CHANGES"

    def __bool__(self) -> bool:
        return False


NO_CHANGES = _NoChanges()


@dataclass(frozen=True)
class RenderedMessage:
    text: str
    color: ColorTag


@dataclass(frozen=True)
class Recipients:
    """Ordered delivery targets.

    An empty, deliverable set means "use the hook's default channel".
    ``NO_DELIVERY`` is the inert set: nothing must be sent.
    """

    targets: Tuple[str, ...] = ()
    deliverable: bool = True


NO_DELIVERY = Recipients(targets=(), deliverable=False)


@dataclass(frozen=True)
class DeliveryOutcome:
    """What happened to a single outgoing message."""

    message: RenderedMessage
    recipients: Recipients
    delivered: bool
    error: Optional[str] = field(default=None)
