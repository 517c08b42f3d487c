"""Change-set summaries (core domain)."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Set, Tuple, Union

from core.models import NO_CHANGES, AuthorSummary, BuildEvent, CommitList
from core.ports import BuildHistory

LOGGER = logging.getLogger(__name__)

MAX_UPSTREAM_DEPTH = 10

ChangeSummary = Union[AuthorSummary, CommitList, object]


class SummaryMode(str, Enum):
    AUTHORS = "authors"
    COMMITS = "commits"


class ChangeAggregator:
    """Summarises a build's changes, following upstream triggers when empty."""

    def __init__(self, history: Optional[BuildHistory] = None, max_depth: int = MAX_UPSTREAM_DEPTH) -> None:
        self._history = history
        self._max_depth = max_depth

    def summarize(self, event: BuildEvent, mode: SummaryMode = SummaryMode.COMMITS) -> ChangeSummary:
        """Return an ``AuthorSummary``/``CommitList`` or ``NO_CHANGES``."""

        return self._summarize(event, mode, depth=0, visited=set())

    def _summarize(
        self,
        event: BuildEvent,
        mode: SummaryMode,
        depth: int,
        visited: Set[Tuple[str, int]],
    ) -> ChangeSummary:
        if event.changes is None:
            LOGGER.debug("No change set computed for %s #%s", event.project_name, event.number)
            return NO_CHANGES

        visited.add((event.project_name, event.number))

        if not event.changes:
            LOGGER.debug("Empty change set for %s #%s", event.project_name, event.number)
            return self._summarize_upstream(event, mode, depth, visited)

        if mode is SummaryMode.AUTHORS:
            authors = frozenset(entry.author for entry in event.changes)
            files = {path for entry in event.changes for path in entry.affected_files}
            return AuthorSummary(authors=authors, changed_file_count=len(files))

        lines = frozenset(f"{entry.message} [{entry.author}]" for entry in event.changes)
        return CommitList(lines=lines)

    def _summarize_upstream(
        self,
        event: BuildEvent,
        mode: SummaryMode,
        depth: int,
        visited: Set[Tuple[str, int]],
    ) -> ChangeSummary:
        upstream = event.upstream
        if upstream is None:
            return NO_CHANGES

        key = (upstream.project_name, upstream.build_number)
        if key in visited:
            LOGGER.warning("Upstream cycle detected at %s #%s", *key)
            return NO_CHANGES
        if depth >= self._max_depth:
            LOGGER.warning("Upstream chain deeper than %s builds, giving up at %s #%s", self._max_depth, *key)
            return NO_CHANGES
        if self._history is None:
            LOGGER.warning("No build history available to resolve upstream %s #%s", *key)
            return NO_CHANGES

        try:
            upstream_event = self._history.get_build(upstream.project_name, upstream.build_number)
        except Exception:
            LOGGER.exception("Failed to load upstream build %s #%s", *key)
            return NO_CHANGES
        if upstream_event is None:
            LOGGER.warning("Upstream build %s #%s not found", *key)
            return NO_CHANGES

        return self._summarize(upstream_event, mode, depth + 1, visited)
