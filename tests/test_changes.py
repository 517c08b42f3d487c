from __future__ import annotations

from dataclasses import replace
from typing import Optional

from core.changes import ChangeAggregator, SummaryMode
from core.models import NO_CHANGES, AuthorSummary, BuildEvent, ChangeEntry, CommitList, Result, UpstreamRef


class FakeHistory:
    def __init__(self, builds: list[BuildEvent]) -> None:
        self.builds = {(build.project_name, build.number): build for build in builds}
        self.lookups: list[tuple[str, int]] = []

    def get_build(self, project_name: str, number: int) -> Optional[BuildEvent]:
        self.lookups.append((project_name, number))
        return self.builds.get((project_name, number))

    def prior_results(self, project_name: str, number: int) -> list[Optional[Result]]:
        return []


def _event(project: str, number: int, **overrides) -> BuildEvent:
    base = BuildEvent(
        id=f"{project}#{number}",
        number=number,
        project_name=project,
        display_name=f"#{number}",
        full_display_name=project,
        url=f"job/{project}/{number}/",
        changes=(),
    )
    return replace(base, **overrides)


CHANGES = (
    ChangeEntry(message="fix build", author="alice", affected_files=("a.py", "b.py")),
    ChangeEntry(message="fix build", author="alice", affected_files=("b.py",)),
    ChangeEntry(message="docs", author="bob", affected_files=("README.md",)),
)


def test_change_set_not_computed() -> None:
    assert ChangeAggregator().summarize(_event("X", 1, changes=None)) is NO_CHANGES


def test_author_summary_counts_distinct_files() -> None:
    summary = ChangeAggregator().summarize(_event("X", 1, changes=CHANGES), SummaryMode.AUTHORS)
    assert summary == AuthorSummary(authors=frozenset({"alice", "bob"}), changed_file_count=3)


def test_commit_lines_are_deduplicated() -> None:
    summary = ChangeAggregator().summarize(_event("X", 1, changes=CHANGES), SummaryMode.COMMITS)
    assert summary == CommitList(lines=frozenset({"fix build [alice]", "docs [bob]"}))


def test_empty_change_set_without_upstream() -> None:
    assert ChangeAggregator().summarize(_event("X", 1)) is NO_CHANGES


def test_empty_change_set_follows_upstream() -> None:
    upstream = _event("P", 5, changes=CHANGES)
    history = FakeHistory([upstream])
    aggregator = ChangeAggregator(history)
    downstream = _event("X", 1, upstream=UpstreamRef(project_name="P", build_number=5))

    assert aggregator.summarize(downstream) == aggregator.summarize(upstream)
    assert history.lookups == [("P", 5)]


def test_missing_upstream_build() -> None:
    aggregator = ChangeAggregator(FakeHistory([]))
    event = _event("X", 1, upstream=UpstreamRef(project_name="P", build_number=5))
    assert aggregator.summarize(event) is NO_CHANGES


def test_upstream_cycle_is_cut() -> None:
    a = _event("A", 1, upstream=UpstreamRef(project_name="B", build_number=1))
    b = _event("B", 1, upstream=UpstreamRef(project_name="A", build_number=1))
    history = FakeHistory([a, b])
    assert ChangeAggregator(history).summarize(a) is NO_CHANGES
    assert history.lookups == [("B", 1)]


def test_upstream_depth_is_capped() -> None:
    builds = [
        _event("P", number, upstream=UpstreamRef(project_name="P", build_number=number + 1))
        for number in range(1, 6)
    ]
    builds.append(_event("P", 6, changes=CHANGES))
    history = FakeHistory(builds)

    assert ChangeAggregator(history, max_depth=2).summarize(builds[0]) is NO_CHANGES
    assert ChangeAggregator(history, max_depth=10).summarize(builds[0]) != NO_CHANGES
