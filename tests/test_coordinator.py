"""Tests for run coordination over a fake browser session."""

import dataclasses
from pathlib import Path

import pytest

from axebatch.audit.coordinator import RunCoordinator, RunOptions
from axebatch.audit.driver import Rect
from axebatch.audit.registry import RunRegistry
from axebatch.errors import RunNotFound, SessionError
from axebatch.models import OutcomeStatus, RunStatus

from factories import FakeElement, FakeRuleEngine, FakeSessionFactory, raw_result, raw_violation

URLS = ["https://example.com/", "https://example.com/contact", "https://example.com/about"]


async def test_partial_failure_keeps_every_outcome_in_order(coordinator, session_factory, fast_options):
    """One unreachable URL out of three with continue_on_failure."""
    session_factory.unreachable = {URLS[1]}

    report = await coordinator.run(URLS, fast_options)

    assert report.status is RunStatus.PARTIALLY_FAILED
    assert report.completed_count == 3
    assert report.failed_count == 1
    assert [o.url for o in report.outcomes] == URLS
    assert [o.status for o in report.outcomes] == [
        OutcomeStatus.COMPLETED, OutcomeStatus.FAILED, OutcomeStatus.COMPLETED,
    ]
    assert "timeout" in report.outcomes[1].error_message


async def test_all_urls_completed(coordinator, fast_options):
    report = await coordinator.run(URLS, fast_options)

    assert report.status is RunStatus.COMPLETED
    assert len(report.outcomes) == report.total_urls == 3
    assert report.failed_count == 0
    assert report.ended_at is not None


async def test_every_url_failing_fails_the_run(coordinator, session_factory, fast_options):
    session_factory.unreachable = set(URLS)

    report = await coordinator.run(URLS, fast_options)

    assert report.status is RunStatus.FAILED
    assert report.completed_count == report.failed_count == 3


async def test_halts_after_first_failure_without_continue(coordinator, session_factory, rule_engine, fast_options):
    session_factory.unreachable = {URLS[0]}
    options = dataclasses.replace(fast_options, continue_on_failure=False)

    report = await coordinator.run(URLS, options)

    assert [o.url for o in report.outcomes] == [URLS[0]]
    assert report.total_urls == 3
    assert report.status is RunStatus.FAILED
    # Remaining URLs never reach the engine
    assert rule_engine.calls == []


async def test_halt_in_the_middle_is_partially_failed(coordinator, session_factory, fast_options):
    session_factory.unreachable = {URLS[1]}
    options = dataclasses.replace(fast_options, continue_on_failure=False)

    report = await coordinator.run(URLS, options)

    assert [o.url for o in report.outcomes] == URLS[:2]
    assert report.status is RunStatus.PARTIALLY_FAILED


async def test_session_failure_fails_run_with_no_outcomes(registry, rule_engine, tmp_path, fast_options):
    coordinator = RunCoordinator(
        registry=registry,
        session_factory=FakeSessionFactory(error=SessionError("chrome not found")),
        rule_engine=rule_engine,
        output_dir=tmp_path,
    )

    report = await coordinator.run(URLS, fast_options)

    assert report.status is RunStatus.FAILED
    assert report.outcomes == []
    assert report.completed_count == 0
    assert report.error_message.startswith("Browser session could not be established")
    assert "chrome not found" in report.error_message


async def test_pages_and_session_always_closed(coordinator, session_factory, fast_options):
    coordinator.rule_engine = FakeRuleEngine(errors={URLS[2]: RuntimeError("axe crashed")})
    session_factory.unreachable = {URLS[0]}

    report = await coordinator.run(URLS, fast_options)

    session = session_factory.sessions[0]
    assert session.closed
    assert len(session.pages) == 3
    assert all(page.closed for page in session.pages)
    assert report.outcomes[2].error_message == "RuntimeError: axe crashed"


async def test_unexpected_error_still_closes_session(coordinator, session_factory, fast_options):
    class BrokenAggregator:
        def failed(self, url, message, started_at=None):
            raise RuntimeError("aggregator exploded")

    coordinator.aggregator = BrokenAggregator()
    session_factory.unreachable = {URLS[0]}

    report = await coordinator.run(URLS, fast_options)

    assert session_factory.sessions[0].closed
    assert report.status is RunStatus.FAILED
    assert "aggregator exploded" in report.error_message


async def test_counters_never_exceed_bounds_while_running(coordinator, session_factory, fast_options):
    snapshots = []

    def observe(_url):
        snapshots.append(coordinator.get_run_report(run_id))

    coordinator.rule_engine = FakeRuleEngine(on_evaluate=observe)
    session_factory.unreachable = {URLS[1]}

    run_id = coordinator.start_run(URLS, fast_options)
    final = await coordinator.wait(run_id)

    for snapshot in snapshots + [final]:
        assert snapshot.completed_count <= snapshot.total_urls
        assert snapshot.failed_count <= snapshot.completed_count
    completed = [s.completed_count for s in snapshots] + [final.completed_count]
    assert completed == sorted(completed)
    assert snapshots[0].status is RunStatus.RUNNING


async def test_start_run_returns_immediately(coordinator, fast_options):
    run_id = coordinator.start_run(URLS, fast_options)

    snapshot = coordinator.get_run_report(run_id)
    assert snapshot.status is RunStatus.RUNNING
    assert snapshot.completed_count == 0

    final = await coordinator.wait(run_id)
    assert final.status is RunStatus.COMPLETED


async def test_start_run_rejects_empty_url_list(coordinator, fast_options):
    with pytest.raises(ValueError):
        coordinator.start_run([], fast_options)


async def test_cancel_stops_before_next_url(coordinator, fast_options):
    def cancel_after_first(_url):
        coordinator.cancel(run_id)

    coordinator.rule_engine = FakeRuleEngine(on_evaluate=cancel_after_first)

    run_id = coordinator.start_run(URLS, fast_options)
    report = await coordinator.wait(run_id)

    assert len(report.outcomes) == 1
    assert report.status is RunStatus.PARTIALLY_FAILED


async def test_tag_filter_reaches_engine(coordinator, rule_engine, fast_options):
    await coordinator.run(URLS[:1], fast_options)

    assert rule_engine.calls == [(URLS[0], frozenset({"wcag2a", "wcag2aa"}))]


async def test_concurrent_runs_own_separate_sessions(coordinator, session_factory, fast_options):
    first = coordinator.start_run(URLS, fast_options)
    second = coordinator.start_run(URLS[:1], fast_options)

    reports = [await coordinator.wait(first), await coordinator.wait(second)]

    assert len(session_factory.sessions) == 2
    assert all(session.closed for session in session_factory.sessions)
    assert [len(r.outcomes) for r in reports] == [3, 1]


async def test_wait_without_task_returns_registry_snapshot(coordinator, registry):
    report = registry.create(URLS)
    registry.finalize(report.run_id)

    snapshot = await coordinator.wait(report.run_id)

    assert snapshot.run_id == report.run_id
    assert snapshot.status is RunStatus.FAILED


def test_unknown_run_id_raises(coordinator):
    with pytest.raises(RunNotFound):
        coordinator.get_run_report("run_missing")


async def test_evidence_captured_below_run_root(coordinator, session_factory, tmp_path, fast_options):
    url = "https://example.com/gallery"
    session_factory.elements = {"#image-alt-1": FakeElement(Rect(100, 80, 60, 40))}
    coordinator.rule_engine = FakeRuleEngine(results={
        url: raw_result([raw_violation("image-alt", "critical", node_count=2)], passes=3),
    })
    options = dataclasses.replace(fast_options, capture_evidence=True)

    report = await coordinator.run([url], options)

    outcome = report.outcomes[0]
    assert outcome.status is OutcomeStatus.COMPLETED
    # Second node is not on the page, so only the first gets evidence
    assert len(outcome.evidence) == 1
    record = outcome.evidence[0]
    assert record.image_ref == "screenshots/001_example_com_gallery/violation-1-node-1.png"
    assert record.element_selector == "#image-alt-1"
    assert (Path(tmp_path) / report.run_id / record.image_ref).is_file()


def test_run_options_from_config_applies_overrides():
    options = RunOptions.from_config(per_page_timeout=12.5, capture_evidence=None)

    assert options.per_page_timeout == 12.5
    assert isinstance(options.wcag_tags, frozenset)
    assert options.to_dict()["wcag_tags"] == sorted(options.wcag_tags)


async def test_runs_are_visible_through_the_shared_registry(session_factory, rule_engine, tmp_path, fast_options):
    shared = RunRegistry(max_runs=10)
    coordinator = RunCoordinator(
        registry=shared, session_factory=session_factory, rule_engine=rule_engine, output_dir=tmp_path,
    )

    report = await coordinator.run(URLS[:1], fast_options)

    assert coordinator.registry is shared
    assert report.run_id in shared
    assert shared.get(report.run_id).status is RunStatus.COMPLETED


async def test_finished_tasks_are_released(coordinator, fast_options):
    for _ in range(3):
        report = await coordinator.run(URLS[:1], fast_options)

    assert coordinator._tasks == {}
    assert (await coordinator.wait(report.run_id)).status is RunStatus.COMPLETED
