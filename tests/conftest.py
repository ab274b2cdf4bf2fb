import pytest

from axebatch.audit.coordinator import RunCoordinator, RunOptions
from axebatch.audit.registry import RunRegistry

from factories import FakeRuleEngine, FakeSessionFactory


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def rule_engine():
    return FakeRuleEngine()


@pytest.fixture
def registry():
    return RunRegistry(max_runs=10)


@pytest.fixture
def coordinator(registry, session_factory, rule_engine, tmp_path):
    return RunCoordinator(
        registry=registry,
        session_factory=session_factory,
        rule_engine=rule_engine,
        output_dir=tmp_path,
    )


@pytest.fixture
def fast_options():
    """Options without settle delays so runs finish immediately."""
    return RunOptions(
        wcag_tags={"wcag2a", "wcag2aa"},
        continue_on_failure=True,
        per_page_timeout=5.0,
        capture_evidence=False,
        sleep_time=0.0,
        evidence_settle_delay=0.0,
    )
