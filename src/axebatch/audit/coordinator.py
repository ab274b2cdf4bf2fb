# src/axebatch/audit/coordinator.py
"""
Run coordination: one background task per run, URLs audited sequentially
against one shared browser session.
"""

import asyncio
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Optional, Sequence, Union

from ..errors import AuditError
from ..models import RunReport, TestOutcome, utcnow
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger
from ..utils.output_manager import OutputManager
from .aggregator import ResultAggregator, parse_violations
from .driver import BrowserSession
from .evidence import EvidenceCapturer
from .registry import RunRegistry
from .rule_engine import AxeRuleEngine

config_manager = get_config_manager()
logger = get_logger("run_coordinator", config_manager.get_logging_config()["components"]["run_coordinator"])


@dataclass(frozen=True)
class RunOptions:
    wcag_tags: FrozenSet[str] = field(default_factory=frozenset)
    continue_on_failure: bool = True
    per_page_timeout: float = 30.0
    capture_evidence: bool = True
    sleep_time: float = 0.0
    headless: bool = True
    evidence_padding: int = 20
    evidence_settle_delay: float = 0.5
    max_evidence_per_violation: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "wcag_tags", frozenset(self.wcag_tags))

    @classmethod
    def from_config(cls, config=None, **overrides) -> "RunOptions":
        """Build options from the configuration manager, then apply overrides."""
        run_config = (config or config_manager).get_run_config()
        values = {
            "wcag_tags": run_config["wcag_tags"],
            "continue_on_failure": run_config["continue_on_failure"],
            "per_page_timeout": run_config["page_timeout"],
            "capture_evidence": run_config["capture_evidence"],
            "sleep_time": run_config["sleep_time"],
            "headless": run_config["headless"],
            "evidence_padding": run_config["evidence_padding"],
            "evidence_settle_delay": run_config["evidence_settle_delay"],
            "max_evidence_per_violation": run_config["max_evidence_per_violation"],
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["wcag_tags"] = sorted(self.wcag_tags)
        return data


SessionFactory = Callable[[bool, float], BrowserSession]


class RunCoordinator:
    def __init__(
        self,
        registry: Optional[RunRegistry] = None,
        session_factory: Optional[SessionFactory] = None,
        rule_engine=None,
        aggregator: Optional[ResultAggregator] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ):
        if registry is None:
            registry = RunRegistry(config_manager.get_int("REGISTRY_MAX_RUNS"))
        self.registry = registry
        self.session_factory = session_factory or (
            lambda headless, timeout: BrowserSession.open(headless=headless, page_load_timeout=timeout)
        )
        self.rule_engine = rule_engine or AxeRuleEngine()
        self.aggregator = aggregator or ResultAggregator()
        self.output_dir = Path(output_dir) if output_dir else config_manager.get_path("OUTPUT_DIR")
        self.logger = logger
        self._tasks: Dict[str, asyncio.Task] = {}

    def start_run(self, urls: Sequence[str], options: Optional[RunOptions] = None,
                  run_id: Optional[str] = None) -> str:
        """Register a run and schedule it on the running event loop."""
        options = options or RunOptions.from_config()
        urls = list(urls)
        if not urls:
            raise ValueError("start_run requires at least one URL")
        report = self.registry.create(urls, options.to_dict(), run_id=run_id)
        self.logger.info(f"Run {report.run_id} scheduled with {len(urls)} URLs")
        task = asyncio.create_task(self._execute(report.run_id, urls, options))
        task.add_done_callback(lambda _: self._tasks.pop(report.run_id, None))
        self._tasks[report.run_id] = task
        return report.run_id

    def get_run_report(self, run_id: str) -> RunReport:
        return self.registry.get(run_id)

    async def wait(self, run_id: str) -> RunReport:
        task = self._tasks.get(run_id)
        if task is None:
            return self.registry.get(run_id)
        # Terminal snapshot returned by the run task
        return await asyncio.shield(task)

    def cancel(self, run_id: str) -> None:
        """Ask a run to stop before its next URL."""
        self.registry.request_cancel(run_id)
        self.logger.info(f"Cancellation requested for run {run_id}")

    async def run(self, urls: Sequence[str], options: Optional[RunOptions] = None) -> RunReport:
        """Start a run and wait for it to finish."""
        return await self.wait(self.start_run(urls, options))

    async def _execute(self, run_id: str, urls: Sequence[str], options: RunOptions) -> RunReport:
        session = None
        error_message = None
        output = None
        try:
            try:
                session = await asyncio.to_thread(
                    self.session_factory, options.headless, options.per_page_timeout
                )
            except Exception as e:
                error_message = f"Browser session could not be established: {e}"
                self.logger.error(f"Run {run_id}: {error_message}")
                return self.registry.finalize(run_id, error_message)

            if options.capture_evidence:
                output = OutputManager(self.output_dir, run_id, create_dirs=False)

            for index, url in enumerate(urls):
                if self.registry.is_cancelled(run_id):
                    self.logger.warning(f"Run {run_id} cancelled before {url}")
                    break

                outcome = await self._audit_url(session, url, index, options, output)
                self.registry.record(run_id, outcome)
                self.logger.info(
                    f"Run {run_id}: {index + 1}/{len(urls)} {url} -> {outcome.status.value}"
                    + (f" ({len(outcome.violations)} violated rules)" if not outcome.is_failed else "")
                )

                if outcome.is_failed and not options.continue_on_failure:
                    self.logger.warning(f"Run {run_id} halted after failure on {url}")
                    break
        except Exception as e:
            error_message = f"Unexpected error during run: {e}"
            self.logger.exception(f"Run {run_id}: {error_message}")
        finally:
            if session is not None:
                await asyncio.to_thread(session.close)

        report = self.registry.finalize(run_id, error_message)
        self.logger.info(
            f"Run {run_id} finished: {report.status.value} "
            f"({report.completed_count}/{report.total_urls} processed, {report.failed_count} failed)"
        )
        return report

    async def _audit_url(self, session, url: str, index: int, options: RunOptions,
                         output: Optional[OutputManager]) -> TestOutcome:
        started_at = utcnow()
        page = None
        try:
            page = await asyncio.to_thread(session.open_page)
            await asyncio.to_thread(page.navigate, url, options.per_page_timeout)
            if options.sleep_time:
                await asyncio.sleep(options.sleep_time)

            raw = await asyncio.to_thread(self.rule_engine.evaluate, page, options.wcag_tags)
            violations = parse_violations(raw.get("violations", []))

            evidence = []
            if options.capture_evidence and output is not None and violations:
                slug = f"{index + 1:03d}_{OutputManager.create_safe_slug(url)}"
                capturer = EvidenceCapturer(
                    page,
                    output.get_path("screenshots", slug),
                    output.get_path("root"),
                    padding=options.evidence_padding,
                    settle_delay=options.evidence_settle_delay,
                )
                evidence = await asyncio.to_thread(
                    capturer.capture_violations, violations, options.max_evidence_per_violation
                )

            return self.aggregator.completed(url, raw, evidence, started_at=started_at, violations=violations)
        except AuditError as e:
            self.logger.error(f"Audit failed for {url}: {e.message}")
            return self.aggregator.failed(url, e.message, started_at=started_at)
        except Exception as e:
            self.logger.exception(f"Audit failed for {url}: {e}")
            return self.aggregator.failed(url, f"{type(e).__name__}: {e}", started_at=started_at)
        finally:
            if page is not None:
                try:
                    await asyncio.to_thread(page.close)
                except Exception as e:
                    self.logger.warning(f"Error closing page for {url}: {e}")
