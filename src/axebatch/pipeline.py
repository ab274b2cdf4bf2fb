#!/usr/bin/env python3
"""
Batch accessibility audit pipeline.

Runs one audit run over a list of URLs and writes every artifact of the run:
1. Audit: axe-core on each URL through one shared Chrome session
2. Consolidation: one grouped, evidence-annotated HTML report per URL
3. Exports: run report JSON, JUnit XML, SARIF, Excel, executive summary (HTML/PDF)

Uses the central managers for:
- Configuration: ConfigurationManager
- Logging: get_logger
- Output: OutputManager
"""

import argparse
import json
import asyncio
import signal
import sys
import time
import traceback
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .analysis.charts import severity_donut
from .analysis.consolidator import ReportConsolidator
from .analysis.document import render_executive_html, render_html
from .analysis.excel_report import write_excel_report
from .analysis.exporters import junit_xml, run_report_json, sarif_json
from .analysis.pdf import EXECUTIVE_LAYOUT, TECHNICAL_LAYOUT, ChromePdfRenderer, write_pdf
from .analysis.summary import summarize_run
from .audit.coordinator import RunCoordinator, RunOptions
from .audit.registry import RunRegistry
from .ci import evaluate_ci
from .errors import ExportError
from .models import RunReport
from .utils.config_manager import WCAG_PRESETS, ConfigurationManager, get_config_manager
from .utils.logging_config import get_logger, set_log_level
from .utils.output_manager import OutputManager

COMPONENTS = ("pipeline", "run_coordinator", "evidence", "report_consolidator", "exporters")
PROGRESS_INTERVAL = 1.0

module_logger = get_logger("pipeline", get_config_manager().get_logging_config()["components"]["pipeline"])


def load_urls_from_file(path) -> List[str]:
    """One URL per line; blank lines and ``#`` comments are skipped, duplicates removed."""
    urls = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            urls.append(line)
    return list(dict.fromkeys(urls))


def outcome_report_name(index: int, url: str) -> str:
    return f"report_{index + 1:03d}_{OutputManager.create_safe_slug(url)}"


def write_run_artifacts(
    report: RunReport,
    output: OutputManager,
    consolidator: Optional[ReportConsolidator] = None,
    pdf_renderer=None,
    logger=None,
) -> Dict[str, Path]:
    """
    Write every artifact of a finished run below the run's output root.

    Returns a mapping from artifact name to path. Export failures are logged
    and skipped so one broken artifact does not cost the others.
    """
    logger = logger or module_logger
    consolidator = consolidator or ReportConsolidator()
    wcag_tags = report.options.get("wcag_tags", [])
    artifacts: Dict[str, Path] = {}

    def write(name: str, path: Path, content) -> None:
        if output.safe_write_file(path, content):
            artifacts[name] = path

    write("run_report", output.get_path("root", "run_report.json"), run_report_json(report))

    documents = []
    for index, outcome in enumerate(report.outcomes):
        document = consolidator.consolidate(outcome, wcag_tags=wcag_tags)
        html = render_html(document)
        name = outcome_report_name(index, outcome.url)
        documents.append((name, html, outcome))
        write(name, output.get_path("root", f"{name}.html"), html)

    for name, filename, exporter in (
        ("junit", "junit.xml", junit_xml),
        ("sarif", "results.sarif", sarif_json),
    ):
        try:
            write(name, output.get_path("exports", filename), exporter(report))
        except ExportError as e:
            logger.error(f"{name} export failed: {e}")

    summary = summarize_run(report)
    executive_html = render_executive_html(
        summary,
        title=f"Accessibility Executive Summary - {report.run_id}",
        chart=severity_donut(summary),
    )
    write("executive_summary", output.get_path("root", "executive_summary.html"), executive_html)

    if report.outcomes:
        try:
            artifacts["excel"] = write_excel_report(
                report.outcomes, output.get_path("exports", "accessibility_report.xlsx")
            )
        except ExportError as e:
            logger.error(f"Excel export failed: {e}")

    if pdf_renderer is not None:
        root = output.get_path("root")
        pdf_jobs = [("executive_summary", executive_html, EXECUTIVE_LAYOUT)]
        pdf_jobs.extend(
            (name, html, TECHNICAL_LAYOUT) for name, html, outcome in documents if not outcome.is_failed
        )
        for name, html, layout in pdf_jobs:
            key = "executive_pdf" if layout is EXECUTIVE_LAYOUT else f"{name}_pdf"
            try:
                artifacts[key] = write_pdf(
                    pdf_renderer, html, output.get_path("pdf", f"{name}.pdf"), layout, base_dir=root,
                )
            except ExportError as e:
                logger.error(f"PDF export failed for {name}: {e}")

    logger.info(f"Wrote {len(artifacts)} artifacts to {output.get_path('root')}")
    return artifacts


class Pipeline:
    """
    Orchestrates one audit run:
    - centralized configuration
    - structured logging and live progress
    - run-scoped output
    - cooperative cancellation on SIGINT/SIGTERM
    """

    def __init__(
        self,
        config_file: Optional[str] = None,
        cli_args: Optional[Dict[str, Any]] = None,
        coordinator: Optional[RunCoordinator] = None,
        pdf_renderer_factory: Optional[Callable[[], Any]] = None,
    ):
        self.config_manager = ConfigurationManager(
            project_name="axebatch",
            config_file=config_file,
            cli_args=cli_args or {}
        )

        if self.config_manager.get_bool("DEBUG", False):
            self.config_manager.set_debug_mode(True)
            set_log_level("DEBUG", COMPONENTS)

        self.logger = get_logger(
            "pipeline",
            self.config_manager.get_logging_config()["components"]["pipeline"]
        )
        self.config_manager.log_config_summary()

        self.output_dir = self.config_manager.get_path("OUTPUT_DIR", create=True)
        self.coordinator = coordinator or RunCoordinator(
            registry=RunRegistry(self.config_manager.get_int("REGISTRY_MAX_RUNS")),
            output_dir=self.output_dir,
        )
        self.pdf_renderer_factory = pdf_renderer_factory
        self.current_run_id: Optional[str] = None

    def _handle_shutdown(self, signum, _):
        self.logger.warning(f"Signal {signum} received, cancelling after the current URL")
        if self.current_run_id:
            self.coordinator.cancel(self.current_run_id)

    def run_options(self) -> RunOptions:
        return RunOptions.from_config(self.config_manager)

    async def execute(self, urls: List[str], options: Optional[RunOptions] = None) -> RunReport:
        """Run the audit, logging progress until the run is terminal."""
        options = options or self.run_options()
        run_id = self.coordinator.start_run(urls, options)
        self.current_run_id = run_id
        self.logger.info(f"Run {run_id} started: {len(urls)} URLs, tags {sorted(options.wcag_tags)}")

        waiter = asyncio.ensure_future(self.coordinator.wait(run_id))
        last_completed = -1
        while not waiter.done():
            await asyncio.wait({waiter}, timeout=PROGRESS_INTERVAL)
            if waiter.done():
                break
            snapshot = self.coordinator.get_run_report(run_id)
            if snapshot.completed_count != last_completed:
                last_completed = snapshot.completed_count
                self.logger.info(
                    f"Progress {snapshot.completed_count}/{snapshot.total_urls} "
                    f"({snapshot.failed_count} failed)"
                )
        return waiter.result()

    async def run(self, urls: List[str], output_format: str = "json", output_file: Optional[str] = None) -> int:
        """
        Run the audit, write artifacts and evaluate the CI policy.

        Returns:
            Exit code (0 = passed, 1 = policy failed, 2 = audit error)
        """
        start_time = time.time()
        if not urls:
            self.logger.error("No URLs to audit")
            return 2

        previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        for sig in previous:
            signal.signal(sig, self._handle_shutdown)

        try:
            report = await self.execute(urls)
            output = OutputManager(self.output_dir, report.run_id)

            renderer = self.pdf_renderer_factory() if self.pdf_renderer_factory else None
            try:
                artifacts = await asyncio.to_thread(
                    write_run_artifacts, report, output,
                    ReportConsolidator.from_config(self.config_manager), renderer, self.logger,
                )
            finally:
                if renderer is not None and hasattr(renderer, "close"):
                    renderer.close()

            self._emit(report, output_format, output_file)

            ci_config = self.config_manager.get_ci_config()
            verdict = evaluate_ci(report, ci_config["max_violations"], ci_config["fail_on_violations"])
            output.safe_write_file(output.get_path("root", "ci_verdict.json"),
                                   json.dumps(verdict.to_dict(), indent=2))

            elapsed = time.time() - start_time
            self.logger.info(f"Pipeline completed in {elapsed:.1f} seconds")
            self.logger.info(
                f"Run {report.run_id}: {report.status.value}, "
                f"{report.completed_count}/{report.total_urls} processed, {report.failed_count} failed"
            )
            for name, path in artifacts.items():
                self.logger.info(f"  - {name}: {path}")
            self.logger.info(f"CI verdict: {verdict.reason} (exit {verdict.exit_code})")
            return verdict.exit_code

        except Exception as e:
            self.logger.exception(f"Fatal error while running the pipeline: {e}")
            return 2
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _emit(self, report: RunReport, output_format: str, output_file: Optional[str]) -> None:
        if output_format == "junit":
            content = junit_xml(report)
        elif output_format == "sarif":
            content = sarif_json(report)
        else:
            content = run_report_json(report)

        if output_file:
            path = Path(output_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            self.logger.info(f"{output_format} results written to {path}")
        else:
            sys.stdout.write(content + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Batch accessibility audits with axe-core")
    parser.add_argument("--url", "-u", action="append", default=[], help="URL to audit (repeatable)")
    parser.add_argument("--file", "-f", help="File with one URL per line")
    parser.add_argument("--config", "-c", help="Configuration file (json, yaml or key=value)")
    parser.add_argument("--wcag", "-w",
                        help=f"Preset ({', '.join(WCAG_PRESETS)}) or comma separated axe tags")
    parser.add_argument("--continue-on-failure", action=argparse.BooleanOptionalAction, default=None,
                        help="Keep auditing after a URL fails")
    parser.add_argument("--no-evidence", action="store_true", help="Skip screenshot evidence")
    parser.add_argument("--no-headless", action="store_true", help="Show the browser window")
    parser.add_argument("--timeout", "-t", type=float, help="Per-page timeout in seconds")
    parser.add_argument("--max-violations", type=int, help="Violated rules allowed per URL")
    parser.add_argument("--no-fail-on-violations", action="store_true",
                        help="Do not fail when the threshold is exceeded")
    parser.add_argument("--format", choices=["json", "junit", "sarif"], default="json",
                        help="Format of the results written to --output or stdout")
    parser.add_argument("--output", "-o", help="Write results in --format to this file")
    parser.add_argument("--output-dir", help="Base directory for run artifacts")
    parser.add_argument("--pdf", action="store_true", help="Also render PDF reports")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    return parser


def cli_args_from(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed arguments to configuration keys."""
    cli_args: Dict[str, Any] = {}
    if args.wcag:
        cli_args["AXE_WCAG_TAGS"] = WCAG_PRESETS.get(args.wcag, args.wcag)
    if args.continue_on_failure is not None:
        cli_args["CONTINUE_ON_FAILURE"] = args.continue_on_failure
    if args.no_evidence:
        cli_args["AXE_CAPTURE_EVIDENCE"] = False
    if args.no_headless:
        cli_args["AXE_HEADLESS"] = False
    if args.timeout is not None:
        cli_args["AXE_PAGE_TIMEOUT"] = args.timeout
    if args.max_violations is not None:
        cli_args["CI_MAX_VIOLATIONS"] = args.max_violations
    if args.no_fail_on_violations:
        cli_args["CI_FAIL_ON_VIOLATIONS"] = False
    if args.output_dir:
        cli_args["OUTPUT_DIR"] = args.output_dir
    if args.debug:
        cli_args["DEBUG"] = True
    return cli_args


async def main(argv: Optional[List[str]] = None) -> int:
    """Program entry point with CLI parameters."""
    parser = build_parser()
    args = parser.parse_args(argv)

    urls = list(args.url)
    if args.file:
        urls.extend(load_urls_from_file(args.file))
    urls = list(dict.fromkeys(urls))
    if not urls:
        parser.error("at least one --url or a --file with URLs is required")

    pipeline = Pipeline(
        config_file=args.config,
        cli_args=cli_args_from(args),
        pdf_renderer_factory=ChromePdfRenderer if args.pdf else None,
    )
    return await pipeline.run(urls, output_format=args.format, output_file=args.output)


def cli() -> None:
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("Pipeline interrupted by the user")
        sys.exit(130)
    except Exception as e:
        print(f"Unhandled pipeline error: {e}")
        print(traceback.format_exc())
        sys.exit(2)


if __name__ == "__main__":
    cli()
