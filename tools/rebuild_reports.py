#!/usr/bin/env python3
"""
Re-render the HTML reports and exports of a finished run from its run_report.json.
"""
import sys
import json
from pathlib import Path

from axebatch.models import RunReport
from axebatch.pipeline import write_run_artifacts
from axebatch.utils.logging_config import setup_logging
from axebatch.utils.output_manager import OutputManager


def main():
    if len(sys.argv) < 2:
        print("Usage: python rebuild_reports.py <run_report.json>")
        sys.exit(1)

    report_path = Path(sys.argv[1])
    if not report_path.exists():
        print(f"File not found: {report_path}")
        sys.exit(2)

    with open(report_path, "r", encoding="utf-8") as f:
        report = RunReport.from_dict(json.load(f))

    # The run root is the directory holding run_report.json
    run_root = report_path.parent
    output_manager = OutputManager(base_dir=run_root.parent, run_id=report.run_id)
    if output_manager.get_path("root").resolve() != run_root.resolve():
        print(f"Warning: {run_root} is not the output root of run {report.run_id}, "
              f"artifacts go to {output_manager.get_path('root')}")

    logger = setup_logging(
        log_dir=output_manager.get_path("logs"),
        log_file="rebuild_reports.log",
        component_name="rebuild_reports",
        rotating_logs=False,
    )
    logger.info(f"Rebuilding reports for run {report.run_id} ({len(report.outcomes)} outcomes)")
    backup = output_manager.backup_existing_file("root", "run_report.json")
    if backup:
        logger.info(f"Previous run report kept as {backup.name}")

    artifacts = write_run_artifacts(report, output_manager, logger=logger)
    for name, path in artifacts.items():
        logger.info(f"  - {name}: {path}")


if __name__ == "__main__":
    main()
