#!/usr/bin/env python3
"""
Diagnostic summary of a run_report.json file.
"""
import sys
import json
from collections import Counter
from pathlib import Path

from axebatch.ci import evaluate_ci
from axebatch.models import RunReport


def main(report_path, max_violations=0):
    report_path = Path(report_path)
    if not report_path.exists():
        print(f"File not found: {report_path}")
        return 2
    with open(report_path, "r", encoding="utf-8") as f:
        report = RunReport.from_dict(json.load(f))

    print(f"RUN: {report.run_id}")
    print(f"Status: {report.status.value}")
    print(f"URLs: {report.completed_count}/{report.total_urls} processed, {report.failed_count} failed")
    if report.error_message:
        print(f"Run error: {report.error_message}")

    rule_counter = Counter()
    for outcome in report.outcomes:
        if outcome.is_failed:
            print(f"- {outcome.url}: FAILED ({outcome.error_message})")
            continue
        nodes = sum(len(v.nodes) for v in outcome.violations)
        print(f"- {outcome.url}: {len(outcome.violations)} rules, {nodes} elements, "
              f"{len(outcome.evidence)} screenshots")
        for violation in outcome.violations:
            rule_counter[violation.rule_id] += len(violation.nodes)

    if rule_counter:
        print("\nMost frequent rules:")
        for rule_id, count in rule_counter.most_common(5):
            print(f"  {rule_id}: {count} elements")

    verdict = evaluate_ci(report, max_violations=max_violations)
    print(f"\nCI verdict (max {max_violations} violated rules per URL): {verdict.reason}, exit {verdict.exit_code}")
    return verdict.exit_code


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python inspect_run_report.py <run_report.json> [max_violations]")
    else:
        sys.exit(main(sys.argv[1], int(sys.argv[2]) if len(sys.argv) == 3 else 0))
