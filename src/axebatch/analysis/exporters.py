# src/axebatch/analysis/exporters.py
"""
Machine-readable exports of audit results: JUnit XML and SARIF 2.1.0.

Formatters are pure: they never mutate the outcomes they receive.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Sequence, Union

from ..errors import ExportError
from ..models import RunReport, TestOutcome
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger

config_manager = get_config_manager()
logger = get_logger("exporters", config_manager.get_logging_config()["components"]["exporters"])

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0-rtm.5.json"
SARIF_VERSION = "2.1.0"
DRIVER_NAME = "axe-core"
DRIVER_URI = "https://www.deque.com/axe/"

VIOLATION_CLASSNAME = "accessibility.violations"
PASS_CLASSNAME = "accessibility.passes"
AUDIT_CLASSNAME = "accessibility.audit"


def _outcomes_of(source: Union[RunReport, TestOutcome, Iterable[TestOutcome]]) -> List[TestOutcome]:
    if isinstance(source, RunReport):
        outcomes = list(source.outcomes)
    elif isinstance(source, TestOutcome):
        outcomes = [source]
    elif isinstance(source, (list, tuple)):
        outcomes = list(source)
    else:
        raise ExportError(f"Cannot export {type(source).__name__}")
    for outcome in outcomes:
        if not isinstance(outcome, TestOutcome):
            raise ExportError(f"Expected TestOutcome, got {type(outcome).__name__}")
    return outcomes


# -- JUnit -------------------------------------------------------------------

def _testsuite(outcome: TestOutcome) -> ET.Element:
    suite = ET.Element("testsuite", {
        "name": outcome.url,
        "timestamp": outcome.timestamp.isoformat(),
        "time": f"{outcome.duration:.3f}",
    })
    tests = failures = errors = 0

    if outcome.is_failed:
        case = ET.SubElement(suite, "testcase", {"name": "audit", "classname": AUDIT_CLASSNAME})
        error = ET.SubElement(case, "error", {
            "message": outcome.error_message or "Audit failed",
            "type": "AuditError",
        })
        error.text = outcome.error_message or ""
        tests, errors = 1, 1
    else:
        for violation in outcome.violations:
            for node in violation.nodes:
                case = ET.SubElement(suite, "testcase", {
                    "name": f"{violation.rule_id}: {node.target_selector}",
                    "classname": VIOLATION_CLASSNAME,
                })
                failure = ET.SubElement(case, "failure", {
                    "message": f"{violation.impact.value} violation: {violation.description}",
                    "type": "AssertionError",
                })
                details = [f"Help: {violation.help_url}", f"Element: {node.target_selector}"]
                if node.markup_snippet:
                    details.append(f"HTML: {node.markup_snippet}")
                if node.failure_summary:
                    details.append(node.failure_summary)
                failure.text = "\n".join(details)
                tests += 1
                failures += 1
        for rule in outcome.passes:
            ET.SubElement(suite, "testcase", {"name": rule.rule_id, "classname": PASS_CLASSNAME})
            tests += 1

    suite.set("tests", str(tests))
    suite.set("failures", str(failures))
    suite.set("errors", str(errors))
    return suite


def junit_xml(source: Union[RunReport, TestOutcome, Sequence[TestOutcome]], name: str = "axebatch") -> str:
    """One <testsuite> per outcome; totals are summed on <testsuites>."""
    outcomes = _outcomes_of(source)
    root = ET.Element("testsuites", {"name": name})
    totals = {"tests": 0, "failures": 0, "errors": 0}
    for outcome in outcomes:
        suite = _testsuite(outcome)
        for key in totals:
            totals[key] += int(suite.get(key))
        root.append(suite)
    for key, value in totals.items():
        root.set(key, str(value))

    logger.debug(f"JUnit export: {totals['tests']} tests, {totals['failures']} failures, {totals['errors']} errors")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8")


# -- SARIF -------------------------------------------------------------------

def _rule_descriptor(violation) -> Dict[str, Any]:
    return {
        "id": violation.rule_id,
        "name": violation.rule_id,
        "shortDescription": {"text": violation.help or violation.description},
        "fullDescription": {"text": violation.description},
        "helpUri": violation.help_url,
        "properties": {"tags": sorted(violation.tags)},
    }


def sarif_log(source: Union[RunReport, TestOutcome, Sequence[TestOutcome]]) -> Dict[str, Any]:
    """SARIF log with one result per violation node and each rule described once."""
    outcomes = _outcomes_of(source)
    rules: List[Dict[str, Any]] = []
    rule_indices: Dict[str, int] = {}
    results: List[Dict[str, Any]] = []
    notifications: List[Dict[str, Any]] = []
    engine_version = None

    for outcome in outcomes:
        if outcome.is_failed:
            notifications.append({
                "level": "error",
                "message": {"text": f"{outcome.url}: {outcome.error_message or 'Audit failed'}"},
            })
            continue
        engine_version = engine_version or outcome.engine_version

        for violation in outcome.violations:
            if violation.rule_id not in rule_indices:
                rules.append(_rule_descriptor(violation))
                rule_indices[violation.rule_id] = len(rules) - 1

            for node in violation.nodes:
                results.append({
                    "ruleId": violation.rule_id,
                    "ruleIndex": rule_indices[violation.rule_id],
                    "level": violation.impact.style.sarif_level,
                    "message": {"text": f"{violation.help or violation.description} ({violation.impact.value})"},
                    "locations": [{
                        "physicalLocation": {
                            "artifactLocation": {"uri": outcome.url},
                            "region": {"startLine": 1, "snippet": {"text": node.markup_snippet}},
                        },
                        "logicalLocations": [{"fullyQualifiedName": node.target_selector, "kind": "element"}],
                    }],
                })

    driver = {"name": DRIVER_NAME, "informationUri": DRIVER_URI, "rules": rules}
    if engine_version:
        driver["version"] = engine_version

    run: Dict[str, Any] = {
        "tool": {"driver": driver},
        "results": results,
        "invocations": [{
            "executionSuccessful": not notifications,
            "toolExecutionNotifications": notifications,
        }],
    }
    logger.debug(f"SARIF export: {len(results)} results, {len(rules)} rules")
    return {"$schema": SARIF_SCHEMA, "version": SARIF_VERSION, "runs": [run]}


def sarif_json(source: Union[RunReport, TestOutcome, Sequence[TestOutcome]]) -> str:
    return json.dumps(sarif_log(source), indent=2)


def run_report_json(report: RunReport) -> str:
    if not isinstance(report, RunReport):
        raise ExportError(f"Expected RunReport, got {type(report).__name__}")
    return json.dumps(report.to_dict(), indent=2)
