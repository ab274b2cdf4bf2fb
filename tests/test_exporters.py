"""Tests for the JUnit XML and SARIF exports."""

import json
import xml.etree.ElementTree as ET

import pytest

from axebatch.analysis.exporters import (
    SARIF_SCHEMA,
    junit_xml,
    run_report_json,
    sarif_json,
    sarif_log,
)
from axebatch.errors import ExportError
from axebatch.models import Impact

from factories import make_failed_outcome, make_nodes, make_outcome, make_report, make_violation


@pytest.fixture
def outcome():
    return make_outcome(
        violations=[
            make_violation("image-alt", Impact.CRITICAL, nodes=make_nodes(2)),
            make_violation("color-contrast", Impact.SERIOUS, nodes=make_nodes(1, prefix="p")),
        ],
        passes=4,
    )


def test_junit_totals_are_exact(outcome):
    root = ET.fromstring(junit_xml(outcome))

    suite = root.find("testsuite")
    assert (root.get("tests"), root.get("failures"), root.get("errors")) == ("7", "3", "0")
    assert suite.get("name") == "https://example.com/"
    assert len(suite.findall("testcase")) == 7
    assert len(suite.findall("testcase/failure")) == 3


def test_junit_failure_carries_impact_and_help(outcome):
    failure = ET.fromstring(junit_xml(outcome)).find("testsuite/testcase/failure")

    assert failure.get("message") == "critical violation: Ensures image-alt is satisfied"
    assert failure.get("type") == "AssertionError"
    assert "https://dequeuniversity.com/rules/axe/4.8/image-alt" in failure.text


def test_junit_failed_outcome_is_an_error():
    report = make_report([make_outcome(passes=2), make_failed_outcome(message="Navigation timed out")])

    root = ET.fromstring(junit_xml(report))

    assert (root.get("tests"), root.get("failures"), root.get("errors")) == ("3", "0", "1")
    error = root.findall("testsuite")[1].find("testcase/error")
    assert error.get("message") == "Navigation timed out"


@pytest.mark.parametrize("impact, level", [
    (Impact.CRITICAL, "error"),
    (Impact.SERIOUS, "error"),
    (Impact.MODERATE, "warning"),
    (Impact.MINOR, "note"),
])
def test_sarif_level_follows_impact(impact, level):
    log = sarif_log(make_outcome(violations=[make_violation(impact=impact, nodes=make_nodes(2))]))

    assert [r["level"] for r in log["runs"][0]["results"]] == [level, level]


def test_sarif_describes_each_rule_once(outcome):
    second_page = make_outcome("https://example.com/other", violations=[make_violation("image-alt")])

    log = sarif_log([outcome, second_page])
    run = log["runs"][0]

    assert [rule["id"] for rule in run["tool"]["driver"]["rules"]] == ["image-alt", "color-contrast"]
    assert len(run["results"]) == 4
    assert [r["ruleIndex"] for r in run["results"]] == [0, 0, 1, 0]
    assert run["results"][-1]["locations"][0]["physicalLocation"]["artifactLocation"]["uri"] \
        == "https://example.com/other"


def test_sarif_log_shape(outcome):
    log = json.loads(sarif_json(outcome))
    run = log["runs"][0]
    result = run["results"][0]

    assert log["$schema"] == SARIF_SCHEMA
    assert log["version"] == "2.1.0"
    assert run["tool"]["driver"]["version"] == "4.8.2"
    assert run["tool"]["driver"]["rules"][0]["helpUri"].endswith("/image-alt")
    assert result["locations"][0]["logicalLocations"][0]["fullyQualifiedName"] == "img:nth-child(1)"
    region = result["locations"][0]["physicalLocation"]["region"]
    assert region["startLine"] == 1
    assert region["snippet"]["text"] == '<img src="/img-1.png">'
    assert run["invocations"][0]["executionSuccessful"] is True


def test_sarif_reports_failed_audits_as_notifications():
    log = sarif_log(make_report([make_outcome(), make_failed_outcome(message="boom")]))
    invocation = log["runs"][0]["invocations"][0]

    assert invocation["executionSuccessful"] is False
    assert "boom" in invocation["toolExecutionNotifications"][0]["message"]["text"]


@pytest.mark.parametrize("exporter", [junit_xml, sarif_log])
def test_exporters_reject_malformed_input(exporter):
    with pytest.raises(ExportError):
        exporter({"url": "https://example.com"})
    with pytest.raises(ExportError):
        exporter([make_outcome(), "not an outcome"])


def test_exporters_leave_outcomes_untouched(outcome):
    before = outcome.to_dict()

    junit_xml(outcome)
    sarif_log(outcome)

    assert outcome.to_dict() == before


def test_run_report_json():
    report = make_report([make_outcome(passes=1)])

    data = json.loads(run_report_json(report))

    assert data["runId"] == "run_test"
    assert data["status"] == "completed"
    with pytest.raises(ExportError):
        run_report_json(report.outcomes[0])
