# src/axebatch/audit/aggregator.py
import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models import (
    EvidenceRecord,
    Impact,
    OutcomeStatus,
    RuleSummary,
    TestOutcome,
    Violation,
    ViolationNode,
    utcnow,
)


def join_target(target: Any) -> str:
    """Flatten an axe ``target`` (selectors, possibly nested for iframes/shadow DOM)."""
    if isinstance(target, str):
        return target
    parts = []
    for item in target or []:
        parts.append(", ".join(item) if isinstance(item, list) else str(item))
    return ", ".join(parts)


def parse_violations(raw: Iterable[Dict[str, Any]]) -> List[Violation]:
    violations = []
    for entry in raw:
        nodes = tuple(
            ViolationNode(
                target_selector=join_target(node.get("target", [])),
                markup_snippet=node.get("html", "") or "",
                failure_summary=node.get("failureSummary") or None,
            )
            for node in entry.get("nodes", [])
        )
        # Rules without nodes carry no actionable violation
        if not nodes:
            continue
        violations.append(Violation(
            rule_id=entry.get("id", ""),
            description=entry.get("description", ""),
            help_url=entry.get("helpUrl", ""),
            impact=Impact.parse(entry.get("impact")),
            tags=frozenset(entry.get("tags", [])),
            nodes=nodes,
            help=entry.get("help", ""),
        ))
    return violations


def parse_rules(raw: Iterable[Dict[str, Any]]) -> Tuple[RuleSummary, ...]:
    return tuple(
        RuleSummary(
            rule_id=entry.get("id", ""),
            description=entry.get("description", ""),
            help_url=entry.get("helpUrl", ""),
            impact=Impact.parse(entry["impact"]) if entry.get("impact") else None,
            tags=frozenset(entry.get("tags", [])),
        )
        for entry in raw
    )


class ResultAggregator:
    """Normalizes one URL's raw axe result and evidence into a ``TestOutcome``."""

    def completed(
        self,
        url: str,
        raw: Dict[str, Any],
        evidence: Iterable[EvidenceRecord] = (),
        started_at: Optional[datetime.datetime] = None,
        violations: Optional[List[Violation]] = None,
    ) -> TestOutcome:
        started_at = started_at or utcnow()
        if violations is None:
            violations = parse_violations(raw.get("violations", []))
        engine = raw.get("testEngine") or {}
        return TestOutcome(
            url=url,
            timestamp=started_at,
            status=OutcomeStatus.COMPLETED,
            violations=tuple(violations),
            passes=parse_rules(raw.get("passes", [])),
            incomplete=parse_rules(raw.get("incomplete", [])),
            inapplicable=parse_rules(raw.get("inapplicable", [])),
            evidence=tuple(evidence),
            engine_version=engine.get("version"),
            duration=(utcnow() - started_at).total_seconds(),
        )

    def failed(
        self,
        url: str,
        message: str,
        started_at: Optional[datetime.datetime] = None,
    ) -> TestOutcome:
        started_at = started_at or utcnow()
        return TestOutcome(
            url=url,
            timestamp=started_at,
            status=OutcomeStatus.FAILED,
            error_message=message,
            duration=(utcnow() - started_at).total_seconds(),
        )
