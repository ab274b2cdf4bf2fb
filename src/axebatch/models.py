"""
Data model shared by the audit, analysis and CI layers.

Outcomes are immutable once built; only the run coordinator mutates a
``RunReport`` and it does so append-only.
"""

import copy
import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger("axebatch.models")


class Impact(str, Enum):
    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"

    @classmethod
    def parse(cls, value: Any) -> "Impact":
        """Case-insensitive lookup; unknown or missing values map to moderate."""
        if isinstance(value, Impact):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug(f"Unknown impact {value!r}, using moderate")
            return cls.MODERATE

    @property
    def style(self) -> "ImpactStyle":
        return IMPACT_STYLES[self]

    @property
    def rank(self) -> int:
        return IMPACT_STYLES[self].rank


@dataclass(frozen=True)
class ImpactStyle:
    rank: int
    rgb: Tuple[int, int, int]
    sarif_level: str
    badge_class: str
    weight: int

    @property
    def hex(self) -> str:
        return "#{:02X}{:02X}{:02X}".format(*self.rgb)


# Single source for every severity-dependent presentation choice.
IMPACT_STYLES: Dict[Impact, ImpactStyle] = {
    Impact.CRITICAL: ImpactStyle(rank=4, rgb=(220, 53, 69), sarif_level="error", badge_class="badge-critical", weight=4),
    Impact.SERIOUS: ImpactStyle(rank=3, rgb=(253, 126, 20), sarif_level="error", badge_class="badge-serious", weight=3),
    Impact.MODERATE: ImpactStyle(rank=2, rgb=(255, 193, 7), sarif_level="warning", badge_class="badge-moderate", weight=2),
    Impact.MINOR: ImpactStyle(rank=1, rgb=(40, 167, 69), sarif_level="note", badge_class="badge-minor", weight=1),
}

IMPACT_ORDER: List[Impact] = sorted(IMPACT_STYLES, key=lambda i: IMPACT_STYLES[i].rank, reverse=True)


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partiallyFailed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


@dataclass(frozen=True)
class ViolationNode:
    target_selector: str
    markup_snippet: str
    failure_summary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetSelector": self.target_selector,
            "markupSnippet": self.markup_snippet,
            "failureSummary": self.failure_summary,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ViolationNode":
        return cls(
            target_selector=data["targetSelector"],
            markup_snippet=data.get("markupSnippet", ""),
            failure_summary=data.get("failureSummary"),
        )


@dataclass(frozen=True)
class Violation:
    rule_id: str
    description: str
    help_url: str
    impact: Impact
    tags: frozenset
    nodes: Tuple[ViolationNode, ...]
    help: str = ""

    def __post_init__(self):
        if not self.nodes:
            raise ValueError(f"Violation {self.rule_id} has no nodes")
        # Accept any iterable from callers, store immutable containers
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "impact", Impact.parse(self.impact))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "description": self.description,
            "help": self.help,
            "helpUrl": self.help_url,
            "impact": self.impact.value,
            "tags": sorted(self.tags),
            "nodes": [node.to_dict() for node in self.nodes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Violation":
        return cls(
            rule_id=data["ruleId"],
            description=data.get("description", ""),
            help_url=data.get("helpUrl", ""),
            impact=Impact.parse(data.get("impact")),
            tags=frozenset(data.get("tags", [])),
            nodes=tuple(ViolationNode.from_dict(n) for n in data.get("nodes", [])),
            help=data.get("help", ""),
        )


@dataclass(frozen=True)
class RuleSummary:
    """A rule listed under passes, incomplete or inapplicable."""
    rule_id: str
    description: str = ""
    help_url: str = ""
    impact: Optional[Impact] = None
    tags: frozenset = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "tags", frozenset(self.tags))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "description": self.description,
            "helpUrl": self.help_url,
            "impact": self.impact.value if self.impact else None,
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleSummary":
        impact = data.get("impact")
        return cls(
            rule_id=data["ruleId"],
            description=data.get("description", ""),
            help_url=data.get("helpUrl", ""),
            impact=Impact.parse(impact) if impact else None,
            tags=frozenset(data.get("tags", [])),
        )


@dataclass(frozen=True)
class EvidenceRecord:
    violation_index: int
    node_index: int
    impact: Impact
    image_ref: str
    element_selector: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "violationIndex": self.violation_index,
            "nodeIndex": self.node_index,
            "impact": self.impact.value,
            "imageRef": self.image_ref,
            "elementSelector": self.element_selector,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvidenceRecord":
        return cls(
            violation_index=int(data["violationIndex"]),
            node_index=int(data["nodeIndex"]),
            impact=Impact.parse(data.get("impact")),
            image_ref=data["imageRef"],
            element_selector=data.get("elementSelector", ""),
        )


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime.datetime]:
    return datetime.datetime.fromisoformat(value) if value else None


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class TestOutcome:
    url: str
    timestamp: datetime.datetime
    status: OutcomeStatus
    violations: Tuple[Violation, ...] = ()
    passes: Tuple[RuleSummary, ...] = ()
    incomplete: Tuple[RuleSummary, ...] = ()
    inapplicable: Tuple[RuleSummary, ...] = ()
    evidence: Tuple[EvidenceRecord, ...] = ()
    error_message: Optional[str] = None
    engine_version: Optional[str] = None
    duration: float = 0.0

    # Keep pytest from collecting this class from test modules that import it
    __test__ = False

    def __post_init__(self):
        for name in ("violations", "passes", "incomplete", "inapplicable", "evidence"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @property
    def is_failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @property
    def total_rules(self) -> int:
        return len(self.violations) + len(self.passes) + len(self.incomplete) + len(self.inapplicable)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "timestamp": _iso(self.timestamp),
            "status": self.status.value,
            "violations": [v.to_dict() for v in self.violations],
            "passes": [r.to_dict() for r in self.passes],
            "incomplete": [r.to_dict() for r in self.incomplete],
            "inapplicable": [r.to_dict() for r in self.inapplicable],
            "evidence": [e.to_dict() for e in self.evidence],
            "errorMessage": self.error_message,
            "engineVersion": self.engine_version,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestOutcome":
        return cls(
            url=data["url"],
            timestamp=_parse_iso(data.get("timestamp")) or utcnow(),
            status=OutcomeStatus(data.get("status", "completed")),
            violations=tuple(Violation.from_dict(v) for v in data.get("violations", [])),
            passes=tuple(RuleSummary.from_dict(r) for r in data.get("passes", [])),
            incomplete=tuple(RuleSummary.from_dict(r) for r in data.get("incomplete", [])),
            inapplicable=tuple(RuleSummary.from_dict(r) for r in data.get("inapplicable", [])),
            evidence=tuple(EvidenceRecord.from_dict(e) for e in data.get("evidence", [])),
            error_message=data.get("errorMessage"),
            engine_version=data.get("engineVersion"),
            duration=float(data.get("duration", 0.0)),
        )


def resolve_status(total: int, completed: int, failed: int) -> RunStatus:
    """
    Final status of a run from its counters.

    Nothing processed, or every processed URL failed, is ``failed``. Any failure,
    or a run that stopped before covering every URL, is ``partiallyFailed``.
    """
    if completed == 0 or failed >= completed:
        return RunStatus.FAILED
    if failed > 0 or completed < total:
        return RunStatus.PARTIALLY_FAILED
    return RunStatus.COMPLETED


@dataclass
class RunReport:
    run_id: str
    total_urls: int
    urls: List[str] = field(default_factory=list)
    completed_count: int = 0
    failed_count: int = 0
    status: RunStatus = RunStatus.RUNNING
    outcomes: List[TestOutcome] = field(default_factory=list)
    started_at: datetime.datetime = field(default_factory=utcnow)
    ended_at: Optional[datetime.datetime] = None
    error_message: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def record(self, outcome: TestOutcome) -> None:
        """Append an outcome and advance the counters."""
        if self.status.is_terminal:
            raise RuntimeError(f"Run {self.run_id} is already {self.status.value}")
        self.outcomes.append(outcome)
        self.completed_count += 1
        if outcome.is_failed:
            self.failed_count += 1

    def finalize(self, error_message: Optional[str] = None) -> None:
        if error_message:
            self.error_message = error_message
        self.status = resolve_status(self.total_urls, self.completed_count, self.failed_count)
        self.ended_at = utcnow()

    def snapshot(self) -> "RunReport":
        # Outcomes are frozen, a shallow list copy is enough for them
        return RunReport(
            run_id=self.run_id,
            total_urls=self.total_urls,
            urls=list(self.urls),
            completed_count=self.completed_count,
            failed_count=self.failed_count,
            status=self.status,
            outcomes=list(self.outcomes),
            started_at=self.started_at,
            ended_at=self.ended_at,
            error_message=self.error_message,
            options=copy.deepcopy(self.options),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "totalUrls": self.total_urls,
            "urls": list(self.urls),
            "completedCount": self.completed_count,
            "failedCount": self.failed_count,
            "status": self.status.value,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "startedAt": _iso(self.started_at),
            "endedAt": _iso(self.ended_at),
            "errorMessage": self.error_message,
            "options": copy.deepcopy(self.options),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunReport":
        return cls(
            run_id=data["runId"],
            total_urls=int(data["totalUrls"]),
            urls=list(data.get("urls", [])),
            completed_count=int(data.get("completedCount", 0)),
            failed_count=int(data.get("failedCount", 0)),
            status=RunStatus(data.get("status", "running")),
            outcomes=[TestOutcome.from_dict(o) for o in data.get("outcomes", [])],
            started_at=_parse_iso(data.get("startedAt")) or utcnow(),
            ended_at=_parse_iso(data.get("endedAt")),
            error_message=data.get("errorMessage"),
            options=dict(data.get("options", {})),
        )
