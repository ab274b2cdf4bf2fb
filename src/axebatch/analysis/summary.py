# src/axebatch/analysis/summary.py
"""
Executive summary: score, grade, severity breakdown, top categories and
recommendations for one outcome or a whole run.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ExportError
from ..models import IMPACT_ORDER, Impact, RunReport, TestOutcome

CATEGORY_PREFIX = "cat."
MAX_CATEGORIES = 5

GRADE_THRESHOLDS = (
    (95, "Excellent"),
    (85, "Good"),
    (70, "Fair"),
)
LOWEST_GRADE = "Needs Improvement"

POSITIVE_RECOMMENDATION = "Great job! Continue monitoring for accessibility regressions"


def category_from_tag(tag: str) -> Optional[str]:
    """``cat.text-alternatives`` -> ``Text alternatives``; other tags -> None."""
    if not tag.startswith(CATEGORY_PREFIX):
        return None
    name = tag[len(CATEGORY_PREFIX):].replace("-", " ").strip()
    if not name:
        return None
    return name[0].upper() + name[1:]


def compute_score(passes: int, total_rules: int) -> int:
    if total_rules <= 0:
        return 100
    # round half up
    return int(math.floor(100 * passes / total_rules + 0.5))


def grade_for(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return LOWEST_GRADE


@dataclass(frozen=True)
class CategoryCount:
    name: str
    count: int


@dataclass
class ExecutiveSummary:
    score: int
    grade: str
    violations: int
    passes: int
    incomplete: int
    inapplicable: int
    severity: Dict[Impact, int]
    top_categories: List[CategoryCount]
    recommendations: List[str]
    pages: int = 1
    failed_urls: List[str] = field(default_factory=list)

    @property
    def total_rules(self) -> int:
        return self.violations + self.passes + self.incomplete + self.inapplicable

    @property
    def severity_items(self) -> List[Tuple[Impact, int]]:
        return [(impact, self.severity.get(impact, 0)) for impact in IMPACT_ORDER]

    def to_dict(self) -> Dict:
        return {
            "score": self.score,
            "grade": self.grade,
            "totals": {
                "violations": self.violations,
                "passes": self.passes,
                "incomplete": self.incomplete,
                "inapplicable": self.inapplicable,
            },
            "severity": {impact.value: count for impact, count in self.severity_items},
            "topCategories": [{"name": c.name, "count": c.count} for c in self.top_categories],
            "recommendations": list(self.recommendations),
            "pages": self.pages,
            "failedUrls": list(self.failed_urls),
        }


def build_recommendations(severity: Dict[Impact, int], incomplete: int,
                          top_categories: List[CategoryCount]) -> List[str]:
    lines = []
    critical = severity.get(Impact.CRITICAL, 0)
    serious = severity.get(Impact.SERIOUS, 0)
    if critical > 0:
        lines.append(f"Address {critical} critical accessibility issues immediately")
    if serious > 0:
        lines.append(f"Fix {serious} serious violations that impact user experience")
    if incomplete > 0:
        lines.append(f"Review {incomplete} incomplete tests that require manual verification")
    if top_categories:
        top = top_categories[0]
        lines.append(f"Focus on {top.name.lower()} improvements ({top.count} issues)")
    if not lines:
        lines.append(POSITIVE_RECOMMENDATION)
    return lines


def summarize(outcomes: Iterable[TestOutcome]) -> ExecutiveSummary:
    """Aggregate executive summary over the completed outcomes given."""
    severity = Counter({impact: 0 for impact in Impact})
    categories = Counter()
    violations = passes = incomplete = inapplicable = 0
    pages = 0
    failed_urls = []

    for outcome in outcomes:
        if not isinstance(outcome, TestOutcome):
            raise ExportError(f"Cannot summarize {type(outcome).__name__}")
        if outcome.is_failed:
            failed_urls.append(outcome.url)
            continue
        pages += 1
        violations += len(outcome.violations)
        passes += len(outcome.passes)
        incomplete += len(outcome.incomplete)
        inapplicable += len(outcome.inapplicable)
        for violation in outcome.violations:
            severity[violation.impact] += len(violation.nodes)
            for tag in violation.tags:
                name = category_from_tag(tag)
                if name:
                    categories[name] += 1

    # Ties broken by name so the ranking does not depend on input order
    ranked = sorted(categories.items(), key=lambda item: (-item[1], item[0]))[:MAX_CATEGORIES]
    top_categories = [CategoryCount(name, count) for name, count in ranked]

    score = compute_score(passes, violations + passes + incomplete + inapplicable)
    return ExecutiveSummary(
        score=score,
        grade=grade_for(score),
        violations=violations,
        passes=passes,
        incomplete=incomplete,
        inapplicable=inapplicable,
        severity=dict(severity),
        top_categories=top_categories,
        recommendations=build_recommendations(severity, incomplete, top_categories),
        pages=pages,
        failed_urls=failed_urls,
    )


def summarize_outcome(outcome: TestOutcome) -> ExecutiveSummary:
    return summarize([outcome])


def summarize_run(report: RunReport) -> ExecutiveSummary:
    if not isinstance(report, RunReport):
        raise ExportError(f"Expected RunReport, got {type(report).__name__}")
    return summarize(report.outcomes)
