# src/axebatch/analysis/document.py
"""
Structured report document.

The consolidator builds a ``ConsolidatedReport`` made of sections, tables and
galleries; ``render_html`` serializes it once with Jinja2.
"""

import datetime
from dataclasses import dataclass, field
from typing import List, Optional

from jinja2 import Environment

from ..errors import EvidenceAnchorNotFound
from ..models import Impact, RuleSummary
from .templates import EXECUTIVE_SUMMARY_TEMPLATE, OUTCOME_REPORT_TEMPLATE, REPORT_STYLES

RULE_SET_DESCRIPTIONS = {
    "wcag2a": "WCAG 2.0 Level A - Basic accessibility requirements",
    "wcag2aa": "WCAG 2.0 Level AA - Standard accessibility compliance",
    "wcag21aa": "WCAG 2.1 Level AA - Enhanced mobile and cognitive accessibility",
    "wcag22aa": "WCAG 2.2 Level AA - Latest accessibility standards",
    "section508": "US Section 508 - Federal accessibility requirements",
    "best-practice": "Best Practices - Deque accessibility recommendations",
    "EN-301-549": "EN 301 549 - European accessibility standard",
}
DEFAULT_RULE_SET_DESCRIPTION = "Accessibility rule set"


@dataclass(frozen=True)
class RuleSetEntry:
    tag: str
    description: str

    @classmethod
    def for_tag(cls, tag: str) -> "RuleSetEntry":
        return cls(tag, RULE_SET_DESCRIPTIONS.get(tag, DEFAULT_RULE_SET_DESCRIPTION))


@dataclass(frozen=True)
class RemediationText:
    heading: str
    items: tuple = ()


@dataclass(frozen=True)
class ExampleNode:
    selector: str
    markup: str
    truncated: bool = False


@dataclass(frozen=True)
class TableRow:
    count: int
    remediation: RemediationText
    examples: tuple
    remaining: int = 0

    @property
    def is_group(self) -> bool:
        return self.count > 1

    @property
    def remaining_label(self) -> str:
        if self.remaining <= 0:
            return ""
        return f"+ {self.remaining} more similar element{'s' if self.remaining > 1 else ''}"


@dataclass(frozen=True)
class GalleryItem:
    image_ref: str
    impact: Impact
    element_selector: str

    @property
    def badge_class(self) -> str:
        return self.impact.style.badge_class


@dataclass
class ViolationSection:
    index: int
    rule_id: str
    description: str
    help: str
    help_url: str
    impact: Impact
    tags: List[str]
    node_count: int
    rows: List[TableRow] = field(default_factory=list)
    gallery: List[GalleryItem] = field(default_factory=list)

    @property
    def anchor(self) -> str:
        return f"violation-{self.index + 1}"


@dataclass(frozen=True)
class ContextSummary:
    url: str
    date: datetime.datetime
    status: str
    rule_sets: tuple
    engine_version: Optional[str] = None
    evidence_count: int = 0
    duration: float = 0.0


@dataclass
class ConsolidatedReport:
    context: ContextSummary
    sections: List[ViolationSection] = field(default_factory=list)
    passes: List[RuleSummary] = field(default_factory=list)
    incomplete: List[RuleSummary] = field(default_factory=list)
    inapplicable: List[RuleSummary] = field(default_factory=list)
    error_message: Optional[str] = None
    dropped_evidence: int = 0

    def section_for(self, violation_index: int) -> ViolationSection:
        for section in self.sections:
            if section.index == violation_index:
                return section
        raise EvidenceAnchorNotFound(violation_index)

    @property
    def evidence_count(self) -> int:
        return sum(len(section.gallery) for section in self.sections)


_environment = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


def render_html(document: ConsolidatedReport, title: Optional[str] = None) -> str:
    template = _environment.from_string(OUTCOME_REPORT_TEMPLATE)
    return template.render(
        report=document,
        title=title or f"Accessibility report - {document.context.url}",
        styles=REPORT_STYLES,
    )


def render_executive_html(summary, title: str = "Accessibility Executive Summary",
                          chart: Optional[str] = None,
                          generated_at: Optional[datetime.datetime] = None) -> str:
    """Render an ``ExecutiveSummary`` with an optional base64 chart."""
    template = _environment.from_string(EXECUTIVE_SUMMARY_TEMPLATE)
    return template.render(
        summary=summary,
        title=title,
        chart=chart,
        generated_at=generated_at or datetime.datetime.now(),
        styles=REPORT_STYLES,
    )
