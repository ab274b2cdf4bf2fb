# src/axebatch/analysis/consolidator.py
"""
Report consolidation.

Violation nodes sharing the same fix guidance are grouped into one table row
showing a few examples and a "+N more" line, evidence is attached to the
section of its violation, and captured markup is whitespace-normalized.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import EvidenceAnchorNotFound
from ..models import EvidenceRecord, TestOutcome, Violation, ViolationNode
from ..utils.config_manager import get_config_manager
from ..utils.decorators import log_method
from ..utils.logging_config import get_logger
from .document import (
    ConsolidatedReport,
    ContextSummary,
    ExampleNode,
    GalleryItem,
    RemediationText,
    RuleSetEntry,
    TableRow,
    ViolationSection,
)

config_manager = get_config_manager()
logger = get_logger("report_consolidator", config_manager.get_logging_config()["components"]["report_consolidator"])

_BETWEEN_TAGS = re.compile(r"</?([a-zA-Z][\w-]*)[^>]*>\s+(?=</?([a-zA-Z][\w-]*))")
_BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "body", "br", "caption", "dd", "div", "dl", "dt",
    "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
    "head", "header", "hr", "html", "legend", "li", "main", "nav", "ol", "optgroup", "option", "p",
    "pre", "section", "select", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
})
_RUNS_OF_SPACE = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class ViolationGroup:
    remediation_key: str
    member_nodes: tuple
    total_count: int


def _join_tags(match: "re.Match") -> str:
    tag = match.group(0).rstrip()
    names = {match.group(1).lower(), match.group(2).lower()}
    return tag if names & _BLOCK_TAGS else tag + " "


def normalize_markup(markup: str) -> str:
    """Collapse formatting whitespace between tags and inside text runs.

    Whitespace next to a block or list tag is dropped; between two inline
    tags it is kept as a single space so adjacent words stay apart.
    """
    if not markup:
        return ""
    collapsed = _BETWEEN_TAGS.sub(_join_tags, markup)
    collapsed = _RUNS_OF_SPACE.sub(" ", collapsed)
    return collapsed.strip()


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def remediation_key(node: ViolationNode, violation: Violation) -> str:
    """Grouping key: node fix instructions, then the rule's help text, then the rule id."""
    for candidate in (node.failure_summary, violation.help):
        if candidate and candidate.strip():
            return candidate.strip()
    return violation.rule_id


def split_remediation(text: str) -> RemediationText:
    lines = [_RUNS_OF_SPACE.sub(" ", line).strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return RemediationText(heading="")
    return RemediationText(heading=lines[0], items=tuple(lines[1:]))


def group_nodes(violation: Violation, nodes: Optional[Sequence[ViolationNode]] = None) -> List[ViolationGroup]:
    """Partition nodes by remediation key, keeping first-appearance order."""
    buckets: Dict[str, List[ViolationNode]] = {}
    for node in violation.nodes if nodes is None else nodes:
        buckets.setdefault(remediation_key(node, violation), []).append(node)
    return [
        ViolationGroup(remediation_key=key, member_nodes=tuple(members), total_count=len(members))
        for key, members in buckets.items()
    ]


def flatten_groups(groups: Iterable[ViolationGroup]) -> List[ViolationNode]:
    nodes = []
    for group in groups:
        nodes.extend(group.member_nodes)
    return nodes


class ReportConsolidator:
    def __init__(self, max_examples: int = 3, markup_limit: int = 100):
        self.max_examples = max_examples
        self.markup_limit = markup_limit
        self.logger = logger

    @classmethod
    def from_config(cls, config=None) -> "ReportConsolidator":
        return cls(**(config or config_manager).get_report_config())

    def build_row(self, group: ViolationGroup) -> TableRow:
        remediation = split_remediation(group.remediation_key)
        if group.total_count == 1:
            node = group.member_nodes[0]
            example = ExampleNode(node.target_selector, normalize_markup(node.markup_snippet))
            return TableRow(count=1, remediation=remediation, examples=(example,))

        examples = []
        for node in group.member_nodes[:self.max_examples]:
            markup = normalize_markup(node.markup_snippet)
            examples.append(ExampleNode(
                node.target_selector,
                truncate(markup, self.markup_limit),
                truncated=len(markup) > self.markup_limit,
            ))
        return TableRow(
            count=group.total_count,
            remediation=remediation,
            examples=tuple(examples),
            remaining=max(0, group.total_count - self.max_examples),
        )

    def build_section(self, index: int, violation: Violation) -> ViolationSection:
        groups = group_nodes(violation)
        return ViolationSection(
            index=index,
            rule_id=violation.rule_id,
            description=violation.description,
            help=violation.help,
            help_url=violation.help_url,
            impact=violation.impact,
            tags=sorted(violation.tags),
            node_count=len(violation.nodes),
            rows=[self.build_row(group) for group in groups],
        )

    def inject_evidence(self, document: ConsolidatedReport, evidence: Iterable[EvidenceRecord]) -> int:
        """Attach evidence galleries to their sections; returns how many were dropped."""
        dropped = 0
        for record in evidence:
            try:
                section = document.section_for(record.violation_index)
            except EvidenceAnchorNotFound as e:
                self.logger.warning(f"Evidence {record.image_ref} dropped: {e}")
                dropped += 1
                continue
            section.gallery.append(GalleryItem(record.image_ref, record.impact, record.element_selector))
        document.dropped_evidence += dropped
        return dropped

    @log_method
    def consolidate(self, outcome: TestOutcome, wcag_tags: Iterable[str] = ()) -> ConsolidatedReport:
        context = ContextSummary(
            url=outcome.url,
            date=outcome.timestamp,
            status=outcome.status.value,
            rule_sets=tuple(RuleSetEntry.for_tag(tag) for tag in wcag_tags),
            engine_version=outcome.engine_version,
            evidence_count=len(outcome.evidence),
            duration=outcome.duration,
        )
        document = ConsolidatedReport(
            context=context,
            passes=list(outcome.passes),
            incomplete=list(outcome.incomplete),
            inapplicable=list(outcome.inapplicable),
        )

        if outcome.is_failed:
            document.error_message = outcome.error_message or "Audit failed"
            return document

        document.sections = [self.build_section(i, v) for i, v in enumerate(outcome.violations)]
        self.inject_evidence(document, outcome.evidence)

        grouped_rows = sum(1 for s in document.sections for r in s.rows if r.is_group)
        self.logger.info(
            f"Consolidated {outcome.url}: {len(document.sections)} violations, "
            f"{grouped_rows} grouped rows, {document.evidence_count} screenshots"
        )
        return document
