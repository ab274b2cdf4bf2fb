"""Tests for violation grouping, evidence injection and HTML rendering."""

import pytest

from axebatch.analysis.consolidator import (
    ReportConsolidator,
    flatten_groups,
    group_nodes,
    normalize_markup,
    remediation_key,
    split_remediation,
)
from axebatch.analysis.document import render_html
from axebatch.errors import EvidenceAnchorNotFound
from axebatch.models import EvidenceRecord, Impact, ViolationNode

from factories import ALT_TEXT_SUMMARY, make_failed_outcome, make_nodes, make_outcome, make_violation


@pytest.fixture
def consolidator():
    return ReportConsolidator(max_examples=3, markup_limit=100)


def test_seven_identical_nodes_become_one_group(consolidator):
    violation = make_violation(nodes=make_nodes(7))

    groups = group_nodes(violation)
    row = consolidator.build_row(groups[0])

    assert len(groups) == 1
    assert groups[0].total_count == 7
    assert len(row.examples) == 3
    assert row.remaining == 4
    assert row.remaining_label == "+ 4 more similar elements"


@pytest.mark.parametrize("count", [4, 10, 250])
def test_large_groups_show_three_examples(consolidator, count):
    row = consolidator.build_row(group_nodes(make_violation(nodes=make_nodes(count)))[0])

    assert len(row.examples) == 3
    assert row.remaining == count - 3


def test_small_group_has_no_remainder(consolidator):
    row = consolidator.build_row(group_nodes(make_violation(nodes=make_nodes(2)))[0])

    assert len(row.examples) == 2
    assert row.remaining_label == ""


def test_grouping_is_idempotent():
    nodes = make_nodes(4) + make_nodes(2, summary="Fix all of the following:\n  Contrast too low", prefix="p")
    violation = make_violation(nodes=nodes[::2] + nodes[1::2])

    first = group_nodes(violation)
    second = group_nodes(violation, flatten_groups(first))

    assert second == first
    assert [g.total_count for g in first] == [4, 2]


def test_groups_keep_first_appearance_order():
    contrast = ViolationNode("p", "<p>x</p>", "Fix contrast")
    alt = ViolationNode("img", "<img>", "Add alt text")
    violation = make_violation(nodes=[contrast, alt, contrast])

    assert [g.remediation_key for g in group_nodes(violation)] == ["Fix contrast", "Add alt text"]


def test_remediation_key_falls_back_to_help_then_rule_id():
    bare = ViolationNode("img", "<img>")

    assert remediation_key(bare, make_violation(nodes=[bare], help="Images must have alt text")) \
        == "Images must have alt text"
    assert remediation_key(bare, make_violation(nodes=[bare])) == "image-alt"


def test_single_node_row_keeps_full_markup(consolidator):
    long_markup = "<div>" + "a" * 300 + "</div>"
    row = consolidator.build_row(group_nodes(make_violation(nodes=[ViolationNode("div", long_markup)]))[0])

    assert row.count == 1
    assert row.examples[0].markup == long_markup
    assert not row.examples[0].truncated


def test_group_examples_truncate_markup(consolidator):
    nodes = [ViolationNode(f"div:nth-child({i})", "<div>" + "b" * 200 + "</div>", "Same fix") for i in range(3)]

    row = consolidator.build_row(group_nodes(make_violation(nodes=nodes))[0])

    assert all(example.truncated for example in row.examples)
    assert all(len(example.markup) == 103 for example in row.examples)
    assert row.examples[0].markup.endswith("...")


def test_normalize_markup_collapses_formatting_whitespace():
    markup = "<ul>\n    <li>First   item</li>\n    <li>Second</li>\n</ul>\n"

    assert normalize_markup(markup) == "<ul><li>First item</li><li>Second</li></ul>"
    assert normalize_markup("") == ""


def test_normalize_markup_keeps_space_between_inline_elements():
    assert normalize_markup("<p><b>Hello</b> <i>world</i></p>") == "<p><b>Hello</b> <i>world</i></p>"
    assert normalize_markup("<a href='/'>\n  <span>Home</span>\n  <span>page</span>\n</a>") == (
        "<a href='/'> <span>Home</span> <span>page</span> </a>"
    )
    assert normalize_markup("<div>\n  <span>Text</span>\n</div>") == "<div><span>Text</span></div>"


def test_split_remediation_heading_and_items():
    text = split_remediation(ALT_TEXT_SUMMARY)

    assert text.heading == "Fix any of the following:"
    assert text.items == ("Element does not have an alt attribute",)


def test_evidence_goes_to_its_section_and_orphans_are_dropped(consolidator):
    evidence = [
        EvidenceRecord(1, 0, Impact.SERIOUS, "screenshots/001/violation-2-node-1.png", "#label"),
        EvidenceRecord(9, 0, Impact.MINOR, "screenshots/001/violation-10-node-1.png", "#ghost"),
    ]
    outcome = make_outcome(
        violations=[make_violation(), make_violation("label", Impact.SERIOUS)],
        evidence=evidence,
    )

    document = consolidator.consolidate(outcome)

    assert document.sections[0].gallery == []
    assert [item.element_selector for item in document.sections[1].gallery] == ["#label"]
    assert document.dropped_evidence == 1
    assert document.evidence_count == 1
    with pytest.raises(EvidenceAnchorNotFound):
        document.section_for(9)


def test_consolidate_does_not_touch_outcome(consolidator):
    outcome = make_outcome(violations=[make_violation(nodes=make_nodes(5))], passes=3)
    before = outcome.to_dict()

    consolidator.consolidate(outcome)

    assert outcome.to_dict() == before


def test_failed_outcome_renders_error(consolidator):
    document = consolidator.consolidate(make_failed_outcome(message="Navigation to page timed out"))

    html = render_html(document)

    assert document.sections == []
    assert "Navigation to page timed out" in html


def test_rendered_report_structure(consolidator):
    evidence = [EvidenceRecord(0, 0, Impact.CRITICAL, "screenshots/001/violation-1-node-1.png", "img:nth-child(1)")]
    outcome = make_outcome(violations=[make_violation(nodes=make_nodes(7))], passes=2, incomplete=1,
                           evidence=evidence)

    html = render_html(consolidator.consolidate(outcome, wcag_tags=["wcag2a", "custom-tag"]))

    assert 'id="violation-1"' in html
    assert "Multiple similar violations (7 elements)" in html
    assert "+ 4 more similar elements" in html
    assert html.count("<strong>Location:</strong>") == 3
    assert 'src="screenshots/001/violation-1-node-1.png"' in html
    assert "badge-critical" in html
    assert "WCAG 2.0 Level A - Basic accessibility requirements" in html
    assert "Accessibility rule set" in html
    # The gallery follows the violation table
    assert html.index("</table>") < html.index("violation-1-node-1.png")


def test_markup_is_escaped(consolidator):
    node = ViolationNode("#x", '<a href="#" onclick="alert(1)">link</a>')

    html = render_html(consolidator.consolidate(make_outcome(violations=[make_violation(nodes=[node])])))

    assert "&lt;a href=" in html
    assert 'onclick="alert(1)"' not in html


def test_from_config_uses_report_settings():
    consolidator = ReportConsolidator.from_config()

    assert consolidator.max_examples == 3
    assert consolidator.markup_limit == 100
