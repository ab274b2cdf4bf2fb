"""Tests for the evidence overlay and capture pipeline."""

import io

from PIL import Image

from axebatch.audit.driver import Rect
from axebatch.audit.evidence import EvidenceCapturer, draw_highlight, evidence_filename
from axebatch.models import Impact, ViolationNode

from factories import FakeElement, FakeSession, make_nodes, make_violation, png_bytes


def open_png(data):
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert("RGB")


def make_capturer(tmp_path, elements):
    page = FakeSession(elements=elements).open_page()
    capturer = EvidenceCapturer(page, tmp_path / "screenshots" / "001_page", tmp_path, padding=20, settle_delay=0)
    return page, capturer


def test_rect_expand_clamps_to_page_origin():
    expanded = Rect(5, 12, 10, 10).expand(20)

    assert (expanded.x, expanded.y) == (0.0, 0.0)
    assert expanded.right == 35
    assert expanded.bottom == 42


def test_highlight_tints_element_and_keeps_padding():
    image = open_png(draw_highlight(png_bytes(100, 80), Rect(20, 20, 60, 40), Impact.CRITICAL))

    assert image.size == (100, 80)
    r, g, b = image.getpixel((50, 45))
    # Translucent red over white
    assert r > g and r > b
    assert (g, b) != (255, 255)
    assert image.getpixel((1, 78)) == (255, 255, 255)


def test_highlight_color_follows_impact():
    minor = open_png(draw_highlight(png_bytes(100, 80), Rect(20, 20, 60, 40), Impact.MINOR))

    r, g, b = minor.getpixel((50, 45))
    assert g > r and g > b


def test_highlight_label_moves_inside_when_no_room_above():
    # Element touching the top edge still produces a valid image
    image = open_png(draw_highlight(png_bytes(60, 40), Rect(0, 0, 60, 40), Impact.SERIOUS))

    assert image.size == (60, 40)


def test_capture_writes_image_and_returns_record(tmp_path):
    node = ViolationNode("#logo", '<img id="logo">')
    page, capturer = make_capturer(tmp_path, {"#logo": FakeElement(Rect(100, 100, 50, 30))})

    record = capturer.capture(node, Impact.SERIOUS, violation_index=2, node_index=0)

    assert record is not None
    assert record.violation_index == 2
    assert record.impact is Impact.SERIOUS
    assert record.element_selector == "#logo"
    assert record.image_ref == "screenshots/001_page/violation-3-node-1.png"
    saved = open_png((tmp_path / record.image_ref).read_bytes())
    # 20px padding on every side of a 50x30 element
    assert saved.size == (90, 70)
    assert page.scrolled


def test_invisible_element_yields_no_evidence(tmp_path):
    node = ViolationNode("#menu", "<nav></nav>")
    _, capturer = make_capturer(tmp_path, {"#menu": FakeElement(Rect(0, 0, 10, 10), visible=False)})

    assert capturer.capture(node, Impact.MINOR) is None
    assert not (tmp_path / "screenshots").exists()


def test_missing_element_yields_no_evidence(tmp_path):
    _, capturer = make_capturer(tmp_path, {})

    assert capturer.capture(ViolationNode("#gone", ""), Impact.CRITICAL) is None


def test_driver_errors_are_contained(tmp_path):
    page, capturer = make_capturer(tmp_path, {"#logo": FakeElement(Rect(10, 10, 10, 10))})

    def broken_screenshot(region):
        raise RuntimeError("stale element")

    page.screenshot = broken_screenshot

    assert capturer.capture(ViolationNode("#logo", ""), Impact.MODERATE) is None


def test_capture_violations_respects_per_violation_cap(tmp_path):
    nodes = make_nodes(3)
    elements = {node.target_selector: FakeElement(Rect(10 + 20 * i, 10, 15, 15)) for i, node in enumerate(nodes)}
    _, capturer = make_capturer(tmp_path, elements)
    violations = [make_violation(nodes=nodes), make_violation("label", Impact.MINOR, nodes=nodes[:1])]

    records = capturer.capture_violations(violations, max_per_violation=2)

    assert [(r.violation_index, r.node_index) for r in records] == [(0, 0), (0, 1), (1, 0)]
    assert records[2].impact is Impact.MINOR


def test_evidence_filename_is_one_based():
    assert evidence_filename(0, 0) == "violation-1-node-1.png"
    assert evidence_filename(4, 9) == "violation-5-node-10.png"
