# src/axebatch/audit/evidence.py
"""
Highlighted screenshot evidence for violation nodes.

For each node the element is located, scrolled into view and cropped with a
padding margin. The element's own bounds are then painted with a translucent
rectangle in the impact color and labelled with the impact name.
"""

import io
import time
from pathlib import Path
from typing import Iterable, List, Optional, Union

from PIL import Image, ImageDraw, ImageFont

from ..models import EvidenceRecord, Impact, Violation, ViolationNode
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger
from .driver import Rect

config_manager = get_config_manager()
logger = get_logger("evidence", config_manager.get_logging_config()["components"]["evidence"])

OVERLAY_ALPHA = 0.3
OVERLAY_STROKE = 3


def evidence_filename(violation_index: int, node_index: int) -> str:
    return f"violation-{violation_index + 1}-node-{node_index + 1}.png"


def draw_highlight(png: bytes, highlight: Rect, impact: Impact) -> bytes:
    """
    Paint ``highlight`` (coordinates inside the image) with the impact color.

    Returns the composited image as PNG bytes.
    """
    style = impact.style
    with Image.open(io.BytesIO(png)) as source:
        base = source.convert("RGBA")

    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    box = (
        int(highlight.x),
        int(highlight.y),
        int(highlight.right),
        int(highlight.bottom),
    )
    draw.rectangle(
        box,
        fill=style.rgb + (int(255 * OVERLAY_ALPHA),),
        outline=style.rgb + (255,),
        width=OVERLAY_STROKE,
    )

    label = impact.value.upper()
    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    text_height = bottom - top
    # Label sits just above the element, or inside it when there is no room
    text_y = highlight.y - 5 - text_height
    if text_y < 0:
        text_y = highlight.y + 5
    draw.text((highlight.x + 5, text_y), label, fill=style.rgb + (255,), font=font)

    composited = Image.alpha_composite(base, overlay)
    buffer = io.BytesIO()
    composited.save(buffer, format="PNG")
    return buffer.getvalue()


class EvidenceCapturer:
    """Captures evidence for the nodes of one outcome into one directory."""

    def __init__(
        self,
        page,
        output_dir: Union[str, Path],
        ref_root: Union[str, Path],
        padding: int = 20,
        settle_delay: float = 0.5,
    ):
        self.page = page
        self.output_dir = Path(output_dir)
        self.ref_root = Path(ref_root)
        self.padding = padding
        self.settle_delay = settle_delay
        self.logger = logger

    def capture(
        self,
        node: ViolationNode,
        impact: Impact,
        violation_index: int = 0,
        node_index: int = 0,
    ) -> Optional[EvidenceRecord]:
        selector = node.target_selector
        try:
            element = self.page.locate(selector)
            if element is None or not self.page.is_visible(element):
                self.logger.debug(f"Element not visible, skipping evidence: {selector}")
                return None

            self.page.scroll_into_view(element)
            if self.settle_delay:
                time.sleep(self.settle_delay)

            bounds = self.page.bounding_box(element)
            if bounds is None:
                self.logger.debug(f"Element has no bounding box: {selector}")
                return None

            region = bounds.expand(self.padding)
            raw = self.page.screenshot(region)
            highlight = Rect(bounds.x - region.x, bounds.y - region.y, bounds.width, bounds.height)
            image = draw_highlight(raw, highlight, impact)

            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / evidence_filename(violation_index, node_index)
            path.write_bytes(image)
        except Exception as e:
            self.logger.warning(f"Evidence capture failed for {selector}: {e}")
            return None

        return EvidenceRecord(
            violation_index=violation_index,
            node_index=node_index,
            impact=impact,
            image_ref=path.relative_to(self.ref_root).as_posix(),
            element_selector=selector,
        )

    def capture_violations(
        self,
        violations: Iterable[Violation],
        max_per_violation: Optional[int] = None,
    ) -> List[EvidenceRecord]:
        records = []
        for v_index, violation in enumerate(violations):
            taken = 0
            for n_index, node in enumerate(violation.nodes):
                if max_per_violation is not None and taken >= max_per_violation:
                    break
                record = self.capture(node, violation.impact, v_index, n_index)
                if record is not None:
                    records.append(record)
                    taken += 1
        self.logger.info(f"Captured {len(records)} evidence screenshots in {self.output_dir}")
        return records
