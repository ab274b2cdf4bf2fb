# src/axebatch/analysis/pdf.py
"""
HTML to PDF rendering through Chrome's print-to-PDF.
"""

import base64
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

from selenium.webdriver.common.print_page_options import PrintOptions

from ..audit.driver import BrowserSession
from ..errors import ExportError
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger

config_manager = get_config_manager()
logger = get_logger("exporters", config_manager.get_logging_config()["components"]["exporters"])


@dataclass(frozen=True)
class PdfLayout:
    """Page geometry in millimetres."""
    page_width: float = 210.0
    page_height: float = 297.0
    margin_vertical: float = 20.0
    margin_horizontal: float = 15.0
    print_background: bool = True
    landscape: bool = False


EXECUTIVE_LAYOUT = PdfLayout(margin_vertical=20.0, margin_horizontal=15.0)
TECHNICAL_LAYOUT = PdfLayout(margin_vertical=15.0, margin_horizontal=10.0)


class PdfRenderer(Protocol):
    def render(self, html: str, layout: PdfLayout, base_dir: Optional[Path] = None) -> bytes:
        ...


def print_options_for(layout: PdfLayout) -> PrintOptions:
    """Selenium print options (centimetres) for a layout."""
    options = PrintOptions()
    options.page_width = layout.page_width / 10
    options.page_height = layout.page_height / 10
    options.margin_top = layout.margin_vertical / 10
    options.margin_bottom = layout.margin_vertical / 10
    options.margin_left = layout.margin_horizontal / 10
    options.margin_right = layout.margin_horizontal / 10
    options.background = layout.print_background
    options.orientation = "landscape" if layout.landscape else "portrait"
    return options


class ChromePdfRenderer:
    """Loads the HTML from a temporary file next to its assets and prints it."""

    def __init__(self, session: Optional[BrowserSession] = None, headless: bool = True):
        self._session = session
        self._owns_session = session is None
        self.headless = headless

    @property
    def session(self) -> BrowserSession:
        if self._session is None:
            self._session = BrowserSession.open(headless=self.headless)
        return self._session

    def render(self, html: str, layout: PdfLayout = EXECUTIVE_LAYOUT, base_dir: Optional[Path] = None) -> bytes:
        # Relative image references resolve against base_dir
        with tempfile.NamedTemporaryFile(
            "w", suffix=".html", dir=base_dir, delete=False, encoding="utf-8"
        ) as handle:
            handle.write(html)
            source = Path(handle.name)
        try:
            driver = self.session.driver
            driver.get(source.resolve().as_uri())
            encoded = driver.print_page(print_options_for(layout))
            return base64.b64decode(encoded)
        finally:
            source.unlink()

    def close(self) -> None:
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None


def write_pdf(renderer: PdfRenderer, html: str, output_path: Union[str, Path],
              layout: PdfLayout = EXECUTIVE_LAYOUT, base_dir: Optional[Path] = None) -> Path:
    output_path = Path(output_path)
    try:
        data = renderer.render(html, layout, base_dir=base_dir)
    except Exception as e:
        raise ExportError(f"PDF rendering failed for {output_path.name}: {e}") from e
    if not data:
        raise ExportError(f"PDF renderer returned no data for {output_path.name}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    logger.info(f"PDF written: {output_path} ({len(data)} bytes)")
    return output_path
