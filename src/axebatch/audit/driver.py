# src/axebatch/audit/driver.py
"""
Selenium browser session shared by every URL of a run.

One ``BrowserSession`` owns one Chrome WebDriver. Each URL audit gets its own
``BrowserPage`` (a browser tab) which must be closed before the next URL.
"""

import io
import tempfile
from dataclasses import dataclass
from typing import Optional

from PIL import Image
from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import NavigationError, SessionError
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger

config_manager = get_config_manager()
logger = get_logger("run_coordinator", config_manager.get_logging_config()["components"]["run_coordinator"])


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def expand(self, padding: float) -> "Rect":
        """Grow by ``padding`` on every side, clamped to non-negative coordinates."""
        x = max(0.0, self.x - padding)
        y = max(0.0, self.y - padding)
        return Rect(x, y, self.right + padding - x, self.bottom + padding - y)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type((TimeoutException, WebDriverException))
)
def robust_driver_get(driver, url):
    """Load page with driver.get(url) with retry for errors."""
    driver.get(url)


class BrowserPage:
    """An isolated tab on the session's driver."""

    def __init__(self, session: "BrowserSession", handle: str):
        self.session = session
        self.driver = session.driver
        self.handle = handle
        self.closed = False

    def navigate(self, url: str, timeout: Optional[float] = None) -> None:
        if timeout:
            self.driver.set_page_load_timeout(timeout)
        try:
            robust_driver_get(self.driver, url)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise NavigationError(url, f"Navigation to {url} failed: {cause}") from cause
        except WebDriverException as e:
            raise NavigationError(url, f"Navigation to {url} failed: {e}") from e

    def locate(self, selector: str) -> Optional[WebElement]:
        try:
            return self.driver.find_element(By.CSS_SELECTOR, selector)
        except NoSuchElementException:
            return None

    def is_visible(self, element: WebElement) -> bool:
        return element.is_displayed()

    def scroll_into_view(self, element: WebElement) -> None:
        self.driver.execute_script(
            "arguments[0].scrollIntoView({block: 'center', inline: 'center'});", element
        )

    def bounding_box(self, element: WebElement) -> Optional[Rect]:
        """Viewport-relative box in CSS pixels, or None for zero-sized elements."""
        box = self.driver.execute_script(
            "const r = arguments[0].getBoundingClientRect();"
            "return {x: r.left, y: r.top, width: r.width, height: r.height};",
            element,
        )
        if not box or box["width"] <= 0 or box["height"] <= 0:
            return None
        return Rect(float(box["x"]), float(box["y"]), float(box["width"]), float(box["height"]))

    def screenshot(self, region: Rect) -> bytes:
        """PNG of the viewport cropped to ``region`` (CSS pixels)."""
        png = self.driver.get_screenshot_as_png()
        ratio = float(self.driver.execute_script("return window.devicePixelRatio || 1;") or 1)
        with Image.open(io.BytesIO(png)) as image:
            left = min(int(region.x * ratio), image.width)
            top = min(int(region.y * ratio), image.height)
            right = min(int(region.right * ratio), image.width)
            bottom = min(int(region.bottom * ratio), image.height)
            if right <= left or bottom <= top:
                raise ValueError(f"Region {region} is outside the viewport")
            cropped = image.crop((left, top, right, bottom))
            if ratio != 1:
                cropped = cropped.resize(
                    (max(1, round(cropped.width / ratio)), max(1, round(cropped.height / ratio)))
                )
            buffer = io.BytesIO()
            cropped.save(buffer, format="PNG")
        return buffer.getvalue()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.driver.switch_to.window(self.handle)
            self.driver.close()
            self.driver.switch_to.window(self.session.home_handle)
        except WebDriverException as e:
            logger.warning(f"Error closing page {self.handle}: {e}")


class BrowserSession:
    def __init__(self, driver, headless: bool = True):
        self.driver = driver
        self.headless = headless
        self.home_handle = driver.current_window_handle
        self.closed = False

    @staticmethod
    def _create_driver(headless: bool, page_load_timeout: float) -> webdriver.Chrome:
        """Create a Chrome WebDriver with optimized options."""
        options = ChromeOptions()
        if headless:
            options.add_argument("--headless")
        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--incognito")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--window-size=1366,900")

        temp_profile = tempfile.mkdtemp(prefix="axebatch_profile_")
        options.add_argument(f"--user-data-dir={temp_profile}")

        driver = webdriver.Chrome(options=options)
        driver.implicitly_wait(5)
        driver.set_page_load_timeout(page_load_timeout)
        return driver

    @classmethod
    def open(cls, headless: bool = True, page_load_timeout: float = 30) -> "BrowserSession":
        try:
            driver = cls._create_driver(headless, page_load_timeout)
        except WebDriverException as e:
            raise SessionError(f"Could not start Chrome: {e}") from e
        logger.info(f"Browser session started (headless={headless})")
        return cls(driver, headless=headless)

    def open_page(self) -> BrowserPage:
        self.driver.switch_to.new_window("tab")
        return BrowserPage(self, self.driver.current_window_handle)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.driver.quit()
            logger.info("Browser session closed")
        except Exception as e:
            logger.warning(f"Error closing browser session: {e}")
