import io
from unittest.mock import MagicMock

import pytest
from PIL import Image
from selenium.common.exceptions import NoSuchElementException, WebDriverException

from axebatch.audit.driver import BrowserSession, Rect
from axebatch.errors import SessionError

from factories import png_bytes


def make_driver(box=None, ratio=1):
    driver = MagicMock()
    driver.current_window_handle = "home"

    def execute_script(script, *args):
        if "devicePixelRatio" in script:
            return ratio
        if "getBoundingClientRect" in script:
            return box
        return None

    driver.execute_script.side_effect = execute_script
    return driver


def test_open_page_uses_new_tab_and_closes_back_to_home():
    driver = make_driver()
    session = BrowserSession(driver)

    page = session.open_page()
    page.close()
    page.close()

    driver.switch_to.new_window.assert_called_once_with("tab")
    assert driver.close.call_count == 1
    driver.switch_to.window.assert_called_with("home")


def test_navigate_sets_timeout():
    driver = make_driver()
    page = BrowserSession(driver).open_page()

    page.navigate("https://example.com/", timeout=12)

    driver.set_page_load_timeout.assert_called_with(12)
    driver.get.assert_called_once_with("https://example.com/")


def test_locate_returns_none_when_missing():
    driver = make_driver()
    driver.find_element.side_effect = NoSuchElementException("nope")

    assert BrowserSession(driver).open_page().locate("#missing") is None


def test_bounding_box():
    page = BrowserSession(make_driver(box={"x": 10, "y": 20, "width": 30, "height": 40})).open_page()

    assert page.bounding_box(object()) == Rect(10.0, 20.0, 30.0, 40.0)

    empty = BrowserSession(make_driver(box={"x": 10, "y": 20, "width": 0, "height": 40})).open_page()
    assert empty.bounding_box(object()) is None


def test_screenshot_crops_in_css_pixels():
    driver = make_driver(ratio=2)
    driver.get_screenshot_as_png.return_value = png_bytes(200, 100)
    page = BrowserSession(driver).open_page()

    with Image.open(io.BytesIO(page.screenshot(Rect(10, 10, 20, 10)))) as image:
        assert image.size == (20, 10)

    with pytest.raises(ValueError):
        page.screenshot(Rect(500, 500, 10, 10))


def test_session_close_is_idempotent_and_quiet():
    driver = make_driver()
    driver.quit.side_effect = WebDriverException("already gone")
    session = BrowserSession(driver)

    session.close()
    session.close()

    assert driver.quit.call_count == 1


def test_open_wraps_driver_start_failures(monkeypatch):
    def fail(headless, timeout):
        raise WebDriverException("chromedriver missing")

    monkeypatch.setattr(BrowserSession, "_create_driver", staticmethod(fail))

    with pytest.raises(SessionError):
        BrowserSession.open()
