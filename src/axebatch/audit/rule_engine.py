# src/axebatch/audit/rule_engine.py
import time
from typing import Any, Dict, Iterable, Optional

from axe_selenium_python import Axe

from ..errors import RuleEngineError
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger

config_manager = get_config_manager()
logger = get_logger("run_coordinator", config_manager.get_logging_config()["components"]["run_coordinator"])


def build_run_options(tags: Iterable[str]) -> Optional[Dict[str, Any]]:
    """axe ``runOnly`` filter for a tag set, or None to run every rule."""
    values = sorted(set(tags))
    if not values:
        return None
    return {"runOnly": {"type": "tag", "values": values}}


class AxeRuleEngine:
    """Runs axe-core in the page currently loaded by a ``BrowserPage``."""

    def __init__(self, attempts: int = 3, retry_delay: float = 5.0):
        self.attempts = attempts
        self.retry_delay = retry_delay

    def evaluate(self, page, tags: Iterable[str]) -> Dict[str, Any]:
        options = build_run_options(tags)
        url = page.driver.current_url
        axe = Axe(page.driver)

        for attempt in range(1, self.attempts + 1):
            try:
                axe.inject()
                results = axe.run(options=options)
                if not isinstance(results, dict):
                    raise TypeError(f"unexpected axe result type {type(results).__name__}")
                return results
            except Exception as e:
                logger.warning(f"Error with axe on {url}, attempt {attempt}: {e}")
                if attempt == self.attempts:
                    raise RuleEngineError(url, f"axe-core failed after {attempt} attempts: {e}") from e
                time.sleep(self.retry_delay)
        raise RuleEngineError(url, "axe-core was not run")
