# src/axebatch/audit/registry.py
import datetime
import threading
import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence

from ..errors import RunNotFound
from ..models import RunReport


def new_run_id() -> str:
    stamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"run_{stamp}_{uuid.uuid4().hex[:8]}"


class RunRegistry:
    """
    Owns every ``RunReport`` of the process.

    Readers only ever receive snapshots. The coordinator is the only writer,
    through ``record()`` and ``finalize()``.
    """

    def __init__(self, max_runs: int = 50):
        self.max_runs = max_runs
        self._reports: "OrderedDict[str, RunReport]" = OrderedDict()
        self._cancelled = set()
        self._lock = threading.Lock()

    def create(self, urls: Sequence[str], options: Optional[Dict[str, Any]] = None,
               run_id: Optional[str] = None) -> RunReport:
        urls = list(urls)
        if not urls:
            raise ValueError("A run needs at least one URL")
        report = RunReport(
            run_id=run_id or new_run_id(),
            total_urls=len(urls),
            urls=urls,
            options=dict(options or {}),
        )
        with self._lock:
            if report.run_id in self._reports:
                raise ValueError(f"Run id already registered: {report.run_id}")
            self._reports[report.run_id] = report
            self._evict_overflow()
        return report

    def live(self, run_id: str) -> RunReport:
        with self._lock:
            try:
                return self._reports[run_id]
            except KeyError:
                raise RunNotFound(run_id) from None

    def get(self, run_id: str) -> RunReport:
        with self._lock:
            report = self._reports.get(run_id)
            if report is None:
                raise RunNotFound(run_id)
            return report.snapshot()

    def list_runs(self) -> List[RunReport]:
        with self._lock:
            return [report.snapshot() for report in self._reports.values()]

    def evict(self, run_id: str) -> None:
        with self._lock:
            report = self._reports.get(run_id)
            if report is None:
                raise RunNotFound(run_id)
            if not report.status.is_terminal:
                raise ValueError(f"Run {run_id} is still running")
            del self._reports[run_id]
            self._cancelled.discard(run_id)

    def record(self, run_id: str, outcome) -> None:
        """Append an outcome to a running report."""
        report = self.live(run_id)
        with self._lock:
            report.record(outcome)

    def finalize(self, run_id: str, error_message: Optional[str] = None) -> RunReport:
        report = self.live(run_id)
        with self._lock:
            if not report.status.is_terminal:
                report.finalize(error_message)
            snapshot = report.snapshot()
            self._evict_overflow()
        return snapshot

    def request_cancel(self, run_id: str) -> None:
        with self._lock:
            if run_id not in self._reports:
                raise RunNotFound(run_id)
            self._cancelled.add(run_id)

    def is_cancelled(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._cancelled

    def _evict_overflow(self) -> None:
        # Oldest terminal runs go first; running ones are never evicted
        excess = len(self._reports) - self.max_runs
        if excess <= 0:
            return
        for run_id in [rid for rid, r in self._reports.items() if r.status.is_terminal][:excess]:
            del self._reports[run_id]
            self._cancelled.discard(run_id)

    def __len__(self):
        with self._lock:
            return len(self._reports)

    def __contains__(self, run_id):
        with self._lock:
            return run_id in self._reports
