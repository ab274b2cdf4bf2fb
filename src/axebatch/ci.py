# src/axebatch/ci.py
"""
CI verdict for a finished run.

A policy failure (too many violated rules on some URL) and an audit error
(a URL or the whole session failed) are reported independently, so a clean
run that breaks the policy can be told apart from a run that broke.
"""

from dataclasses import dataclass, field
from typing import Dict

from .models import RunReport, RunStatus

REASON_PASSED = "passed"
REASON_VIOLATIONS_EXCEEDED = "violations_exceeded"
REASON_AUDIT_ERROR = "audit_error"

EXIT_OK = 0
EXIT_POLICY_FAILED = 1
EXIT_AUDIT_ERROR = 2


@dataclass(frozen=True)
class CiVerdict:
    success: bool
    policy_failed: bool
    errored: bool
    reason: str
    exit_code: int
    violation_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "policyFailed": self.policy_failed,
            "errored": self.errored,
            "reason": self.reason,
            "exitCode": self.exit_code,
            "violationCounts": dict(self.violation_counts),
        }


def evaluate_ci(report: RunReport, max_violations: int = 0, fail_on_violations: bool = True) -> CiVerdict:
    counts = {
        outcome.url: len(outcome.violations)
        for outcome in report.outcomes
        if not outcome.is_failed
    }
    exceeded = any(count > max_violations for count in counts.values())
    policy_failed = exceeded and fail_on_violations
    # Anything short of a fully completed run, cancellations included, is an error
    errored = (
        report.failed_count > 0
        or report.status is not RunStatus.COMPLETED
        or report.error_message is not None
    )

    # Audit errors take precedence in the exit code
    if errored:
        reason, exit_code = REASON_AUDIT_ERROR, EXIT_AUDIT_ERROR
    elif policy_failed:
        reason, exit_code = REASON_VIOLATIONS_EXCEEDED, EXIT_POLICY_FAILED
    else:
        reason, exit_code = REASON_PASSED, EXIT_OK

    return CiVerdict(
        success=not (errored or policy_failed),
        policy_failed=policy_failed,
        errored=errored,
        reason=reason,
        exit_code=exit_code,
        violation_counts=counts,
    )
