"""Exception hierarchy for axebatch."""


class AxeBatchError(Exception):
    """Root of every error raised by axebatch."""


class AuditError(AxeBatchError):
    """A single URL audit failed; recorded on the outcome, never fatal for the run."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
        self.message = message


class NavigationError(AuditError):
    pass


class RuleEngineError(AuditError):
    pass


class SessionError(AxeBatchError):
    """The shared browser session could not be established."""


class ExportError(AxeBatchError):
    """A formatter received input it cannot render."""


class EvidenceAnchorNotFound(AxeBatchError):
    def __init__(self, violation_index: int):
        super().__init__(f"No section for violation index {violation_index}")
        self.violation_index = violation_index


class RunNotFound(AxeBatchError, KeyError):
    def __init__(self, run_id: str):
        super().__init__(f"Unknown run id: {run_id}")
        self.run_id = run_id

    def __str__(self):
        return self.args[0]
