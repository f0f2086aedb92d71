"""Exception hierarchy for gpoaudit."""


class GpoAuditError(Exception):
    """Base class for all gpoaudit errors."""


class ConfigurationError(GpoAuditError):
    """Invalid or missing parameters. Raised before any external call."""


class CapabilityLoadError(GpoAuditError):
    """A named capability (module) could not be activated."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Failed to load '{name}': {reason}")
        self.name = name
        self.reason = reason


class RetrievalError(GpoAuditError):
    """The bulk policy listing failed. Aborts the whole audit."""


class ObjectReportError(GpoAuditError):
    """A single policy object's link report could not be fetched or parsed."""

    def __init__(self, policy_id: str, reason: str):
        super().__init__(f"Link report for {policy_id} failed: {reason}")
        self.policy_id = policy_id
        self.reason = reason


class ExportError(GpoAuditError):
    """The tabular export sink could not be written."""


class PowerShellError(GpoAuditError):
    """A PowerShell command exited non-zero or timed out."""

    def __init__(self, message: str, returncode=None):
        super().__init__(message)
        self.returncode = returncode
