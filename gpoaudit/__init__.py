"""gpoaudit - Group Policy link auditing helpers.

Subpackages:
    services - capability loader, directory sources, auditor, CSV export
    utils    - PowerShell session, GPO link report parsing
    ui       - console output and the PySide6 grid window
"""
from gpoaudit.errors import (
    GpoAuditError,
    ConfigurationError,
    CapabilityLoadError,
    RetrievalError,
    ObjectReportError,
    ExportError,
)
from gpoaudit.services.capability_loader import CapabilityLoader, LoadOutcome, LoadStatus, PythonModuleHost
from gpoaudit.services.gpo_auditor import (
    GpoAuditor,
    PolicyAction,
    PolicyRecord,
    PolicyStatus,
    audit_policies,
    classify,
)

__version__ = "0.1.0"
