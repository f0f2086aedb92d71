"""Runtime settings for the gpoaudit command line."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from gpoaudit.errors import ConfigurationError
from gpoaudit.utils.powershell import DEFAULT_TIMEOUT

BACKENDS = ("powershell", "adsi")


def default_domain() -> Optional[str]:
    """DNS domain of the logged-on user, if Windows provides one."""
    return os.environ.get("USERDNSDOMAIN") or None


@dataclass
class AuditSettings:
    domain: Optional[str] = None
    name_filter: Optional[str] = None
    include_all: bool = False
    export: bool = False
    export_dir: str = field(default_factory=lambda: os.environ.get("GPOAUDIT_EXPORT_DIR", "."))
    backend: str = "powershell"
    powershell: str = field(default_factory=lambda: os.environ.get("GPOAUDIT_POWERSHELL", "powershell"))
    timeout: int = DEFAULT_TIMEOUT
    grid: bool = False

    def validate(self) -> None:
        """Raise ConfigurationError on an unusable combination."""
        if not self.domain:
            raise ConfigurationError("No domain given and USERDNSDOMAIN is not set")
        has_filter = bool(self.name_filter and self.name_filter.strip())
        if self.include_all == has_filter:
            raise ConfigurationError("Specify exactly one of --filter or --all")
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"Unknown backend '{self.backend}' (expected one of {', '.join(BACKENDS)})")
        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be a positive number of seconds")
        if self.export and self.grid:
            raise ConfigurationError("--grid has no effect together with --export")


@dataclass
class ModuleSettings:
    names: List[str] = field(default_factory=list)
    python: bool = False
    powershell: str = field(default_factory=lambda: os.environ.get("GPOAUDIT_POWERSHELL", "powershell"))

    def validate(self) -> None:
        if not [n for n in self.names if n.strip()]:
            raise ConfigurationError("At least one module name is required")
