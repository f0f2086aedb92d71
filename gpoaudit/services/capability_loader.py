"""Capability loader - make sure named modules are active before use.

A capability is anything a host can report as active and can try to activate:
a Python module in ``sys.modules`` or a PowerShell module imported into a
``PowerShellSession``. The registry the host checks against is handed to it
by reference, so the loader never consults global state directly.
"""

import importlib
import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, MutableMapping, Optional, Protocol

from gpoaudit.errors import CapabilityLoadError, ConfigurationError

logger = logging.getLogger(__name__)


class LoadStatus(Enum):
    """Per-name result of ensure_loaded."""
    ALREADY_ACTIVE = "AlreadyActive"
    LOADED = "Loaded"
    FAILED = "Failed"


@dataclass(frozen=True)
class LoadOutcome:
    name: str
    status: LoadStatus
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not LoadStatus.FAILED


class CapabilityHost(Protocol):
    """Something that knows which capabilities are active and can activate more."""

    def is_active(self, name: str) -> bool:
        ...

    def activate(self, name: str) -> None:
        """Activate ``name``. Raises on failure."""
        ...


class PythonModuleHost:
    """Capability host backed by a module registry (``sys.modules`` by default)."""

    def __init__(self, modules: Optional[MutableMapping] = None):
        self._modules = sys.modules if modules is None else modules

    def is_active(self, name: str) -> bool:
        return name in self._modules

    def activate(self, name: str) -> None:
        self._modules[name] = importlib.import_module(name)


class CapabilityLoader:
    """Ensure a set of capabilities is active on a host.

    Usage:
        loader = CapabilityLoader(PythonModuleHost())
        outcomes = loader.ensure_loaded(["csv", "PySide6.QtWidgets"])
        if not outcomes["PySide6.QtWidgets"].ok:
            ...
    """

    def __init__(self, host: CapabilityHost, reporter=None):
        """
        Args:
            host: Capability host holding the registry to check and extend.
            reporter: Optional callable receiving each LoadOutcome as it is
                decided (the CLI uses it for colored status lines).
        """
        self.host = host
        self.reporter = reporter

    def ensure_loaded(self, names: Iterable[str]) -> Dict[str, LoadOutcome]:
        """Check each name and activate the ones that are not active yet.

        One attempt per name; a failure is reported for that name only and
        the remaining names are still processed.

        Returns:
            Dict of name -> LoadOutcome, in the order the names were given.

        Raises:
            ConfigurationError: If ``names`` is empty.
        """
        unique = list(dict.fromkeys(n for n in names if n))
        if not unique:
            raise ConfigurationError("At least one capability name is required")

        outcomes: Dict[str, LoadOutcome] = {}
        for name in unique:
            outcome = self._ensure_one(name)
            outcomes[name] = outcome
            if self.reporter is not None:
                self.reporter(outcome)
        return outcomes

    def _ensure_one(self, name: str) -> LoadOutcome:
        if self.host.is_active(name):
            logger.info("Module '%s' is already loaded", name)
            return LoadOutcome(name, LoadStatus.ALREADY_ACTIVE)

        try:
            self.host.activate(name)
        except Exception as e:
            err = e if isinstance(e, CapabilityLoadError) else CapabilityLoadError(name, str(e))
            logger.error("%s", err)
            return LoadOutcome(name, LoadStatus.FAILED, err.reason)

        logger.info("Module '%s' imported", name)
        return LoadOutcome(name, LoadStatus.LOADED)
