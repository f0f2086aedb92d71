"""PowerShell subprocess wrapper with a per-session module registry."""

import json
import logging
import subprocess
from typing import Any, List, Optional

from gpoaudit.errors import CapabilityLoadError, PowerShellError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120

# Child output is decoded as UTF-8, whatever the console code page is.
UTF8_OUTPUT = "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8; "


def quote(value: str) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


class PowerShellSession:
    """Runs PowerShell commands in child processes.

    Every ``powershell`` child starts with a clean module table, so the
    session remembers which modules were imported and re-imports them at the
    top of each command. ``imported_modules`` is the capability registry that
    PowerShellModuleHost reads and extends.
    """

    def __init__(self, executable: str = "powershell", timeout: int = DEFAULT_TIMEOUT):
        self.executable = executable
        self.timeout = timeout
        self.imported_modules: List[str] = []

    def _prelude(self) -> str:
        return UTF8_OUTPUT + "".join(
            f"Import-Module -Name {quote(m)} -ErrorAction Stop; " for m in self.imported_modules
        )

    def run(self, script: str) -> str:
        """Run a script and return its stdout.

        Raises:
            PowerShellError: On non-zero exit, timeout, or missing executable.
        """
        command = self._prelude() + script
        cmd = [self.executable, "-NoProfile", "-NonInteractive", "-Command", command]
        logger.debug("Running PowerShell: %s", command)
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8", errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise PowerShellError(f"Command timed out after {self.timeout}s: {script}")
        except OSError as e:
            raise PowerShellError(f"Cannot start {self.executable}: {e}")

        if result.returncode != 0:
            error_msg = result.stderr.strip() or result.stdout.strip()
            raise PowerShellError(error_msg or f"exit code {result.returncode}", result.returncode)
        return result.stdout

    def run_json(self, script: str) -> Any:
        """Run a script ending in ConvertTo-Json and decode its output.

        Returns None when the command printed nothing.
        """
        output = self.run(script).strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except ValueError as e:
            raise PowerShellError(f"Invalid JSON from PowerShell: {e}")


class PowerShellModuleHost:
    """Capability host for PowerShell modules imported into a session."""

    def __init__(self, session: PowerShellSession):
        self.session = session

    def is_active(self, name: str) -> bool:
        return name in self.session.imported_modules

    def activate(self, name: str) -> None:
        try:
            self.session.run(f"Import-Module -Name {quote(name)} -ErrorAction Stop")
        except PowerShellError as e:
            raise CapabilityLoadError(name, str(e))
        self.session.imported_modules.append(name)
