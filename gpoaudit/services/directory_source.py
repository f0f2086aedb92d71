"""Directory sources - list GPOs of a domain and fetch their link reports."""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from gpoaudit.errors import ConfigurationError, ObjectReportError, PowerShellError, RetrievalError
from gpoaudit.services.capability_loader import CapabilityHost, PythonModuleHost
from gpoaudit.utils.gpo_report import (
    LinkReport,
    PolicyObject,
    domain_to_dn,
    links_from_gplinks,
    normalize_guid,
    parse_gpo_report_xml,
)
from gpoaudit.utils.powershell import PowerShellModuleHost, PowerShellSession, quote

logger = logging.getLogger(__name__)


class DirectorySource(Protocol):
    """Read-only view of the GPOs in a domain."""

    capability_host: CapabilityHost
    required_capabilities: Sequence[str]

    def list_policy_objects(self, domain: str) -> List[PolicyObject]:
        """All GPOs of ``domain`` in directory order. Raises RetrievalError."""
        ...

    def get_link_report(self, policy_id: str, domain: str) -> LinkReport:
        """Links of one GPO. Raises ObjectReportError."""
        ...


class PowerShellDirectorySource:
    """GroupPolicy PowerShell module (Get-GPO / Get-GPOReport) via a session."""

    required_capabilities = ("ActiveDirectory", "GroupPolicy")

    def __init__(self, session: Optional[PowerShellSession] = None):
        self.session = session or PowerShellSession()
        self.capability_host = PowerShellModuleHost(self.session)

    def list_policy_objects(self, domain: str) -> List[PolicyObject]:
        script = (
            f"Get-GPO -All -Domain {quote(domain)} | "
            "Select-Object @{Name='Id';Expression={$_.Id.ToString()}}, DisplayName | "
            "ConvertTo-Json -Compress"
        )
        try:
            data = self.session.run_json(script)
        except PowerShellError as e:
            raise RetrievalError(f"Failed to list GPOs in {domain}: {e}")

        if data is None:
            return []
        # ConvertTo-Json emits a bare object for a single result
        rows = data if isinstance(data, list) else [data]
        objects = []
        for row in rows:
            if not isinstance(row, dict) or not row.get("Id"):
                logger.debug("Ignoring malformed Get-GPO row: %r", row)
                continue
            objects.append(PolicyObject(id=str(row["Id"]), display_name=row.get("DisplayName") or ""))
        return objects

    def get_link_report(self, policy_id: str, domain: str) -> LinkReport:
        script = (
            f"Get-GPOReport -Guid {quote(policy_id)} -ReportType Xml -Domain {quote(domain)}"
        )
        try:
            xml_text = self.session.run(script)
            return parse_gpo_report_xml(xml_text)
        except (PowerShellError, ValueError) as e:
            raise ObjectReportError(policy_id, str(e))


class AdsiDirectorySource:
    """LDAP queries through ADSI (ADODB over COM).

    Reads groupPolicyContainer objects under CN=Policies,CN=System and the
    gPLink attribute of every container in the domain naming context. Links
    held by site objects in the configuration partition are not read.
    """

    required_capabilities = ("pythoncom", "win32com.client")

    def __init__(self, page_size: int = 1000):
        self.page_size = page_size
        self.capability_host = PythonModuleHost()
        self._conn = None

    def _connect(self):
        """Open the ADsDSOObject connection once per source."""
        if self._conn is None:
            import pythoncom
            import win32com.client

            pythoncom.CoInitialize()
            conn = win32com.client.Dispatch("ADODB.Connection")
            conn.Provider = "ADsDSOObject"
            conn.Open("Active Directory Provider")
            self._conn = conn
        return self._conn

    def _query(self, base: str, ldap_filter: str, attributes: Sequence[str], scope: str) -> List[Dict[str, Any]]:
        """Execute an ADSI dialect query, return a list of attribute dicts."""
        import win32com.client

        command = win32com.client.Dispatch("ADODB.Command")
        command.ActiveConnection = self._connect()
        command.CommandText = f"<LDAP://{base}>;{ldap_filter};{','.join(attributes)};{scope}"
        command.Properties("Page Size").Value = self.page_size

        rows = []
        recordset, _ = command.Execute()
        while not recordset.EOF:
            rows.append({attr: recordset.Fields.Item(attr).Value for attr in attributes})
            recordset.MoveNext()
        return rows

    def list_policy_objects(self, domain: str) -> List[PolicyObject]:
        base = f"CN=Policies,CN=System,{domain_to_dn(domain)}"
        try:
            rows = self._query(base, "(objectClass=groupPolicyContainer)", ("name", "displayName"), "onelevel")
        except Exception as e:
            raise RetrievalError(f"Failed to list GPOs in {domain}: {e}")
        return [
            PolicyObject(id=normalize_guid(row["name"]), display_name=row.get("displayName") or "")
            for row in rows if row.get("name")
        ]

    def get_link_report(self, policy_id: str, domain: str) -> LinkReport:
        guid = normalize_guid(policy_id)
        try:
            rows = self._query(
                domain_to_dn(domain), f"(gPLink=*{guid}*)", ("distinguishedName", "gPLink"), "subtree"
            )
        except Exception as e:
            raise ObjectReportError(policy_id, str(e))
        containers: List[Tuple[str, str]] = [
            (row["distinguishedName"], row.get("gPLink") or "") for row in rows
        ]
        return links_from_gplinks(containers, guid)


def create_source(backend: str, session: Optional[PowerShellSession] = None) -> DirectorySource:
    """Build a directory source by backend name ('powershell' or 'adsi')."""
    if backend == "powershell":
        return PowerShellDirectorySource(session)
    if backend == "adsi":
        return AdsiDirectorySource()
    raise ConfigurationError(f"Unknown directory backend: {backend}")
