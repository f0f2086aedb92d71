"""GPO link auditor - classify every GPO of a domain as keep/delete candidate."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from gpoaudit.errors import (
    ConfigurationError,
    ExportError,
    GpoAuditError,
    RetrievalError,
)
from gpoaudit.services.capability_loader import CapabilityLoader, PythonModuleHost
from gpoaudit.services.directory_source import DirectorySource, create_source
from gpoaudit.utils.gpo_report import LinkReport, PolicyObject

logger = logging.getLogger(__name__)


class PolicyStatus(Enum):
    STILL_USED = "StillUsed"
    UNUSED_UNLINKED = "UnusedUnlinked"
    DISABLED = "Disabled"


class PolicyAction(Enum):
    KEEP = "Keep"
    DELETE = "Delete"
    POTENTIALLY_DELETE = "PotentiallyDelete"


@dataclass(frozen=True)
class PolicyRecord:
    """Audit result for one GPO."""
    domain: str
    name: str
    status: PolicyStatus
    action: PolicyAction
    link_paths: Tuple[str, ...] = ()
    policy_id: str = ""


RecordObserver = Callable[[PolicyRecord], None]


def classify(report: LinkReport) -> Tuple[PolicyStatus, PolicyAction]:
    """Map a link report to (status, action).

    Only the first link decides whether a linked GPO counts as enabled;
    mixed enabled/disabled links are not reported separately.
    """
    primary = report.primary
    if primary is None:
        return PolicyStatus.UNUSED_UNLINKED, PolicyAction.DELETE
    if primary.enabled:
        return PolicyStatus.STILL_USED, PolicyAction.KEEP
    return PolicyStatus.DISABLED, PolicyAction.POTENTIALLY_DELETE


def build_record(domain: str, policy: PolicyObject, report: LinkReport) -> PolicyRecord:
    status, action = classify(report)
    return PolicyRecord(
        domain=domain,
        name=policy.display_name,
        status=status,
        action=action,
        link_paths=report.paths,
        policy_id=policy.id,
    )


def filter_policies(policies: Sequence[PolicyObject], name_filter: str) -> List[PolicyObject]:
    """Keep policies whose display name contains ``name_filter`` (case-insensitive)."""
    needle = name_filter.casefold()
    return [p for p in policies if needle in p.display_name.casefold()]


def validate_request(domain: str, name_filter: Optional[str], include_all: bool) -> None:
    """Raise ConfigurationError unless exactly one of include_all / name_filter is set."""
    if not domain or not domain.strip():
        raise ConfigurationError("A domain is required")
    has_filter = bool(name_filter and name_filter.strip())
    if include_all and has_filter:
        raise ConfigurationError("Use either a name filter or include-all, not both")
    if not include_all and not has_filter:
        raise ConfigurationError("A name filter is required unless include-all is set")


class GpoAuditor:
    """Audit the links of a domain's GPOs.

    Records are produced one at a time and handed to every observer as soon
    as they are built (streaming console output), while audit() accumulates
    them into the returned list.

    Usage:
        auditor = GpoAuditor(PowerShellDirectorySource(), observers=[printer])
        records = auditor.audit("contoso.com", name_filter="finance")
    """

    def __init__(
        self,
        source: DirectorySource,
        observers: Optional[List[RecordObserver]] = None,
        load_reporter=None,
    ):
        """
        Args:
            source: Directory source to list GPOs and fetch link reports from.
            observers: Callables receiving each record as soon as it is built.
            load_reporter: Optional callable receiving each capability
                LoadOutcome (source and export capabilities).
        """
        self.source = source
        self.observers: List[RecordObserver] = list(observers or [])
        self.load_reporter = load_reporter
        self.warnings: List[str] = []
        self.errors: List[GpoAuditError] = []

    def _ensure_source_capabilities(self) -> None:
        names = list(self.source.required_capabilities)
        if not names:
            return
        outcomes = CapabilityLoader(self.source.capability_host, reporter=self.load_reporter).ensure_loaded(names)
        failed = [o.name for o in outcomes.values() if not o.ok]
        if failed:
            # Not fatal here: listing fails on its own if they were needed.
            logger.warning("Continuing without: %s", ", ".join(failed))

    def _select(self, domain: str, name_filter: Optional[str], include_all: bool) -> List[PolicyObject]:
        policies = self.source.list_policy_objects(domain)
        if include_all:
            return list(policies)
        return filter_policies(policies, name_filter)

    def iter_records(self, domain: str, policies: Sequence[PolicyObject]) -> Iterator[PolicyRecord]:
        """Yield one record per policy whose link report could be fetched."""
        for policy in policies:
            try:
                report = self.source.get_link_report(policy.id, domain)
            except Exception as e:
                message = f"Skipping '{policy.display_name}' ({policy.id}): {e}"
                logger.warning("%s", message)
                self.warnings.append(message)
                continue
            yield build_record(domain, policy, report)

    def _notify(self, record: PolicyRecord) -> None:
        for observer in self.observers:
            try:
                observer(record)
            except Exception as e:
                message = f"Observer failed on '{record.name}' ({record.policy_id}): {e}"
                logger.warning("%s", message)
                self.warnings.append(message)

    def audit(
        self,
        domain: str,
        name_filter: Optional[str] = None,
        include_all: bool = False,
        export_sink=None,
        renderer=None,
    ) -> List[PolicyRecord]:
        """Run the audit.

        Args:
            domain: Domain to query.
            name_filter: Case-insensitive substring of the GPO display name.
            include_all: Audit every GPO instead of filtering by name.
            export_sink: Optional sink with ``required_capabilities`` and
                ``write(records, domain)``. When given, the records are
                written there instead of being rendered.
            renderer: Optional object with ``render(records)`` used when no
                sink is given.

        Returns:
            Records in retrieval order. Empty on retrieval failure or when
            nothing matches.

        Raises:
            ConfigurationError: Invalid parameters. No directory access is made.
        """
        validate_request(domain, name_filter, include_all)
        self.warnings = []
        self.errors = []

        self._ensure_source_capabilities()

        try:
            policies = self._select(domain, name_filter, include_all)
        except RetrievalError as e:
            logger.error("%s", e)
            self.errors.append(e)
            return []

        if not policies:
            if include_all:
                logger.warning("No GPOs found in %s", domain)
            else:
                logger.warning("No GPOs in %s match '%s'", domain, name_filter)
            return []

        logger.info("Auditing %d GPO(s) in %s", len(policies), domain)
        records: List[PolicyRecord] = []
        for record in self.iter_records(domain, policies):
            self._notify(record)
            records.append(record)

        if export_sink is not None:
            self._export(export_sink, records, domain)
        elif renderer:
            renderer.render(records)
        return records

    def _export(self, sink, records: List[PolicyRecord], domain: str) -> None:
        names = list(getattr(sink, "required_capabilities", ()))
        if names:
            outcomes = CapabilityLoader(PythonModuleHost(), reporter=self.load_reporter).ensure_loaded(names)
            failed = [o for o in outcomes.values() if not o.ok]
            if failed:
                err = ExportError(
                    "Export unavailable: " + "; ".join(f"{o.name}: {o.reason}" for o in failed)
                )
                logger.error("%s", err)
                self.errors.append(err)
                return

        try:
            destination = sink.write(records, domain)
        except ExportError as e:
            logger.error("%s", e)
            self.errors.append(e)
            return
        except OSError as e:
            err = ExportError(f"Failed to write export: {e}")
            logger.error("%s", err)
            self.errors.append(err)
            return
        logger.info("Exported %d record(s) to %s", len(records), destination)


def audit_policies(
    domain: str,
    name_filter: Optional[str] = None,
    include_all: bool = False,
    export_sink=None,
    source: Optional[DirectorySource] = None,
    renderer=None,
    observers: Optional[List[RecordObserver]] = None,
) -> List[PolicyRecord]:
    """Audit with a fresh GpoAuditor (PowerShell source by default).

    Without explicit ``observers`` each record is printed as it is built,
    and without ``renderer`` the summary goes to the console as a table.
    Pass ``observers=[]`` or ``renderer=False`` to silence either.
    """
    validate_request(domain, name_filter, include_all)
    from gpoaudit.ui.console import ConsoleLoadReporter, ConsoleRecordPrinter, ConsoleTableRenderer

    if observers is None:
        observers = [ConsoleRecordPrinter()]
    if renderer is None:
        renderer = ConsoleTableRenderer()
    auditor = GpoAuditor(
        source or create_source("powershell"),
        observers=observers,
        load_reporter=ConsoleLoadReporter(),
    )
    return auditor.audit(
        domain,
        name_filter=name_filter,
        include_all=include_all,
        export_sink=export_sink,
        renderer=renderer,
    )
