"""Command line entry point for gpoaudit."""

import argparse
import logging
import sys
from typing import List, Optional

import colorama

from gpoaudit.config import BACKENDS, AuditSettings, ModuleSettings, default_domain
from gpoaudit.errors import ConfigurationError
from gpoaudit.services.capability_loader import CapabilityLoader, PythonModuleHost
from gpoaudit.services.directory_source import create_source
from gpoaudit.services.gpo_auditor import GpoAuditor
from gpoaudit.services.report_export import CsvExportSink
from gpoaudit.ui.console import ConsoleLoadReporter, ConsoleRecordPrinter, ConsoleTableRenderer
from gpoaudit.utils.powershell import DEFAULT_TIMEOUT, PowerShellModuleHost, PowerShellSession

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s: %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpoaudit",
        description="Report unused, unlinked and link-disabled Group Policy Objects.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    audit = sub.add_parser("audit", help="Audit GPO links in a domain")
    audit.add_argument("--domain", default=default_domain(),
                       help="Domain to query (default: %%USERDNSDOMAIN%%)")
    audit.add_argument("--filter", dest="name_filter",
                       help="Case-insensitive part of the GPO display name")
    audit.add_argument("--all", dest="include_all", action="store_true",
                       help="Audit every GPO in the domain")
    audit.add_argument("--export", action="store_true",
                       help="Write the results to a timestamped CSV file")
    audit.add_argument("--export-dir", default=None,
                       help="Directory for the export file (default: $GPOAUDIT_EXPORT_DIR or .)")
    audit.add_argument("--backend", choices=BACKENDS, default="powershell",
                       help="Directory access method")
    audit.add_argument("--grid", action="store_true",
                       help="Show the summary in a window instead of the console")
    audit.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT,
                       help="PowerShell command timeout in seconds")

    modules = sub.add_parser("modules", help="Make sure modules are loaded")
    modules.add_argument("names", nargs="+", help="Module names")
    modules.add_argument("--python", action="store_true",
                         help="Treat names as Python modules instead of PowerShell modules")
    return parser


def _settings_from_args(args: argparse.Namespace) -> AuditSettings:
    settings = AuditSettings(
        domain=args.domain,
        name_filter=args.name_filter,
        include_all=args.include_all,
        export=args.export,
        backend=args.backend,
        timeout=args.timeout,
        grid=args.grid,
    )
    if args.export_dir:
        settings.export_dir = args.export_dir
    return settings


def _summary_renderer(settings: AuditSettings):
    if not settings.grid:
        return ConsoleTableRenderer()
    outcome = CapabilityLoader(PythonModuleHost(), reporter=ConsoleLoadReporter()).ensure_loaded(["PySide6.QtWidgets"])
    if not outcome["PySide6.QtWidgets"].ok:
        logger.warning("Grid view unavailable, printing the summary instead")
        return ConsoleTableRenderer()
    from gpoaudit.ui.grid_view import GridViewRenderer
    return GridViewRenderer()


def run_audit(settings: AuditSettings) -> int:
    settings.validate()
    session = PowerShellSession(settings.powershell, timeout=settings.timeout)
    source = create_source(settings.backend, session)
    auditor = GpoAuditor(source, observers=[ConsoleRecordPrinter()], load_reporter=ConsoleLoadReporter())

    sink = CsvExportSink(settings.export_dir) if settings.export else None
    renderer = None if sink else _summary_renderer(settings)
    records = auditor.audit(
        settings.domain,
        name_filter=settings.name_filter,
        include_all=settings.include_all,
        export_sink=sink,
        renderer=renderer,
    )
    if sink is not None and sink.last_path is not None:
        print(f"Exported {len(records)} GPO(s) to {sink.last_path}")
    return EXIT_FAILURE if auditor.errors else EXIT_OK


def run_modules(settings: ModuleSettings) -> int:
    settings.validate()
    if settings.python:
        host = PythonModuleHost()
    else:
        host = PowerShellModuleHost(PowerShellSession(settings.powershell))
    loader = CapabilityLoader(host, reporter=ConsoleLoadReporter())
    outcomes = loader.ensure_loaded(settings.names)
    return EXIT_OK if all(o.ok for o in outcomes.values()) else EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, configure logging and dispatch to a subcommand."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    colorama.just_fix_windows_console()

    try:
        if args.command == "audit":
            return run_audit(_settings_from_args(args))
        return run_modules(ModuleSettings(names=args.names, python=args.python))
    except ConfigurationError as e:
        logger.error("%s", e)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
