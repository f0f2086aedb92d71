"""Console output: streaming record lines, module status lines, summary table."""

import sys
from typing import Dict, List, Optional, Sequence, TextIO

from colorama import Fore, Style

from gpoaudit.services.capability_loader import LoadOutcome, LoadStatus
from gpoaudit.services.gpo_auditor import PolicyRecord, PolicyStatus
from gpoaudit.services.report_export import NOT_LINKED

STATUS_COLORS = {
    PolicyStatus.STILL_USED: Fore.GREEN,
    PolicyStatus.DISABLED: Fore.YELLOW,
    PolicyStatus.UNUSED_UNLINKED: Fore.RED,
}

LOAD_COLORS = {
    LoadStatus.ALREADY_ACTIVE: Fore.CYAN,
    LoadStatus.LOADED: Fore.GREEN,
    LoadStatus.FAILED: Fore.RED,
}

TABLE_HEADERS = ["Domain", "Name", "Status", "Action", "Links"]


def _links_text(record: PolicyRecord) -> str:
    return ", ".join(record.link_paths) if record.link_paths else NOT_LINKED


class ConsoleRecordPrinter:
    """Observer printing one colored line per record as soon as it is built."""

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True):
        self.stream = stream or sys.stdout
        self.color = color

    def __call__(self, record: PolicyRecord) -> None:
        line = (
            f"[{record.domain}] {record.name}: {record.status.value} -> "
            f"{record.action.value} ({_links_text(record)})"
        )
        if self.color:
            line = f"{STATUS_COLORS[record.status]}{line}{Style.RESET_ALL}"
        print(line, file=self.stream)


class ConsoleLoadReporter:
    """Prints one colored status line per LoadOutcome."""

    MESSAGES = {
        LoadStatus.ALREADY_ACTIVE: "Module '{name}' is already loaded.",
        LoadStatus.LOADED: "Module '{name}' imported.",
        LoadStatus.FAILED: "Failed to import module '{name}': {reason}",
    }

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True):
        self.stream = stream or sys.stdout
        self.color = color

    def __call__(self, outcome: LoadOutcome) -> None:
        line = self.MESSAGES[outcome.status].format(name=outcome.name, reason=outcome.reason)
        if self.color:
            line = f"{LOAD_COLORS[outcome.status]}{line}{Style.RESET_ALL}"
        print(line, file=self.stream)


def format_table(records: Sequence[PolicyRecord]) -> str:
    """Render records as a fixed-width text table."""
    rows: List[List[str]] = [
        [r.domain, r.name, r.status.value, r.action.value, _links_text(r)] for r in records
    ]
    widths: Dict[int, int] = {
        i: max([len(h)] + [len(row[i]) for row in rows]) for i, h in enumerate(TABLE_HEADERS)
    }

    def fmt(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    lines = [fmt(TABLE_HEADERS), fmt(["-" * widths[i] for i in range(len(TABLE_HEADERS))])]
    lines.extend(fmt(row) for row in rows)
    return "\n".join(lines)


class ConsoleTableRenderer:
    """Summary table on stdout."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def render(self, records: Sequence[PolicyRecord]) -> None:
        print(file=self.stream)
        print(format_table(records), file=self.stream)
