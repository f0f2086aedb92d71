"""Spreadsheet export of audit records."""

import csv
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from gpoaudit.errors import ExportError

logger = logging.getLogger(__name__)

NOT_LINKED = "Not linked"
COLUMNS = ["Domain", "Name", "Id", "Status", "Action", "LinkPaths"]


def record_to_row(record) -> List[str]:
    """Flatten a PolicyRecord into spreadsheet cells, COLUMNS order."""
    return [
        record.domain,
        record.name,
        record.policy_id,
        record.status.value,
        record.action.value,
        "; ".join(record.link_paths),
    ]


def export_filename(domain: str, when: datetime) -> str:
    """'GPO-Audit_contoso.com_20260118-093000.csv'"""
    safe_domain = re.sub(r"[^A-Za-z0-9._-]", "_", domain) or "domain"
    return f"GPO-Audit_{safe_domain}_{when.strftime('%Y%m%d-%H%M%S')}.csv"


class CsvExportSink:
    """Writes all records of an audit into one timestamped CSV file.

    The file is written with a UTF-8 BOM so spreadsheet tools pick the right
    encoding for non-ASCII GPO names.
    """

    required_capabilities = ("csv",)

    def __init__(self, directory: str = ".", clock: Optional[Callable[[], datetime]] = None):
        self.directory = Path(directory)
        self._clock = clock or datetime.now
        self.last_path: Optional[Path] = None

    def write(self, records: Sequence, domain: str) -> Path:
        """Write records, return the destination path.

        Raises:
            ExportError: If the directory or file cannot be written.
        """
        path = self.directory / export_filename(domain, self._clock())
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w", newline="", encoding="utf-8-sig") as fh:
                writer = csv.writer(fh)
                writer.writerow(COLUMNS)
                for record in records:
                    writer.writerow(record_to_row(record))
        except OSError as e:
            raise ExportError(f"Cannot write {path}: {e}")

        logger.debug("Wrote %d rows to %s", len(records), path)
        self.last_path = path
        return path
