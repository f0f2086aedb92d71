"""Grid window for audit results - sortable, filterable, one row per GPO."""

from typing import List, Sequence

from PySide6.QtWidgets import (
    QApplication, QHeaderView, QLabel, QLineEdit, QTableWidget,
    QTableWidgetItem, QVBoxLayout, QWidget,
)
from PySide6.QtCore import Slot

from gpoaudit.services.gpo_auditor import PolicyRecord
from gpoaudit.services.report_export import NOT_LINKED
from gpoaudit.ui.theme import STATUS_COLORS, Colors, apply_dark_theme


class PolicyGridWindow(QWidget):
    """Read-only table of PolicyRecords with a substring filter box."""

    COL_DOMAIN = 0
    COL_NAME = 1
    COL_STATUS = 2
    COL_ACTION = 3
    COL_LINKS = 4
    HEADERS = ["Domain", "Name", "Status", "Action", "Links"]

    def __init__(self, records: Sequence[PolicyRecord], parent=None):
        super().__init__(parent)
        self.setWindowTitle("GPO link audit")
        self.resize(900, 500)
        self._all_records: List[PolicyRecord] = list(records)
        self._filtered_records: List[PolicyRecord] = list(records)
        self._init_ui()
        self._populate_table()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)

        self._search_input = QLineEdit()
        self._search_input.setPlaceholderText("Filter...")
        self._search_input.textChanged.connect(self._on_search_changed)
        layout.addWidget(self._search_input)

        self._count_label = QLabel()
        self._count_label.setStyleSheet(
            f"color: {Colors.TEXT_SECONDARY.name()}; font-size: 11px; padding: 2px 0;"
        )
        layout.addWidget(self._count_label)

        self._table = QTableWidget()
        self._table.setColumnCount(len(self.HEADERS))
        self._table.setHorizontalHeaderLabels(self.HEADERS)
        self._table.setAlternatingRowColors(True)
        self._table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self._table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self._table.setSortingEnabled(True)
        self._table.verticalHeader().setVisible(False)

        header = self._table.horizontalHeader()
        for col in range(len(self.HEADERS)):
            header.setSectionResizeMode(col, QHeaderView.ResizeMode.Interactive)
        header.setStretchLastSection(True)
        self._table.setColumnWidth(self.COL_DOMAIN, 140)
        self._table.setColumnWidth(self.COL_NAME, 220)
        self._table.setColumnWidth(self.COL_STATUS, 120)
        self._table.setColumnWidth(self.COL_ACTION, 130)

        self._table.setStyleSheet(f"""
            QTableWidget {{
                background-color: {Colors.WIDGET.name()};
                border: 1px solid {Colors.BORDER.name()};
                gridline-color: {Colors.BORDER.name()};
                color: {Colors.TEXT_PRIMARY.name()};
            }}
            QHeaderView::section {{
                background-color: {Colors.TABLE_HEADER.name()};
                border: 1px solid {Colors.BORDER.name()};
                padding: 6px;
                font-weight: bold;
                color: {Colors.TEXT_PRIMARY.name()};
            }}
        """)
        layout.addWidget(self._table)

    @property
    def table(self) -> QTableWidget:
        return self._table

    def _populate_table(self) -> None:
        self._table.setSortingEnabled(False)  # Disable while populating
        self._table.setRowCount(len(self._filtered_records))

        for row, record in enumerate(self._filtered_records):
            links = "\n".join(record.link_paths) if record.link_paths else NOT_LINKED
            cells = {
                self.COL_DOMAIN: record.domain,
                self.COL_NAME: record.name,
                self.COL_STATUS: record.status.value,
                self.COL_ACTION: record.action.value,
                self.COL_LINKS: links,
            }
            for col, text in cells.items():
                item = QTableWidgetItem(text)
                if col in (self.COL_STATUS, self.COL_ACTION):
                    item.setForeground(STATUS_COLORS[record.status])
                self._table.setItem(row, col, item)

        self._table.setSortingEnabled(True)
        self._table.resizeRowsToContents()
        self._update_count_label()

    def _update_count_label(self) -> None:
        count = len(self._filtered_records)
        total = len(self._all_records)
        if count == total:
            self._count_label.setText(f"{count} GPO{'s' if count != 1 else ''}")
        else:
            self._count_label.setText(f"{count} of {total} GPO{'s' if total != 1 else ''}")

    @Slot(str)
    def _on_search_changed(self, text: str) -> None:
        needle = text.lower()
        if not needle:
            self._filtered_records = self._all_records
        else:
            self._filtered_records = [
                r for r in self._all_records
                if needle in r.name.lower()
                or needle in r.status.value.lower()
                or needle in r.action.value.lower()
                or any(needle in p.lower() for p in r.link_paths)
            ]
        self._populate_table()


class GridViewRenderer:
    """Show the records in a PolicyGridWindow and block until it is closed."""

    def render(self, records: Sequence[PolicyRecord]) -> None:
        app = QApplication.instance()
        if app is None:
            app = QApplication([])
            app.setApplicationName("GPO Audit")
            apply_dark_theme(app)

        window = PolicyGridWindow(records)
        window.show()
        window.activateWindow()
        window.raise_()
        app.exec()
