"""
Dark palette for the audit grid window.
"""

from PySide6.QtCore import Qt
from PySide6.QtGui import QPalette, QColor
from PySide6.QtWidgets import QApplication

from gpoaudit.services.gpo_auditor import PolicyStatus


class Colors:
    """Color constants for the grid window."""

    WINDOW = QColor(24, 28, 32)
    WINDOW_ALT = QColor(32, 36, 42)
    WIDGET = QColor(40, 44, 52)

    TEXT_PRIMARY = QColor(220, 223, 228)
    TEXT_SECONDARY = QColor(140, 145, 155)

    ACCENT = QColor(100, 149, 237)

    SUCCESS = QColor(80, 200, 120)
    WARNING = QColor(255, 193, 7)
    ERROR = QColor(244, 67, 54)

    BORDER = QColor(55, 60, 70)
    TABLE_HEADER = QColor(35, 40, 48)
    TABLE_ROW_ALT = QColor(28, 32, 38)


STATUS_COLORS = {
    PolicyStatus.STILL_USED: Colors.SUCCESS,
    PolicyStatus.DISABLED: Colors.WARNING,
    PolicyStatus.UNUSED_UNLINKED: Colors.ERROR,
}


def create_dark_palette() -> QPalette:
    palette = QPalette()
    palette.setColor(QPalette.Window, Colors.WINDOW)
    palette.setColor(QPalette.WindowText, Colors.TEXT_PRIMARY)
    palette.setColor(QPalette.Base, Colors.WIDGET)
    palette.setColor(QPalette.AlternateBase, Colors.TABLE_ROW_ALT)
    palette.setColor(QPalette.Text, Colors.TEXT_PRIMARY)
    palette.setColor(QPalette.Button, Colors.WIDGET)
    palette.setColor(QPalette.ButtonText, Colors.TEXT_PRIMARY)
    palette.setColor(QPalette.Highlight, Colors.ACCENT)
    palette.setColor(QPalette.HighlightedText, Qt.white)
    palette.setColor(QPalette.PlaceholderText, Colors.TEXT_SECONDARY)
    return palette


def apply_dark_theme(app: QApplication) -> None:
    """Apply the Fusion style with the dark palette."""
    app.setStyle("Fusion")
    app.setPalette(create_dark_palette())
