"""Console and PySide6 presentation of audit results."""
