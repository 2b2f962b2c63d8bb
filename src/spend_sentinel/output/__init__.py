"""Output generation for Excel and CSV exports."""

from spend_sentinel.output.csv_exporter import CSVExporter
from spend_sentinel.output.excel_writer import ExcelWriter

__all__ = ["ExcelWriter", "CSVExporter"]
