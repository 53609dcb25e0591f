"""
Applicant export package
"""

from bluework.exports.shaper import (
    SUMMARY_COLUMNS,
    flattened_columns,
    flattened_rows,
    format_experiences,
    summary_rows,
)
from bluework.exports.writers import CSV_FILENAME, PDF_FILENAME, write_csv, write_pdf

__all__ = [
    "SUMMARY_COLUMNS",
    "flattened_columns",
    "flattened_rows",
    "format_experiences",
    "summary_rows",
    "CSV_FILENAME",
    "PDF_FILENAME",
    "write_csv",
    "write_pdf",
]
