"""CSV export of a year's expenses."""

from zenbudget.services.export.csv_export import (
    EXPORT_HEADERS,
    export_filename,
    export_rows,
    export_to_csv,
    write_export,
)

__all__ = [
    "EXPORT_HEADERS",
    "export_filename",
    "export_rows",
    "export_to_csv",
    "write_export",
]
