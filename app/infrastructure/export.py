"""
Infrastructure - Export adapters.
"""

import csv
import io

from app.domain.errors import InvalidArgumentError
from app.domain.export import ExportAdapter, ReportTable


class CSVExportAdapter(ExportAdapter):
    """UTF-8 CSV with a header row; None renders as an empty cell."""

    format = "csv"
    media_type = "text/csv"

    def export(self, table: ReportTable) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(table.columns)
        for row in table.rows:
            writer.writerow(["" if value is None else value for value in row])
        return buffer.getvalue().encode("utf-8")


EXPORT_ADAPTERS: dict[str, ExportAdapter] = {
    CSVExportAdapter.format: CSVExportAdapter(),
}


def get_export_adapter(fmt: str) -> ExportAdapter:
    try:
        return EXPORT_ADAPTERS[fmt.lower()]
    except KeyError:
        raise InvalidArgumentError(f"Unsupported export format: {fmt!r}") from None
