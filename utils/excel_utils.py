import logging
from collections.abc import Iterable, Sequence

from openpyxl import Workbook

from domain.transactions import TransactionView
from utils.export_core import column_value, resolve_columns

logger = logging.getLogger(__name__)

AMOUNT_FORMAT = "#,##0.00"


def transactions_to_xlsx(
    items: Iterable[TransactionView],
    filepath: str,
    columns: Sequence[str] | None = None,
) -> None:
    """Export search rows to XLSX. Amounts are written as numbers, not text."""
    names = resolve_columns(columns)
    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = "Transactions"
    ws.append(names)

    amount_index = names.index("amount") + 1 if "amount" in names else None
    count = 0
    for item in items:
        row = []
        for name in names:
            value = column_value(item, name)
            row.append(float(value) if name == "amount" else value)
        ws.append(row)
        count += 1
        if amount_index is not None:
            ws.cell(row=count + 1, column=amount_index).number_format = AMOUNT_FORMAT

    wb.save(filepath)
    logger.info("XLSX export written path=%s rows=%s", filepath, count)
