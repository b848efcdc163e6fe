import csv
import logging
from collections.abc import Iterable, Sequence

from domain.transactions import TransactionView
from utils.export_core import column_value, resolve_columns

logger = logging.getLogger(__name__)


def transactions_to_csv(
    items: Iterable[TransactionView],
    filepath: str,
    columns: Sequence[str] | None = None,
) -> None:
    names = resolve_columns(columns)
    count = 0
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(names)
        for item in items:
            writer.writerow([column_value(item, name) for name in names])
            count += 1
    logger.info("CSV export written path=%s rows=%s", filepath, count)
