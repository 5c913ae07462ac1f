from typing import Dict, Iterable, Iterator, Optional
import csv
import logging
import math

from inventory_api.models import Product, derive_status
from inventory_api.schemas import DuplicateEntry, ImportSummary
from inventory_api.store import ProductStore

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS = ("name", "unit", "category", "brand", "stock", "status", "image")


def iter_csv_rows(file_path: str) -> Iterator[Dict[str, Optional[str]]]:
    """
    Yield each data row of a CSV file as a column -> value mapping.

    Rows are read lazily; the header row supplies the keys. A UTF-8 byte-order
    mark (as written by Excel) is dropped.
    """
    with open(file_path, "r", newline="", encoding="utf-8-sig") as handle:
        for row in csv.DictReader(handle):
            yield row


def parse_stock(value) -> int:
    """Coerce a raw stock cell to a non-negative int; anything unusable is 0."""
    if value is None:
        return 0
    text = str(value).strip()
    if not text:
        return 0
    try:
        number = int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            return 0
        if not math.isfinite(number):
            return 0
        number = int(number)
    return number if number > 0 else 0


def _text(row: Dict[str, Optional[str]], column: str) -> str:
    return row.get(column) or ""


def import_rows(
    store: ProductStore,
    rows: Iterable[Dict[str, Optional[str]]],
    atomic: bool = False,
) -> ImportSummary:
    """
    Insert every row whose name is new and tally the rest.

    Existing products are never modified: a row whose name matches one
    (ignoring case) is counted as skipped and reported in ``duplicates``.
    Blank names are skipped silently. Rows are handled in order, so when the
    file repeats a name the first occurrence wins.

    Without ``atomic`` each insert is committed on its own and survives a
    later failure. With ``atomic`` the batch commits once and a failure rolls
    all of it back. Errors are re-raised after the rollback.
    """
    summary = ImportSummary()

    try:
        for row in rows:
            name = _text(row, "name").strip()
            if not name:
                summary.skipped += 1
                continue

            stock = parse_stock(row.get("stock"))
            status = _text(row, "status") or derive_status(stock)

            existing = store.find_by_name(name)
            if existing:
                summary.skipped += 1
                summary.duplicates.append(DuplicateEntry(name=existing.name, existing_id=existing.id))
                continue

            store.add(Product(
                name=name,
                unit=_text(row, "unit"),
                category=_text(row, "category"),
                brand=_text(row, "brand"),
                stock=stock,
                status=status,
                image=_text(row, "image"),
            ))
            if not atomic:
                store.commit()
            summary.added += 1

        if atomic:
            store.commit()
    except Exception:
        store.rollback()
        raise

    LOGGER.info(
        "Imported products: %s added, %s skipped, %s duplicates",
        summary.added,
        summary.skipped,
        len(summary.duplicates),
    )
    return summary


def import_csv(store: ProductStore, file_path: str, atomic: bool = False) -> ImportSummary:
    return import_rows(store, iter_csv_rows(file_path), atomic=atomic)


def _quote_csv_field(value) -> str:
    text = str(value).replace('"', '""')
    if any(char in text for char in (",", '"', "\n")):
        return f'"{text}"'
    return text


def export_csv(products: Iterable[Product]) -> str:
    """
    Render products as CSV text with the import column layout.

    Lines are joined with a bare newline and there is no trailing newline.
    Only fields containing a comma, quote or newline are quoted.
    """
    lines = [",".join(CSV_COLUMNS)]
    for product in products:
        values = [
            product.name if product.name is not None else "",
            product.unit if product.unit is not None else "",
            product.category if product.category is not None else "",
            product.brand if product.brand is not None else "",
            product.stock if product.stock is not None else 0,
            product.status if product.status is not None else "",
            product.image if product.image is not None else "",
        ]
        lines.append(",".join(_quote_csv_field(value) for value in values))
    return "\n".join(lines)
