# Overview: Service-layer operations for spreadsheet product imports; one shipment per sheet, one commit per row.

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Union

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Arrivage, Product
from ..models.inventory import PURCHASE_SOURCES
from ..validation import MAX_PRICE_CENTS, ValidationError
from . import arrivage_service
from .calculations import eur_to_mad_cents
from .catalog_service import find_or_create_category
from stockroom.time_utils import utcnow


class ImportRequestError(ValueError):
    """Raised when the whole import request is unusable (not for single rows)."""


# Matches Arrivage.reference
MAX_REFERENCE_LENGTH = 100

HEADER_ECHOES = {"PRODUIT", "PRODUCT", "NOM", "NAME", "ARTICLE"}

# Normalized spreadsheet header -> canonical row key
HEADER_ALIASES = {
    "produit": "name",
    "product": "name",
    "nom": "name",
    "name": "name",
    "article": "name",
    "categorie": "categoryName",
    "category": "categoryName",
    "pa eur": "purchasePriceEur",
    "pa euro": "purchasePriceEur",
    "prix achat eur": "purchasePriceEur",
    "purchase price eur": "purchasePriceEur",
    "pa": "purchasePriceMad",
    "pa mad": "purchasePriceMad",
    "pa dh": "purchasePriceMad",
    "prix achat": "purchasePriceMad",
    "purchase price": "purchasePriceMad",
    "pv": "sellingPriceDh",
    "pv dh": "sellingPriceDh",
    "prix vente": "sellingPriceDh",
    "selling price": "sellingPriceDh",
    "promo": "promoPriceDh",
    "prix promo": "promoPriceDh",
    "pv promo": "promoPriceDh",
    "promo price": "promoPriceDh",
    "quantite": "quantityReceived",
    "qte": "quantityReceived",
    "qty": "quantityReceived",
    "quantity": "quantityReceived",
    "vendu": "quantitySold",
    "vendus": "quantitySold",
    "qte vendue": "quantitySold",
    "sold": "quantitySold",
    "source": "purchaseSource",
    "magasin": "purchaseSource",
}


@dataclass(frozen=True)
class ImportRecord:
    name: str
    category_name: str | None
    purchase_price_eur_cents: int | None
    purchase_price_mad_cents: int | None
    selling_price_cents: int
    promo_price_cents: int | None
    quantity_received: int
    quantity_sold: int
    purchase_source: str


@dataclass(frozen=True)
class Valid:
    record: ImportRecord


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Errored:
    name: str
    reason: str


RowOutcome = Union[Valid, Skipped, Errored]


@dataclass
class ImportReport:
    total_sheets: int = 0
    arrivages_created: int = 0
    products_created: int = 0
    skipped: int = 0
    errored: int = 0
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalSheets": self.total_sheets,
            "arrivagesCreated": self.arrivages_created,
            "productsCreated": self.products_created,
            "skipped": self.skipped,
            "errored": self.errored,
            "errors": self.errors,
        }


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    text = str(value).strip().replace("\u00a0", "").replace(" ", "")
    text = re.sub(r"(?i)(eur|€|mad|dh)$", "", text).replace(",", ".")
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Not a number: {value!r}")


def _to_cents(value: Any) -> int | None:
    """Spreadsheet money is in units (12.50), stored as cents (1250)."""
    amount = _to_decimal(value)
    if amount is None or amount <= 0:
        return None
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"Price too large: {value!r}")
    return cents


def _to_quantity(value: Any) -> int:
    amount = _to_decimal(value)
    if amount is None:
        return 0
    if amount < 0 or amount != amount.to_integral_value():
        raise ValidationError(f"Quantity must be a whole number >= 0: {value!r}")
    return int(amount)


def _normalize_source(value: Any) -> str:
    text = (_to_text(value) or "").upper().replace(" ", "_").replace(".", "_")
    return text if text in PURCHASE_SOURCES else "OTHER"


def classify_row(row: dict) -> RowOutcome:
    """
    Validation pipeline for one spreadsheet row.

    Skips blank names, total lines, header echoes and rows with nothing in
    them; errors rows that look like products but miss PA or PV.
    """
    name = _to_text(row.get("name")) or ""
    if not name:
        return Skipped("blank name")
    upper = name.upper()
    if "TOTAL" in upper:
        return Skipped("total line")
    if upper in HEADER_ECHOES:
        return Skipped("header row")

    try:
        eur = _to_cents(row.get("purchasePriceEur"))
        mad = _to_cents(row.get("purchasePriceMad"))
        selling = _to_cents(row.get("sellingPriceDh"))
        promo = _to_cents(row.get("promoPriceDh"))
        received = _to_quantity(row.get("quantityReceived"))
        sold = _to_quantity(row.get("quantitySold"))
    except ValidationError as exc:
        return Errored(name, str(exc))

    has_purchase_price = bool(eur or mad)
    if not has_purchase_price and not received:
        return Skipped("no purchase price and no quantity")
    if not (eur or mad or selling or promo or received):
        return Skipped("empty row")

    if not has_purchase_price:
        return Errored(name, "Purchase price (PA) is required")
    if not selling:
        return Errored(name, "Selling price (PV) is required")
    if sold > received:
        return Errored(name, "Sold quantity cannot exceed received quantity")
    if promo is not None and promo > selling:
        promo = None

    return Valid(
        ImportRecord(
            name=name[:200],
            category_name=_to_text(row.get("categoryName")),
            purchase_price_eur_cents=eur,
            purchase_price_mad_cents=mad,
            selling_price_cents=selling,
            promo_price_cents=promo,
            quantity_received=received,
            quantity_sold=sold,
            purchase_source=_normalize_source(row.get("purchaseSource")),
        )
    )


def _get_or_create_arrivage(org_id: int, reference: str, report: ImportReport) -> Arrivage:
    reference = reference[:MAX_REFERENCE_LENGTH]
    arrivage = arrivage_service.find_by_reference(org_id, reference)
    if arrivage is not None:
        return arrivage
    arrivage = Arrivage(
        org_id=org_id,
        reference=reference,
        source="OTHER",
        status="RECEIVED",
        received_date=utcnow(),
        exchange_rate=current_app.config["DEFAULT_EXCHANGE_RATE"],
    )
    db.session.add(arrivage)
    db.session.commit()
    report.arrivages_created += 1
    return arrivage


def _create_product(org_id: int, arrivage: Arrivage, record: ImportRecord) -> Product:
    category = find_or_create_category(org_id, record.category_name)
    mad = record.purchase_price_mad_cents
    if not mad and record.purchase_price_eur_cents:
        mad = eur_to_mad_cents(record.purchase_price_eur_cents, arrivage.exchange_rate)

    # Counters come in as an opening snapshot; later changes go through the ledger.
    product = Product(
        org_id=org_id,
        name=record.name,
        category_id=category.id,
        arrivage_id=arrivage.id,
        purchase_source=record.purchase_source,
        purchase_price_eur_cents=record.purchase_price_eur_cents,
        purchase_price_mad_cents=mad or 0,
        selling_price_cents=record.selling_price_cents,
        promo_price_cents=record.promo_price_cents,
        quantity_received=record.quantity_received,
        quantity_sold=record.quantity_sold,
        reorder_level=current_app.config["IMPORT_REORDER_LEVEL"],
    )
    db.session.add(product)
    db.session.commit()
    return product


def import_sheets(org_id: int, sheets: list) -> dict:
    """
    Import products sheet by sheet.

    Each valid row is committed on its own; a failing row is rolled back,
    reported, and the batch carries on.
    """
    if not isinstance(sheets, list) or not sheets:
        raise ImportRequestError("sheets must be a non-empty list")

    report = ImportReport(total_sheets=len(sheets))

    for sheet in sheets:
        sheet_name = _to_text(sheet.get("sheetName")) if isinstance(sheet, dict) else None
        rows = sheet.get("products") if isinstance(sheet, dict) else None
        if not sheet_name or not isinstance(rows, list) or not rows:
            report.skipped += 1
            continue

        try:
            arrivage = _get_or_create_arrivage(org_id, sheet_name, report)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.warning("import sheet failed sheet=%s", sheet_name, exc_info=True)
            report.errored += 1
            report.errors.append({"sheet": sheet_name, "product": "N/A", "error": "Could not create shipment"})
            continue

        for row in rows:
            outcome = classify_row(row if isinstance(row, dict) else {})
            if isinstance(outcome, Skipped):
                report.skipped += 1
                continue
            if isinstance(outcome, Errored):
                report.errored += 1
                report.errors.append({"sheet": sheet_name, "product": outcome.name, "error": outcome.reason})
                continue

            try:
                _create_product(org_id, arrivage, outcome.record)
                report.products_created += 1
            except ValueError as exc:
                db.session.rollback()
                report.errored += 1
                report.errors.append({"sheet": sheet_name, "product": outcome.record.name, "error": str(exc)})
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.warning("import row failed sheet=%s product=%s",
                                           sheet_name, outcome.record.name, exc_info=True)
                report.errored += 1
                report.errors.append({"sheet": sheet_name, "product": outcome.record.name,
                                      "error": "Could not save product"})

        arrivage_service.recalc_totals(arrivage)
        db.session.commit()

    current_app.logger.info(
        "import finished org=%s created=%s skipped=%s errored=%s",
        org_id, report.products_created, report.skipped, report.errored,
    )
    return report.to_dict()


def _normalize_header(value: Any) -> str:
    text = unicodedata.normalize("NFKD", str(value or ""))
    text = "".join(ch for ch in text if not unicodedata.combining(ch)).lower()
    text = re.sub(r"\(([^)]*)\)", r" \1 ", text)
    text = text.replace("€", " eur ").replace("_", " ").replace(".", " ")
    return " ".join(text.split())


def parse_workbook(stream) -> list[dict]:
    """
    Read an .xlsx upload into the sheets payload accepted by import_sheets.

    The header row is the first row that names a product column; rows above
    it (titles, dates) are ignored.
    """
    from openpyxl import load_workbook

    wb = load_workbook(stream, data_only=True, read_only=True)
    sheets = []
    for ws in wb.worksheets:
        data = list(ws.values)
        header_index = None
        columns: dict[int, str] = {}
        for i, row in enumerate(data):
            mapped = {
                idx: HEADER_ALIASES[_normalize_header(cell)]
                for idx, cell in enumerate(row)
                if _normalize_header(cell) in HEADER_ALIASES
            }
            if "name" in mapped.values():
                header_index, columns = i, mapped
                break
        if header_index is None:
            continue

        products = []
        for row in data[header_index + 1:]:
            record = {key: row[idx] for idx, key in columns.items() if idx < len(row)}
            if any(value not in (None, "") for value in record.values()):
                products.append(record)
        sheets.append({"sheetName": ws.title, "products": products})
    wb.close()
    return sheets
