# Overview: Service-layer operations for shipments (arrivages) and their denormalized totals.

"""
Shipment totals

  items_cost_eur = sum(quantity_received * unit_cost_eur) over its products
  total_cost_eur = items_cost_eur + shipping + packaging + linked expenses (EUR)
  total_cost_dh  = total_cost_eur * exchange_rate      (half-up to the cent)

product_count / total_units are refreshed together with the totals, in the
same transaction as the change that made them stale. recalc_totals never
commits.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Arrivage, Expense, Product, Sale, Supplier
from ..models.inventory import ARRIVAGE_STATUSES, PURCHASE_SOURCES
from ..validation import ConflictError, ModelValidationPolicy, ValidationError, coerce_int, validate_payload
from .calculations import (
    eur_to_mad_cents,
    mad_to_eur_cents,
    profit_cents,
    profit_margin_percent,
    shipment_totals_cents,
    unit_cost_eur_cents,
)
from .concurrency import lock_for_update, run_with_retry
from stockroom.time_utils import utcnow


ARRIVAGE_POLICY = ModelValidationPolicy(
    writable_fields={
        "reference",
        "supplier_id",
        "source",
        "status",
        "exchange_rate",
        "purchase_date",
        "ship_date",
        "received_date",
        "shipping_cost_eur_cents",
        "packaging_cost_eur_cents",
        "notes",
    },
    required_on_create={"reference"},
)


def _enforce_rules(patch: dict, org_id: int) -> None:
    if "source" in patch and patch["source"] not in PURCHASE_SOURCES:
        raise ValidationError(f"source must be one of {', '.join(PURCHASE_SOURCES)}")
    if "status" in patch and patch["status"] not in ARRIVAGE_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ARRIVAGE_STATUSES)}")
    if "exchange_rate" in patch:
        rate = patch["exchange_rate"]
        if rate is None or rate <= 0:
            raise ValidationError("exchange_rate must be > 0")
    for key in ("shipping_cost_eur_cents", "packaging_cost_eur_cents"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
    if patch.get("supplier_id") is not None:
        supplier = db.session.query(Supplier).filter_by(id=patch["supplier_id"], org_id=org_id).first()
        if supplier is None:
            raise ValidationError("supplier_id does not exist")


def get_arrivage(arrivage_id: int, org_id: int, *, lock: bool = False) -> Arrivage:
    query = db.session.query(Arrivage).filter_by(id=arrivage_id, org_id=org_id)
    if lock:
        query = lock_for_update(query)
    arrivage = query.first()
    if arrivage is None:
        raise NotFoundError("Shipment not found", details={"arrivage_id": arrivage_id})
    return arrivage


def find_by_reference(org_id: int, reference: str) -> Arrivage | None:
    return db.session.query(Arrivage).filter_by(org_id=org_id, reference=reference).first()


def recalc_totals(arrivage: Arrivage) -> Arrivage:
    """Refresh the stored totals from products and linked expenses; flushes only."""
    db.session.flush()
    rate = Decimal(arrivage.exchange_rate)

    products = db.session.query(Product).filter_by(arrivage_id=arrivage.id).all()
    items = [
        (
            p.quantity_received,
            unit_cost_eur_cents(p.purchase_price_eur_cents, p.purchase_price_mad_cents, rate),
        )
        for p in products
    ]
    linked_expenses_eur = (
        db.session.query(db.func.coalesce(db.func.sum(Expense.amount_eur_cents), 0))
        .filter(Expense.arrivage_id == arrivage.id)
        .scalar()
    )
    overhead = (
        (arrivage.shipping_cost_eur_cents or 0)
        + (arrivage.packaging_cost_eur_cents or 0)
        + int(linked_expenses_eur or 0)
    )

    total_eur, total_dh = shipment_totals_cents(items, overhead, rate)
    arrivage.total_cost_eur_cents = total_eur
    arrivage.total_cost_dh_cents = total_dh
    arrivage.product_count = len(products)
    arrivage.total_units = sum(p.quantity_received for p in products)
    db.session.flush()
    return arrivage


def list_arrivages(org_id: int, *, status: str | None = None, source: str | None = None) -> list[Arrivage]:
    query = db.session.query(Arrivage).filter(Arrivage.org_id == org_id)
    if status:
        query = query.filter(Arrivage.status == status)
    if source:
        query = query.filter(Arrivage.source == source)
    return query.order_by(Arrivage.created_at.desc(), Arrivage.id.desc()).all()


def create_arrivage(org_id: int, payload: dict) -> Arrivage:
    patch = validate_payload(model=Arrivage, payload=payload, policy=ARRIVAGE_POLICY, partial=False)
    _enforce_rules(patch, org_id)

    if find_by_reference(org_id, patch["reference"]) is not None:
        raise ConflictError(f"Shipment reference '{patch['reference']}' already exists")

    if patch.get("exchange_rate") is None:
        patch["exchange_rate"] = current_app.config["DEFAULT_EXCHANGE_RATE"]

    arrivage = Arrivage(org_id=org_id, **patch)
    db.session.add(arrivage)
    recalc_totals(arrivage)
    db.session.commit()
    return arrivage


def update_arrivage(arrivage_id: int, org_id: int, payload: dict) -> Arrivage:
    """
    Changing the exchange rate re-derives the MAD purchase price of the
    shipment's products that carry an EUR price.
    """
    patch = validate_payload(model=Arrivage, payload=payload, policy=ARRIVAGE_POLICY, partial=True)
    _enforce_rules(patch, org_id)

    def _op():
        arrivage = get_arrivage(arrivage_id, org_id, lock=True)
        if "reference" in patch and patch["reference"] != arrivage.reference:
            if find_by_reference(org_id, patch["reference"]) is not None:
                raise ConflictError(f"Shipment reference '{patch['reference']}' already exists")

        rate_changed = "exchange_rate" in patch and Decimal(patch["exchange_rate"]) != Decimal(arrivage.exchange_rate)
        for key, value in patch.items():
            setattr(arrivage, key, value)
        if patch.get("status") == "RECEIVED" and arrivage.received_date is None:
            arrivage.received_date = utcnow()

        if rate_changed:
            products = db.session.query(Product).filter_by(arrivage_id=arrivage.id).all()
            for product in products:
                if product.purchase_price_eur_cents:
                    product.purchase_price_mad_cents = eur_to_mad_cents(
                        product.purchase_price_eur_cents, arrivage.exchange_rate
                    )

        recalc_totals(arrivage)
        db.session.commit()
        return arrivage

    return run_with_retry(_op)


def delete_arrivage(arrivage_id: int, org_id: int) -> None:
    arrivage = get_arrivage(arrivage_id, org_id)
    count = db.session.query(Product.id).filter_by(arrivage_id=arrivage.id).count()
    if count:
        raise ConflictError(f"Shipment still has {count} product(s)")
    db.session.query(Expense).filter_by(arrivage_id=arrivage.id).update(
        {"arrivage_id": None}, synchronize_session=False
    )
    db.session.delete(arrivage)
    db.session.commit()


def link_product(arrivage_id: int, org_id: int, product_id: int) -> Product:
    """
    Move an existing product into this shipment.

    Both the new and the previous shipment get their totals refreshed.
    """
    product_id = coerce_int("product_id", product_id)

    def _op():
        arrivage = get_arrivage(arrivage_id, org_id, lock=True)
        product = db.session.query(Product).filter_by(id=product_id, org_id=org_id).first()
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        if product.arrivage_id == arrivage.id:
            raise ValidationError("Product is already linked to this shipment")

        previous_id = product.arrivage_id
        product.arrivage_id = arrivage.id
        recalc_totals(arrivage)
        if previous_id is not None:
            previous = db.session.query(Arrivage).filter_by(id=previous_id).first()
            if previous is not None:
                recalc_totals(previous)
        db.session.commit()
        return product

    return run_with_retry(_op)


def list_products(arrivage_id: int, org_id: int) -> list[Product]:
    get_arrivage(arrivage_id, org_id)
    return (
        db.session.query(Product)
        .filter_by(arrivage_id=arrivage_id, org_id=org_id)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def arrivage_stats(arrivage_id: int, org_id: int) -> dict:
    """
    Sales performance of one shipment.

    Linked expenses are spread over the shipment's units and charged to
    the units actually sold.
    """
    arrivage = get_arrivage(arrivage_id, org_id)
    rate = Decimal(arrivage.exchange_rate)

    rows = (
        db.session.query(Sale.id, Sale.quantity, Sale.total_amount_cents, Product.purchase_price_mad_cents)
        .join(Product, Product.id == Sale.product_id)
        .filter(Sale.org_id == org_id, Product.arrivage_id == arrivage.id)
        .all()
    )
    revenue = sum(r.total_amount_cents for r in rows)
    units_sold = sum(r.quantity for r in rows)
    cogs = sum(r.quantity * (r.purchase_price_mad_cents or 0) for r in rows)

    expenses_dh = int(
        db.session.query(db.func.coalesce(db.func.sum(Expense.amount_dh_cents), 0))
        .filter(Expense.arrivage_id == arrivage.id)
        .scalar()
        or 0
    )
    total_units = arrivage.total_units or 0
    overhead = (expenses_dh * units_sold) // total_units if total_units else 0
    cost = cogs + overhead
    net_profit = profit_cents(revenue, cost)

    remaining = (
        db.session.query(
            db.func.coalesce(db.func.sum(Product.quantity_received - Product.quantity_sold), 0)
        )
        .filter(Product.arrivage_id == arrivage.id)
        .scalar()
    )

    return {
        "arrivage_id": arrivage.id,
        "reference": arrivage.reference,
        "total_units": total_units,
        "units_sold": units_sold,
        "units_remaining": int(remaining or 0),
        "sales_count": len(rows),
        "revenue_dh_cents": revenue,
        "revenue_eur_cents": mad_to_eur_cents(revenue, rate),
        "cost_of_goods_dh_cents": cogs,
        "allocated_expenses_dh_cents": overhead,
        "net_profit_dh_cents": net_profit,
        "net_profit_eur_cents": mad_to_eur_cents(net_profit, rate),
        "profit_margin_percent": float(profit_margin_percent(revenue, cost)),
    }
