# Overview: Service-layer operations for sales; keeps the sold counter and the movement log in step with sale records.

"""
Sale reconciliation

Every sale write runs as ONE transaction that touches three things together:
the sale row, the product's quantity_sold counter, and a StockMovement.
  - create: sold += quantity, SALE movement of -quantity
  - update: sold += (new - old), SALE movement of -(new - old) when non-zero
  - delete: sold -= quantity, RETURN movement of +quantity

Selling below the MAD purchase cost is allowed but must be explained in notes.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Sale
from ..models.inventory import MOVEMENT_RETURN, MOVEMENT_SALE
from ..models.sales import PRICING_PROMO, PRICING_REGULAR
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_sale,
    validate_payload,
)
from .calculations import sale_total_cents
from .concurrency import lock_for_update, run_with_retry
from .stock_service import apply_movement_locked, get_product


SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id",
        "quantity",
        "price_per_unit_cents",
        "is_promo",
        "sale_date",
        "notes",
    },
    required_on_create={"product_id", "quantity", "price_per_unit_cents"},
)


def _check_below_cost(product, price_per_unit_cents: int, notes: str | None) -> None:
    cost = product.purchase_price_mad_cents or 0
    if cost > 0 and price_per_unit_cents < cost and not (notes and notes.strip()):
        raise ValidationError(
            "Selling below cost requires a note explaining why",
        )


def _get_sale(sale_id: int, org_id: int, *, lock: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id, org_id=org_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    sale = query.first()
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def get_sale(sale_id: int, org_id: int) -> Sale:
    return _get_sale(sale_id, org_id)


def create_sale(*, org_id: int, payload: dict, user_id: int | None = None) -> Sale:
    """
    Record a sale and decrement stock.

    Raises ValidationError for bad input, NotFoundError for an unknown
    product, InsufficientStockError when quantity exceeds current stock.
    """
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
    enforce_rules_sale(patch)

    product_id = patch["product_id"]
    quantity = patch["quantity"]
    price = patch["price_per_unit_cents"]
    notes = patch.get("notes") or None
    is_promo = bool(patch.get("is_promo", False))

    def _op():
        product = get_product(product_id, org_id, lock=True, require_active=True)
        _check_below_cost(product, price, notes)

        sale = Sale(
            org_id=org_id,
            product_id=product.id,
            quantity=quantity,
            price_per_unit_cents=price,
            total_amount_cents=sale_total_cents(quantity, price),
            pricing_mode=PRICING_PROMO if is_promo else PRICING_REGULAR,
            is_promo=is_promo,
            notes=notes,
            created_by_user_id=user_id,
        )
        if patch.get("sale_date") is not None:
            sale.sale_date = patch["sale_date"]
        db.session.add(sale)
        db.session.flush()

        apply_movement_locked(
            product,
            delta=-quantity,
            movement_type=MOVEMENT_SALE,
            reason=f"Sale #{sale.id}",
            user_id=user_id,
            sale_id=sale.id,
        )
        db.session.commit()
        return sale

    return run_with_retry(_op)


def update_sale(*, sale_id: int, org_id: int, payload: dict, user_id: int | None = None) -> Sale:
    """
    Edit a sale; only the quantity difference touches stock.

    The product of a sale cannot change. The below-cost rule is checked
    against the final price and notes, so lowering the price on an existing
    sale needs a note too.
    """
    if isinstance(payload, dict) and "product_id" in payload:
        raise ValidationError("product_id cannot be changed on an existing sale")
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=True)
    enforce_rules_sale(patch)

    def _op():
        sale = _get_sale(sale_id, org_id, lock=True)
        product = get_product(sale.product_id, org_id, lock=True)

        new_quantity = patch.get("quantity", sale.quantity)
        price = patch.get("price_per_unit_cents", sale.price_per_unit_cents)
        notes = patch["notes"] if "notes" in patch else sale.notes
        notes = notes or None
        _check_below_cost(product, price, notes)

        diff = new_quantity - sale.quantity
        if diff != 0:
            apply_movement_locked(
                product,
                delta=-diff,
                movement_type=MOVEMENT_SALE,
                reason=f"Sale #{sale.id} updated ({sale.quantity} -> {new_quantity})",
                user_id=user_id,
                sale_id=sale.id,
            )

        sale.quantity = new_quantity
        sale.price_per_unit_cents = price
        sale.total_amount_cents = sale_total_cents(new_quantity, price)
        sale.notes = notes
        if "is_promo" in patch:
            sale.is_promo = bool(patch["is_promo"])
            sale.pricing_mode = PRICING_PROMO if sale.is_promo else PRICING_REGULAR
        if patch.get("sale_date") is not None:
            sale.sale_date = patch["sale_date"]

        db.session.commit()
        return sale

    return run_with_retry(_op)


def delete_sale(*, sale_id: int, org_id: int, user_id: int | None = None) -> None:
    """Delete a sale and put its units back into stock with a RETURN movement."""
    def _op():
        sale = _get_sale(sale_id, org_id, lock=True)
        product = get_product(sale.product_id, org_id, lock=True)
        quantity = sale.quantity

        apply_movement_locked(
            product,
            delta=quantity,
            movement_type=MOVEMENT_RETURN,
            reason=f"Sale #{sale.id} deleted",
            user_id=user_id,
            sale_id=sale.id,
        )
        db.session.delete(sale)
        db.session.commit()
        current_app.logger.info("sale deleted id=%s product=%s quantity=%s", sale_id, product.id, quantity)

    run_with_retry(_op)


def list_sales(
    *,
    org_id: int,
    product_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    is_promo: bool | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Sale], int]:
    query = db.session.query(Sale).filter(Sale.org_id == org_id)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date <= end)
    if is_promo is not None:
        query = query.filter(Sale.is_promo.is_(is_promo))

    total = query.count()
    items = (
        query.order_by(Sale.sale_date.desc(), Sale.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total
