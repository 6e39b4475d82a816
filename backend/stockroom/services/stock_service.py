# Overview: Stock ledger engine; the only code that mutates product stock counters.

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_RESET,
    MOVEMENT_RETURN,
    MOVEMENT_SALE,
)
from ..validation import ValidationError, clean_notes, coerce_int, require_reason
from .concurrency import lock_for_update, run_with_retry
"""
Stock Ledger Invariants (authoritative)

Counters:
- current stock = quantity_received - quantity_sold, never stored.
- 0 <= current stock <= quantity_received at all times.
- SALE / RETURN movements move quantity_sold; ADJUSTMENT moves
  quantity_received (damage or found units are not sales); RESET writes
  both counters with absolute values.

Movements:
- Exactly one StockMovement per counter change, written in the same DB
  transaction as the change.
- new_qty == previous_qty + quantity, and previous_qty is the stock read
  under lock inside that transaction.
- Movements are append-only.

Concurrency:
- Products are read with SELECT ... FOR UPDATE and carry an optimistic
  version column; a stale write raises StaleDataError and the whole
  operation is retried from a fresh read (run_with_retry).
"""

STATUS_OUT = "OUT"
STATUS_LOW = "LOW"
STATUS_OK = "OK"

LEDGER_MOVEMENT_TYPES = (MOVEMENT_SALE, MOVEMENT_RETURN, MOVEMENT_ADJUSTMENT)


def current_stock(product: Product) -> int:
    return product.quantity_received - product.quantity_sold


def stock_status(product: Product) -> str:
    stock = current_stock(product)
    if stock <= 0:
        return STATUS_OUT
    if stock <= product.reorder_level:
        return STATUS_LOW
    return STATUS_OK


def get_product(product_id: int, org_id: int, *, lock: bool = False, require_active: bool = False) -> Product:
    """
    Load a product of this organization.

    With lock=True the row is locked and refreshed from the database, so the
    counters reflect the latest committed state inside the caller's transaction.
    """
    query = db.session.query(Product).filter_by(id=product_id, org_id=org_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    if require_active and not product.is_active:
        raise ValidationError("Product is inactive")
    return product


def _append_movement(
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    previous_qty: int,
    reference: str | None,
    notes: str | None = None,
    user_id: int | None = None,
    sale_id: int | None = None,
) -> StockMovement:
    movement = StockMovement(
        org_id=product.org_id,
        product_id=product.id,
        type=movement_type,
        quantity=quantity,
        previous_qty=previous_qty,
        new_qty=previous_qty + quantity,
        reference=reference,
        notes=notes,
        user_id=user_id,
        sale_id=sale_id,
    )
    db.session.add(movement)
    db.session.flush()

    current_app.logger.info(
        "stock movement product=%s type=%s quantity=%+d stock=%d->%d",
        product.id, movement_type, quantity, previous_qty, movement.new_qty,
    )
    return movement


def apply_movement_locked(
    product: Product,
    *,
    delta: int,
    movement_type: str,
    reason: str,
    user_id: int | None = None,
    notes: str | None = None,
    sale_id: int | None = None,
) -> StockMovement:
    """
    Core ledger write without locking, retry, or commit.

    The caller must have loaded product with get_product(lock=True) inside the
    current transaction. Raises InsufficientStockError before touching anything
    when the delta would make stock negative.
    """
    if movement_type not in LEDGER_MOVEMENT_TYPES:
        raise ValidationError(f"Unsupported movement type: {movement_type}")
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    if not reason or not reason.strip():
        raise ValidationError("reason is required")

    previous = current_stock(product)
    if previous + delta < 0:
        raise InsufficientStockError(available=previous, requested=-delta)

    if movement_type == MOVEMENT_ADJUSTMENT:
        product.quantity_received += delta
    elif delta < 0:
        product.quantity_sold += -delta
    else:
        # Restored units leave the sold counter first; anything beyond it
        # (sales that predate a reset) comes back as received stock.
        from_sold = min(delta, product.quantity_sold)
        product.quantity_sold -= from_sold
        product.quantity_received += delta - from_sold

    return _append_movement(
        product,
        movement_type=movement_type,
        quantity=delta,
        previous_qty=previous,
        reference=reason.strip(),
        notes=notes,
        user_id=user_id,
        sale_id=sale_id,
    )


def apply_movement(
    *,
    product_id: int,
    org_id: int,
    delta: int,
    movement_type: str,
    reason: str,
    user_id: int | None = None,
    notes: str | None = None,
) -> tuple[Product, StockMovement]:
    """
    Apply a signed stock change and log it, atomically.

    Re-reads the product under lock, checks the resulting stock, updates the
    counters, appends one movement, and commits. Nothing is written when any
    step fails.
    """
    delta = coerce_int("delta", delta)

    def _op():
        product = get_product(product_id, org_id, lock=True)
        movement = apply_movement_locked(
            product,
            delta=delta,
            movement_type=movement_type,
            reason=reason,
            user_id=user_id,
            notes=notes,
        )
        db.session.commit()
        return product, movement

    return run_with_retry(_op)


def adjust_stock(
    *,
    product_id: int,
    org_id: int,
    delta: int,
    reason: str,
    notes: str | None = None,
    user_id: int | None = None,
) -> tuple[Product, StockMovement]:
    """
    Manual relative correction (damage, recount, found inventory).

    Any UI pre-check is advisory; the authoritative non-negative check runs
    inside the ledger transaction.
    """
    reason = require_reason(reason)
    notes = clean_notes(notes)
    return apply_movement(
        product_id=product_id,
        org_id=org_id,
        delta=delta,
        movement_type=MOVEMENT_ADJUSTMENT,
        reason=reason,
        user_id=user_id,
        notes=notes,
    )


def reset_stock(
    *,
    product_id: int,
    org_id: int,
    new_stock: int,
    reason: str,
    reset_sold: bool = True,
    notes: str | None = None,
    user_id: int | None = None,
) -> tuple[Product, StockMovement]:
    """
    Overwrite the counters with absolute values.

    reset_sold=True: received=new_stock, sold=0 (start over).
    reset_sold=False: keep sold, received=new_stock + sold.
    A RESET movement records the before/after snapshot even when the stock
    value itself does not change.
    """
    new_stock = coerce_int("new_stock", new_stock)
    if new_stock < 0:
        raise ValidationError("new_stock must be >= 0")
    reason = require_reason(reason)
    notes = clean_notes(notes)

    def _op():
        product = get_product(product_id, org_id, lock=True)
        previous = current_stock(product)

        if reset_sold:
            product.quantity_sold = 0
            product.quantity_received = new_stock
        else:
            product.quantity_received = new_stock + product.quantity_sold

        movement = _append_movement(
            product,
            movement_type=MOVEMENT_RESET,
            quantity=new_stock - previous,
            previous_qty=previous,
            reference=reason,
            notes=notes,
            user_id=user_id,
        )
        db.session.commit()
        return product, movement

    return run_with_retry(_op)


def list_movements(*, product_id: int, org_id: int, limit: int = 200) -> list[StockMovement]:
    get_product(product_id, org_id)
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id, org_id=org_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
