# backend/stockroom/services/products_service.py
"""
Products Service

All product operations are scoped to the caller's organization.
- Catalog fields are writable through create/update.
- Stock counters are NOT: quantity_received is set once at creation (the
  shipment receipt path), afterwards only stock_service moves them.
- Deletion is soft (is_active = False); sales and movements keep their
  product reference.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Arrivage, Brand, Category, Product
from ..models.inventory import PURCHASE_SOURCES
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from . import arrivage_service, settings_service
from .calculations import eur_to_mad_cents, margin_percent, net_margin_percent
from .concurrency import run_with_retry
from .stock_service import STATUS_LOW, STATUS_OK, STATUS_OUT, current_stock, get_product, stock_status

CATALOG_FIELDS = {
    "name",
    "category_id",
    "brand_id",
    "arrivage_id",
    "purchase_source",
    "purchase_price_eur_cents",
    "purchase_price_mad_cents",
    "selling_price_cents",
    "promo_price_cents",
    "reorder_level",
    "is_active",
}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=CATALOG_FIELDS | {"quantity_received"},
    required_on_create={"name", "category_id", "selling_price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(writable_fields=CATALOG_FIELDS)


def serialize_product(product: Product, packaging_cents: int = 0) -> dict:
    """Raw columns plus derived stock and margin figures."""
    data = product.to_dict()
    data["current_stock"] = current_stock(product)
    data["stock_status"] = stock_status(product)
    data["margin_percent"] = float(
        margin_percent(product.selling_price_cents, product.purchase_price_mad_cents or 0)
    )
    data["net_margin_percent"] = float(
        net_margin_percent(product.selling_price_cents, product.purchase_price_mad_cents or 0, packaging_cents)
    )
    data["category_name"] = product.category.name if product.category else None
    data["brand_name"] = product.brand.name if product.brand else None
    data["arrivage_reference"] = product.arrivage.reference if product.arrivage else None
    return data


def serialize_products(products: list[Product], org_id: int) -> list[dict]:
    packaging = settings_service.packaging_cost_cents(org_id)
    return [serialize_product(p, packaging) for p in products]


def _stock_expr():
    return Product.quantity_received - Product.quantity_sold


def list_products(
    org_id: int,
    *,
    category_id: int | None = None,
    arrivage_id: int | None = None,
    source: str | None = None,
    search: str | None = None,
    status: str | None = None,
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Filtered product listing with optional pagination.

    status filters on derived stock: OUT (<= 0), LOW (1..reorder_level),
    OK (> reorder_level).
    """
    query = db.session.query(Product).filter(Product.org_id == org_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if arrivage_id is not None:
        query = query.filter(Product.arrivage_id == arrivage_id)
    if source:
        query = query.filter(Product.purchase_source == source)
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))
    if status:
        stock = _stock_expr()
        if status == STATUS_OUT:
            query = query.filter(stock <= 0)
        elif status == STATUS_LOW:
            query = query.filter(stock > 0, stock <= Product.reorder_level)
        elif status == STATUS_OK:
            query = query.filter(stock > Product.reorder_level)
        else:
            raise ValidationError("status must be one of OUT, LOW, OK")

    query = query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = query.all()
        return {"items": serialize_products(products, org_id), "count": len(products)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    products = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": serialize_products(products, org_id),
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def _check_references(patch: dict, org_id: int) -> Arrivage | None:
    if "purchase_source" in patch and patch["purchase_source"] not in PURCHASE_SOURCES:
        raise ValidationError(f"purchase_source must be one of {', '.join(PURCHASE_SOURCES)}")
    if patch.get("category_id") is not None:
        if not db.session.query(Category).filter_by(id=patch["category_id"], org_id=org_id).first():
            raise ValidationError("category_id does not exist")
    if patch.get("brand_id") is not None:
        if not db.session.query(Brand).filter_by(id=patch["brand_id"], org_id=org_id).first():
            raise ValidationError("brand_id does not exist")
    if patch.get("arrivage_id") is not None:
        arrivage = db.session.query(Arrivage).filter_by(id=patch["arrivage_id"], org_id=org_id).first()
        if arrivage is None:
            raise ValidationError("arrivage_id does not exist")
        return arrivage
    return None


def _rate_for(org_id: int, arrivage: Arrivage | None) -> Decimal:
    if arrivage is not None:
        return Decimal(arrivage.exchange_rate)
    return settings_service.exchange_rate(org_id)


def _check_final_prices(product: Product) -> None:
    promo = product.promo_price_cents
    if promo is not None and promo > product.selling_price_cents:
        raise ValidationError("promo_price_cents cannot exceed selling_price_cents")


def create_product(org_id: int, payload: dict, *, commit: bool = True) -> Product:
    """
    Create a product, optionally inside a shipment.

    The MAD purchase price defaults to EUR price x the shipment's exchange
    rate (or the organization rate). The shipment totals are refreshed in
    the same transaction.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    arrivage = _check_references(patch, org_id)

    if patch.get("purchase_price_mad_cents") is None:
        eur = patch.get("purchase_price_eur_cents")
        patch["purchase_price_mad_cents"] = eur_to_mad_cents(eur, _rate_for(org_id, arrivage)) if eur else 0
    if patch.get("reorder_level") is None:
        patch["reorder_level"] = current_app.config["DEFAULT_REORDER_LEVEL"]
    if patch.get("quantity_received") is None:
        patch["quantity_received"] = 0
    if patch.get("purchase_source") is None:
        patch["purchase_source"] = arrivage.source if arrivage is not None else "OTHER"

    product = Product(org_id=org_id, quantity_sold=0, **patch)
    _check_final_prices(product)
    db.session.add(product)
    db.session.flush()

    if arrivage is not None:
        arrivage_service.recalc_totals(arrivage)

    if commit:
        db.session.commit()
    current_app.logger.info(
        "product created id=%s org=%s received=%s", product.id, org_id, product.quantity_received
    )
    return product


def update_product(product_id: int, org_id: int, payload: dict) -> Product:
    """
    Update catalog fields. quantity_received / quantity_sold are rejected by
    the policy; use adjust-stock or reset-stock instead.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = get_product(product_id, org_id, lock=True)
        new_arrivage = _check_references(patch, org_id)
        previous_arrivage_id = product.arrivage_id

        for key, value in patch.items():
            setattr(product, key, value)

        if "purchase_price_eur_cents" in patch and "purchase_price_mad_cents" not in patch:
            eur = product.purchase_price_eur_cents
            if eur:
                current = new_arrivage or product.arrivage
                product.purchase_price_mad_cents = eur_to_mad_cents(eur, _rate_for(org_id, current))
        if product.purchase_price_mad_cents is None:
            product.purchase_price_mad_cents = 0
        _check_final_prices(product)
        db.session.flush()

        touched = {previous_arrivage_id, product.arrivage_id} - {None}
        for arrivage_id in touched:
            arrivage = db.session.query(Arrivage).filter_by(id=arrivage_id).first()
            if arrivage is not None:
                arrivage_service.recalc_totals(arrivage)

        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int, org_id: int) -> Product:
    """Soft delete; history stays intact."""
    def _op():
        product = get_product(product_id, org_id, lock=True)
        if product.is_active:
            product.is_active = False
            db.session.commit()
            current_app.logger.info("product deactivated id=%s org=%s", product.id, org_id)
        return product

    return run_with_retry(_op)


def available_stock(org_id: int) -> list[Product]:
    """Active products that can be sold right now."""
    return (
        db.session.query(Product)
        .filter(Product.org_id == org_id, Product.is_active.is_(True), _stock_expr() > 0)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
