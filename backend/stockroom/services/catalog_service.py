# Overview: Service-layer operations for categories, brands and suppliers.

"""
Catalog reference data, scoped to one organization.

Names are unique per organization (case-insensitive check here, exact
unique constraint in the schema).
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import NotFoundError
from ..extensions import db
from ..models import Arrivage, Brand, Category, Product, Supplier
from ..validation import ConflictError, ModelValidationPolicy, ValidationError, validate_payload


DEFAULT_CATEGORY_NAME = "Uncategorized"

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "name_fr", "description", "target_margin", "min_margin", "color"},
    required_on_create={"name"},
)
BRAND_POLICY = ModelValidationPolicy(
    writable_fields={"name", "country"},
    required_on_create={"name"},
)
SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_info"},
    required_on_create={"name"},
)

_POLICIES = {
    Category: CATEGORY_POLICY,
    Brand: BRAND_POLICY,
    Supplier: SUPPLIER_POLICY,
}


def _check_margins(patch: dict) -> None:
    for key in ("target_margin", "min_margin"):
        value = patch.get(key)
        if value is not None and not (Decimal("-100") <= value <= Decimal("100")):
            raise ValidationError(f"{key} must be between -100 and 100")


def _get(model, item_id: int, org_id: int):
    item = db.session.query(model).filter_by(id=item_id, org_id=org_id).first()
    if item is None:
        raise NotFoundError(f"{model.__name__} not found", details={"id": item_id})
    return item


def _ensure_unique_name(model, org_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(model).filter(
        model.org_id == org_id,
        db.func.lower(model.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"{model.__name__} '{name}' already exists")


def list_items(model, org_id: int) -> list:
    return db.session.query(model).filter_by(org_id=org_id).order_by(model.name.asc()).all()


def create_item(model, org_id: int, payload: dict):
    patch = validate_payload(model=model, payload=payload, policy=_POLICIES[model], partial=False)
    if model is Category:
        _check_margins(patch)
    _ensure_unique_name(model, org_id, patch["name"])

    item = model(org_id=org_id, **patch)
    db.session.add(item)
    db.session.commit()
    return item


def update_item(model, item_id: int, org_id: int, payload: dict):
    patch = validate_payload(model=model, payload=payload, policy=_POLICIES[model], partial=True)
    if model is Category:
        _check_margins(patch)
    item = _get(model, item_id, org_id)
    if "name" in patch:
        _ensure_unique_name(model, org_id, patch["name"], exclude_id=item.id)

    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def delete_item(model, item_id: int, org_id: int) -> None:
    """
    Categories still holding products cannot be deleted. Brands and
    suppliers are detached from their products and shipments instead.
    """
    item = _get(model, item_id, org_id)

    if model is Category:
        in_use = db.session.query(Product.id).filter_by(category_id=item.id).count()
        if in_use:
            raise ConflictError(f"Category has {in_use} product(s); move them first")
    elif model is Brand:
        db.session.query(Product).filter_by(brand_id=item.id).update(
            {"brand_id": None, "version_id": Product.version_id + 1},
            synchronize_session=False,
        )
    elif model is Supplier:
        db.session.query(Arrivage).filter_by(supplier_id=item.id).update(
            {"supplier_id": None}, synchronize_session=False
        )

    db.session.delete(item)
    db.session.commit()


def find_or_create_category(org_id: int, name: str | None) -> Category:
    """Case-insensitive lookup by name; used by product import. Flushes, never commits."""
    name = (name or "").strip() or DEFAULT_CATEGORY_NAME
    category = (
        db.session.query(Category)
        .filter(Category.org_id == org_id, db.func.lower(Category.name) == name.lower())
        .first()
    )
    if category is None:
        category = Category(org_id=org_id, name=name[:100])
        db.session.add(category)
        db.session.flush()
    return category
