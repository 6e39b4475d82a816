from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from stockroom.time_utils import to_utc_z

PURCHASE_SOURCES = (
    "ACTION",
    "CARREFOUR",
    "PHARMACIE",
    "AMAZON_FR",
    "SEPHORA",
    "RITUALS",
    "NOCIBE",
    "LIDL",
    "OTHER",
)

ARRIVAGE_STATUSES = ("PENDING", "IN_TRANSIT", "RECEIVED")

MOVEMENT_SALE = "SALE"
MOVEMENT_RETURN = "RETURN"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_RESET = "RESET"


def _cents(value: int | None) -> int | None:
    return int(value) if value is not None else None


class Arrivage(db.Model):
    """
    A shipment: one purchase run abroad, received together.

    Products are created inside an arrivage; its exchange rate converts EUR
    purchase prices to MAD. Stored totals are recalculated whenever a product
    or linked expense changes (see arrivage_service.recalc_totals).
    """
    __tablename__ = "arrivages"
    __table_args__ = (
        db.UniqueConstraint("org_id", "reference", name="uq_arrivages_org_reference"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)

    reference = db.Column(db.String(100), nullable=False)
    source = db.Column(db.String(16), nullable=False, default="OTHER")
    status = db.Column(db.String(16), nullable=False, default="PENDING")

    exchange_rate = db.Column(db.Numeric(10, 4), nullable=False)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=True)
    ship_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_date = db.Column(db.DateTime(timezone=True), nullable=True)

    shipping_cost_eur_cents = db.Column(db.Integer, nullable=False, default=0)
    packaging_cost_eur_cents = db.Column(db.Integer, nullable=False, default=0)

    # Denormalized, refreshed by recalc_totals
    total_cost_eur_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cost_dh_cents = db.Column(db.Integer, nullable=False, default=0)
    product_count = db.Column(db.Integer, nullable=False, default=0)
    total_units = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier")

    def __repr__(self) -> str:
        return f"<Arrivage id={self.id} reference={self.reference!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference": self.reference,
            "supplier_id": self.supplier_id,
            "source": self.source,
            "status": self.status,
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "purchase_date": to_utc_z(self.purchase_date),
            "ship_date": to_utc_z(self.ship_date),
            "received_date": to_utc_z(self.received_date),
            "shipping_cost_eur_cents": self.shipping_cost_eur_cents,
            "packaging_cost_eur_cents": self.packaging_cost_eur_cents,
            "total_cost_eur_cents": self.total_cost_eur_cents,
            "total_cost_dh_cents": self.total_cost_dh_cents,
            "product_count": self.product_count,
            "total_units": self.total_units,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data plus its stock counters.

    STOCK COUNTERS:
    - quantity_received: cumulative units ever received (shipment path)
    - quantity_sold: cumulative units ever sold
    - current stock is derived (received - sold), never stored

    The counters are only mutated by stock_service (ledger engine), which
    writes a StockMovement in the same transaction. version_id is the
    optimistic lock: a concurrent writer that read a stale version fails
    its UPDATE with StaleDataError and is retried from a fresh read.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity_received >= 0", name="ck_products_received_nonneg"),
        db.CheckConstraint("quantity_sold >= 0", name="ck_products_sold_nonneg"),
        db.CheckConstraint("quantity_sold <= quantity_received", name="ck_products_stock_nonneg"),
        db.Index("ix_products_org_name", "org_id", "name"),
        db.Index("ix_products_org_active", "org_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True)
    arrivage_id = db.Column(db.Integer, db.ForeignKey("arrivages.id"), nullable=True, index=True)

    name = db.Column(db.String(200), nullable=False)
    purchase_source = db.Column(db.String(16), nullable=False, default="OTHER")

    # Authoritative storage in cents
    purchase_price_eur_cents = db.Column(db.Integer, nullable=True)
    purchase_price_mad_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)
    promo_price_cents = db.Column(db.Integer, nullable=True)

    quantity_received = db.Column(db.Integer, nullable=False, default=0)
    quantity_sold = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=3)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    brand = db.relationship("Brand")
    arrivage = db.relationship("Arrivage", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} received={self.quantity_received} sold={self.quantity_sold}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category_id": self.category_id,
            "brand_id": self.brand_id,
            "arrivage_id": self.arrivage_id,
            "purchase_source": self.purchase_source,
            "purchase_price_eur_cents": _cents(self.purchase_price_eur_cents),
            "purchase_price_mad_cents": _cents(self.purchase_price_mad_cents),
            "selling_price_cents": _cents(self.selling_price_cents),
            "promo_price_cents": _cents(self.promo_price_cents),
            "quantity_received": self.quantity_received,
            "quantity_sold": self.quantity_sold,
            "reorder_level": self.reorder_level,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    GUARANTEES:
    - new_qty == previous_qty + quantity
    - previous_qty is the product's stock observed inside the transaction
      that wrote this row
    - never updated, never deleted (enforced by the mapper listeners below)
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("new_qty = previous_qty + quantity", name="ck_movements_arithmetic"),
        db.Index("ix_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)

    # Signed: negative is outbound
    quantity = db.Column(db.Integer, nullable=False)
    previous_qty = db.Column(db.Integer, nullable=False)
    new_qty = db.Column(db.Integer, nullable=False)

    reference = db.Column(db.String(200), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    # Plain integer: sales are deleted, their movements are not
    sale_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))
    user = db.relationship("User")

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} product_id={self.product_id} type={self.type} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "previous_qty": self.previous_qty,
            "new_qty": self.new_qty,
            "reference": self.reference,
            "notes": self.notes,
            "sale_id": self.sale_id,
            "user_id": self.user_id,
            "user": {"email": self.user.email, "full_name": self.user.full_name} if self.user else None,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(StockMovement, "before_update")
def _refuse_movement_update(mapper, connection, target):
    raise ValueError("stock movements are append-only")


@event.listens_for(StockMovement, "before_delete")
def _refuse_movement_delete(mapper, connection, target):
    raise ValueError("stock movements are append-only")
