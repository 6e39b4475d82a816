from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z

PRICING_REGULAR = "REGULAR"
PRICING_PROMO = "PROMO"


class Sale(db.Model):
    """
    One sale of one product.

    total_amount_cents is always quantity * price_per_unit_cents; it is
    recomputed by sales_service on every write and never accepted from input.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        db.Index("ix_sales_org_date", "org_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_per_unit_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    pricing_mode = db.Column(db.String(16), nullable=False, default=PRICING_REGULAR)
    is_promo = db.Column(db.Boolean, nullable=False, default=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.String(500), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))

    def __repr__(self) -> str:
        return f"<Sale id={self.id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price_per_unit_cents": self.price_per_unit_cents,
            "total_amount_cents": self.total_amount_cents,
            "pricing_mode": self.pricing_mode,
            "is_promo": self.is_promo,
            "sale_date": to_utc_z(self.sale_date),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
