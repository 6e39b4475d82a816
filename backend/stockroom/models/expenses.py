from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z

EXPENSE_TYPES = ("OPERATIONAL", "MARKETING", "UTILITIES", "SHIPPING", "OTHER")


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_org_date", "org_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    # Expenses linked to a shipment are part of its landed cost
    arrivage_id = db.Column(db.Integer, db.ForeignKey("arrivages.id"), nullable=True, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    amount_eur_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_dh_cents = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.String(500), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="OTHER")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    arrivage = db.relationship("Arrivage", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "arrivage_id": self.arrivage_id,
            "date": to_utc_z(self.date),
            "amount_eur_cents": self.amount_eur_cents,
            "amount_dh_cents": self.amount_dh_cents,
            "description": self.description,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }
