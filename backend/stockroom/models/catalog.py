from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("org_id", "name", name="uq_categories_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    name_fr = db.Column(db.String(100), nullable=True)
    description = db.Column(db.String(500), nullable=True)

    # Percent targets shown next to product margins
    target_margin = db.Column(db.Numeric(5, 2), nullable=True)
    min_margin = db.Column(db.Numeric(5, 2), nullable=True)
    color = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_fr": self.name_fr,
            "description": self.description,
            "target_margin": float(self.target_margin) if self.target_margin is not None else None,
            "min_margin": float(self.min_margin) if self.min_margin is not None else None,
            "color": self.color,
            "created_at": to_utc_z(self.created_at),
        }


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = (
        db.UniqueConstraint("org_id", "name", name="uq_brands_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    country = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("org_id", "name", name="uq_suppliers_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    contact_info = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_info": self.contact_info,
            "created_at": to_utc_z(self.created_at),
        }
