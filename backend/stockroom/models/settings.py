from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Setting(db.Model):
    """Organization-scoped key/value setting (values stored as strings)."""
    __tablename__ = "settings"
    __table_args__ = (
        db.UniqueConstraint("org_id", "key", name="uq_settings_org_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    key = db.Column(db.String(64), nullable=False)
    value = db.Column(db.String(255), nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value, "updated_at": to_utc_z(self.updated_at)}
