from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Setting


# Values are decimal strings; packaging in DH, ads in DH per month
DEFAULT_SETTINGS = {
    "packagingCostPlastic": "1.50",
    "packagingCostCarton": "6.00",
    "packagingCostStickers": "0.50",
    "packagingCostTotal": "8.00",
    "adsCostMonthly": "150.00",
    "exchangeRateEurToMad": "10.85",
}

KEY_PACKAGING_TOTAL = "packagingCostTotal"
KEY_EXCHANGE_RATE = "exchangeRateEurToMad"


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


def _normalize_value(key: str, value) -> str:
    if key not in DEFAULT_SETTINGS:
        raise SettingsValidationError(f"Unknown setting: {key}")
    if isinstance(value, bool) or value is None:
        raise SettingsValidationError(f"{key} must be a number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise SettingsValidationError(f"{key} must be a number")
    if not number.is_finite() or number < 0:
        raise SettingsValidationError(f"{key} must be >= 0")
    if key == KEY_EXCHANGE_RATE:
        if number == 0:
            raise SettingsValidationError(f"{key} must be > 0")
        return str(number.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))
    return str(number.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _default_value(key: str) -> str:
    """Built-in default, with the packaging total and exchange rate taken from app config."""
    if key == KEY_PACKAGING_TOTAL:
        cents = int(current_app.config["DEFAULT_PACKAGING_COST_CENTS"])
        return str((Decimal(cents) / 100).quantize(Decimal("0.01")))
    if key == KEY_EXCHANGE_RATE:
        return str(current_app.config["DEFAULT_EXCHANGE_RATE"])
    return DEFAULT_SETTINGS[key]


def get_settings(org_id: int) -> dict[str, str]:
    """Defaults overlaid with whatever the organization has stored."""
    values = {key: _default_value(key) for key in DEFAULT_SETTINGS}
    rows = db.session.query(Setting).filter_by(org_id=org_id).all()
    for row in rows:
        values[row.key] = row.value
    return values


def get_decimal(org_id: int, key: str) -> Decimal:
    row = db.session.query(Setting).filter_by(org_id=org_id, key=key).first()
    return Decimal(row.value if row is not None else _default_value(key))


def packaging_cost_cents(org_id: int) -> int:
    amount = get_decimal(org_id, KEY_PACKAGING_TOTAL)
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def exchange_rate(org_id: int) -> Decimal:
    """Organization rate, or the configured default when none is stored."""
    row = db.session.query(Setting).filter_by(org_id=org_id, key=KEY_EXCHANGE_RATE).first()
    if row is None:
        return current_app.config["DEFAULT_EXCHANGE_RATE"]
    return Decimal(row.value)


def update_settings(org_id: int, values: dict) -> dict[str, str]:
    """Upsert several settings at once; all values are validated before any write."""
    if not isinstance(values, dict) or not values:
        raise SettingsValidationError("Settings payload must be a non-empty object")

    normalized = {key: _normalize_value(key, raw) for key, raw in values.items()}

    existing = {
        row.key: row
        for row in db.session.query(Setting).filter(
            Setting.org_id == org_id, Setting.key.in_(normalized.keys())
        )
    }
    for key, value in normalized.items():
        row = existing.get(key)
        if row is None:
            db.session.add(Setting(org_id=org_id, key=key, value=value))
        else:
            row.value = value
    db.session.commit()
    return get_settings(org_id)


def seed_defaults(org_id: int) -> int:
    """Insert missing defaults for an organization; returns how many were added."""
    present = {row.key for row in db.session.query(Setting).filter_by(org_id=org_id)}
    added = 0
    for key in DEFAULT_SETTINGS:
        if key in present:
            continue
        db.session.add(Setting(org_id=org_id, key=key, value=_default_value(key)))
        added += 1
    db.session.commit()
    return added
