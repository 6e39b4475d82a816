# Overview: Service-layer operations for expenses; keeps linked shipment totals current.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..errors import NotFoundError
from ..extensions import db
from ..models import Arrivage, Expense
from ..models.expenses import EXPENSE_TYPES
from ..validation import MAX_PRICE_CENTS, ModelValidationPolicy, ValidationError, validate_payload
from . import arrivage_service, settings_service
from .calculations import eur_to_mad_cents, mad_to_eur_cents


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"arrivage_id", "date", "amount_eur_cents", "amount_dh_cents", "description", "type"},
    required_on_create={"description"},
)


def _enforce_rules(patch: dict, org_id: int) -> Arrivage | None:
    if "type" in patch and patch["type"] not in EXPENSE_TYPES:
        raise ValidationError(f"type must be one of {', '.join(EXPENSE_TYPES)}")
    for key in ("amount_eur_cents", "amount_dh_cents"):
        value = patch.get(key)
        if value is not None and not (0 <= value <= MAX_PRICE_CENTS):
            raise ValidationError(f"{key} must be between 0 and {MAX_PRICE_CENTS}")
    if patch.get("arrivage_id") is not None:
        return arrivage_service.get_arrivage(patch["arrivage_id"], org_id)
    return None


def _fill_amounts(expense: Expense, org_id: int, arrivage: Arrivage | None, patch: dict) -> None:
    """Whichever currency was given drives the other one."""
    rate = Decimal(arrivage.exchange_rate) if arrivage is not None else settings_service.exchange_rate(org_id)
    eur_given = patch.get("amount_eur_cents") is not None
    dh_given = patch.get("amount_dh_cents") is not None
    if eur_given and not dh_given:
        expense.amount_dh_cents = eur_to_mad_cents(expense.amount_eur_cents, rate)
    elif dh_given and not eur_given:
        expense.amount_eur_cents = mad_to_eur_cents(expense.amount_dh_cents, rate)


def _recalc(arrivage_ids: set) -> None:
    for arrivage_id in arrivage_ids - {None}:
        arrivage = db.session.query(Arrivage).filter_by(id=arrivage_id).first()
        if arrivage is not None:
            arrivage_service.recalc_totals(arrivage)


def get_expense(expense_id: int, org_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id, org_id=org_id).first()
    if expense is None:
        raise NotFoundError("Expense not found", details={"expense_id": expense_id})
    return expense


def list_expenses(
    org_id: int,
    *,
    arrivage_id: int | None = None,
    expense_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Expense]:
    query = db.session.query(Expense).filter(Expense.org_id == org_id)
    if arrivage_id is not None:
        query = query.filter(Expense.arrivage_id == arrivage_id)
    if expense_type:
        query = query.filter(Expense.type == expense_type)
    if start is not None:
        query = query.filter(Expense.date >= start)
    if end is not None:
        query = query.filter(Expense.date <= end)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def create_expense(org_id: int, payload: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    arrivage = _enforce_rules(patch, org_id)
    if patch.get("amount_eur_cents") is None and patch.get("amount_dh_cents") is None:
        raise ValidationError("amount_eur_cents or amount_dh_cents is required")

    expense = Expense(org_id=org_id, **{k: v for k, v in patch.items() if v is not None})
    _fill_amounts(expense, org_id, arrivage, patch)
    db.session.add(expense)
    db.session.flush()
    _recalc({expense.arrivage_id})
    db.session.commit()
    return expense


def update_expense(expense_id: int, org_id: int, payload: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    new_arrivage = _enforce_rules(patch, org_id)
    expense = get_expense(expense_id, org_id)
    previous_arrivage_id = expense.arrivage_id

    for key, value in patch.items():
        setattr(expense, key, value)
    if expense.amount_eur_cents is None or expense.amount_dh_cents is None:
        raise ValidationError("amounts cannot be null")
    _fill_amounts(expense, org_id, new_arrivage or expense.arrivage, patch)
    db.session.flush()

    _recalc({previous_arrivage_id, expense.arrivage_id})
    db.session.commit()
    return expense


def delete_expense(expense_id: int, org_id: int) -> None:
    expense = get_expense(expense_id, org_id)
    arrivage_id = expense.arrivage_id
    db.session.delete(expense)
    db.session.flush()
    _recalc({arrivage_id})
    db.session.commit()
