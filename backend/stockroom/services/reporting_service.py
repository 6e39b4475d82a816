# Overview: Service-layer operations for dashboard reporting; read-only aggregates over products, sales and expenses.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from stockroom.extensions import db
from stockroom.models import Arrivage, Expense, Product, Sale
from stockroom.services.calculations import margin_percent, net_margin_percent, profit_cents, profit_margin_percent
from stockroom.services.settings_service import packaging_cost_cents
from stockroom.services.stock_service import STATUS_LOW, STATUS_OK, STATUS_OUT, current_stock, stock_status
from stockroom.time_utils import parse_iso_datetime


class ReportError(ValueError):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start/end must be ISO-8601 dates")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must be before end")
    return start_dt, end_dt


def _active_products(org_id: int) -> list[Product]:
    return db.session.query(Product).filter(Product.org_id == org_id, Product.is_active.is_(True)).all()


def low_stock(org_id: int, limit: int = 5) -> list[dict]:
    """Active products at or under their reorder level, lowest stock first."""
    stock = Product.quantity_received - Product.quantity_sold
    products = (
        db.session.query(Product)
        .filter(
            Product.org_id == org_id,
            Product.is_active.is_(True),
            stock <= Product.reorder_level,
        )
        .order_by(stock.asc(), Product.name.asc())
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [
        {
            "id": p.id,
            "name": p.name,
            "current_stock": current_stock(p),
            "reorder_level": p.reorder_level,
            "stock_status": stock_status(p),
            "category": (p.category.name_fr or p.category.name) if p.category else None,
        }
        for p in products
    ]


def stock_health(org_id: int) -> dict:
    counts = {STATUS_OK: 0, STATUS_LOW: 0, STATUS_OUT: 0}
    for product in _active_products(org_id):
        counts[stock_status(product)] += 1
    return {
        "healthy": counts[STATUS_OK],
        "low": counts[STATUS_LOW],
        "out": counts[STATUS_OUT],
        "total": sum(counts.values()),
    }


def summary(org_id: int, *, start: str | None = None, end: str | None = None) -> dict:
    """
    Revenue, cost of goods sold and profit over an optional sale-date range.

    Cost of goods uses each product's current MAD purchase price.
    """
    start_dt, end_dt = _parse_range(start, end)

    sales = (
        db.session.query(
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units"),
            func.coalesce(func.sum(Sale.total_amount_cents), 0).label("revenue"),
            func.coalesce(func.sum(Sale.quantity * Product.purchase_price_mad_cents), 0).label("cogs"),
        )
        .join(Product, Product.id == Sale.product_id)
        .filter(Sale.org_id == org_id)
    )
    expenses = db.session.query(func.coalesce(func.sum(Expense.amount_dh_cents), 0)).filter(
        Expense.org_id == org_id
    )
    if start_dt:
        sales = sales.filter(Sale.sale_date >= start_dt)
        expenses = expenses.filter(Expense.date >= start_dt)
    if end_dt:
        sales = sales.filter(Sale.sale_date <= end_dt)
        expenses = expenses.filter(Expense.date <= end_dt)

    row = sales.one()
    revenue = int(row.revenue or 0)
    cogs = int(row.cogs or 0)
    expenses_dh = int(expenses.scalar() or 0)
    gross = profit_cents(revenue, cogs)

    products = _active_products(org_id)
    packaging = packaging_cost_cents(org_id)
    priced = [p for p in products if (p.purchase_price_mad_cents or 0) > 0]
    avg_margin = (
        sum(margin_percent(p.selling_price_cents, p.purchase_price_mad_cents) for p in priced) / len(priced)
        if priced else 0
    )
    avg_net_margin = (
        sum(net_margin_percent(p.selling_price_cents, p.purchase_price_mad_cents, packaging) for p in priced)
        / len(priced)
        if priced else 0
    )
    inventory_value = sum(max(current_stock(p), 0) * p.selling_price_cents for p in products)

    return {
        "sales_count": int(row.sales_count or 0),
        "units_sold": int(row.units or 0),
        "revenue_cents": revenue,
        "cost_of_goods_cents": cogs,
        "gross_profit_cents": gross,
        "gross_margin_percent": float(profit_margin_percent(revenue, cogs)),
        "expenses_cents": expenses_dh,
        "net_profit_cents": gross - expenses_dh,
        "total_products": len(products),
        "total_shipments": db.session.query(Arrivage.id).filter(Arrivage.org_id == org_id).count(),
        "inventory_value_cents": inventory_value,
        "average_margin_percent": round(float(avg_margin), 2),
        "average_net_margin_percent": round(float(avg_net_margin), 2),
        "packaging_cost_cents": packaging,
    }
