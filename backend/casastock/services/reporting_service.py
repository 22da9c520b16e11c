# Overview: Service-layer operations for reporting; read-only revenue and profit aggregates.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, cast, func

from ..extensions import db
from ..models import Expense, Order, OrderLine, Product
from ..errors import ValidationError
from ..time_utils import parse_iso_datetime, report_window_starts, to_utc_z, utcnow


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


def _filter_orders(query, owner_id: int, start: datetime | None, end: datetime | None):
    query = query.filter(Order.owner_id == owner_id)
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at <= end)
    return query


def revenue_cents(owner_id: int, start: datetime | None = None, end: datetime | None = None) -> int:
    """Line totals plus shipping for every order in [start, end]."""
    lines_total = _filter_orders(
        db.session.query(
            func.coalesce(func.sum(cast(OrderLine.quantity, BigInteger) * OrderLine.selling_price_cents), 0)
        ).join(Order, Order.id == OrderLine.order_id),
        owner_id, start, end,
    ).scalar()

    shipping_total = _filter_orders(
        db.session.query(func.coalesce(func.sum(cast(Order.shipping_charge_cents, BigInteger)), 0)),
        owner_id, start, end,
    ).scalar()

    return int(lines_total or 0) + int(shipping_total or 0)


def cost_cents(owner_id: int, start: datetime | None = None, end: datetime | None = None) -> int:
    """
    Wholesale cost of what was sold: quantity x the product's current buying price.

    Lines whose product has been deleted contribute nothing.
    """
    total = _filter_orders(
        db.session.query(
            func.coalesce(func.sum(cast(OrderLine.quantity, BigInteger) * Product.buying_price_cents), 0)
        )
        .select_from(OrderLine)
        .join(Order, Order.id == OrderLine.order_id)
        .join(Product, Product.id == OrderLine.product_id),
        owner_id, start, end,
    ).scalar()
    return int(total or 0)


def profit_cents(owner_id: int, start: datetime | None = None, end: datetime | None = None) -> int:
    return revenue_cents(owner_id, start, end) - cost_cents(owner_id, start, end)


def revenue_summary(owner_id: int, now: datetime | None = None) -> dict:
    """Weekly / monthly / yearly revenue, plus all-time revenue, cost and profit."""
    now = now or utcnow()
    windows = report_window_starts(now)

    revenue = revenue_cents(owner_id)
    cost = cost_cents(owner_id)

    return {
        "weekly_revenue_cents": revenue_cents(owner_id, windows["weekly"], now),
        "monthly_revenue_cents": revenue_cents(owner_id, windows["monthly"], now),
        "yearly_revenue_cents": revenue_cents(owner_id, windows["yearly"], now),
        "all_time": {
            "revenue_cents": revenue,
            "cost_cents": cost,
            "profit_cents": revenue - cost,
        },
        "generated_at": to_utc_z(now),
    }


def period_report(owner_id: int, start: str | None, end: str | None) -> dict:
    """Revenue, cost, profit, order count and expense total for [start, end]."""
    start_dt, end_dt = _parse_range(start, end)
    if start_dt is None:
        raise ValidationError("start is required")
    end_dt = end_dt or utcnow()

    revenue = revenue_cents(owner_id, start_dt, end_dt)
    cost = cost_cents(owner_id, start_dt, end_dt)

    order_count = _filter_orders(
        db.session.query(func.count(Order.id)), owner_id, start_dt, end_dt
    ).scalar()

    expense_total = (
        db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
        .filter(
            Expense.owner_id == owner_id,
            Expense.created_at >= start_dt,
            Expense.created_at <= end_dt,
        )
        .scalar()
    )

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "revenue_cents": revenue,
        "cost_cents": cost,
        "profit_cents": revenue - cost,
        "order_count": int(order_count or 0),
        "expense_total_cents": int(expense_total or 0),
    }
