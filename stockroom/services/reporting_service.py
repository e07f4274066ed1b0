# Overview: Service-layer operations for reporting; read-only aggregation of the sales log.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Sale, SaleLine
from stockroom.money import format_cents
from stockroom.time_utils import day_start, week_start


PERIODS = ("daily", "weekly")
DEFAULT_PERIOD = "daily"


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def normalize_period(period: str | None) -> str:
    """Unknown or missing periods fall back to daily."""
    period = (period or "").strip().lower()
    return period if period in PERIODS else DEFAULT_PERIOD


def _bucket(moment: datetime, period: str) -> datetime:
    return week_start(moment) if period == "weekly" else day_start(moment)


def get_sales_report(period: str | None = DEFAULT_PERIOD) -> dict:
    """
    Group sale lines by day or ISO week (keyed by Monday), newest first.

    Each row carries sale count, units sold, revenue and a per-product
    breakdown sorted by revenue.
    """
    period = normalize_period(period)

    try:
        rows = (
            db.session.query(
                Sale.id,
                Sale.created_at,
                SaleLine.manual_id,
                SaleLine.product_name,
                SaleLine.quantity,
                SaleLine.line_total_cents,
            )
            .join(SaleLine, SaleLine.sale_id == Sale.id)
            .order_by(Sale.created_at.asc(), SaleLine.id.asc())
            .all()
        )
    except Exception as exc:
        raise ReportError("Failed to aggregate sales") from exc

    buckets: dict[datetime, dict] = {}
    for sale_id, created_at, manual_id, product_name, quantity, line_total in rows:
        key = _bucket(created_at, period)
        bucket = buckets.setdefault(key, {"sale_ids": set(), "items_sold": 0, "total_cents": 0, "products": {}})
        bucket["sale_ids"].add(sale_id)
        bucket["items_sold"] += quantity
        bucket["total_cents"] += line_total

        product = bucket["products"].setdefault(
            manual_id, {"product_id": manual_id, "product_name": product_name, "quantity_sold": 0, "total_cents": 0}
        )
        product["quantity_sold"] += quantity
        product["total_cents"] += line_total

    report_rows = []
    for key in sorted(buckets, reverse=True):
        bucket = buckets[key]
        products = sorted(
            bucket["products"].values(),
            key=lambda p: (-p["total_cents"], p["product_id"]),
        )
        for product in products:
            product["total_amount"] = format_cents(product["total_cents"])
        report_rows.append({
            "period_start": key.date().isoformat(),
            "sales_count": len(bucket["sale_ids"]),
            "items_sold": bucket["items_sold"],
            "total_cents": bucket["total_cents"],
            "total_amount": format_cents(bucket["total_cents"]),
            "products": products,
        })

    return {"period": period, "rows": report_rows}
