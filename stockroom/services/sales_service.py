"""
Sales Service - multi-item sale transaction

A sale either deducts stock for every line and is recorded, or changes
nothing at all:

1. Every item is resolved and every quantity checked against stock before
   any unit is deducted (check-all-then-commit-all).
2. Deductions use the guarded decrement from inventory_service, all inside
   one transaction together with the Sale/SaleLine rows. If a concurrent sale
   took the stock between check and deduct, the guard fails and the whole
   transaction is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleLine, Product
from ..errors import ValidationError, NotFound, InsufficientStock
from ..validation import require_positive_int
from stockroom.money import format_cents
from stockroom.time_utils import utcnow
from .inventory_service import resolve_product, guarded_decrement
from .concurrency import run_with_retry


@dataclass
class SaleResult:
    sale: Sale
    total_cents: int
    records: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "message": "Sale completed successfully",
            "total_amount_cents": self.total_cents,
            "total_amount": format_cents(self.total_cents),
            "sale_records": self.records,
            "sale": self.sale.to_dict(include_lines=False),
        }


def _normalize_items(items) -> list[tuple[str, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    normalized = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        ref = item.get("id", item.get("product_id"))
        if ref is None or str(ref).strip() == "":
            raise ValidationError(f"items[{index}].id is required")
        quantity = require_positive_int(item.get("quantity"), f"items[{index}].quantity")
        normalized.append((str(ref).strip(), quantity))
    return normalized


def _resolve_products(items: list[tuple[str, int]]) -> list[tuple[Product, int]]:
    resolved = []
    for ref, quantity in items:
        product = resolve_product(ref)
        if product is None:
            raise NotFound(f"Product {ref} not found", details={"product_id": ref})
        resolved.append((product, quantity))
    return resolved


def _validate_on_hand(resolved: list[tuple[Product, int]]) -> None:
    """Raise InsufficientStock for the first product whose summed request exceeds stock."""
    product_totals: dict[int, int] = {}
    for product, quantity in resolved:
        product_totals[product.id] = product_totals.get(product.id, 0) + quantity

    for product, _ in resolved:
        requested = product_totals[product.id]
        if requested > product.quantity:
            raise InsufficientStock(product.manual_id, requested, product.quantity, name=product.name)


def create_sale(items, user_id: int | None = None) -> SaleResult:
    """
    Sell several products in one all-or-nothing transaction.

    Raises:
        ValidationError: empty list or malformed item
        NotFound: an item's product does not exist
        InsufficientStock: an item asks for more than is on hand
    """
    normalized = _normalize_items(items)

    def _op() -> SaleResult:
        try:
            resolved = _resolve_products(normalized)
            _validate_on_hand(resolved)

            sale = Sale(user_id=user_id, total_cents=0, created_at=utcnow())
            db.session.add(sale)

            total_cents = 0
            for product, quantity in resolved:
                if not guarded_decrement(product.id, quantity):
                    db.session.rollback()
                    current = db.session.get(Product, product.id)
                    raise InsufficientStock(
                        product.manual_id,
                        quantity,
                        current.quantity if current else 0,
                        name=product.name,
                    )

                line_total = product.price_cents * quantity
                total_cents += line_total
                sale.lines.append(SaleLine(
                    product_id=product.id,
                    manual_id=product.manual_id,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price_cents=product.price_cents,
                    line_total_cents=line_total,
                ))

            sale.total_cents = total_cents
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return SaleResult(
            sale=sale,
            total_cents=total_cents,
            records=[line.to_dict() for line in sale.lines],
        )

    result = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s recorded: %s line(s), total %s",
        result.sale.id, len(result.records), format_cents(result.total_cents),
    )
    return result


def list_sales(limit: int = 50) -> list[Sale]:
    limit = max(1, min(limit, 500))
    return (
        db.session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )
