# Overview: Service-layer operations for stock on hand; the only code that decrements quantity.

"""
Inventory Service

Stock is never decremented by reading a quantity and writing back a smaller
one. Every deduction is a single guarded statement:

    UPDATE products SET quantity = quantity - :q
    WHERE id = :id AND quantity >= :q

so two concurrent deductions can never both pass against the same units and
quantity cannot go negative.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product
from ..errors import NotFound, InsufficientStock
from ..validation import require_positive_int


def resolve_product(ref) -> Product | None:
    """
    Find a product by manual id, falling back to the internal id.
    """
    if ref is None:
        return None
    key = str(ref).strip()
    if not key:
        return None

    product = db.session.query(Product).filter_by(manual_id=key).first()
    if product is None and key.isdigit():
        product = db.session.get(Product, int(key))
    return product


def get_product_or_404(ref) -> Product:
    product = resolve_product(ref)
    if product is None:
        raise NotFound(f"Product {ref} not found", details={"product_id": str(ref)})
    return product


def guarded_decrement(product_id: int, quantity: int) -> bool:
    """
    Decrement quantity only if enough is on hand. Does not commit.

    Returns False (and changes nothing) when the guard fails.
    """
    updated = db.session.query(Product).filter(
        Product.id == product_id,
        Product.quantity >= quantity,
    ).update(
        {Product.quantity: Product.quantity - quantity},
        synchronize_session=False,
    )
    return updated == 1


def deduct_stock(product_ref, quantity) -> Product:
    """
    Deduct quantity units from one product.

    Raises:
        ValidationError: quantity is not a positive integer
        NotFound: no such product
        InsufficientStock: quantity exceeds quantity on hand
    """
    quantity = require_positive_int(quantity, "quantity")
    product = get_product_or_404(product_ref)

    if not guarded_decrement(product.id, quantity):
        db.session.rollback()
        product = get_product_or_404(product_ref)
        raise InsufficientStock(product.manual_id, quantity, product.quantity, name=product.name)

    db.session.commit()
    db.session.refresh(product)

    current_app.logger.info(
        "Deducted %s from product %s; %s left", quantity, product.manual_id, product.quantity
    )
    return product
