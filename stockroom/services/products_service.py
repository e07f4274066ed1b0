# stockroom/services/products_service.py
"""
Products Service

CRUD over product master data. Quantity may be set here when a product is
created or restocked; selling goes through inventory_service instead.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..errors import ConflictError
from .inventory_service import get_product_or_404

PRODUCT_MUTABLE_FIELDS = {"manual_id", "name", "description", "price_cents", "quantity"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_manual_id_free(manual_id: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.manual_id == manual_id)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Product id {manual_id} already exists")


def list_products(
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
) -> dict:
    """
    Product listing with optional name/id search and pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(
            db.or_(Product.name.ilike(pattern), Product.manual_id.ilike(pattern))
        )
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(ref) -> Product:
    return get_product_or_404(ref)


def create_product(*, patch: dict) -> Product:
    """Create product from a validated patch dict."""
    _ensure_manual_id_free(patch["manual_id"])

    product = Product(quantity=0, price_cents=0)
    apply_product_patch(product, patch)
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Product id {patch['manual_id']} already exists")
    return product


def update_product(*, ref, patch: dict) -> Product:
    product = get_product_or_404(ref)
    if "manual_id" in patch and patch["manual_id"] != product.manual_id:
        _ensure_manual_id_free(patch["manual_id"], exclude_id=product.id)

    apply_product_patch(product, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product update conflicts with an existing product")
    return product


def delete_product(*, ref) -> Product:
    """Delete product. Past sale lines keep their snapshotted name and price."""
    product = get_product_or_404(ref)
    db.session.delete(product)
    db.session.commit()
    return product
