from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z
from stockroom.money import format_cents


class Product(db.Model):
    """
    Product master data and quantity on hand.

    manual_id is the human-assigned code printed on shelves and typed at the
    till; sales look products up by it first and fall back to the internal id.

    quantity is only ever decremented through a guarded UPDATE
    (quantity >= requested), never read-modify-write, so it cannot go negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("manual_id", name="uq_products_manual_id"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonneg"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonneg"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    manual_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} manual_id={self.manual_id!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "manual_id": self.manual_id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
