"""
Stock deduction tests.

Verifies:
- Deduction decrements quantity and returns the updated product
- Requests larger than stock are rejected without touching quantity
- Quantity validation (positive integers only)
- Manual id lookup with internal id fallback
- Capability enforcement on the deduct endpoint
"""

import pytest

from stockroom.errors import InsufficientStock, NotFound, ValidationError
from stockroom.models import Product
from stockroom.services import inventory_service
from tests.conftest import reload


class TestDeductStockService:

    def test_deduct_decrements_quantity(self, make_product):
        product = make_product("P001", quantity=10)
        updated = inventory_service.deduct_stock("P001", 4)
        assert updated.quantity == 6
        assert reload(Product, product.id).quantity == 6

    def test_deduct_entire_stock_reaches_zero(self, make_product):
        product = make_product("P001", quantity=3)
        inventory_service.deduct_stock("P001", 3)
        assert reload(Product, product.id).quantity == 0

    def test_insufficient_stock_leaves_quantity_unchanged(self, make_product):
        product = make_product("P001", quantity=2)
        with pytest.raises(InsufficientStock) as exc:
            inventory_service.deduct_stock("P001", 3)
        assert exc.value.product_id == "P001"
        assert exc.value.available == 2
        assert reload(Product, product.id).quantity == 2

    def test_repeated_deductions_never_go_negative(self, make_product):
        product = make_product("P001", quantity=5)
        outcomes = []
        for _ in range(4):
            try:
                inventory_service.deduct_stock("P001", 2)
                outcomes.append("ok")
            except InsufficientStock:
                outcomes.append("rejected")
        assert outcomes == ["ok", "ok", "rejected", "rejected"]
        assert reload(Product, product.id).quantity == 1

    def test_guarded_decrement_refuses_stale_quantity(self, make_product):
        product = make_product("P001", quantity=1)
        assert inventory_service.guarded_decrement(product.id, 1) is True
        # A second caller that still believes one unit is left
        assert inventory_service.guarded_decrement(product.id, 1) is False
        assert reload(Product, product.id).quantity == 0

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "abc", None, True, "1e3"])
    def test_invalid_quantity_rejected(self, make_product, quantity):
        product = make_product("P001", quantity=10)
        with pytest.raises(ValidationError):
            inventory_service.deduct_stock("P001", quantity)
        assert reload(Product, product.id).quantity == 10

    def test_numeric_string_quantity_accepted(self, make_product):
        make_product("P001", quantity=10)
        assert inventory_service.deduct_stock("P001", "2").quantity == 8

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            inventory_service.deduct_stock("NOPE", 1)

    def test_internal_id_fallback(self, make_product):
        product = make_product("SKU-A", quantity=10)
        updated = inventory_service.deduct_stock(str(product.id), 1)
        assert updated.id == product.id
        assert updated.quantity == 9

    def test_manual_id_wins_over_internal_id(self, make_product):
        first = make_product("X1", quantity=10)
        # Manual id that collides with the first product's internal id
        second = make_product(str(first.id), quantity=10)
        inventory_service.deduct_stock(str(first.id), 1)
        assert reload(Product, second.id).quantity == 9
        assert reload(Product, first.id).quantity == 10


class TestDeductStockRoute:

    def test_deduct_success(self, staff_client, make_product):
        make_product("P001", quantity=10)
        resp = staff_client.post("/api/products/P001/deduct", json={"quantity": 3})
        assert resp.status_code == 200
        assert resp.json["product"]["quantity"] == 7
        assert resp.json["message"]

    def test_deduct_insufficient_returns_400(self, staff_client, make_product):
        make_product("P001", quantity=1)
        resp = staff_client.post("/api/products/P001/deduct", json={"quantity": 5})
        assert resp.status_code == 400
        assert resp.json["product_id"] == "P001"
        assert resp.json["available_quantity"] == 1

    def test_deduct_missing_quantity_returns_400(self, staff_client, make_product):
        make_product("P001", quantity=1)
        assert staff_client.post("/api/products/P001/deduct", json={}).status_code == 400

    def test_deduct_unknown_product_returns_404(self, staff_client, db_session):
        resp = staff_client.post("/api/products/NOPE/deduct", json={"quantity": 1})
        assert resp.status_code == 404

    def test_deduct_requires_auth(self, client, make_product):
        make_product("P001")
        assert client.post("/api/products/P001/deduct", json={"quantity": 1}).status_code == 401

    def test_supplier_cannot_deduct(self, supplier_client, make_product):
        product = make_product("P001", quantity=10)
        resp = supplier_client.post("/api/products/P001/deduct", json={"quantity": 1})
        assert resp.status_code == 403
        assert reload(Product, product.id).quantity == 10
        assert resp.json["required_permission"] == "DEDUCT_STOCK"

    def test_deduct_array_body_returns_400(self, staff_client, make_product):
        product = make_product("P001", quantity=10)
        resp = staff_client.post("/api/products/P001/deduct", json=[3])
        assert resp.status_code == 400
        assert reload(Product, product.id).quantity == 10
