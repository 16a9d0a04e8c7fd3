from datetime import datetime
from decimal import Decimal

import pytest

from models import db
from models.inventory import InventoryItem, stock_status
from services import inventory_service
from services.errors import ValidationError, NotFoundError, ConflictError


class TestStockStatus:
    def test_thresholds(self):
        assert stock_status(0, 10) == "critical"
        assert stock_status(5, 10) == "critical"
        assert stock_status("5.01", 10) == "low"
        assert stock_status(10, 10) == "low"
        assert stock_status("10.01", 10) == "good"

    def test_is_pure(self):
        assert stock_status(7, 10) == stock_status(7, 10) == "low"

    def test_sql_expression_matches_python(self, ctx):
        for name, qty in [("a", "2.5"), ("b", "5"), ("c", "6"), ("d", "11")]:
            db.session.add(InventoryItem(item_name=name, quantity=Decimal(qty), unit="kg", threshold=Decimal("5")))
        db.session.commit()

        for item in InventoryItem.query.all():
            via_sql = InventoryItem.query.filter(InventoryItem.status == item.status).all()
            assert item in via_sql


class TestAdjustQuantity:
    def test_remove_then_add(self, ctx):
        item = inventory_service.create_item("Rice", 20, "kg", 10)

        result = inventory_service.adjust_quantity(item.id, 15, "remove")
        assert result["previous_quantity"] == Decimal("20")
        assert result["new_quantity"] == Decimal("5")
        assert result["new_status"] == "critical"

        result = inventory_service.adjust_quantity(item.id, 10, "add")
        assert result["new_quantity"] == Decimal("15")
        assert result["new_status"] == "good"
        assert inventory_service.get_item(item.id).status == "good"

    def test_remove_clamps_at_zero(self, ctx):
        item = inventory_service.create_item("Eggs", 5, "pcs", 12)
        result = inventory_service.adjust_quantity(item.id, 50, "remove")
        assert result["new_quantity"] == Decimal("0")
        assert result["new_status"] == "critical"

    def test_strict_remove_rejects_overdraw(self, ctx):
        ctx.config["INVENTORY_STRICT_REMOVE"] = True
        item = inventory_service.create_item("Flour", 3, "kg", 5)
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item.id, 4, "remove")
        assert inventory_service.get_item(item.id).quantity == Decimal("3")

    def test_successive_adds_accumulate(self, ctx):
        a = inventory_service.create_item("Sugar", 1, "kg", 5)
        b = inventory_service.create_item("Salt", 1, "kg", 5)
        inventory_service.adjust_quantity(a.id, "2.5", "add")
        inventory_service.adjust_quantity(a.id, "4", "add")
        inventory_service.adjust_quantity(b.id, "6.5", "add")
        assert inventory_service.get_item(a.id).quantity == inventory_service.get_item(b.id).quantity

    def test_set_replaces_quantity(self, ctx):
        item = inventory_service.create_item("Oil", 8, "L", 4)
        inventory_service.adjust_quantity(item.id, "2.75", "set")
        assert inventory_service.get_item(item.id).quantity == Decimal("2.75")

    def test_set_then_read_is_exact(self, ctx):
        item = inventory_service.create_item("Flour", 8, "kg", 4)
        result = inventory_service.adjust_quantity(item.id, "5.000", "set")
        db.session.expire_all()

        stored = inventory_service.get_item(item.id)
        assert stored.quantity == Decimal("5")
        assert result["new_quantity"] == stored.quantity
        assert result["new_status"] == stored.status == "good"

    @pytest.mark.parametrize("amount", ["1.2345", "0.0001", "1000000000", "1e12"])
    def test_rejects_amounts_the_column_cannot_hold(self, ctx, amount):
        item = inventory_service.create_item("Vinegar", 10, "L", 4)
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item.id, amount, "set")
        assert inventory_service.get_item(item.id).quantity == Decimal("10")

    def test_add_cannot_overflow_the_column(self, ctx):
        item = inventory_service.create_item("Ice", "999999999", "kg", 4)
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item.id, 1, "add")

    def test_only_add_counts_as_restock(self, ctx):
        item = inventory_service.create_item("Coffee", 10, "kg", 4)
        item.last_restocked = None
        db.session.commit()

        inventory_service.adjust_quantity(item.id, 3, "set")
        inventory_service.adjust_quantity(item.id, 1, "remove")
        assert inventory_service.get_item(item.id).last_restocked is None

        inventory_service.adjust_quantity(item.id, 2, "add")
        assert isinstance(inventory_service.get_item(item.id).last_restocked, datetime)

    def test_rejects_bad_input(self, ctx):
        item = inventory_service.create_item("Milk", 10, "L", 4)
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item.id, 1, "multiply")
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item.id, "lots", "add")
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item.id, -1, "add")
        with pytest.raises(NotFoundError):
            inventory_service.adjust_quantity(9999, 1, "add")
        assert inventory_service.get_item(item.id).quantity == Decimal("10")


class TestInventoryCrud:
    def test_duplicate_name_conflicts(self, ctx):
        inventory_service.create_item("Butter", 2, "kg", 1)
        with pytest.raises(ConflictError):
            inventory_service.create_item("Butter", 5, "kg", 1)
        assert InventoryItem.query.count() == 1

    def test_create_validates(self, ctx):
        with pytest.raises(ValidationError):
            inventory_service.create_item("", 1, "kg", 1)
        with pytest.raises(ValidationError):
            inventory_service.create_item("Tea", -1, "kg", 1)
        with pytest.raises(ValidationError):
            inventory_service.create_item("Tea", 1, "kg", 0)

    def test_low_stock_orders_critical_first(self, ctx):
        inventory_service.create_item("A", 1, "kg", 10)
        inventory_service.create_item("B", 8, "kg", 10)
        inventory_service.create_item("C", 3, "kg", 10)
        inventory_service.create_item("D", 50, "kg", 10)

        names = [i.item_name for i in inventory_service.low_stock_items()]
        assert names == ["A", "C", "B"]
        assert [i.item_name for i in inventory_service.low_stock_items(critical_only=True)] == ["A", "C"]
        assert [i.item_name for i in inventory_service.list_items(status="good")] == ["D"]

    def test_stats(self, ctx):
        inventory_service.create_item("A", 1, "kg", 10)
        inventory_service.create_item("B", 8, "pcs", 10)
        inventory_service.create_item("D", 50, "kg", 10)
        assert inventory_service.inventory_stats() == {
            "total_items": 3,
            "good_status": 1,
            "low_status": 1,
            "critical_status": 1,
            "total_unique_units": 2,
        }


class TestInventoryApi:
    def test_quantity_patch(self, client):
        res = client.post("/api/restaurant/inventory", json={
            "item_name": "Rice", "quantity": 20, "unit": "kg", "threshold": 10,
        })
        assert res.status_code == 201
        item_id = res.get_json()["data"]["id"]

        res = client.patch(f"/api/restaurant/inventory/{item_id}/quantity", json={"quantity": 15, "operation": "remove"})
        body = res.get_json()
        assert res.status_code == 200
        assert body["previousQuantity"] == 20
        assert body["newQuantity"] == 5
        assert body["newStatus"] == "critical"

    def test_invalid_operation_is_400(self, client):
        res = client.post("/api/restaurant/inventory", json={
            "item_name": "Beans", "quantity": 2, "unit": "kg", "threshold": 1,
        })
        item_id = res.get_json()["data"]["id"]
        res = client.patch(f"/api/restaurant/inventory/{item_id}/quantity", json={"quantity": 1, "operation": "double"})
        assert res.status_code == 400
        assert res.get_json()["success"] is False

    def test_missing_item_is_404(self, client):
        res = client.get("/api/restaurant/inventory/404")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Inventory item not found"

    def test_low_stock_limit_is_clamped(self, client, app):
        with app.app_context():
            inventory_service.create_item("A", 1, "kg", 10)
            inventory_service.create_item("B", 2, "kg", 10)

        for limit in ("-1", "0"):
            res = client.get(f"/api/restaurant/inventory/status/low?limit={limit}")
            assert res.status_code == 200
            assert res.get_json()["count"] == 1
        assert client.get("/api/restaurant/inventory/status/low?limit=100000").get_json()["count"] == 2

    def test_non_object_body_is_400(self, client):
        assert client.post("/api/restaurant/inventory", json=[1]).status_code == 400

        res = client.post("/api/restaurant/inventory", json={
            "item_name": "Corn", "quantity": 2, "unit": "kg", "threshold": 1,
        })
        item_id = res.get_json()["data"]["id"]
        assert client.patch(f"/api/restaurant/inventory/{item_id}/quantity", json=["add", 1]).status_code == 400
        res = client.patch(
            f"/api/restaurant/inventory/{item_id}/quantity",
            data='{"quantity": Infinity, "operation": "add"}',
            content_type="application/json",
        )
        assert res.status_code == 400

    def test_over_precise_quantity_is_400(self, client):
        res = client.post("/api/restaurant/inventory", json={
            "item_name": "Saffron", "quantity": "0.0005", "unit": "g", "threshold": 1,
        })
        assert res.status_code == 400
        assert res.get_json()["error"] == "quantity allows at most 3 decimal places"
