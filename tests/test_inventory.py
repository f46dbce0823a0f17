"""
Tests for the catalog and per-branch stock levels.
"""

from django.db import IntegrityError, transaction
from django.urls import reverse

import pytest

from apps.core.audit_models import AuditLog
from apps.core.exceptions import InsufficientStock
from apps.inventory import services
from apps.inventory.models import Inventory, Product


@pytest.mark.django_db
class TestProductCatalog:
    """Product and category endpoints."""

    def test_create_product_with_initial_stock(self, api_client, supermarket, stock):
        api_client.force_authenticate(supermarket.manager)
        response = api_client.post(
            reverse("inventory:product_list"),
            {
                "name": "Rice 1kg",
                "sku": "RICE1",
                "variants": [
                    {"sku": "RICE1-V", "barcode": "6221000000011", "price": "35.00", "initial_stock": 40}
                ],
            },
            format="json",
        )

        assert response.status_code == 201
        variant = Product.objects.get(tenant=supermarket.tenant, sku="RICE1").variants.get()
        assert stock(variant, supermarket.branch) == 40
        assert response.json()["variants"][0]["barcode"] == "6221000000011"

    def test_cashier_cannot_create_product(self, api_client, retail):
        api_client.force_authenticate(retail.employee)
        response = api_client.post(
            reverse("inventory:product_list"),
            {"name": "Cap", "sku": "CAP", "variants": [{"sku": "CAP-V", "price": "50.00"}]},
            format="json",
        )
        assert response.status_code == 403

    def test_product_needs_a_variant(self, api_client, retail):
        api_client.force_authenticate(retail.owner)
        response = api_client.post(
            reverse("inventory:product_list"),
            {"name": "Cap", "sku": "CAP", "variants": []},
            format="json",
        )
        assert response.status_code == 400
        assert "variants" in response.json()

    def test_duplicate_sku_rejected(self, api_client, retail, make_variant):
        variant = make_variant(retail, name="Shoes")
        api_client.force_authenticate(retail.owner)
        response = api_client.post(
            reverse("inventory:product_list"),
            {"name": "Other", "sku": variant.product.sku, "variants": [{"sku": "NEW-V", "price": "5.00"}]},
            format="json",
        )
        assert response.status_code == 400
        assert "sku" in response.json()

    def test_adding_second_variant_is_gated(self, api_client, cafe, make_variant):
        variant = make_variant(cafe, name="Latte", price="45.00")
        api_client.force_authenticate(cafe.owner)
        response = api_client.patch(
            reverse("inventory:product_detail", args=[variant.product.id]),
            {
                "variants": [
                    {"id": str(variant.id), "sku": variant.sku, "price": "45.00"},
                    {"sku": "LATTE-L", "price": "55.00"},
                ]
            },
            format="json",
        )

        assert response.status_code == 403
        assert response.json()["feature"] == "variants"
        assert variant.product.variants.count() == 1

    def test_update_existing_variant_price(self, api_client, cafe, make_variant):
        variant = make_variant(cafe, name="Latte", price="45.00")
        api_client.force_authenticate(cafe.owner)
        response = api_client.patch(
            reverse("inventory:product_detail", args=[variant.product.id]),
            {"variants": [{"id": str(variant.id), "sku": variant.sku, "price": "50.00"}]},
            format="json",
        )

        assert response.status_code == 200
        variant.refresh_from_db()
        assert str(variant.price) == "50.00"

    def test_delete_deactivates_product(self, api_client, retail, make_variant):
        variant = make_variant(retail)
        api_client.force_authenticate(retail.owner)
        url = reverse("inventory:product_detail", args=[variant.product.id])

        response = api_client.delete(url)
        assert response.status_code == 204

        variant.product.refresh_from_db()
        assert variant.product.is_active is False
        assert api_client.delete(url).status_code == 409

    def test_search_by_barcode(self, api_client, supermarket, make_variant):
        make_variant(supermarket, name="Sugar", barcode="6221000000028")
        make_variant(supermarket, name="Salt")
        api_client.force_authenticate(supermarket.employee)

        response = api_client.get(reverse("inventory:product_list"), {"search": "6221000000028"})

        results = response.json()["results"]
        assert [product["name"] for product in results] == ["Sugar"]

    def test_products_are_tenant_scoped(self, api_client, make_business, make_variant):
        first = make_business("retail", name="First Shop")
        second = make_business("retail", name="Second Shop")
        variant = make_variant(first, name="Jacket")

        api_client.force_authenticate(second.owner)
        assert api_client.get(reverse("inventory:product_list")).json()["count"] == 0
        response = api_client.get(reverse("inventory:product_detail", args=[variant.product.id]))
        assert response.status_code == 404

    def test_category_create_and_deactivate(self, api_client, retail):
        api_client.force_authenticate(retail.owner)
        response = api_client.post(reverse("inventory:category_list"), {"name": "Shoes"}, format="json")
        assert response.status_code == 201

        category_id = response.json()["id"]
        api_client.delete(reverse("inventory:category_detail", args=[category_id]))

        response = api_client.get(reverse("inventory:category_list"), {"is_active": "true"})
        assert response.json() == []


@pytest.mark.django_db
class TestBarcodeLookup:
    def test_lookup_returns_branch_stock(self, api_client, supermarket, make_variant):
        variant = make_variant(supermarket, name="Water", price="7.50", stock=24, barcode="6221000000035")
        api_client.force_authenticate(supermarket.employee)

        response = api_client.get(reverse("inventory:lookup_by_barcode", args=["6221000000035"]))

        assert response.status_code == 200
        data = response.json()
        assert data["variant_id"] == str(variant.id)
        assert data["price"] == "7.50"
        assert data["stock"] == 24

    def test_unknown_barcode(self, api_client, supermarket):
        api_client.force_authenticate(supermarket.employee)
        response = api_client.get(reverse("inventory:lookup_by_barcode", args=["0000"]))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_inactive_product_is_not_found(self, api_client, supermarket, make_variant):
        variant = make_variant(supermarket, barcode="6221000000042")
        variant.product.is_active = False
        variant.product.save()

        api_client.force_authenticate(supermarket.employee)
        response = api_client.get(reverse("inventory:lookup_by_barcode", args=["6221000000042"]))
        assert response.status_code == 404


@pytest.mark.django_db
class TestStockLevels:
    """Manual updates, counts and low stock alerts."""

    def test_set_add_subtract(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        url = reverse("inventory:update_stock")
        payload = {"variant_id": str(variant.id), "branch_id": str(retail.branch.id)}

        api_client.post(url, {**payload, "quantity": 25, "operation": "set"}, format="json")
        assert stock(variant, retail.branch) == 25

        api_client.post(url, {**payload, "quantity": 5, "operation": "add"}, format="json")
        assert stock(variant, retail.branch) == 30

        response = api_client.post(url, {**payload, "quantity": 12, "operation": "subtract"}, format="json")
        assert response.status_code == 200
        assert response.json()["quantity"] == 18

    def test_subtract_below_zero_rejected(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=3)
        api_client.force_authenticate(retail.manager)

        response = api_client.post(
            reverse("inventory:update_stock"),
            {
                "variant_id": str(variant.id),
                "branch_id": str(retail.branch.id),
                "quantity": 4,
                "operation": "subtract",
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_stock"
        assert stock(variant, retail.branch) == 3

    def test_update_creates_missing_row(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail)
        api_client.force_authenticate(retail.owner)

        response = api_client.post(
            reverse("inventory:update_stock"),
            {
                "variant_id": str(variant.id),
                "branch_id": str(retail.other_branch.id),
                "quantity": 8,
                "operation": "add",
                "min_stock": 2,
            },
            format="json",
        )

        assert response.status_code == 200
        row = Inventory.objects.get(variant=variant, branch=retail.other_branch)
        assert (row.quantity, row.min_stock) == (8, 2)

    def test_cashier_cannot_update_stock(self, api_client, retail, make_variant):
        variant = make_variant(retail, stock=3)
        api_client.force_authenticate(retail.employee)
        response = api_client.post(
            reverse("inventory:update_stock"),
            {"variant_id": str(variant.id), "branch_id": str(retail.branch.id), "quantity": 1},
            format="json",
        )
        assert response.status_code == 403

    def test_stock_count_adjustment(self, api_client, retail, make_variant, stock):
        first = make_variant(retail, stock=10)
        second = make_variant(retail, stock=4)
        api_client.force_authenticate(retail.manager)

        response = api_client.post(
            reverse("inventory:adjust_stock"),
            {
                "branch_id": str(retail.branch.id),
                "reason": "Monthly count",
                "items": [
                    {"variant_id": str(first.id), "quantity": 9},
                    {"variant_id": str(second.id), "quantity": 6},
                ],
            },
            format="json",
        )

        assert response.status_code == 200
        assert stock(first, retail.branch) == 9
        assert stock(second, retail.branch) == 6
        assert AuditLog.objects.filter(
            tenant=retail.tenant, action=AuditLog.ACTION_STOCK_SET
        ).count() == 2

    def test_low_stock_uses_row_threshold(self, api_client, retail, make_variant):
        low = make_variant(retail, name="Low", stock=2, min_stock=5)
        make_variant(retail, name="Fine", stock=20, min_stock=5)
        at_threshold = make_variant(retail, name="Edge", stock=3, min_stock=3)
        api_client.force_authenticate(retail.employee)

        response = api_client.get(reverse("inventory:low_stock"))

        assert response.status_code == 200
        ids = {row["variant"] for row in response.json()["results"]}
        assert ids == {str(low.id), str(at_threshold.id)}

    def test_inventory_list_filters_branch(self, api_client, retail, make_variant):
        make_variant(retail, stock=5)
        make_variant(retail, stock=5, branch=retail.other_branch)
        api_client.force_authenticate(retail.employee)

        response = api_client.get(reverse("inventory:inventory_list"), {"branch": str(retail.other_branch.id)})
        assert response.json()["count"] == 1

    @pytest.mark.parametrize("param", ["branch", "variant"])
    def test_malformed_filter_is_bad_request(self, api_client, retail, param):
        api_client.force_authenticate(retail.employee)

        response = api_client.get(reverse("inventory:inventory_list"), {param: "not-a-uuid"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_filter"


@pytest.mark.django_db
class TestStockService:
    def test_deduct_skips_untracked_products(self, retail, make_variant):
        variant = make_variant(retail, track_stock=False)
        assert services.deduct_stock(variant, retail.branch, 100) is None

    def test_deduct_missing_row_raises(self, retail, make_variant):
        variant = make_variant(retail)
        with pytest.raises(InsufficientStock):
            services.deduct_stock(variant, retail.branch, 1)

    def test_deduct_writes_audit_entry(self, retail, make_variant, stock):
        variant = make_variant(retail, stock=5)
        services.deduct_stock(variant, retail.branch, 2, reason="Damaged", user=retail.manager)

        assert stock(variant, retail.branch) == 3
        entry = AuditLog.objects.get(tenant=retail.tenant, action=AuditLog.ACTION_STOCK_OUT)
        assert entry.user == retail.manager

    def test_database_rejects_negative_quantity(self, retail, make_variant, stock):
        variant = make_variant(retail, stock=5)
        row = Inventory.objects.get(variant=variant, branch=retail.branch)
        row.quantity = -1

        with pytest.raises(IntegrityError), transaction.atomic():
            row.save()

        assert stock(variant, retail.branch) == 5
