"""
Tests for POS sales, coupons and refunds.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.urls import reverse
from django.utils import timezone

import pytest

from apps.core.exceptions import CouponInactive
from apps.core.models import Tenant
from apps.sales import services
from apps.sales.models import Discount, Refund, Sale


def sale_payload(*lines, **extra):
    return {
        "items": [
            {"variant_id": str(variant.id), "quantity": quantity} for variant, quantity in lines
        ],
        **extra,
    }


@pytest.fixture
def coupon(retail):
    return Discount.objects.create(
        tenant=retail.tenant,
        name="Summer",
        code="SUMMER10",
        discount_type=Discount.PERCENTAGE,
        value=Decimal("10.00"),
    )


@pytest.mark.django_db
class TestPosSale:
    """Creating sales from the POS."""

    def test_cash_sale_deducts_stock(self, api_client, retail, make_variant, stock):
        shirt = make_variant(retail, name="Shirt", price="150.00", stock=10)
        jeans = make_variant(retail, name="Jeans", price="300.00", stock=5)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 2), (jeans, 1), paid="700.00"),
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["invoice_number"].startswith("INV-")
        assert Decimal(data["subtotal"]) == Decimal("600.00")
        assert Decimal(data["total"]) == Decimal("600.00")
        assert Decimal(data["change"]) == Decimal("100.00")
        assert data["status"] == Sale.COMPLETED
        assert stock(shirt, retail.branch) == 8
        assert stock(jeans, retail.branch) == 4

    def test_paid_defaults_to_total(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="150.00", stock=10)
        api_client.force_authenticate(retail.employee)

        data = api_client.post(reverse("sales:pos_create_sale"), sale_payload((shirt, 1)), format="json").json()

        assert Decimal(data["paid"]) == Decimal("150.00")
        assert Decimal(data["change"]) == Decimal("0.00")

    def test_percentage_discount_and_tax(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="200.00", stock=10)
        api_client.force_authenticate(retail.employee)

        data = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), discount="15", discount_type="percentage", tax="14.00"),
            format="json",
        ).json()

        assert Decimal(data["discount"]) == Decimal("30.00")
        assert Decimal(data["total"]) == Decimal("184.00")
        assert data["discount_type"] == Sale.DISCOUNT_PERCENTAGE

    def test_percentage_above_hundred_rejected(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="200.00", stock=10)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), discount="120", discount_type="percentage"),
            format="json",
        )
        assert response.status_code == 400

    def test_amount_discount_never_makes_total_negative(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="50.00", stock=10)
        api_client.force_authenticate(retail.employee)

        data = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), discount="80.00"),
            format="json",
        ).json()

        assert Decimal(data["total"]) == Decimal("0.00")

    def test_line_price_override_and_discount(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="150.00", stock=10)
        api_client.force_authenticate(retail.employee)
        payload = {
            "items": [
                {"variant_id": str(shirt.id), "quantity": 2, "unit_price": "120.00", "discount": "20.00"}
            ]
        }

        data = api_client.post(reverse("sales:pos_create_sale"), payload, format="json").json()

        assert Decimal(data["items"][0]["total"]) == Decimal("220.00")
        assert Decimal(data["total"]) == Decimal("220.00")

    def test_insufficient_payment(self, api_client, retail, make_variant, stock):
        shirt = make_variant(retail, price="150.00", stock=10)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), paid="100.00"),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_payment"
        assert stock(shirt, retail.branch) == 10

    def test_insufficient_stock_rolls_back_everything(self, api_client, retail, make_variant, stock, coupon):
        shirt = make_variant(retail, price="150.00", stock=10)
        jeans = make_variant(retail, price="300.00", stock=1)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 2), (jeans, 2), coupon_code="SUMMER10"),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_stock"
        assert Sale.objects.count() == 0
        assert stock(shirt, retail.branch) == 10
        assert stock(jeans, retail.branch) == 1
        coupon.refresh_from_db()
        assert coupon.used_count == 0

    def test_untracked_product_sells_without_stock(self, api_client, cafe, make_variant):
        espresso = make_variant(cafe, name="Espresso", price="30.00", track_stock=False)
        api_client.force_authenticate(cafe.employee)

        response = api_client.post(reverse("sales:pos_create_sale"), sale_payload((espresso, 3)), format="json")
        assert response.status_code == 201

    def test_inactive_variant_rejected(self, api_client, retail, make_variant):
        shirt = make_variant(retail, stock=10)
        shirt.is_active = False
        shirt.save()
        api_client.force_authenticate(retail.employee)

        response = api_client.post(reverse("sales:pos_create_sale"), sale_payload((shirt, 1)), format="json")
        assert response.status_code == 400
        assert "items" in response.json()

    def test_user_without_branch_rejected(self, api_client, retail, make_variant):
        shirt = make_variant(retail, stock=10)
        retail.employee.branch = None
        retail.employee.save()
        api_client.force_authenticate(retail.employee)

        response = api_client.post(reverse("sales:pos_create_sale"), sale_payload((shirt, 1)), format="json")
        assert response.status_code == 400
        assert response.json()["code"] == "branch_required"

    def test_sale_attaches_to_branch_shift(self, api_client, retail, make_variant):
        """Test that a sale lands in the branch register shift, whoever opened it."""
        shirt = make_variant(retail, stock=10)
        shift = services.open_shift(retail.tenant, retail.branch, retail.manager, Decimal("100.00"))
        api_client.force_authenticate(retail.employee)

        data = api_client.post(reverse("sales:pos_create_sale"), sale_payload((shirt, 1)), format="json").json()
        assert data["shift"] == str(shift.id)

    def test_sales_list_search(self, api_client, retail, make_variant):
        shirt = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.employee)
        api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), customer_name="Mona", customer_phone="01011112222"),
            format="json",
        )
        api_client.post(reverse("sales:pos_create_sale"), sale_payload((shirt, 1)), format="json")

        response = api_client.get(reverse("sales:sale_list"), {"search": "01011112222"})
        assert response.json()["count"] == 1

    def test_sales_list_date_filters(self, api_client, retail, make_variant):
        shirt = make_variant(retail, stock=10)
        services.record_sale(retail.tenant, retail.branch, retail.employee, [{"variant": shirt, "quantity": 1}])
        today = timezone.localdate()
        api_client.force_authenticate(retail.manager)

        response = api_client.get(reverse("sales:sale_list"), {"date_from": today.isoformat()})
        assert response.json()["count"] == 1

        response = api_client.get(
            reverse("sales:sale_list"), {"date_to": (today - timedelta(days=1)).isoformat()}
        )
        assert response.json()["count"] == 0

    @pytest.mark.parametrize(
        "params", [{"date_from": "yesterday"}, {"date_to": "2024-13-45"}, {"branch": "main"}]
    )
    def test_sales_list_malformed_filter(self, api_client, retail, params):
        api_client.force_authenticate(retail.manager)

        response = api_client.get(reverse("sales:sale_list"), params)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_filter"

    def test_invoice_numbers_are_sequential(self, retail, make_variant):
        shirt = make_variant(retail, stock=10)
        first = services.record_sale(retail.tenant, retail.branch, retail.employee, [{"variant": shirt, "quantity": 1}])
        second = services.record_sale(retail.tenant, retail.branch, retail.employee, [{"variant": shirt, "quantity": 1}])

        assert first.invoice_number.endswith("-0001")
        assert second.invoice_number.endswith("-0002")

    def test_invoice_number_locks_the_tenant_row(self, retail, make_variant):
        shirt = make_variant(retail, stock=10)

        with patch.object(Tenant.objects, "select_for_update", wraps=Tenant.objects.select_for_update) as lock:
            services.record_sale(retail.tenant, retail.branch, retail.employee, [{"variant": shirt, "quantity": 1}])

        lock.assert_called()


@pytest.mark.django_db
class TestCoupons:
    """Coupon validation and redemption."""

    def test_coupon_redeemed_on_sale(self, api_client, retail, make_variant, coupon):
        shirt = make_variant(retail, price="200.00", stock=10)
        api_client.force_authenticate(retail.employee)

        data = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), coupon_code="SUMMER10", discount="50.00"),
            format="json",
        ).json()

        assert Decimal(data["discount"]) == Decimal("20.00")
        assert data["discount_type"] == Sale.DISCOUNT_COUPON
        assert data["coupon_code"] == "SUMMER10"
        coupon.refresh_from_db()
        assert coupon.used_count == 1

    def test_fixed_coupon_capped_at_subtotal(self, retail, make_variant):
        Discount.objects.create(
            tenant=retail.tenant, name="Big", code="BIG", discount_type=Discount.AMOUNT, value=Decimal("500.00")
        )
        shirt = make_variant(retail, price="100.00", stock=10)

        sale = services.record_sale(
            retail.tenant, retail.branch, retail.employee, [{"variant": shirt, "quantity": 1}], coupon_code="BIG"
        )
        assert sale.discount == Decimal("100.00")
        assert sale.total == Decimal("0.00")

    @pytest.mark.parametrize(
        "changes,code",
        [
            ({"is_active": False}, "coupon_inactive"),
            ({"start_date": timezone.now() + timedelta(days=1)}, "coupon_not_started"),
            ({"end_date": timezone.now() - timedelta(days=1)}, "coupon_expired"),
            ({"max_uses": 2, "used_count": 2}, "coupon_usage_exceeded"),
            ({"min_purchase": Decimal("500.00")}, "coupon_minimum_not_met"),
        ],
    )
    def test_coupon_rules(self, api_client, retail, make_variant, coupon, changes, code):
        for field, value in changes.items():
            setattr(coupon, field, value)
        coupon.save()
        shirt = make_variant(retail, price="200.00", stock=10)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:pos_create_sale"),
            sale_payload((shirt, 1), coupon_code="SUMMER10"),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_inactive_checked_before_expiry(self, retail, coupon):
        coupon.is_active = False
        coupon.end_date = timezone.now() - timedelta(days=1)
        coupon.save()

        with pytest.raises(CouponInactive):
            coupon.validate_for(Decimal("100.00"))

    def test_unknown_coupon(self, api_client, retail):
        api_client.force_authenticate(retail.employee)
        response = api_client.get(reverse("sales:validate_coupon", args=["NOPE"]))
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_coupon"

    def test_validate_coupon_does_not_redeem(self, api_client, retail, coupon):
        api_client.force_authenticate(retail.employee)

        response = api_client.get(reverse("sales:validate_coupon", args=["SUMMER10"]), {"subtotal": "300"})

        assert response.status_code == 200
        assert response.json()["discount_amount"] == "30.00"
        coupon.refresh_from_db()
        assert coupon.used_count == 0

    def test_manager_creates_discount(self, api_client, retail):
        api_client.force_authenticate(retail.manager)
        response = api_client.post(
            reverse("sales:discount_list"),
            {"name": "Eid", "code": "EID", "discount_type": "PERCENTAGE", "value": "150.00"},
            format="json",
        )
        assert response.status_code == 400

        response = api_client.post(
            reverse("sales:discount_list"),
            {"name": "Eid", "code": "EID", "discount_type": "PERCENTAGE", "value": "25.00"},
            format="json",
        )
        assert response.status_code == 201

    def test_cashier_cannot_create_discount(self, api_client, retail):
        api_client.force_authenticate(retail.employee)
        response = api_client.post(
            reverse("sales:discount_list"),
            {"name": "Eid", "discount_type": "AMOUNT", "value": "5.00"},
            format="json",
        )
        assert response.status_code == 403


@pytest.mark.django_db
class TestRefunds:
    """Partial and full returns."""

    def _sale(self, business, variant, quantity, **kwargs):
        return services.record_sale(
            business.tenant, business.branch, business.employee, [{"variant": variant, "quantity": quantity}], **kwargs
        )

    def test_partial_refund_restocks(self, api_client, retail, make_variant, stock):
        shirt = make_variant(retail, price="100.00", stock=10)
        sale = self._sale(retail, shirt, 3)
        item = sale.items.get()
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:sale_refund", args=[sale.id]),
            {"items": [{"sale_item_id": str(item.id), "quantity": 1}], "reason": "عيب في المنتج"},
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["refund"]["amount"]) == Decimal("100.00")
        assert data["refund"]["refund_number"].startswith("RET-")
        assert data["sale"]["status"] == Sale.PARTIALLY_REFUNDED
        assert stock(shirt, retail.branch) == 8

    def test_full_refund_in_two_steps(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="100.00", stock=10)
        sale = self._sale(retail, shirt, 2)
        item = sale.items.get()
        api_client.force_authenticate(retail.employee)
        url = reverse("sales:sale_refund", args=[sale.id])

        api_client.post(url, {"items": [{"sale_item_id": str(item.id), "quantity": 1}]}, format="json")
        response = api_client.post(url, {"items": [{"sale_item_id": str(item.id), "quantity": 1}]}, format="json")

        assert response.json()["sale"]["status"] == Sale.REFUNDED
        assert Decimal(response.json()["sale"]["refunded_total"]) == Decimal("200.00")

        response = api_client.post(url, {"items": [{"sale_item_id": str(item.id), "quantity": 1}]}, format="json")
        assert response.status_code == 400

    def test_refund_more_than_sold_rejected(self, api_client, retail, make_variant, stock):
        shirt = make_variant(retail, price="100.00", stock=10)
        sale = self._sale(retail, shirt, 2)
        item = sale.items.get()
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:sale_refund", args=[sale.id]),
            {"items": [{"sale_item_id": str(item.id), "quantity": 3}]},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "refund_quantity_exceeded"
        assert Refund.objects.count() == 0
        assert stock(shirt, retail.branch) == 8

    def test_refund_amount_shares_line_discount(self, retail, make_variant):
        shirt = make_variant(retail, price="100.00", stock=10)
        sale = services.record_sale(
            retail.tenant,
            retail.branch,
            retail.employee,
            [{"variant": shirt, "quantity": 3, "discount": Decimal("30.00")}],
        )
        item = sale.items.get()

        refund = services.refund_sale(sale, [{"sale_item_id": item.id, "quantity": 1}], retail.employee)
        assert refund.amount == Decimal("90.00")

    def test_return_reasons(self, api_client, retail):
        api_client.force_authenticate(retail.employee)
        response = api_client.get(reverse("sales:return_reasons"))
        assert "عيب في المنتج" in response.json()["results"]
