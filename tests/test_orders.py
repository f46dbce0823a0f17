"""
Tests for restaurant tables, kitchen orders and checkout.
"""

from decimal import Decimal

from django.urls import reverse

import pytest

from apps.core.exceptions import InsufficientStock, OrderAlreadyPaid, OrderNotEditable
from apps.restaurant import services
from apps.restaurant.models import Order, RestaurantTable
from apps.sales.models import Sale


@pytest.fixture
def table(restaurant):
    return RestaurantTable.objects.create(tenant=restaurant.tenant, branch=restaurant.branch, name="T1")


@pytest.fixture
def burger(restaurant, make_variant):
    return make_variant(restaurant, name="Burger", price="120.00", stock=20)


@pytest.fixture
def cola(restaurant, make_variant):
    return make_variant(restaurant, name="Cola", price="25.00", stock=50)


def order_payload(*lines, **extra):
    return {
        "items": [
            {"variant_id": str(variant.id), "quantity": quantity} for variant, quantity in lines
        ],
        **extra,
    }


def open_order(business, lines, table=None, order_type=Order.DINE_IN):
    return services.create_order(
        business.tenant,
        business.employee,
        [{"variant": variant, "quantity": quantity} for variant, quantity in lines],
        order_type=order_type,
        table=table,
    )


@pytest.mark.django_db
class TestTables:
    """Table management per branch."""

    def test_manager_creates_table(self, api_client, restaurant):
        api_client.force_authenticate(restaurant.manager)

        response = api_client.post(
            reverse("restaurant:table_list"),
            {"branch": str(restaurant.branch.id), "name": "T7", "capacity": 6},
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["status"] == RestaurantTable.AVAILABLE

    def test_cashier_cannot_create_table(self, api_client, restaurant):
        api_client.force_authenticate(restaurant.employee)
        response = api_client.post(
            reverse("restaurant:table_list"),
            {"branch": str(restaurant.branch.id), "name": "T7"},
            format="json",
        )
        assert response.status_code == 403

    def test_table_names_unique_per_branch(self, api_client, restaurant, table):
        api_client.force_authenticate(restaurant.owner)
        url = reverse("restaurant:table_list")

        response = api_client.post(url, {"branch": str(restaurant.branch.id), "name": "T1"}, format="json")
        assert response.status_code == 400

        response = api_client.post(url, {"branch": str(restaurant.other_branch.id), "name": "T1"}, format="json")
        assert response.status_code == 201

    def test_cashier_may_change_status_only(self, api_client, restaurant, table):
        api_client.force_authenticate(restaurant.employee)
        url = reverse("restaurant:table_detail", args=[table.id])

        response = api_client.patch(url, {"status": RestaurantTable.RESERVED}, format="json")
        assert response.status_code == 200

        response = api_client.patch(url, {"capacity": 10}, format="json")
        assert response.status_code == 403

    def test_list_filters_status(self, api_client, restaurant, table):
        RestaurantTable.objects.create(
            tenant=restaurant.tenant, branch=restaurant.branch, name="T2", status=RestaurantTable.OCCUPIED
        )
        api_client.force_authenticate(restaurant.employee)

        response = api_client.get(reverse("restaurant:table_list"), {"status": RestaurantTable.AVAILABLE})
        assert [row["name"] for row in response.json()] == ["T1"]

    def test_delete_with_active_order_rejected(self, api_client, restaurant, table, burger):
        open_order(restaurant, [(burger, 1)], table=table)
        api_client.force_authenticate(restaurant.owner)

        response = api_client.delete(reverse("restaurant:table_detail", args=[table.id]))

        assert response.status_code == 400
        assert response.json()["code"] == "table_has_active_orders"
        assert RestaurantTable.objects.filter(id=table.id).exists()

    def test_delete_keeps_paid_orders(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        services.checkout(order, restaurant.employee)
        api_client.force_authenticate(restaurant.owner)

        response = api_client.delete(reverse("restaurant:table_detail", args=[table.id]))

        assert response.status_code == 204
        order.refresh_from_db()
        assert order.table is None
        assert order.status == Order.PAID

    def test_manager_cannot_delete_table(self, api_client, restaurant, table):
        api_client.force_authenticate(restaurant.manager)
        response = api_client.delete(reverse("restaurant:table_detail", args=[table.id]))
        assert response.status_code == 403


@pytest.mark.django_db
class TestOrderCreation:
    def test_dine_in_order_occupies_table(self, api_client, restaurant, table, burger, cola):
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_list"),
            order_payload((burger, 2), (cola, 2), table_id=str(table.id)),
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order_number"].startswith("ORD-")
        assert data["status"] == Order.PENDING
        assert data["table_name"] == "T1"
        assert Decimal(data["total"]) == Decimal("290.00")
        table.refresh_from_db()
        assert table.status == RestaurantTable.OCCUPIED

    def test_restaurant_dine_in_requires_table(self, api_client, restaurant, burger):
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(reverse("restaurant:order_list"), order_payload((burger, 1)), format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "table_required"

    def test_restaurant_takeaway_without_table(self, api_client, restaurant, burger):
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_list"),
            order_payload((burger, 1), order_type=Order.TAKEAWAY),
            format="json",
        )
        assert response.status_code == 201

    def test_cafe_dine_in_without_table(self, api_client, cafe, make_variant):
        latte = make_variant(cafe, name="Latte", price="45.00", track_stock=False)
        api_client.force_authenticate(cafe.employee)

        response = api_client.post(reverse("restaurant:order_list"), order_payload((latte, 1)), format="json")
        assert response.status_code == 201

    def test_table_of_other_branch_rejected(self, api_client, restaurant, burger):
        far_table = RestaurantTable.objects.create(
            tenant=restaurant.tenant, branch=restaurant.other_branch, name="W1"
        )
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_list"),
            order_payload((burger, 1), table_id=str(far_table.id)),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "table_not_found"

    def test_retail_cannot_create_orders(self, api_client, retail, make_variant):
        shirt = make_variant(retail, stock=5)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("restaurant:order_list"),
            order_payload((shirt, 1), order_type=Order.TAKEAWAY),
            format="json",
        )
        assert response.status_code == 403
        assert response.json()["feature"] == "orders"

    def test_creating_order_does_not_touch_stock(self, restaurant, table, burger, stock):
        open_order(restaurant, [(burger, 3)], table=table)
        assert stock(burger, restaurant.branch) == 20


@pytest.mark.django_db
class TestOrderFlow:
    """Kitchen status flow and item changes."""

    def test_add_items_while_pending(self, api_client, restaurant, table, burger, cola):
        order = open_order(restaurant, [(burger, 1)], table=table)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_add_items", args=[order.id]),
            order_payload((cola, 2)),
            format="json",
        )

        assert response.status_code == 200
        assert Decimal(response.json()["total"]) == Decimal("170.00")
        assert len(response.json()["items"]) == 2

    def test_add_items_after_ready_rejected(self, restaurant, table, burger, cola):
        order = open_order(restaurant, [(burger, 1)], table=table)
        services.update_status(order, Order.READY, restaurant.employee)

        with pytest.raises(OrderNotEditable):
            services.add_items(order, [{"variant": cola, "quantity": 1}], restaurant.employee)

    def test_forward_transitions(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        api_client.force_authenticate(restaurant.employee)
        url = reverse("restaurant:order_status", args=[order.id])

        for status_value in [Order.PREPARING, Order.READY, Order.SERVED]:
            response = api_client.patch(url, {"status": status_value}, format="json")
            assert response.status_code == 200
            assert response.json()["status"] == status_value

    def test_skipping_forward_allowed(self, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        order = services.update_status(order, Order.SERVED, restaurant.employee)
        assert order.status == Order.SERVED

    def test_backward_transition_rejected(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        services.update_status(order, Order.READY, restaurant.employee)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.patch(
            reverse("restaurant:order_status", args=[order.id]), {"status": Order.PREPARING}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status_transition"

    def test_paid_only_through_checkout(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.patch(
            reverse("restaurant:order_status", args=[order.id]), {"status": Order.PAID}, format="json"
        )

        assert response.status_code == 400
        order.refresh_from_db()
        assert order.status == Order.PENDING

    def test_cancel_releases_table(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_cancel", args=[order.id]), {"reason": "Customer left"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == Order.CANCELLED
        table.refresh_from_db()
        assert table.status == RestaurantTable.AVAILABLE

    def test_cancel_keeps_table_with_other_active_order(self, restaurant, table, burger):
        first = open_order(restaurant, [(burger, 1)], table=table)
        open_order(restaurant, [(burger, 1)], table=table)

        services.cancel_order(first, restaurant.employee)

        table.refresh_from_db()
        assert table.status == RestaurantTable.OCCUPIED

    def test_cancel_twice_rejected(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        services.cancel_order(order, restaurant.employee)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(reverse("restaurant:order_cancel", args=[order.id]))

        assert response.status_code == 400
        assert response.json()["code"] == "order_already_paid"

    def test_kitchen_display_oldest_first(self, api_client, restaurant, table, burger, cola):
        first = open_order(restaurant, [(burger, 1)], table=table)
        second = open_order(restaurant, [(cola, 1)], order_type=Order.TAKEAWAY)
        served = open_order(restaurant, [(cola, 1)], order_type=Order.TAKEAWAY)
        services.update_status(served, Order.SERVED, restaurant.employee)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.get(reverse("restaurant:kitchen_orders"))

        assert response.status_code == 200
        assert [row["id"] for row in response.json()] == [str(first.id), str(second.id)]

    def test_order_list_filters(self, api_client, restaurant, table, burger):
        open_order(restaurant, [(burger, 1)], table=table)
        open_order(restaurant, [(burger, 1)], order_type=Order.DELIVERY)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.get(reverse("restaurant:order_list"), {"order_type": Order.DELIVERY})
        assert response.json()["count"] == 1

        response = api_client.get(reverse("restaurant:order_list"), {"table": str(table.id)})
        assert response.json()["count"] == 1

    def test_malformed_table_filter_is_bad_request(self, api_client, restaurant):
        api_client.force_authenticate(restaurant.employee)

        response = api_client.get(reverse("restaurant:order_list"), {"table": "abc"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_filter"

        response = api_client.get(reverse("restaurant:kitchen_orders"), {"branch": "abc"})
        assert response.status_code == 400


@pytest.mark.django_db
class TestCheckout:
    """Turning an order into a sale."""

    def test_checkout_creates_sale_and_frees_table(self, api_client, restaurant, table, burger, cola, stock):
        order = open_order(restaurant, [(burger, 2), (cola, 1)], table=table)
        services.update_status(order, Order.SERVED, restaurant.employee)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_checkout", args=[order.id]),
            {"paid": "300.00", "tax": "14.00"},
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order"]["status"] == Order.PAID
        assert data["order"]["invoice_number"] == data["sale"]["invoice_number"]
        assert Decimal(data["sale"]["total"]) == Decimal("279.00")
        assert Decimal(data["sale"]["change"]) == Decimal("21.00")
        assert stock(burger, restaurant.branch) == 18
        assert stock(cola, restaurant.branch) == 49
        table.refresh_from_db()
        assert table.status == RestaurantTable.AVAILABLE

    def test_checkout_with_discount(self, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 2)], table=table)

        order, sale = services.checkout(
            order, restaurant.employee, discount=Decimal("10"), discount_type=Sale.DISCOUNT_PERCENTAGE
        )

        assert sale.discount == Decimal("24.00")
        assert order.total == Decimal("216.00")
        assert order.discount == Decimal("24.00")

    def test_checkout_from_pending(self, restaurant, burger):
        order = open_order(restaurant, [(burger, 1)], order_type=Order.TAKEAWAY)
        order, sale = services.checkout(order, restaurant.employee)
        assert order.status == Order.PAID
        assert order.paid_at is not None

    def test_checkout_twice_rejected(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        services.checkout(order, restaurant.employee)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(reverse("restaurant:order_checkout", args=[order.id]), {}, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "order_already_paid"
        assert Sale.objects.count() == 1

    def test_insufficient_stock_leaves_order_unpaid(self, restaurant, table, burger, make_variant, stock):
        steak = make_variant(restaurant, name="Steak", price="400.00", stock=1)
        order = open_order(restaurant, [(burger, 1), (steak, 2)], table=table)

        with pytest.raises(InsufficientStock):
            services.checkout(order, restaurant.employee)

        order.refresh_from_db()
        assert order.status == Order.PENDING
        assert Sale.objects.count() == 0
        assert stock(burger, restaurant.branch) == 20
        table.refresh_from_db()
        assert table.status == RestaurantTable.OCCUPIED

    def test_installment_checkout_not_accepted(self, api_client, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        api_client.force_authenticate(restaurant.employee)

        response = api_client.post(
            reverse("restaurant:order_checkout", args=[order.id]),
            {"payment_method": "INSTALLMENT"},
            format="json",
        )

        assert response.status_code == 400
        assert "payment_method" in response.json()

    def test_cancel_paid_order_rejected(self, restaurant, table, burger):
        order = open_order(restaurant, [(burger, 1)], table=table)
        services.checkout(order, restaurant.employee)

        with pytest.raises(OrderAlreadyPaid):
            services.cancel_order(order, restaurant.employee)
