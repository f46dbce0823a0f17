"""
Tests for register shifts and cash drawer reconciliation.
"""

from decimal import Decimal

from django.urls import reverse

import pytest

from apps.core.exceptions import ShiftAlreadyOpen, ShiftClosed
from apps.inventory.services import add_stock
from apps.sales import services
from apps.sales.models import Sale, Shift


@pytest.mark.django_db
class TestShiftLifecycle:
    """Opening, cash movements and closing."""

    def test_open_shift_on_user_branch(self, api_client, retail):
        api_client.force_authenticate(retail.employee)

        response = api_client.post(reverse("sales:open_shift"), {"opening_balance": "500.00"}, format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["branch"] == str(retail.branch.id)
        assert data["is_open"] is True

        response = api_client.get(reverse("sales:current_shift"))
        assert response.json()["shift"]["id"] == data["id"]

    def test_current_shift_is_null_without_shift(self, api_client, retail):
        api_client.force_authenticate(retail.employee)
        assert api_client.get(reverse("sales:current_shift")).json() == {"shift": None}

    def test_one_open_shift_per_branch(self, api_client, retail):
        services.open_shift(retail.tenant, retail.branch, retail.manager, Decimal("100.00"))
        api_client.force_authenticate(retail.employee)

        response = api_client.post(reverse("sales:open_shift"), {"opening_balance": "500.00"}, format="json")

        assert response.status_code == 409
        assert response.json()["code"] == "shift_already_open"

    def test_other_branch_can_open_at_the_same_time(self, api_client, retail):
        services.open_shift(retail.tenant, retail.branch, retail.manager, Decimal("100.00"))
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:open_shift"),
            {"opening_balance": "50.00", "branch_id": str(retail.other_branch.id)},
            format="json",
        )
        assert response.status_code == 201

    def test_cash_transactions(self, api_client, retail):
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("100.00"))
        api_client.force_authenticate(retail.employee)
        url = reverse("sales:shift_transaction", args=[shift.id])

        response = api_client.post(
            url, {"transaction_type": "DEPOSIT", "amount": "200.00", "reason": "Change float"}, format="json"
        )
        assert response.status_code == 201

        api_client.post(url, {"transaction_type": "WITHDRAWAL", "amount": "50.00"}, format="json")

        response = api_client.get(reverse("sales:shift_detail", args=[shift.id]))
        assert len(response.json()["transactions"]) == 2

    def test_close_computes_expected_cash(self, api_client, retail, make_variant):
        shirt = make_variant(retail, price="100.00", stock=20)
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("500.00"))
        sale = services.record_sale(
            retail.tenant, retail.branch, retail.employee, [{"variant": shirt, "quantity": 3}]
        )
        services.record_sale(
            retail.tenant,
            retail.branch,
            retail.employee,
            [{"variant": shirt, "quantity": 2}],
            payment_method=Sale.CARD,
        )
        services.refund_sale(sale, [{"sale_item_id": sale.items.get().id, "quantity": 1}], retail.employee)
        services.add_cash_transaction(shift, "DEPOSIT", Decimal("50.00"), retail.employee)
        services.add_cash_transaction(shift, "WITHDRAWAL", Decimal("120.00"), retail.employee)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:close_shift", args=[shift.id]), {"actual_cash": "625.00"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        # 500 + 300 cash sales - 100 refund + 50 - 120
        assert Decimal(data["expected_cash"]) == Decimal("630.00")
        assert Decimal(data["difference"]) == Decimal("-5.00")
        assert data["is_open"] is False

    def test_sales_of_every_cashier_on_the_branch_are_counted(self, retail, make_variant):
        shirt = make_variant(retail, price="100.00", stock=20)
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("0.00"))
        sale = services.record_sale(
            retail.tenant, retail.branch, retail.manager, [{"variant": shirt, "quantity": 2}]
        )
        services.refund_sale(sale, [{"sale_item_id": sale.items.get().id, "quantity": 1}], retail.manager)

        shift = services.close_shift(shift, Decimal("100.00"), retail.employee)
        assert shift.expected_cash == Decimal("100.00")
        assert shift.difference == Decimal("0.00")

    def test_sales_on_another_branch_are_not_counted(self, retail, make_variant):
        shirt = make_variant(retail, price="100.00", stock=20)
        add_stock(shirt, retail.other_branch, 5)
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("0.00"))
        services.record_sale(
            retail.tenant, retail.other_branch, retail.manager, [{"variant": shirt, "quantity": 1}]
        )

        shift = services.close_shift(shift, Decimal("0.00"), retail.employee)
        assert shift.expected_cash == Decimal("0.00")

    def test_close_twice_rejected(self, api_client, retail):
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("100.00"))
        services.close_shift(shift, Decimal("100.00"), retail.employee)
        api_client.force_authenticate(retail.employee)

        response = api_client.post(
            reverse("sales:close_shift", args=[shift.id]), {"actual_cash": "100.00"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "shift_closed"

    def test_no_transactions_on_closed_shift(self, retail):
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("100.00"))
        services.close_shift(shift, Decimal("100.00"), retail.employee)

        with pytest.raises(ShiftClosed):
            services.add_cash_transaction(shift, "DEPOSIT", Decimal("10.00"), retail.employee)

    def test_reopen_after_close(self, retail):
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("100.00"))
        services.close_shift(shift, Decimal("100.00"), retail.employee)

        services.open_shift(retail.tenant, retail.branch, retail.manager, Decimal("80.00"))
        assert Shift.objects.filter(branch=retail.branch, closed_at__isnull=True).count() == 1

        with pytest.raises(ShiftAlreadyOpen):
            services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("80.00"))

    def test_shift_list_filters_open(self, api_client, retail):
        shift = services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("100.00"))
        services.close_shift(shift, Decimal("100.00"), retail.employee)
        services.open_shift(retail.tenant, retail.branch, retail.employee, Decimal("100.00"))
        api_client.force_authenticate(retail.owner)

        assert api_client.get(reverse("sales:shift_list"), {"is_open": "true"}).json()["count"] == 1
        assert api_client.get(reverse("sales:shift_list"), {"is_open": "false"}).json()["count"] == 1
