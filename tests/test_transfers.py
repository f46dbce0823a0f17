"""
Tests for stock transfers between branches.
"""

from django.urls import reverse

import pytest

from apps.core.exceptions import InsufficientStock, InvalidQuantity, SameBranchTransfer
from apps.inventory import services
from apps.inventory.models import StockTransfer


def transfer_payload(business, variant, quantity, direct=True, reverse_direction=False):
    source, destination = business.branch, business.other_branch
    if reverse_direction:
        source, destination = destination, source
    return {
        "from_branch_id": str(source.id),
        "to_branch_id": str(destination.id),
        "items": [{"variant_id": str(variant.id), "quantity": quantity}],
        "direct": direct,
    }


@pytest.mark.django_db
class TestDirectTransfer:
    """Transfers shipped and received in one request."""

    def test_direct_transfer_moves_stock(self, api_client, supermarket, make_variant, stock):
        variant = make_variant(supermarket, stock=20)
        api_client.force_authenticate(supermarket.manager)

        response = api_client.post(
            reverse("inventory:transfer_list"),
            transfer_payload(supermarket, variant, 8),
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == StockTransfer.RECEIVED
        assert data["transfer_number"].startswith("TRF-")
        assert stock(variant, supermarket.branch) == 12
        assert stock(variant, supermarket.other_branch) == 8

    def test_direct_is_the_default(self, api_client, supermarket, make_variant):
        variant = make_variant(supermarket, stock=5)
        api_client.force_authenticate(supermarket.owner)
        payload = transfer_payload(supermarket, variant, 1)
        del payload["direct"]

        response = api_client.post(reverse("inventory:transfer_list"), payload, format="json")
        assert response.json()["status"] == StockTransfer.RECEIVED

    def test_insufficient_stock_creates_nothing(self, api_client, supermarket, make_variant, stock):
        variant = make_variant(supermarket, stock=3)
        api_client.force_authenticate(supermarket.manager)

        response = api_client.post(
            reverse("inventory:transfer_list"),
            transfer_payload(supermarket, variant, 4),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_stock"
        assert StockTransfer.objects.count() == 0
        assert stock(variant, supermarket.branch) == 3

    def test_same_branch_rejected(self, api_client, supermarket, make_variant):
        variant = make_variant(supermarket, stock=3)
        api_client.force_authenticate(supermarket.manager)
        payload = transfer_payload(supermarket, variant, 1)
        payload["to_branch_id"] = payload["from_branch_id"]

        response = api_client.post(reverse("inventory:transfer_list"), payload, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "same_branch_transfer"

    def test_branch_of_other_tenant_rejected(self, api_client, make_business, make_variant):
        ours = make_business("retail", name="Our Shop")
        theirs = make_business("retail", name="Their Shop")
        variant = make_variant(ours, stock=3)
        api_client.force_authenticate(ours.owner)
        payload = transfer_payload(ours, variant, 1)
        payload["to_branch_id"] = str(theirs.branch.id)

        response = api_client.post(reverse("inventory:transfer_list"), payload, format="json")
        assert response.status_code == 400

    def test_cashier_cannot_transfer(self, api_client, supermarket, make_variant):
        variant = make_variant(supermarket, stock=3)
        api_client.force_authenticate(supermarket.employee)
        response = api_client.post(
            reverse("inventory:transfer_list"),
            transfer_payload(supermarket, variant, 1),
            format="json",
        )
        assert response.status_code == 403


@pytest.mark.django_db
class TestTwoPhaseTransfer:
    """Transfers shipped and received as separate steps."""

    def _create(self, api_client, business, variant, quantity):
        response = api_client.post(
            reverse("inventory:transfer_list"),
            transfer_payload(business, variant, quantity, direct=False),
            format="json",
        )
        assert response.status_code == 201
        return response.json()

    def test_pending_transfer_keeps_stock(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)

        data = self._create(api_client, retail, variant, 4)

        assert data["status"] == StockTransfer.PENDING
        assert stock(variant, retail.branch) == 10

    def test_ship_then_receive(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        transfer_id = self._create(api_client, retail, variant, 4)["id"]

        response = api_client.post(reverse("inventory:transfer_ship", args=[transfer_id]))
        assert response.json()["status"] == StockTransfer.IN_TRANSIT
        assert stock(variant, retail.branch) == 6
        assert stock(variant, retail.other_branch) == 0

        response = api_client.post(reverse("inventory:transfer_receive", args=[transfer_id]), {}, format="json")
        assert response.json()["status"] == StockTransfer.RECEIVED
        assert stock(variant, retail.other_branch) == 4

    def test_receive_with_discrepancy(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        data = self._create(api_client, retail, variant, 5)
        item_id = data["items"][0]["id"]
        api_client.post(reverse("inventory:transfer_ship", args=[data["id"]]))

        response = api_client.post(
            reverse("inventory:transfer_receive", args=[data["id"]]),
            {"received_quantities": {item_id: 3}},
            format="json",
        )

        item = response.json()["items"][0]
        assert item["received_quantity"] == 3
        assert item["has_discrepancy"] is True
        assert "Difference: -2" in item["discrepancy_notes"]
        assert stock(variant, retail.other_branch) == 3

    def test_receive_more_than_shipped_rejected(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        data = self._create(api_client, retail, variant, 5)
        api_client.post(reverse("inventory:transfer_ship", args=[data["id"]]))

        response = api_client.post(
            reverse("inventory:transfer_receive", args=[data["id"]]),
            {"received_quantities": {data["items"][0]["id"]: 6}},
            format="json",
        )

        assert response.status_code == 400
        assert StockTransfer.objects.get(id=data["id"]).status == StockTransfer.IN_TRANSIT

    def test_receive_pending_transfer_rejected(self, api_client, retail, make_variant):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        transfer_id = self._create(api_client, retail, variant, 2)["id"]

        response = api_client.post(reverse("inventory:transfer_receive", args=[transfer_id]), {}, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status_transition"

    def test_cancel_shipped_transfer_restocks_source(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        transfer_id = self._create(api_client, retail, variant, 4)["id"]
        api_client.post(reverse("inventory:transfer_ship", args=[transfer_id]))

        response = api_client.post(
            reverse("inventory:transfer_cancel", args=[transfer_id]),
            {"reason": "Truck broke down"},
            format="json",
        )

        assert response.json()["status"] == StockTransfer.CANCELLED
        assert "Truck broke down" in response.json()["notes"]
        assert stock(variant, retail.branch) == 10

    def test_cancel_pending_transfer_moves_nothing(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        transfer_id = self._create(api_client, retail, variant, 4)["id"]

        response = api_client.post(
            reverse("inventory:transfer_cancel", args=[transfer_id]), {"reason": "Not needed"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == StockTransfer.CANCELLED
        assert stock(variant, retail.branch) == 10
        assert stock(variant, retail.other_branch) == 0

        response = api_client.post(reverse("inventory:transfer_ship", args=[transfer_id]))
        assert response.status_code == 400
        assert stock(variant, retail.branch) == 10

    def test_cancel_received_transfer_rejected(self, api_client, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        response = api_client.post(
            reverse("inventory:transfer_list"),
            transfer_payload(retail, variant, 4),
            format="json",
        )

        response = api_client.post(reverse("inventory:transfer_cancel", args=[response.json()["id"]]))

        assert response.status_code == 400
        assert stock(variant, retail.other_branch) == 4

    def test_list_filters_by_branch(self, api_client, retail, make_variant):
        variant = make_variant(retail, stock=10)
        api_client.force_authenticate(retail.manager)
        self._create(api_client, retail, variant, 1)

        response = api_client.get(reverse("inventory:transfer_list"), {"branch": str(retail.other_branch.id)})
        assert response.json()["count"] == 1

        response = api_client.get(reverse("inventory:transfer_list"), {"status": StockTransfer.RECEIVED})
        assert response.json()["count"] == 0

    def test_malformed_branch_filter_is_bad_request(self, api_client, retail):
        api_client.force_authenticate(retail.manager)

        response = api_client.get(reverse("inventory:transfer_list"), {"branch": "warehouse"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_filter"


@pytest.mark.django_db
class TestTransferService:
    def test_ship_rolls_back_every_line(self, retail, make_variant, stock):
        enough = make_variant(retail, stock=10)
        short = make_variant(retail, stock=10)
        transfer = services.create_transfer(
            retail.tenant,
            retail.branch,
            retail.other_branch,
            [{"variant": enough, "quantity": 5}, {"variant": short, "quantity": 5}],
            retail.manager,
            direct=False,
        )
        services.update_stock(short, retail.branch, 1)

        with pytest.raises(InsufficientStock):
            services.ship_transfer(transfer, retail.manager)

        transfer.refresh_from_db()
        assert transfer.status == StockTransfer.PENDING
        assert stock(enough, retail.branch) == 10

    def test_same_branch_raises(self, retail, make_variant):
        variant = make_variant(retail, stock=10)
        with pytest.raises(SameBranchTransfer):
            services.create_transfer(
                retail.tenant,
                retail.branch,
                retail.branch,
                [{"variant": variant, "quantity": 1}],
                retail.manager,
            )

    def test_untracked_product_transfers_without_stock(self, retail, make_variant, stock):
        variant = make_variant(retail, track_stock=False)
        transfer = services.create_transfer(
            retail.tenant,
            retail.branch,
            retail.other_branch,
            [{"variant": variant, "quantity": 3}],
            retail.manager,
        )
        assert transfer.status == StockTransfer.RECEIVED
        assert stock(variant, retail.other_branch) == 0

    def test_negative_received_quantity_is_invalid(self, retail, make_variant, stock):
        variant = make_variant(retail, stock=10)
        transfer = services.create_transfer(
            retail.tenant,
            retail.branch,
            retail.other_branch,
            [{"variant": variant, "quantity": 4}],
            retail.manager,
            direct=False,
        )
        transfer = services.ship_transfer(transfer, retail.manager)
        item = transfer.items.get()

        with pytest.raises(InvalidQuantity):
            services.receive_transfer(transfer, retail.manager, {item.id: -1})

        transfer.refresh_from_db()
        assert transfer.status == StockTransfer.IN_TRANSIT
        assert stock(variant, retail.other_branch) == 0
